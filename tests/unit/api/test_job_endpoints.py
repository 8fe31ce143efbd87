"""
Tests for job and application endpoints.

Covers request parsing, role and ownership checks and the response shapes;
business rules are covered by the service tests.
"""

import pytest

from api.routes import health

pytestmark = pytest.mark.asyncio

RESUME = "https://cv.example.com/resume.pdf"


@pytest.fixture
def create_job(client, job_payload):
    """Post a job through the API."""

    async def factory(headers, **overrides):
        response = await client.post("/api/v1/jobs", json=job_payload(**overrides), headers=headers)
        assert response.status_code == 201, response.text
        return response.json()["job"]

    return factory


class TestHealth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "version": "1.0.0"}

    async def test_ready(self, client):
        response = await client.get("/ready")

        assert response.status_code == 200
        assert response.json()["database"] == "ok"

    async def test_ready_without_database(self, client, monkeypatch):
        async def unreachable():
            raise OSError("connection refused")

        monkeypatch.setattr(health, "ping_db", unreachable)

        response = await client.get("/ready")

        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "SERVICE_UNAVAILABLE"
        assert error["message"] == "Database unreachable"


class TestJobEndpoints:
    """Test /api/v1/jobs."""

    async def test_create_job(self, client, register, create_job):
        recruiter = await register("recruiter", name="Rita Recruiter")

        job = await create_job(recruiter["headers"])

        assert job["title"] == "Senior Python Developer"
        assert job["type"] == "full-time"
        assert job["tags"] == ["python", "fastapi"]
        assert job["owner"]["name"] == "Rita Recruiter"

    async def test_create_job_message(self, client, register, job_payload):
        recruiter = await register("recruiter")

        response = await client.post("/api/v1/jobs", json=job_payload(), headers=recruiter["headers"])

        assert response.json()["message"] == "Job created successfully"

    async def test_create_job_requires_auth(self, client, job_payload):
        response = await client.post("/api/v1/jobs", json=job_payload())

        assert response.status_code == 401

    async def test_job_seeker_cannot_create(self, client, register, job_payload):
        seeker = await register("job_seeker")

        response = await client.post("/api/v1/jobs", json=job_payload(), headers=seeker["headers"])

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    async def test_create_job_validation(self, client, register, job_payload):
        recruiter = await register("recruiter")

        response = await client.post(
            "/api/v1/jobs",
            json=job_payload(title="ab", salary={"min": 5000, "max": 3000}),
            headers=recruiter["headers"],
        )

        assert response.status_code == 422
        details = response.json()["error"]["details"]
        fields = {d["field"] for d in details}
        assert "title" in fields
        assert "salary" in fields
        assert any(
            d["message"] == "Minimum salary cannot be greater than maximum salary" for d in details
        )

    async def test_list_jobs_public(self, client, register, create_job):
        recruiter = await register("recruiter")
        await create_job(recruiter["headers"])
        await create_job(recruiter["headers"], title="Data Engineer", type="contract")

        response = await client.get("/api/v1/jobs")

        assert response.status_code == 200
        data = response.json()
        assert data["pagination"]["total_jobs"] == 2
        assert "user_application_status" not in data["jobs"][0]

    async def test_list_jobs_filters_from_query(self, client, register, create_job):
        recruiter = await register("recruiter")
        await create_job(recruiter["headers"], type="full-time")
        await create_job(recruiter["headers"], type="contract")
        await create_job(recruiter["headers"], type="internship")

        comma = await client.get("/api/v1/jobs", params={"type": "contract,internship"})
        repeated = await client.get(
            "/api/v1/jobs", params=[("type", "contract"), ("type", "full-time")]
        )

        assert comma.json()["pagination"]["total_jobs"] == 2
        assert repeated.json()["pagination"]["total_jobs"] == 2

    async def test_list_jobs_invalid_query(self, client, db):
        response = await client.get("/api/v1/jobs", params={"limit": 500, "sort_by": "title"})

        assert response.status_code == 422
        fields = {d["field"] for d in response.json()["error"]["details"]}
        assert fields == {"limit", "sort_by"}

    async def test_list_jobs_invalid_enum_value(self, client, db):
        response = await client.get("/api/v1/jobs", params={"type": "freelance"})

        assert response.status_code == 422

    async def test_get_job_counts_views(self, client, register, create_job):
        recruiter = await register("recruiter")
        job = await create_job(recruiter["headers"])

        await client.get(f"/api/v1/jobs/{job['id']}")
        response = await client.get(f"/api/v1/jobs/{job['id']}")

        assert response.status_code == 200
        assert response.json()["views_count"] == 2

    async def test_get_missing_job(self, client, db):
        response = await client.get("/api/v1/jobs/999")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Job not found"

    async def test_update_job(self, client, register, create_job):
        recruiter = await register("recruiter")
        job = await create_job(recruiter["headers"])

        response = await client.put(
            f"/api/v1/jobs/{job['id']}",
            json={"title": "Lead Python Developer", "salary": {"max": 7000}},
            headers=recruiter["headers"],
        )

        assert response.status_code == 200
        updated = response.json()["job"]
        assert updated["title"] == "Lead Python Developer"
        assert updated["salary"]["min"] == 3000
        assert updated["salary"]["max"] == 7000

    async def test_update_by_other_recruiter(self, client, register, create_job):
        owner = await register("recruiter")
        other = await register("recruiter")
        job = await create_job(owner["headers"])

        response = await client.put(
            f"/api/v1/jobs/{job['id']}", json={"title": "Hijacked"}, headers=other["headers"]
        )

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "You can only update your own jobs"

    @pytest.mark.parametrize("method", ["put", "delete"])
    async def test_job_seeker_cannot_manage_jobs(self, client, register, create_job, method):
        recruiter = await register("recruiter")
        seeker = await register("job_seeker")
        job = await create_job(recruiter["headers"])

        kwargs = {"json": {"title": "Taken over"}} if method == "put" else {}
        response = await getattr(client, method)(
            f"/api/v1/jobs/{job['id']}", headers=seeker["headers"], **kwargs
        )

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"
        assert (await client.get(f"/api/v1/jobs/{job['id']}")).json()["title"] == job["title"]

    async def test_delete_job(self, client, register, create_job):
        recruiter = await register("recruiter")
        job = await create_job(recruiter["headers"])

        response = await client.delete(f"/api/v1/jobs/{job['id']}", headers=recruiter["headers"])

        assert response.status_code == 200
        assert response.json()["message"] == "Job deleted successfully"
        assert (await client.get(f"/api/v1/jobs/{job['id']}")).status_code == 404

    async def test_my_posted_jobs(self, client, register, create_job):
        recruiter = await register("recruiter")
        job = await create_job(recruiter["headers"])
        await client.put(
            f"/api/v1/jobs/{job['id']}", json={"is_active": False}, headers=recruiter["headers"]
        )
        await create_job(recruiter["headers"])

        everything = await client.get("/api/v1/jobs/my/posted", headers=recruiter["headers"])
        inactive = await client.get(
            "/api/v1/jobs/my/posted", params={"status": "inactive"}, headers=recruiter["headers"]
        )

        assert everything.json()["pagination"]["total_jobs"] == 2
        assert [j["id"] for j in inactive.json()["jobs"]] == [job["id"]]

    async def test_my_posted_jobs_for_job_seeker(self, client, register):
        seeker = await register("job_seeker")

        response = await client.get("/api/v1/jobs/my/posted", headers=seeker["headers"])

        assert response.status_code == 403


class TestApplicationEndpoints:
    """Test /api/v1/applications."""

    async def test_apply(self, client, register, create_job):
        recruiter = await register("recruiter")
        seeker = await register("job_seeker")
        job = await create_job(recruiter["headers"])

        response = await client.post(
            "/api/v1/applications",
            json={"job_id": job["id"], "resume_link": RESUME, "cover_letter": "Hello"},
            headers=seeker["headers"],
        )

        assert response.status_code == 201
        data = response.json()
        assert data["message"] == "Application submitted successfully"
        assert data["application"]["status"] == "pending"
        assert data["application"]["job"]["id"] == job["id"]

    async def test_apply_requires_auth(self, client, db):
        response = await client.post(
            "/api/v1/applications", json={"job_id": 1, "resume_link": RESUME}
        )

        assert response.status_code == 401

    async def test_apply_invalid_body(self, client, register):
        seeker = await register("job_seeker")

        response = await client.post(
            "/api/v1/applications",
            json={"job_id": 0, "resume_link": "nope"},
            headers=seeker["headers"],
        )

        assert response.status_code == 422
        fields = {d["field"] for d in response.json()["error"]["details"]}
        assert fields == {"job_id", "resume_link"}

    async def test_apply_twice(self, client, register, create_job):
        recruiter = await register("recruiter")
        seeker = await register("job_seeker")
        job = await create_job(recruiter["headers"])
        body = {"job_id": job["id"], "resume_link": RESUME}

        await client.post("/api/v1/applications", json=body, headers=seeker["headers"])
        response = await client.post("/api/v1/applications", json=body, headers=seeker["headers"])

        assert response.status_code == 409

    async def test_apply_to_own_job(self, client, register, create_job):
        recruiter = await register("recruiter")
        job = await create_job(recruiter["headers"])

        response = await client.post(
            "/api/v1/applications",
            json={"job_id": job["id"], "resume_link": RESUME},
            headers=recruiter["headers"],
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_OPERATION"

    async def test_status_update_validation(self, client, register, create_job):
        recruiter = await register("recruiter")
        seeker = await register("job_seeker")
        job = await create_job(recruiter["headers"])
        applied = await client.post(
            "/api/v1/applications",
            json={"job_id": job["id"], "resume_link": RESUME},
            headers=seeker["headers"],
        )
        application_id = applied.json()["application"]["id"]

        response = await client.put(
            f"/api/v1/applications/{application_id}/status",
            json={"status": "ghosted", "notes": "x" * 1001},
            headers=recruiter["headers"],
        )

        assert response.status_code == 422
        fields = {d["field"] for d in response.json()["error"]["details"]}
        assert fields == {"status", "notes"}

    async def test_job_seeker_cannot_review(self, client, register, create_job):
        recruiter = await register("recruiter")
        seeker = await register("job_seeker")
        job = await create_job(recruiter["headers"])
        applied = await client.post(
            "/api/v1/applications",
            json={"job_id": job["id"], "resume_link": RESUME},
            headers=seeker["headers"],
        )
        application_id = applied.json()["application"]["id"]

        response = await client.put(
            f"/api/v1/applications/{application_id}/status",
            json={"status": "hired"},
            headers=seeker["headers"],
        )

        assert response.status_code == 403
        assert "application:review" in response.json()["error"]["message"]

    async def test_list_my_applications_status_query(self, client, register):
        seeker = await register("job_seeker")

        ok = await client.get(
            "/api/v1/applications/my", params={"status": "pending"}, headers=seeker["headers"]
        )
        bad = await client.get(
            "/api/v1/applications/my", params={"status": "archived"}, headers=seeker["headers"]
        )

        assert ok.status_code == 200
        assert ok.json()["applications"] == []
        assert bad.status_code == 422

    async def test_get_missing_application(self, client, register):
        seeker = await register("job_seeker")

        response = await client.get("/api/v1/applications/999", headers=seeker["headers"])

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Application not found"
