"""Create users, jobs and applications tables

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create users, jobs and applications tables."""
    op.create_table(
        'users',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('user_type', sa.String(length=50), nullable=False, server_default='JOB_SEEKER'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'jobs',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('title', sa.String(length=100), nullable=False),
        sa.Column('company', sa.String(length=100), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('requirements', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=100), nullable=False),
        sa.Column('logo', sa.String(length=500), nullable=False, server_default=''),
        sa.Column('benefits', sa.JSON(), nullable=False),
        sa.Column('tags', sa.JSON(), nullable=False),
        sa.Column('job_type', sa.String(length=50), nullable=False),
        sa.Column('category', sa.String(length=50), nullable=False),
        sa.Column('experience_level', sa.String(length=50), nullable=False, server_default='MID'),
        sa.Column('salary_min', sa.Float(), nullable=True),
        sa.Column('salary_max', sa.Float(), nullable=True),
        sa.Column('salary_currency', sa.String(length=10), nullable=False, server_default='USD'),
        sa.Column('salary_period', sa.String(length=20), nullable=False, server_default='YEARLY'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('featured', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('application_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('applications_count', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('views_count', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('created_by', sa.BigInteger(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['created_by'], ['users.id']),
        sa.CheckConstraint(
            'salary_min IS NULL OR salary_max IS NULL OR salary_min <= salary_max',
            name='ck_job_salary_range',
        ),
    )
    op.create_index('ix_jobs_title', 'jobs', ['title'])
    op.create_index('ix_jobs_location', 'jobs', ['location'])
    op.create_index('ix_jobs_job_type', 'jobs', ['job_type'])
    op.create_index('ix_jobs_category', 'jobs', ['category'])
    op.create_index('ix_jobs_is_active', 'jobs', ['is_active'])
    op.create_index('ix_jobs_featured', 'jobs', ['featured'])
    op.create_index('ix_jobs_created_by', 'jobs', ['created_by'])
    op.create_index('ix_jobs_created_at', 'jobs', ['created_at'])
    op.create_index('idx_job_active_created', 'jobs', ['is_active', 'created_at'])
    op.create_index('idx_job_salary', 'jobs', ['salary_min', 'salary_max'])
    op.execute(
        "CREATE INDEX idx_job_fulltext ON jobs USING gin ("
        "to_tsvector('english'::regconfig, title || ' ' || company || ' ' || description"
        " || ' ' || coalesce(CAST(tags AS TEXT), '')))"
    )

    op.create_table(
        'applications',
        sa.Column('id', sa.BigInteger(), nullable=False, autoincrement=True),
        sa.Column('job_id', sa.BigInteger(), nullable=False),
        sa.Column('applicant_id', sa.BigInteger(), nullable=False),
        sa.Column('resume_link', sa.String(length=2048), nullable=False),
        sa.Column('cover_letter', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=False, server_default='PENDING'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('reviewed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('reviewed_by', sa.BigInteger(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['job_id'], ['jobs.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['applicant_id'], ['users.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['reviewed_by'], ['users.id'], ondelete='SET NULL'),
        sa.UniqueConstraint('job_id', 'applicant_id', name='uq_application_job_applicant'),
    )
    op.create_index('ix_applications_status', 'applications', ['status'])
    op.create_index('idx_application_applicant_created', 'applications', ['applicant_id', 'created_at'])
    op.create_index('idx_application_job_status_created', 'applications', ['job_id', 'status', 'created_at'])


def downgrade() -> None:
    """Drop users, jobs and applications tables."""
    op.drop_index('idx_application_job_status_created', table_name='applications')
    op.drop_index('idx_application_applicant_created', table_name='applications')
    op.drop_index('ix_applications_status', table_name='applications')
    op.drop_table('applications')

    op.execute("DROP INDEX IF EXISTS idx_job_fulltext")
    op.drop_index('idx_job_salary', table_name='jobs')
    op.drop_index('idx_job_active_created', table_name='jobs')
    op.drop_index('ix_jobs_created_at', table_name='jobs')
    op.drop_index('ix_jobs_created_by', table_name='jobs')
    op.drop_index('ix_jobs_featured', table_name='jobs')
    op.drop_index('ix_jobs_is_active', table_name='jobs')
    op.drop_index('ix_jobs_category', table_name='jobs')
    op.drop_index('ix_jobs_job_type', table_name='jobs')
    op.drop_index('ix_jobs_location', table_name='jobs')
    op.drop_index('ix_jobs_title', table_name='jobs')
    op.drop_table('jobs')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
