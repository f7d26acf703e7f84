"""Create resource table

Revision ID: 002
Revises: 001
Create Date: 2026-09-14 10:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None


def upgrade():
    resource_kind = postgresql.ENUM('notes', 'pyq', name='resourcekind')
    exam_type = postgresql.ENUM('sessional', 'semester', name='examtype')
    semester_type = postgresql.ENUM('odd', 'even', name='semestertype')
    resource_status = postgresql.ENUM('pending', 'approved', name='resourcestatus')
    for enum_type in (resource_kind, exam_type, semester_type, resource_status):
        enum_type.create(op.get_bind(), checkfirst=True)

    op.create_table(
        'resource',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('title', sa.Text(), nullable=True),
        sa.Column('subject', sa.Text(), nullable=True),
        sa.Column('course', sa.Text(), nullable=True),
        sa.Column('branch', sa.Text(), nullable=True),
        sa.Column('semester', sa.Text(), nullable=True),
        sa.Column('kind', postgresql.ENUM(name='resourcekind', create_type=False), nullable=False),
        sa.Column('exam_type', postgresql.ENUM(name='examtype', create_type=False), nullable=True),
        sa.Column('academic_year', sa.Text(), nullable=True),
        sa.Column('semester_type', postgresql.ENUM(name='semestertype', create_type=False), nullable=True),
        sa.Column('storage_path', sa.Text(), nullable=False),
        sa.Column('content_fingerprint', sa.Text(), nullable=False),
        # No FK: uploads survive deletion of their owner
        sa.Column('owner_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('original_filename', sa.Text(), nullable=True),
        sa.Column('size_bytes', sa.BigInteger(), nullable=True),
        sa.Column('mime_type', sa.Text(), nullable=True),
        sa.Column('status', postgresql.ENUM(name='resourcestatus', create_type=False),
                  server_default='pending', nullable=False),
        sa.Column('version', sa.Integer(), server_default=sa.text('1'), nullable=False),
        sa.Column('approved_by', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('approved_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('storage_path', name='uq_resource_storage_path'),
        sa.UniqueConstraint('content_fingerprint', name='uq_resource_content_fingerprint'),
        # Published rows carry complete metadata and never the placeholder subject
        sa.CheckConstraint(
            "status = 'pending' OR (title IS NOT NULL AND subject IS NOT NULL AND subject <> 'Pending Review' "
            "AND branch IS NOT NULL AND semester IS NOT NULL)",
            name='ck_resource_approved_complete',
        ),
        sa.CheckConstraint(
            "status = 'pending' OR kind <> 'pyq' OR "
            "(exam_type IS NOT NULL AND academic_year IS NOT NULL AND semester_type IS NOT NULL)",
            name='ck_resource_pyq_complete',
        ),
    )
    op.create_index('ix_resource_status_created_at', 'resource', ['status', 'created_at'])
    op.create_index('ix_resource_owner_id', 'resource', ['owner_id'])
    op.create_index('ix_resource_kind_status', 'resource', ['kind', 'status'])

    op.execute("""
        CREATE TRIGGER update_resource_updated_at
        BEFORE UPDATE ON resource
        FOR EACH ROW
        EXECUTE FUNCTION update_updated_at_column();
    """)


def downgrade():
    op.execute('DROP TRIGGER IF EXISTS update_resource_updated_at ON resource')
    op.drop_index('ix_resource_kind_status', table_name='resource')
    op.drop_index('ix_resource_owner_id', table_name='resource')
    op.drop_index('ix_resource_status_created_at', table_name='resource')
    op.drop_table('resource')
    for name in ('resourcestatus', 'semestertype', 'examtype', 'resourcekind'):
        op.execute(f'DROP TYPE IF EXISTS {name}')
