"""Create document_type and document tables

Revision ID: 002
Revises: 001
Create Date: 2026-09-14 09:30:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '002'
down_revision = '001'
branch_labels = None
depends_on = None

DOCUMENT_STATUSES = ('PENDING', 'PROCESSING', 'ACTIVE', 'EXPIRING_SOON', 'EXPIRED', 'REJECTED', 'FAILED')


def upgrade():
    op.create_table(
        'document_type',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('name', sa.Text(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        # List of field definitions: [{name, label, type, required, options}]
        sa.Column('fields_json', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'[]'::jsonb"), nullable=False),
        sa.Column('is_active', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('ai_enabled', sa.Boolean(), server_default=sa.text('true'), nullable=False),
        sa.Column('extraction_mode', sa.Text(), server_default='fields', nullable=False),
        sa.Column('position', sa.Integer(), server_default='0', nullable=False),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['company.id'], ondelete='CASCADE'),
        sa.UniqueConstraint('company_id', 'name', name='uq_document_type_company_name'),
        sa.CheckConstraint(
            "extraction_mode IN ('fields', 'classification-only')",
            name='ck_document_type_extraction_mode',
        ),
    )

    postgresql.ENUM(*DOCUMENT_STATUSES, name='documentstatus').create(op.get_bind())

    # type is a free string; it is not a foreign key to document_type
    op.create_table(
        'document',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('driver_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('type', sa.Text(), nullable=True),

        # Object storage
        sa.Column('storage_key', sa.Text(), nullable=False),
        sa.Column('filename', sa.Text(), nullable=False),
        sa.Column('content_type', sa.Text(), nullable=True),
        sa.Column('size_bytes', sa.BigInteger(), server_default='0', nullable=False),

        # Reviewed details
        sa.Column('document_number', sa.Text(), nullable=True),
        sa.Column('issued_date', sa.Date(), nullable=True),
        sa.Column('expiry_date', sa.Date(), nullable=True),
        sa.Column('status', postgresql.ENUM(*DOCUMENT_STATUSES, name='documentstatus', create_type=False),
                  nullable=False, server_default='PENDING'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('fields_json', postgresql.JSONB(astext_type=sa.Text()), server_default=sa.text("'{}'::jsonb"), nullable=False),

        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['driver_id'], ['driver.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['company_id'], ['company.id'], ondelete='CASCADE'),
    )

    op.create_index('ix_document_driver_id', 'document', ['driver_id'])
    op.create_index('ix_document_company_id', 'document', ['company_id'])
    op.create_index('uq_document_storage_key', 'document', ['storage_key'], unique=True)

    op.execute("""
        CREATE TRIGGER update_document_updated_at
        BEFORE UPDATE ON document
        FOR EACH ROW
        EXECUTE FUNCTION update_updated_at_column();
    """)


def downgrade():
    op.execute('DROP TRIGGER IF EXISTS update_document_updated_at ON document')
    op.drop_index('uq_document_storage_key', table_name='document')
    op.drop_index('ix_document_company_id', table_name='document')
    op.drop_index('ix_document_driver_id', table_name='document')
    op.drop_table('document')
    op.execute('DROP TYPE documentstatus')

    op.drop_table('document_type')
