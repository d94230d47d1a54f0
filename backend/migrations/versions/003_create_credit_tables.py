"""Create credit_ledger and credit_transaction tables

Revision ID: 003
Revises: 002
Create Date: 2026-09-15 11:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '003'
down_revision = '002'
branch_labels = None
depends_on = None


def upgrade():
    # One row per company; debits are conditional updates guarded by the CHECK
    op.create_table(
        'credit_ledger',
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('balance', sa.Integer(), server_default='0', nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('company_id'),
        sa.ForeignKeyConstraint(['company_id'], ['company.id'], ondelete='CASCADE'),
        sa.CheckConstraint('balance >= 0', name='ck_credit_ledger_balance_non_negative'),
    )

    postgresql.ENUM('AI_SCAN', 'AI_SCAN_REFUND', 'PURCHASE', name='credittransactionreason').create(op.get_bind())

    op.create_table(
        'credit_transaction',
        sa.Column('id', postgresql.UUID(as_uuid=True), server_default=sa.text('gen_random_uuid()'), nullable=False),
        sa.Column('company_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('delta', sa.Integer(), nullable=False),
        sa.Column('balance_after', sa.Integer(), nullable=False),
        sa.Column('reason', postgresql.ENUM('AI_SCAN', 'AI_SCAN_REFUND', 'PURCHASE',
                                            name='credittransactionreason', create_type=False), nullable=False),
        sa.Column('reference', sa.Text(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.text('NOW()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.ForeignKeyConstraint(['company_id'], ['company.id'], ondelete='CASCADE'),
    )
    op.create_index('ix_credit_transaction_company_id', 'credit_transaction', ['company_id'])


def downgrade():
    op.drop_index('ix_credit_transaction_company_id', table_name='credit_transaction')
    op.drop_table('credit_transaction')
    op.execute('DROP TYPE credittransactionreason')
    op.drop_table('credit_ledger')
