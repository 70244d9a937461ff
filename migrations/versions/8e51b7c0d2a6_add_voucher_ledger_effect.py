"""add_voucher_ledger_effect

Revision ID: 8e51b7c0d2a6
Revises: 3c8d2a91f0b4
Create Date: 2026-10-02 16:47:05.530117

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '8e51b7c0d2a6'
down_revision = '3c8d2a91f0b4'
branch_labels = None
depends_on = None


def upgrade():
    # Which advance a voucher paid down, and by how much after clamping at zero
    # SQLite cannot add a foreign key with ALTER TABLE, so use batch mode
    with op.batch_alter_table('vouchers') as batch_op:
        batch_op.add_column(sa.Column('borrower_id', sa.Integer(), nullable=True))
        batch_op.add_column(sa.Column('applied_amount', sa.Numeric(precision=12, scale=2), nullable=True))
        batch_op.create_foreign_key('fk_vouchers_borrower_id', 'borrowers', ['borrower_id'], ['id'])


def downgrade():
    with op.batch_alter_table('vouchers') as batch_op:
        batch_op.drop_constraint('fk_vouchers_borrower_id', type_='foreignkey')
        batch_op.drop_column('applied_amount')
        batch_op.drop_column('borrower_id')
