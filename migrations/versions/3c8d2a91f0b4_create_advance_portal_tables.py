"""create_advance_portal_tables

Revision ID: 3c8d2a91f0b4
Revises: 
Create Date: 2026-09-14 10:12:41.118204

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c8d2a91f0b4'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=50), nullable=False),
        sa.Column('email', sa.String(length=100), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table('employees',
        sa.Column('id', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_employees_status', 'employees', ['status'], unique=False)

    op.create_table('borrowers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('application_no', sa.String(length=50), nullable=True),
        sa.Column('emp_id', sa.String(length=20), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('outstanding_amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('emi', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('months', sa.Integer(), nullable=False),
        sa.Column('disbursed_date', sa.Date(), nullable=False),
        sa.Column('entry_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('outstanding_amount >= 0', name='ck_borrowers_outstanding_non_negative'),
        sa.CheckConstraint('outstanding_amount <= amount', name='ck_borrowers_outstanding_within_amount'),
        sa.ForeignKeyConstraint(['emp_id'], ['employees.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_borrowers_application_no', 'borrowers', ['application_no'], unique=True)
    op.create_index('ix_borrowers_emp_id', 'borrowers', ['emp_id'], unique=False)
    op.create_index('ix_borrowers_status', 'borrowers', ['status'], unique=False)
    op.create_index('ix_borrowers_created_at', 'borrowers', ['created_at'], unique=False)

    op.create_table('vouchers',
        sa.Column('auto_id', sa.Integer(), nullable=False),
        sa.Column('voucher_no', sa.String(length=50), nullable=True),
        sa.Column('emp_id', sa.String(length=20), nullable=False),
        sa.Column('emp_name', sa.String(length=255), nullable=False),
        sa.Column('application_no', sa.String(length=50), nullable=True),
        sa.Column('voucher_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False),
        sa.Column('month', sa.String(length=30), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('auto_id')
    )
    op.create_index('ix_vouchers_voucher_no', 'vouchers', ['voucher_no'], unique=False)
    op.create_index('ix_vouchers_emp_id', 'vouchers', ['emp_id'], unique=False)
    op.create_index('ix_vouchers_application_no', 'vouchers', ['application_no'], unique=False)
    op.create_index('ix_vouchers_created_at', 'vouchers', ['created_at'], unique=False)

    op.create_table('activity_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('action', sa.String(length=100), nullable=False),
        sa.Column('entity_type', sa.String(length=50), nullable=True),
        sa.Column('entity_id', sa.String(length=50), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=50), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_activity_logs_user_id', 'activity_logs', ['user_id'], unique=False)
    op.create_index('ix_activity_logs_created_at', 'activity_logs', ['created_at'], unique=False)


def downgrade():
    op.drop_table('activity_logs')
    op.drop_table('vouchers')
    op.drop_table('borrowers')
    op.drop_table('employees')
    op.drop_table('users')
