"""Create transactions, membership_periods, reward_ledgers and program_configs tables.

Revision ID: e1f2a3b4c5d6
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'e1f2a3b4c5d6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    """Create the rewards accrual tables."""
    op.create_table(
        'transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.String(64), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('service', sa.String(100), nullable=True),
        sa.Column('origin', sa.String(200), nullable=True),
        sa.Column('destination', sa.String(200), nullable=True),
        sa.Column('invoice_no', sa.String(100), nullable=True),
        sa.Column('publish_rate', sa.BigInteger(), nullable=False, server_default=sa.text('0')),
        sa.Column('discount_amount', sa.BigInteger(), nullable=False, server_default=sa.text('0')),
        sa.Column('points_earned', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_transactions_customer_id', 'transactions', ['customer_id'])
    op.create_index('ix_transactions_customer_date', 'transactions', ['customer_id', 'date'])

    op.create_table(
        'membership_periods',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.String(64), nullable=False),
        sa.Column('period_index', sa.Integer(), nullable=True),
        sa.Column('label', sa.String(20), nullable=True),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('status', sa.String(20), nullable=True),
        sa.Column('prev_period_start', sa.Date(), nullable=True),
        sa.Column('prev_period_end', sa.Date(), nullable=True),
        sa.Column('total_spending', sa.BigInteger(), nullable=False, server_default=sa.text('0')),
        sa.Column('tier', sa.String(20), nullable=False, server_default='SILVER'),
        sa.Column('active_cashback_given', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('welcome_bonus_given', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('customer_id', 'period_start', 'period_end', name='uq_membership_period_window'),
    )
    op.create_index('ix_membership_periods_customer_id', 'membership_periods', ['customer_id'])

    op.create_table(
        'reward_ledgers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('customer_id', sa.String(64), nullable=False),
        sa.Column('type', sa.String(30), nullable=False),
        sa.Column('points', sa.Integer(), nullable=True),
        sa.Column('amount', sa.BigInteger(), nullable=True),
        sa.Column('ref_id', sa.String(100), nullable=True),
        sa.Column('note', sa.String(500), nullable=True),
        sa.Column('created_by', sa.String(100), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_reward_ledgers_customer_id', 'reward_ledgers', ['customer_id'])
    op.create_index('ix_reward_ledgers_customer_type', 'reward_ledgers', ['customer_id', 'type'])

    op.create_table(
        'program_configs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('key', sa.String(50), nullable=False),
        sa.Column('value', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('key', name='uq_program_configs_key'),
    )


def downgrade():
    """Drop the rewards accrual tables."""
    op.drop_table('program_configs')
    op.drop_index('ix_reward_ledgers_customer_type', table_name='reward_ledgers')
    op.drop_index('ix_reward_ledgers_customer_id', table_name='reward_ledgers')
    op.drop_table('reward_ledgers')
    op.drop_index('ix_membership_periods_customer_id', table_name='membership_periods')
    op.drop_table('membership_periods')
    op.drop_index('ix_transactions_customer_date', table_name='transactions')
    op.drop_index('ix_transactions_customer_id', table_name='transactions')
    op.drop_table('transactions')
