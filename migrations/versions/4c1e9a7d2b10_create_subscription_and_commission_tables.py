"""create users, plans, subscriptions, commissions and settings tables

Revision ID: 4c1e9a7d2b10
Revises:
Create Date: 2026-10-19 09:12:44.118203

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4c1e9a7d2b10'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'plans',
        sa.Column('id', sa.String(length=20), primary_key=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('price', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('features', sa.JSON(), nullable=False),
        sa.Column('popular', sa.Boolean(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('email', sa.String(length=120), nullable=False, unique=True),
        sa.Column('display_name', sa.String(length=120), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('referral_code', sa.String(length=20), nullable=False, unique=True),
        sa.Column('referrer_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('upline', sa.JSON(), nullable=False),
        sa.Column('subscription_status', sa.String(length=20), nullable=False, server_default=sa.text("'inactive'")),
        sa.Column('plan_id', sa.String(length=20), sa.ForeignKey('plans.id'), nullable=True),
        sa.Column('profit_share', sa.Numeric(precision=5, scale=2), nullable=False),
        sa.Column('is_admin', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_user_referral_code', 'users', ['referral_code'])
    op.create_index('ix_users_referrer_id', 'users', ['referrer_id'])

    op.create_table(
        'subscriptions',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('plan_id', sa.String(length=20), sa.ForeignKey('plans.id'), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('paid_amount', sa.Numeric(precision=18, scale=2), nullable=False),
        sa.Column('payment_proof_url', sa.Text(), nullable=False),
        sa.Column('exchange', sa.String(length=50), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_by', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_by', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint('paid_amount > 0', name='chk_paid_amount_positive'),
    )
    op.create_index('ix_subscriptions_user_id', 'subscriptions', ['user_id'])
    op.create_index('ix_subscriptions_status', 'subscriptions', ['status'])

    op.create_table(
        'commissions',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('from_user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('subscription_id', sa.String(length=36), sa.ForeignKey('subscriptions.id'), nullable=False),
        sa.Column('amount', sa.Numeric(precision=18, scale=6), nullable=False),
        sa.Column('level', sa.Integer(), nullable=False),
        sa.Column('rate', sa.Numeric(precision=6, scale=4), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint('subscription_id', 'user_id', 'level', name='uq_commission_subscription_user_level'),
        sa.CheckConstraint('level >= 1 AND level <= 5', name='chk_commission_level_range'),
    )
    op.create_index('ix_commissions_user_id', 'commissions', ['user_id'])
    op.create_index('ix_commissions_from_user_id', 'commissions', ['from_user_id'])
    op.create_index('ix_commissions_subscription_id', 'commissions', ['subscription_id'])
    op.create_index('idx_commission_user_created', 'commissions', ['user_id', 'created_at'])

    op.create_table(
        'settings',
        sa.Column('key', sa.String(length=100), primary_key=True),
        sa.Column('value', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    )


def downgrade():
    op.drop_table('settings')
    op.drop_index('idx_commission_user_created', table_name='commissions')
    op.drop_index('ix_commissions_subscription_id', table_name='commissions')
    op.drop_index('ix_commissions_from_user_id', table_name='commissions')
    op.drop_index('ix_commissions_user_id', table_name='commissions')
    op.drop_table('commissions')
    op.drop_index('ix_subscriptions_status', table_name='subscriptions')
    op.drop_index('ix_subscriptions_user_id', table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_index('ix_users_referrer_id', table_name='users')
    op.drop_index('idx_user_referral_code', table_name='users')
    op.drop_table('users')
    op.drop_table('plans')
