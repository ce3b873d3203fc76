"""initial redemption schema

Revision ID: 0001
Revises:
Create Date: 2026-10-17 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'profiles',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column(
            'subscription_status',
            sa.Enum('active', 'inactive', 'past_due', 'canceled', 'trialing', name='subscription_status'),
            nullable=False,
        ),
        sa.Column('latitude', sa.Float(), nullable=True, comment='自宅緯度'),
        sa.Column('longitude', sa.Float(), nullable=True, comment='自宅経度'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_profiles_email', 'profiles', ['email'], unique=True)

    op.create_table(
        'businesses',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'category',
            sa.Enum('restaurant', 'retail', 'service', 'entertainment', 'health', 'beauty',
                    'automotive', 'other', name='business_category'),
            nullable=False,
        ),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('street_address', sa.String(255), nullable=True),
        sa.Column('city', sa.String(100), nullable=True),
        sa.Column('state', sa.String(50), nullable=True),
        sa.Column('zip_code', sa.String(20), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=False),
        sa.Column('longitude', sa.Float(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )

    op.create_table(
        'coupons',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('business_id', sa.Integer(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column(
            'discount_type',
            sa.Enum('percentage', 'fixed_amount', 'buy_one_get_one', 'free_item', name='discount_type'),
            nullable=False,
        ),
        sa.Column('discount_value', sa.Numeric(10, 2), nullable=False),
        sa.Column(
            'usage_limit_type',
            sa.Enum('once', 'daily', 'weekly', 'monthly', 'unlimited', name='usage_limit_type'),
            nullable=False,
            comment='ユーザー毎の利用回数を数える期間',
        ),
        sa.Column('max_uses_per_user', sa.Integer(), nullable=False),
        sa.Column('max_total_uses', sa.Integer(), nullable=True, comment='全体の利用上限 (null=無制限)'),
        sa.Column('current_uses', sa.Integer(), nullable=False),
        sa.Column('valid_from', sa.DateTime(), nullable=False),
        sa.Column('valid_until', sa.DateTime(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('requires_subscription', sa.Boolean(), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint('valid_from <= valid_until', name='ck_coupons_validity_window'),
    )
    op.create_index('ix_coupons_business_id', 'coupons', ['business_id'])

    op.create_table(
        'redemptions',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('coupon_id', sa.Integer(), sa.ForeignKey('coupons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('business_id', sa.Integer(), sa.ForeignKey('businesses.id', ondelete='CASCADE'), nullable=False),
        sa.Column('qr_code', sa.String(64), nullable=False, unique=True, comment='スキャン用コード'),
        sa.Column('display_code', sa.String(8), nullable=False, comment='手入力用コード'),
        sa.Column('verification_code', sa.String(6), nullable=False, comment='確認用6桁コード'),
        sa.Column(
            'status',
            sa.Enum('pending', 'redeemed', 'expired', 'cancelled', name='redemption_status'),
            nullable=False,
        ),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('redeemed_at', sa.DateTime(), nullable=True),
        sa.Column('redemption_latitude', sa.Float(), nullable=True),
        sa.Column('redemption_longitude', sa.Float(), nullable=True),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=True, comment='割引額スナップショット'),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_redemptions_user_id', 'redemptions', ['user_id'])
    op.create_index('ix_redemptions_coupon_id', 'redemptions', ['coupon_id'])
    op.create_index('ix_redemptions_business_id', 'redemptions', ['business_id'])
    op.create_index('ix_redemptions_user_coupon_status', 'redemptions', ['user_id', 'coupon_id', 'status'])
    op.create_index('ix_redemptions_status_expires_at', 'redemptions', ['status', 'expires_at'])

    op.create_table(
        'analytics_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('profiles.id', ondelete='SET NULL'), nullable=True),
        sa.Column('event_type', sa.String(50), nullable=False, comment='coupon_redeem 等'),
        sa.Column('event_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_analytics_events_user_id', 'analytics_events', ['user_id'])
    op.create_index('ix_analytics_events_event_type', 'analytics_events', ['event_type'])
    op.create_index('ix_analytics_events_created_at', 'analytics_events', ['created_at'])


def downgrade() -> None:
    op.drop_table('analytics_events')
    op.drop_table('redemptions')
    op.drop_table('coupons')
    op.drop_table('businesses')
    op.drop_table('profiles')
