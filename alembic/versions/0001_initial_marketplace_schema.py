"""initial_marketplace_schema

Revision ID: 0001
Revises:
Create Date: 2025-03-01 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    'book_condition_enum': ('new', 'good', 'better', 'average', 'reselling'),
    'book_status_enum': ('available', 'pending_commit', 'sold', 'withdrawn'),
    'payment_status_enum': ('pending', 'paid', 'failed', 'refunded'),
    'settlement_mode_enum': ('split', 'transfer'),
    'payout_method_enum': ('subaccount_split', 'paystack_transfer'),
    'payout_status_enum': ('pending', 'processing', 'paid', 'failed'),
    'order_status_enum': (
        'paid', 'committed', 'collected', 'delivered', 'cancelled', 'refunded'
    ),
    'cancellation_reason_enum': (
        'seller_declined', 'commit_expired', 'buyer_cancelled', 'admin_refund'
    ),
    'refund_status_enum': ('none', 'pending', 'succeeded', 'failed'),
    'shipment_status_enum': (
        'booked', 'collected', 'in_transit', 'delivered', 'failed', 'cancelled'
    ),
    'notification_type_enum': (
        'order_paid', 'commit_required', 'commit_reminder', 'order_committed',
        'order_declined', 'order_expired', 'order_cancelled', 'refund_processed',
        'refund_failed', 'order_collected', 'order_delivered', 'payout_sent',
        'banking_updated',
    ),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*ENUMS[name], name=name)


def _timestamps() -> list:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema - Create marketplace tables."""

    op.create_table(
        'seller_profiles',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('auth_id', sa.String(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('full_name', sa.String(length=200), nullable=True),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('business_name', sa.String(length=200), nullable=True),
        sa.Column('bank_name', sa.String(length=100), nullable=True),
        sa.Column('bank_code', sa.String(length=10), nullable=True),
        sa.Column('account_number', sa.String(length=20), nullable=True),
        sa.Column('account_holder', sa.String(length=200), nullable=True),
        sa.Column('subaccount_code', sa.String(length=50), nullable=True),
        sa.Column('subaccount_active', sa.Boolean(), nullable=True),
        sa.Column('subaccount_data', JSONB(), nullable=True),
        sa.Column('recipient_code', sa.String(length=50), nullable=True),
        sa.Column('banking_verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('pickup_address', JSONB(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_seller_profiles_auth_id', 'seller_profiles', ['auth_id'], unique=True)
    op.create_index(
        'ix_seller_profiles_subaccount_code', 'seller_profiles', ['subaccount_code'], unique=True
    )

    op.create_table(
        'books',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('seller_auth_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=False),
        sa.Column('author', sa.String(length=255), nullable=False),
        sa.Column('isbn', sa.String(length=20), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('condition', _enum('book_condition_enum'), nullable=False),
        sa.Column('category', sa.String(length=100), nullable=True),
        sa.Column('university', sa.String(length=150), nullable=True),
        sa.Column('university_year', sa.String(length=50), nullable=True),
        sa.Column('price_cents', sa.Integer(), nullable=False),
        sa.Column('image_urls', JSONB(), nullable=False),
        sa.Column('status', _enum('book_status_enum'), nullable=False),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    for column in ('seller_auth_id', 'isbn', 'category', 'university', 'status'):
        op.create_index(f'ix_books_{column}', 'books', [column])

    op.create_table(
        'payments',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('reference', sa.String(), nullable=False),
        sa.Column('buyer_auth_id', sa.String(), nullable=False),
        sa.Column('buyer_email', sa.String(), nullable=False),
        sa.Column('seller_auth_id', sa.String(), nullable=False),
        sa.Column('book_id', UUID(as_uuid=True), nullable=False),
        sa.Column('book_title', sa.String(length=255), nullable=False),
        sa.Column('book_price_cents', sa.Integer(), nullable=False),
        sa.Column('delivery_fee_cents', sa.Integer(), nullable=False),
        sa.Column('platform_fee_cents', sa.Integer(), nullable=False),
        sa.Column('seller_amount_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('status', _enum('payment_status_enum'), nullable=False),
        sa.Column('settlement_mode', _enum('settlement_mode_enum'), nullable=False),
        sa.Column('subaccount_code', sa.String(length=50), nullable=True),
        sa.Column('provider', sa.String(length=32), nullable=True),
        sa.Column('access_code', sa.String(length=100), nullable=True),
        sa.Column('authorization_url', sa.Text(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('shipping_address', JSONB(), nullable=False),
        sa.Column('delivery_quote', JSONB(), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=True),
        sa.Column('fulfillment_error', sa.Text(), nullable=True),
        sa.Column('refunded_amount_cents', sa.Integer(), nullable=True),
        sa.Column('refund_reference', sa.String(length=64), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata', JSONB(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_payments_reference', 'payments', ['reference'], unique=True)
    for column in ('buyer_auth_id', 'seller_auth_id', 'book_id', 'status'):
        op.create_index(f'ix_payments_{column}', 'payments', [column])

    op.create_table(
        'orders',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_number', sa.String(length=32), nullable=False),
        sa.Column('payment_reference', sa.String(), nullable=False),
        sa.Column('book_id', UUID(as_uuid=True), nullable=False),
        sa.Column('book_title', sa.String(length=255), nullable=False),
        sa.Column('buyer_auth_id', sa.String(), nullable=False),
        sa.Column('buyer_email', sa.String(), nullable=True),
        sa.Column('seller_auth_id', sa.String(), nullable=False),
        sa.Column('seller_email', sa.String(), nullable=True),
        sa.Column('book_price_cents', sa.Integer(), nullable=False),
        sa.Column('delivery_fee_cents', sa.Integer(), nullable=False),
        sa.Column('platform_fee_cents', sa.Integer(), nullable=False),
        sa.Column('seller_amount_cents', sa.Integer(), nullable=False),
        sa.Column('total_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('status', _enum('order_status_enum'), nullable=False),
        sa.Column('shipping_address', JSONB(), nullable=True),
        sa.Column('pickup_address', JSONB(), nullable=True),
        sa.Column('delivery_provider', sa.String(length=50), nullable=True),
        sa.Column('delivery_service', sa.String(length=100), nullable=True),
        sa.Column('delivery_quote', JSONB(), nullable=True),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('commit_deadline', sa.DateTime(timezone=True), nullable=False),
        sa.Column('committed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('commit_reminder_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('declined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('decline_reason', sa.Text(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            'cancellation_reason', _enum('cancellation_reason_enum'), nullable=True
        ),
        sa.Column('collected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refund_status', _enum('refund_status_enum'), nullable=False),
        sa.Column('refund_attempts', sa.Integer(), nullable=False),
        sa.Column('refund_error', sa.Text(), nullable=True),
        sa.Column('refunded_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_orders_order_number', 'orders', ['order_number'], unique=True)
    op.create_index(
        'ix_orders_payment_reference', 'orders', ['payment_reference'], unique=True
    )
    for column in ('book_id', 'buyer_auth_id', 'seller_auth_id', 'status', 'commit_deadline'):
        op.create_index(f'ix_orders_{column}', 'orders', [column])

    op.create_table(
        'seller_payouts',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=False),
        sa.Column('payment_reference', sa.String(), nullable=False),
        sa.Column('seller_auth_id', sa.String(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('currency', sa.String(length=8), nullable=False),
        sa.Column('method', _enum('payout_method_enum'), nullable=False),
        sa.Column('status', _enum('payout_status_enum'), nullable=False),
        sa.Column('recipient_code', sa.String(length=50), nullable=True),
        sa.Column('transfer_reference', sa.String(length=64), nullable=True),
        sa.Column('transfer_code', sa.String(length=64), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('attempts', sa.Integer(), nullable=False),
        sa.Column('paid_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_seller_payouts_order_id', 'seller_payouts', ['order_id'], unique=True)
    op.create_index(
        'ix_seller_payouts_transfer_reference',
        'seller_payouts',
        ['transfer_reference'],
        unique=True,
    )
    for column in ('payment_reference', 'seller_auth_id', 'status'):
        op.create_index(f'ix_seller_payouts_{column}', 'seller_payouts', [column])

    op.create_table(
        'shipments',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=False),
        sa.Column('provider', sa.String(length=50), nullable=False),
        sa.Column('service_code', sa.String(length=50), nullable=False),
        sa.Column('service_name', sa.String(length=100), nullable=True),
        sa.Column('tracking_number', sa.String(length=64), nullable=False),
        sa.Column('provider_booked', sa.Boolean(), nullable=True),
        sa.Column('provider_shipment_id', sa.String(length=100), nullable=True),
        sa.Column('status', _enum('shipment_status_enum'), nullable=False),
        sa.Column('collection_address', JSONB(), nullable=True),
        sa.Column('delivery_address', JSONB(), nullable=True),
        sa.Column('events', JSONB(), nullable=False),
        sa.Column('collected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('delivered_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_shipments_order_id', 'shipments', ['order_id'], unique=True)
    op.create_index(
        'ix_shipments_tracking_number', 'shipments', ['tracking_number'], unique=True
    )

    op.create_table(
        'notifications',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('user_auth_id', sa.String(), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=True),
        sa.Column('type', _enum('notification_type_enum'), nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('metadata', JSONB(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_notifications_user_auth_id', 'notifications', ['user_auth_id'])
    op.create_index('ix_notifications_order_id', 'notifications', ['order_id'])


def downgrade() -> None:
    """Downgrade schema - Drop marketplace tables."""
    for table in (
        'notifications',
        'shipments',
        'seller_payouts',
        'orders',
        'payments',
        'books',
        'seller_profiles',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in ENUMS:
        sa.Enum(name=name).drop(bind, checkfirst=True)
