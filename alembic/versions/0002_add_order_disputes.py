"""add_order_disputes

Revision ID: 0002
Revises: 0001
Create Date: 2026-10-19 10:00:00.000000
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB, UUID


# revision identifiers, used by Alembic.
revision = '0002'
down_revision = '0001'
branch_labels = None
depends_on = None

NEW_ENUM_VALUES = {
    'payment_status_enum': ('partially_refunded',),
    'cancellation_reason_enum': ('dispute_refund',),
    'notification_type_enum': ('dispute_opened', 'dispute_resolved'),
}

DISPUTE_ENUMS = {
    'dispute_type_enum': (
        'item_not_received', 'item_damaged', 'item_not_as_described',
        'unauthorized_charge', 'refund_not_processed', 'other',
    ),
    'dispute_status_enum': ('open', 'resolved'),
    'dispute_resolution_enum': (
        'refund_buyer', 'pay_seller', 'partial_refund', 'no_action'
    ),
}


def upgrade() -> None:
    for enum_name, values in NEW_ENUM_VALUES.items():
        for value in values:
            op.execute(f"""
                DO $$
                BEGIN
                    IF NOT EXISTS (
                        SELECT 1 FROM pg_enum
                        WHERE enumlabel = '{value}'
                        AND enumtypid = (SELECT oid FROM pg_type WHERE typname = '{enum_name}')
                    ) THEN
                        ALTER TYPE {enum_name} ADD VALUE '{value}';
                    END IF;
                END$$;
            """)

    op.add_column(
        'orders',
        sa.Column('dispute_hold', sa.Boolean(), nullable=False, server_default=sa.false()),
    )

    op.create_table(
        'order_disputes',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('order_id', UUID(as_uuid=True), nullable=False),
        sa.Column('opened_by_auth_id', sa.String(), nullable=False),
        sa.Column('opened_by_role', sa.String(length=16), nullable=False),
        sa.Column(
            'dispute_type',
            sa.Enum(*DISPUTE_ENUMS['dispute_type_enum'], name='dispute_type_enum'),
            nullable=False,
        ),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('evidence_urls', JSONB(), nullable=False),
        sa.Column(
            'status',
            sa.Enum(*DISPUTE_ENUMS['dispute_status_enum'], name='dispute_status_enum'),
            nullable=False,
        ),
        sa.Column(
            'resolution',
            sa.Enum(
                *DISPUTE_ENUMS['dispute_resolution_enum'], name='dispute_resolution_enum'
            ),
            nullable=True,
        ),
        sa.Column('refund_amount_cents', sa.Integer(), nullable=True),
        sa.Column('payout_amount_cents', sa.Integer(), nullable=True),
        sa.Column('resolution_notes', sa.Text(), nullable=True),
        sa.Column('resolved_by_auth_id', sa.String(), nullable=True),
        sa.Column('resolved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    for column in ('order_id', 'opened_by_auth_id', 'status'):
        op.create_index(f'ix_order_disputes_{column}', 'order_disputes', [column])


def downgrade() -> None:
    op.drop_table('order_disputes')
    bind = op.get_bind()
    for name in DISPUTE_ENUMS:
        sa.Enum(name=name).drop(bind, checkfirst=True)
    op.drop_column('orders', 'dispute_hold')
    # PostgreSQL cannot drop enum values; the added labels stay unused
