"""
Alembic migration: initial AutoHub schema.

Creates car parts, part orders with line items, service requests, rental
bookings and payment transactions, together with the enum types they use.

Revision ID: 001
Revises:
Create Date: 2026-10-17 12:00:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUM_TYPES = {
    'part_status': ('available', 'out_of_stock'),
    'part_order_status': ('pending', 'confirmed', 'shipped', 'delivered', 'cancelled'),
    'reference_payment_status': (
        'payment_pending',
        'payment_completed',
        'payment_failed',
        'payment_refunded',
    ),
    'service_request_status': ('pending', 'quoted', 'confirmed', 'cancelled'),
    'rental_booking_status': ('pending', 'confirmed', 'cancelled', 'completed'),
    'payment_reference_type': ('service_request', 'rental_booking', 'part_order'),
    'transaction_status': ('pending', 'completed', 'failed', 'refunded'),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUM_TYPES[name], name=name, create_type=False)


def _id_column() -> sa.Column:
    return sa.Column(
        'id',
        postgresql.UUID(as_uuid=True),
        nullable=False,
        server_default=sa.text('gen_random_uuid()'),
        comment='Unique identifier for the record',
    )


def _timestamp_columns() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
            comment='Timestamp when record was created',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text('now()'),
            comment='Timestamp when record was last updated',
        ),
    ]


def _payment_status_column() -> sa.Column:
    return sa.Column(
        'payment_status',
        _enum('reference_payment_status'),
        nullable=True,
        comment='Payment status propagated from the latest transaction',
    )


def upgrade() -> None:
    """
    Create every AutoHub table.

    Stock, price and amount columns carry non-negative checks; order line
    quantities must be positive.
    """
    for name, values in ENUM_TYPES.items():
        postgresql.ENUM(*values, name=name).create(op.get_bind(), checkfirst=True)

    op.create_table(
        'car_parts',
        _id_column(),
        sa.Column('seller_id', postgresql.UUID(as_uuid=True), nullable=True, comment='Seller identifier'),
        sa.Column('name', sa.String(length=200), nullable=False, comment='Part name'),
        sa.Column('brand', sa.String(length=100), nullable=True, comment='Part brand'),
        sa.Column('category', sa.String(length=100), nullable=True, comment='Part category'),
        sa.Column(
            'compatibility',
            sa.String(length=500),
            nullable=True,
            comment='Compatible vehicles (make model year)',
        ),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False, comment='Current unit price'),
        sa.Column(
            'stock_quantity',
            sa.Integer(),
            nullable=False,
            server_default=sa.text('0'),
            comment='Units in stock',
        ),
        sa.Column(
            'status',
            _enum('part_status'),
            nullable=False,
            server_default=sa.text("'out_of_stock'"),
            comment='Availability status',
        ),
        sa.Column(
            'images',
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment='Stored image paths',
        ),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint('id', name='pk_car_parts'),
        sa.CheckConstraint('stock_quantity >= 0', name='ck_car_parts_stock_non_negative'),
        sa.CheckConstraint('price >= 0', name='ck_car_parts_price_non_negative'),
        comment='Car parts inventory',
    )
    op.create_index('ix_car_parts_seller_id', 'car_parts', ['seller_id'])
    op.create_index('ix_car_parts_brand', 'car_parts', ['brand'])
    op.create_index('ix_car_parts_category', 'car_parts', ['category'])
    op.create_index('ix_car_parts_status', 'car_parts', ['status'])
    op.create_index('ix_car_parts_category_created', 'car_parts', ['category', 'created_at'])

    op.create_table(
        'part_orders',
        _id_column(),
        sa.Column('buyer_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Buyer identifier'),
        sa.Column(
            'status',
            _enum('part_order_status'),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment='Order status',
        ),
        sa.Column(
            'total_amount',
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            comment='Order total (sum of line subtotals)',
        ),
        _payment_status_column(),
        sa.Column(
            'shipping_address',
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
            comment='Shipping details',
        ),
        sa.Column('tracking_number', sa.String(length=100), nullable=True, comment='Carrier tracking number'),
        sa.Column('remarks', sa.Text(), nullable=True, comment='Remarks from the latest status update'),
        sa.Column(
            'documents',
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
            comment='Stored shipping document paths',
        ),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint('id', name='pk_part_orders'),
        sa.CheckConstraint('total_amount >= 0', name='ck_part_orders_total_non_negative'),
        comment='Car part orders',
    )
    op.create_index('ix_part_orders_buyer_id', 'part_orders', ['buyer_id'])
    op.create_index('ix_part_orders_status', 'part_orders', ['status'])
    op.create_index('ix_part_orders_buyer_created', 'part_orders', ['buyer_id', 'created_at'])

    op.create_table(
        'part_order_items',
        sa.Column(
            'id',
            postgresql.UUID(as_uuid=True),
            nullable=False,
            server_default=sa.text('gen_random_uuid()'),
            comment='Line item identifier',
        ),
        sa.Column('order_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Owning order'),
        sa.Column(
            'part_id',
            postgresql.UUID(as_uuid=True),
            nullable=True,
            comment='Ordered part, cleared when the part is deleted',
        ),
        sa.Column(
            'position',
            sa.Integer(),
            nullable=False,
            server_default=sa.text('0'),
            comment='Line position within the order',
        ),
        sa.Column('quantity', sa.Integer(), nullable=False, comment='Ordered units'),
        sa.Column('unit_price', sa.Numeric(precision=10, scale=2), nullable=False, comment='Unit price snapshot'),
        sa.Column('subtotal', sa.Numeric(precision=12, scale=2), nullable=False, comment='unit_price * quantity'),
        sa.PrimaryKeyConstraint('id', name='pk_part_order_items'),
        sa.ForeignKeyConstraint(
            ['order_id'],
            ['part_orders.id'],
            name='fk_part_order_items_order_id',
            ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['part_id'],
            ['car_parts.id'],
            name='fk_part_order_items_part_id',
            ondelete='SET NULL',
        ),
        sa.CheckConstraint('quantity > 0', name='ck_part_order_items_quantity_positive'),
        comment='Part order line items',
    )
    op.create_index('ix_part_order_items_order_id', 'part_order_items', ['order_id'])
    op.create_index('ix_part_order_items_part_id', 'part_order_items', ['part_id'])

    op.create_table(
        'service_requests',
        _id_column(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Requesting user'),
        sa.Column('vehicle_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Serviced vehicle'),
        sa.Column('service_type', sa.String(length=100), nullable=False, comment='Requested service type'),
        sa.Column(
            'status',
            _enum('service_request_status'),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment='Request status',
        ),
        sa.Column(
            'total_amount',
            sa.Numeric(precision=12, scale=2),
            nullable=False,
            server_default=sa.text('0'),
            comment='Amount due for the service',
        ),
        _payment_status_column(),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint('id', name='pk_service_requests'),
        sa.CheckConstraint('total_amount >= 0', name='ck_service_requests_total_non_negative'),
        comment='Vehicle service requests',
    )
    op.create_index('ix_service_requests_user_id', 'service_requests', ['user_id'])

    op.create_table(
        'rental_bookings',
        _id_column(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Booking user'),
        sa.Column('rental_car_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Booked rental car'),
        sa.Column('start_date', sa.Date(), nullable=False, comment='Rental start date'),
        sa.Column('end_date', sa.Date(), nullable=False, comment='Rental end date'),
        sa.Column(
            'status',
            _enum('rental_booking_status'),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment='Booking status',
        ),
        sa.Column('total_amount', sa.Numeric(precision=12, scale=2), nullable=False, comment='Booking total cost'),
        _payment_status_column(),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint('id', name='pk_rental_bookings'),
        sa.CheckConstraint('end_date >= start_date', name='ck_rental_bookings_date_order'),
        sa.CheckConstraint('total_amount >= 0', name='ck_rental_bookings_total_non_negative'),
        comment='Rental car bookings',
    )
    op.create_index('ix_rental_bookings_user_id', 'rental_bookings', ['user_id'])

    op.create_table(
        'payment_transactions',
        _id_column(),
        sa.Column('payer_id', postgresql.UUID(as_uuid=True), nullable=False, comment='Paying user identifier'),
        sa.Column('amount', sa.Numeric(precision=12, scale=2), nullable=False, comment='Transaction amount'),
        sa.Column(
            'currency',
            sa.String(length=3),
            nullable=False,
            server_default=sa.text("'USD'"),
            comment='Currency code (ISO 4217)',
        ),
        sa.Column('payment_method', sa.String(length=50), nullable=False, comment='Payment method label'),
        sa.Column(
            'reference_type',
            _enum('payment_reference_type'),
            nullable=False,
            comment='Kind of referenced entity',
        ),
        sa.Column(
            'reference_id',
            postgresql.UUID(as_uuid=True),
            nullable=False,
            comment='Referenced entity identifier',
        ),
        sa.Column(
            'status',
            _enum('transaction_status'),
            nullable=False,
            server_default=sa.text("'pending'"),
            comment='Current transaction status',
        ),
        sa.Column('receipt_url', sa.String(length=500), nullable=True, comment='Stored receipt path'),
        sa.Column('remarks', sa.Text(), nullable=True, comment='Remarks from the latest status update'),
        *_timestamp_columns(),
        sa.PrimaryKeyConstraint('id', name='pk_payment_transactions'),
        sa.CheckConstraint('amount >= 0', name='ck_payment_transactions_amount_non_negative'),
        comment='Payments against service requests, rentals and part orders',
    )
    op.create_index('ix_payment_transactions_payer_id', 'payment_transactions', ['payer_id'])
    op.create_index('ix_payment_transactions_payment_method', 'payment_transactions', ['payment_method'])
    op.create_index('ix_payment_transactions_status', 'payment_transactions', ['status'])
    op.create_index(
        'ix_payment_transactions_reference',
        'payment_transactions',
        ['reference_type', 'reference_id'],
    )
    op.create_index(
        'ix_payment_transactions_payer_created',
        'payment_transactions',
        ['payer_id', 'created_at'],
    )


def downgrade() -> None:
    """Drop every AutoHub table and enum type."""
    op.drop_table('payment_transactions')
    op.drop_table('rental_bookings')
    op.drop_table('service_requests')
    op.drop_table('part_order_items')
    op.drop_table('part_orders')
    op.drop_table('car_parts')

    for name in reversed(list(ENUM_TYPES)):
        postgresql.ENUM(name=name).drop(op.get_bind(), checkfirst=True)
