"""initial fulfillment schema

Revision ID: 20261017_01
Revises:
Create Date: 2026-10-17 00:00:00.000000
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = '20261017_01'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

QUOTE_STATUSES = (
    'new', 'availability_checking', 'availability_confirmed', 'availability_declined',
    'sent', 'accepted', 'declined', 'invoiced', 'paid', 'completed',
)
BOOKING_STATUSES = ('pending', 'requested', 'confirmed', 'declined', 'cancelled', 'completed')
SLOT_HOLDING_CLAUSE = "status IN ('pending', 'requested', 'confirmed')"


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    ]


def upgrade() -> None:
    op.create_table(
        'therapist_profiles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('first_name', sa.String(), nullable=False, server_default=''),
        sa.Column('last_name', sa.String(), nullable=False, server_default=''),
        sa.Column('email', sa.String(), nullable=True),
        sa.Column('gender', sa.String(), nullable=True),
        sa.Column('rating', sa.Float(), nullable=True),
        sa.Column('hourly_rate', sa.Numeric(10, 2), nullable=True),
        sa.Column('afterhours_rate', sa.Numeric(10, 2), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('service_radius_km', sa.Float(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_therapist_profiles_id', 'therapist_profiles', ['id'])
    op.create_index('ix_therapist_profiles_is_active', 'therapist_profiles', ['is_active'])

    op.create_table(
        'therapist_availability',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('therapist_id', sa.Integer(), sa.ForeignKey('therapist_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        *_timestamps(),
    )
    op.create_index('ix_therapist_availability_id', 'therapist_availability', ['id'])
    op.create_index('ix_therapist_availability_therapist_id', 'therapist_availability', ['therapist_id'])
    op.create_index('ix_therapist_availability_day_of_week', 'therapist_availability', ['day_of_week'])

    op.create_table(
        'therapist_time_off',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('therapist_id', sa.Integer(), sa.ForeignKey('therapist_profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('end_date', sa.Date(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('reason', sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_therapist_time_off_id', 'therapist_time_off', ['id'])
    op.create_index('ix_therapist_time_off_therapist_id', 'therapist_time_off', ['therapist_id'])

    op.create_table(
        'time_pricing_rules',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('uplift_percentage', sa.Numeric(6, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('label', sa.String(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_time_pricing_rules_id', 'time_pricing_rules', ['id'])
    op.create_index('ix_time_pricing_rules_day_of_week', 'time_pricing_rules', ['day_of_week'])

    op.create_table(
        'system_settings',
        sa.Column('key', sa.String(), primary_key=True),
        sa.Column('value', sa.Text(), nullable=True),
        sa.Column('description', sa.String(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        'quotes',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('customer_name', sa.String(), nullable=True),
        sa.Column('customer_email', sa.String(), nullable=True),
        sa.Column('customer_phone', sa.String(), nullable=True),
        sa.Column('company_name', sa.String(), nullable=True),
        sa.Column('corporate_contact_name', sa.String(), nullable=True),
        sa.Column('corporate_contact_email', sa.String(), nullable=True),
        sa.Column('corporate_contact_phone', sa.String(), nullable=True),
        sa.Column('event_name', sa.String(), nullable=True),
        sa.Column('event_location', sa.String(), nullable=True),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('event_structure', sa.Enum('single_day', 'multi_day', name='eventstructure'), nullable=False, server_default='single_day'),
        sa.Column('single_event_date', sa.Date(), nullable=True),
        sa.Column('single_start_time', sa.Time(), nullable=True),
        sa.Column('single_finish_time', sa.Time(), nullable=True),
        sa.Column('total_sessions', sa.Integer(), nullable=True),
        sa.Column('session_duration_minutes', sa.Integer(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('therapists_needed', sa.Integer(), nullable=True),
        sa.Column('service_arrangement', sa.Enum('split', 'multiply', name='servicearrangement'), nullable=False, server_default='split'),
        sa.Column('hourly_rate', sa.Numeric(10, 2), nullable=True),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('total_therapist_fees', sa.Numeric(10, 2), nullable=True),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('discount_code', sa.String(), nullable=True),
        sa.Column('gift_card_code', sa.String(), nullable=True),
        sa.Column('gift_card_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('gst_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('final_amount', sa.Numeric(10, 2), nullable=True),
        sa.Column('payment_method', sa.String(), nullable=True),
        sa.Column('payment_status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('service_id', sa.String(), nullable=True),
        sa.Column('po_number', sa.String(), nullable=True),
        sa.Column('setup_requirements', sa.Text(), nullable=True),
        sa.Column('special_requirements', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('status', sa.Enum(*QUOTE_STATUSES, name='quotestatus'), nullable=False, server_default='new'),
        sa.Column('quote_version', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('quote_sent_at', sa.DateTime(), nullable=True),
        sa.Column('quote_accepted_at', sa.DateTime(), nullable=True),
        sa.Column('quote_declined_at', sa.DateTime(), nullable=True),
        sa.Column('invoice_sent_at', sa.DateTime(), nullable=True),
        sa.Column('paid_date', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_quotes_id', 'quotes', ['id'])
    op.create_index('ix_quotes_status', 'quotes', ['status'])

    op.create_table(
        'quote_dates',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('quote_id', sa.Integer(), sa.ForeignKey('quotes.id', ondelete='CASCADE'), nullable=False),
        sa.Column('event_date', sa.Date(), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('finish_time', sa.Time(), nullable=True),
        sa.Column('duration_minutes', sa.Integer(), nullable=True),
        sa.Column('sessions_count', sa.Integer(), nullable=True),
        sa.Column('day_number', sa.Integer(), nullable=False, server_default='1'),
        *_timestamps(),
    )
    op.create_index('ix_quote_dates_id', 'quote_dates', ['id'])
    op.create_index('ix_quote_dates_quote_id', 'quote_dates', ['quote_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('booking_id', sa.String(), nullable=False),
        sa.Column('parent_quote_id', sa.Integer(), sa.ForeignKey('quotes.id', ondelete='CASCADE'), nullable=True),
        sa.Column('quote_day_number', sa.Integer(), nullable=True),
        sa.Column('therapist_id', sa.Integer(), sa.ForeignKey('therapist_profiles.id'), nullable=False),
        sa.Column('responding_therapist_id', sa.Integer(), nullable=True),
        sa.Column('booking_time', sa.DateTime(), nullable=False),
        sa.Column('duration_minutes', sa.Integer(), nullable=False),
        sa.Column('status', sa.Enum(*BOOKING_STATUSES, name='bookingstatus'), nullable=False, server_default='pending'),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('therapist_fee', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('net_price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('discount_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('tax_rate_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('gift_card_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('customer_email', sa.String(), nullable=True),
        sa.Column('customer_phone', sa.String(), nullable=True),
        sa.Column('booker_name', sa.String(), nullable=True),
        sa.Column('business_name', sa.String(), nullable=True),
        sa.Column('first_name', sa.String(), nullable=True),
        sa.Column('last_name', sa.String(), nullable=True),
        sa.Column('discount_code', sa.String(), nullable=True),
        sa.Column('gift_card_code', sa.String(), nullable=True),
        sa.Column('payment_method', sa.String(), nullable=True),
        sa.Column('payment_status', sa.String(), nullable=False, server_default='pending'),
        sa.Column('address', sa.String(), nullable=True),
        sa.Column('service_id', sa.String(), nullable=True),
        sa.Column('booking_type', sa.String(), nullable=True),
        sa.Column('is_split_booking', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('latitude', sa.Float(), nullable=True),
        sa.Column('longitude', sa.Float(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_bookings_id', 'bookings', ['id'])
    op.create_index('ix_bookings_booking_id', 'bookings', ['booking_id'], unique=True)
    op.create_index('ix_bookings_parent_quote_id', 'bookings', ['parent_quote_id'])
    op.create_index('ix_bookings_therapist_id', 'bookings', ['therapist_id'])
    op.create_index('ix_bookings_booking_time', 'bookings', ['booking_time'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index(
        'uq_bookings_therapist_slot', 'bookings', ['therapist_id', 'booking_time'], unique=True,
        postgresql_where=sa.text(SLOT_HOLDING_CLAUSE),
        sqlite_where=sa.text(SLOT_HOLDING_CLAUSE),
    )


def downgrade() -> None:
    op.drop_table('bookings')
    op.drop_table('quote_dates')
    op.drop_table('quotes')
    op.drop_table('system_settings')
    op.drop_table('time_pricing_rules')
    op.drop_table('therapist_time_off')
    op.drop_table('therapist_availability')
    op.drop_table('therapist_profiles')
    if op.get_bind().dialect.name == "postgresql":
        for name in ("bookingstatus", "quotestatus", "servicearrangement", "eventstructure"):
            op.execute(f"DROP TYPE IF EXISTS {name}")
