"""create booking engine schema

Revision ID: e1f2a3b4c5d6
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'e1f2a3b4c5d6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'businesses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('type', sa.String(length=30), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('businesses', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_businesses_type'), ['type'], unique=True)

    op.create_table(
        'resources',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('capacity', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'slug', name='uq_resource_business_slug')
    )
    with op.batch_alter_table('resources', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_resources_business_id'), ['business_id'], unique=False)

    op.create_table(
        'bookable_types',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('slug', sa.String(length=120), nullable=False),
        sa.Column('duration_mins', sa.Integer(), nullable=False),
        sa.Column('min_duration_mins', sa.Integer(), nullable=True),
        sa.Column('max_duration_mins', sa.Integer(), nullable=True),
        sa.Column('buffer_after_mins', sa.Integer(), nullable=False),
        sa.Column('base_price', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('duration_mins > 0', name='ck_bookable_type_duration_positive'),
        sa.CheckConstraint('min_duration_mins IS NULL OR max_duration_mins IS NULL OR min_duration_mins <= max_duration_mins', name='ck_bookable_type_duration_bounds'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('business_id', 'slug', name='uq_bookable_type_business_slug')
    )
    with op.batch_alter_table('bookable_types', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_bookable_types_business_id'), ['business_id'], unique=False)

    op.create_table(
        'bookable_type_resources',
        sa.Column('bookable_type_id', sa.Integer(), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['bookable_type_id'], ['bookable_types.id'], ),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ),
        sa.PrimaryKeyConstraint('bookable_type_id', 'resource_id')
    )

    op.create_table(
        'packages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('bookable_type_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('base_price', sa.Integer(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['bookable_type_id'], ['bookable_types.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('packages', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_packages_bookable_type_id'), ['bookable_type_id'], unique=False)

    op.create_table(
        'schedule_windows',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=False),
        sa.Column('day_of_week', sa.Integer(), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_schedule_day_of_week'),
        sa.CheckConstraint('start_time < end_time', name='ck_schedule_start_before_end'),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('schedule_windows', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_schedule_windows_resource_id'), ['resource_id'], unique=False)

    op.create_table(
        'availability_overrides',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=False),
        sa.Column('override_date', sa.Date(), nullable=False),
        sa.Column('is_unavailable', sa.Boolean(), nullable=False),
        sa.Column('windows_json', sa.Text(), nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('resource_id', 'override_date', name='uq_override_resource_date')
    )
    with op.batch_alter_table('availability_overrides', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_availability_overrides_resource_id'), ['resource_id'], unique=False)

    op.create_table(
        'blackout_intervals',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=True),
        sa.Column('resource_id', sa.Integer(), nullable=True),
        sa.Column('start_at', sa.DateTime(), nullable=False),
        sa.Column('end_at', sa.DateTime(), nullable=False),
        sa.Column('reason', sa.String(length=255), nullable=True),
        sa.Column('created_by', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.CheckConstraint('start_at < end_at', name='ck_blackout_start_before_end'),
        sa.CheckConstraint('(business_id IS NULL) <> (resource_id IS NULL)', name='ck_blackout_single_scope'),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('blackout_intervals', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_blackout_intervals_business_id'), ['business_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_blackout_intervals_resource_id'), ['resource_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_blackout_intervals_start_at'), ['start_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_blackout_intervals_end_at'), ['end_at'], unique=False)

    op.create_table(
        'holds',
        sa.Column('id', sa.String(length=40), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=False),
        sa.Column('bookable_type_id', sa.Integer(), nullable=True),
        sa.Column('package_id', sa.Integer(), nullable=True),
        sa.Column('start_at', sa.DateTime(), nullable=False),
        sa.Column('end_at', sa.DateTime(), nullable=False),
        sa.Column('blocked_until', sa.DateTime(), nullable=False),
        sa.Column('owner_user_id', sa.String(length=64), nullable=True),
        sa.Column('owner_session_id', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('expires_at', sa.DateTime(), nullable=False),
        sa.Column('closed_at', sa.DateTime(), nullable=True),
        sa.CheckConstraint('start_at < end_at', name='ck_hold_start_before_end'),
        sa.CheckConstraint('(owner_user_id IS NULL) <> (owner_session_id IS NULL)', name='ck_hold_single_owner'),
        sa.ForeignKeyConstraint(['bookable_type_id'], ['bookable_types.id'], ),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('holds', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_holds_resource_id'), ['resource_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_holds_start_at'), ['start_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_holds_owner_user_id'), ['owner_user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_holds_owner_session_id'), ['owner_session_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_holds_status'), ['status'], unique=False)
        batch_op.create_index(batch_op.f('ix_holds_expires_at'), ['expires_at'], unique=False)

    op.create_table(
        'bookings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=False),
        sa.Column('bookable_type_id', sa.Integer(), nullable=True),
        sa.Column('package_id', sa.Integer(), nullable=True),
        sa.Column('hold_id', sa.String(length=40), nullable=True),
        sa.Column('start_at', sa.DateTime(), nullable=False),
        sa.Column('end_at', sa.DateTime(), nullable=False),
        sa.Column('blocked_until', sa.DateTime(), nullable=False),
        sa.Column('owner_user_id', sa.String(length=64), nullable=True),
        sa.Column('owner_session_id', sa.String(length=64), nullable=True),
        sa.Column('status', sa.String(length=30), nullable=False),
        sa.Column('price', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('cancel_reason', sa.String(length=120), nullable=True),
        sa.CheckConstraint('start_at < end_at', name='ck_booking_start_before_end'),
        sa.ForeignKeyConstraint(['bookable_type_id'], ['bookable_types.id'], ),
        sa.ForeignKeyConstraint(['hold_id'], ['holds.id'], ),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('hold_id', name='uq_booking_hold_once')
    )
    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_bookings_resource_id'), ['resource_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_start_at'), ['start_at'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_owner_user_id'), ['owner_user_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_bookings_status'), ['status'], unique=False)

    op.create_table(
        'interval_claims',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('resource_id', sa.Integer(), nullable=False),
        sa.Column('bucket_start', sa.DateTime(), nullable=False),
        sa.Column('hold_id', sa.String(length=40), nullable=True),
        sa.Column('booking_id', sa.Integer(), nullable=True),
        sa.CheckConstraint('(hold_id IS NULL) <> (booking_id IS NULL)', name='ck_claim_single_owner'),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ),
        sa.ForeignKeyConstraint(['hold_id'], ['holds.id'], ),
        sa.ForeignKeyConstraint(['resource_id'], ['resources.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('resource_id', 'bucket_start', name='uq_claim_resource_bucket')
    )
    with op.batch_alter_table('interval_claims', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_interval_claims_hold_id'), ['hold_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_interval_claims_booking_id'), ['booking_id'], unique=False)

    op.create_table(
        'pricing_rules',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('business_id', sa.Integer(), nullable=False),
        sa.Column('bookable_type_id', sa.Integer(), nullable=True),
        sa.Column('package_id', sa.Integer(), nullable=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('modifier_type', sa.String(length=20), nullable=False),
        sa.Column('modifier_value', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('priority', sa.Integer(), nullable=False),
        sa.Column('valid_from', sa.Date(), nullable=True),
        sa.Column('valid_until', sa.Date(), nullable=True),
        sa.Column('days_of_week', sa.String(length=20), nullable=True),
        sa.Column('start_time', sa.Time(), nullable=True),
        sa.Column('end_time', sa.Time(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(['bookable_type_id'], ['bookable_types.id'], ),
        sa.ForeignKeyConstraint(['business_id'], ['businesses.id'], ),
        sa.ForeignKeyConstraint(['package_id'], ['packages.id'], ),
        sa.PrimaryKeyConstraint('id')
    )
    with op.batch_alter_table('pricing_rules', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_pricing_rules_business_id'), ['business_id'], unique=False)

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('actor_id', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=80), nullable=False),
        sa.Column('entity', sa.String(length=80), nullable=True),
        sa.Column('entity_id', sa.String(length=80), nullable=True),
        sa.Column('ip', sa.String(length=64), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('metadata_json', sa.Text(), nullable=True),
        sa.Column('timestamp', sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )


def downgrade():
    op.drop_table('audit_logs')

    with op.batch_alter_table('pricing_rules', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_pricing_rules_business_id'))
    op.drop_table('pricing_rules')

    with op.batch_alter_table('interval_claims', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_interval_claims_booking_id'))
        batch_op.drop_index(batch_op.f('ix_interval_claims_hold_id'))
    op.drop_table('interval_claims')

    with op.batch_alter_table('bookings', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_bookings_status'))
        batch_op.drop_index(batch_op.f('ix_bookings_owner_user_id'))
        batch_op.drop_index(batch_op.f('ix_bookings_start_at'))
        batch_op.drop_index(batch_op.f('ix_bookings_resource_id'))
    op.drop_table('bookings')

    with op.batch_alter_table('holds', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_holds_expires_at'))
        batch_op.drop_index(batch_op.f('ix_holds_status'))
        batch_op.drop_index(batch_op.f('ix_holds_owner_session_id'))
        batch_op.drop_index(batch_op.f('ix_holds_owner_user_id'))
        batch_op.drop_index(batch_op.f('ix_holds_start_at'))
        batch_op.drop_index(batch_op.f('ix_holds_resource_id'))
    op.drop_table('holds')

    with op.batch_alter_table('blackout_intervals', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_blackout_intervals_end_at'))
        batch_op.drop_index(batch_op.f('ix_blackout_intervals_start_at'))
        batch_op.drop_index(batch_op.f('ix_blackout_intervals_resource_id'))
        batch_op.drop_index(batch_op.f('ix_blackout_intervals_business_id'))
    op.drop_table('blackout_intervals')

    with op.batch_alter_table('availability_overrides', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_availability_overrides_resource_id'))
    op.drop_table('availability_overrides')

    with op.batch_alter_table('schedule_windows', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_schedule_windows_resource_id'))
    op.drop_table('schedule_windows')

    with op.batch_alter_table('packages', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_packages_bookable_type_id'))
    op.drop_table('packages')

    op.drop_table('bookable_type_resources')

    with op.batch_alter_table('bookable_types', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_bookable_types_business_id'))
    op.drop_table('bookable_types')

    with op.batch_alter_table('resources', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_resources_business_id'))
    op.drop_table('resources')

    with op.batch_alter_table('businesses', schema=None) as batch_op:
        batch_op.drop_index(batch_op.f('ix_businesses_type'))
    op.drop_table('businesses')
