"""create_event_registration_tables

Revision ID: b7e1c4a9d201
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID


# revision identifiers, used by Alembic.
revision: str = 'b7e1c4a9d201'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


member_status_enum = sa.Enum(
    'prospect', 'probationary', 'active', 'inactive', 'suspended', 'terminated',
    name='member_status_enum',
)
event_category_enum = sa.Enum(
    'match', 'meeting', 'education', 'club_event', 'work_day', 'youth_event',
    'practice', 'class', 'range_unavailable',
    name='event_category_enum',
)
event_status_enum = sa.Enum('draft', 'published', 'cancelled', name='event_status_enum')
registration_status_enum = sa.Enum(
    'registered', 'waitlisted', 'cancelled', name='registration_status_enum'
)


def upgrade() -> None:
    """Upgrade schema - Members, certifications, events, registrations, ledgers."""

    op.create_table(
        'members',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('auth_id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('status', member_status_enum, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_members_auth_id', 'members', ['auth_id'], unique=True)
    op.create_index('ix_members_email', 'members', ['email'], unique=True)
    op.create_index('ix_members_status', 'members', ['status'])

    op.create_table(
        'certification_types',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('validity_months', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )

    op.create_table(
        'member_certifications',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('member_id', UUID(as_uuid=True), nullable=False),
        sa.Column('certification_type_id', sa.String(), nullable=False),
        sa.Column('earned_date', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('verified_by', UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'member_certifications_member_type_idx',
        'member_certifications',
        ['member_id', 'certification_type_id'],
    )

    op.create_table(
        'board_memberships',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('member_id', UUID(as_uuid=True), nullable=False),
        sa.Column('position_title', sa.String(), nullable=False),
        sa.Column('term_start', sa.DateTime(timezone=True), nullable=False),
        sa.Column('term_end', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_current', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(
        'ix_board_memberships_is_current', 'board_memberships', ['is_current']
    )

    op.create_table(
        'events',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('event_type', event_category_enum, nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('location', sa.String(), nullable=True),
        sa.Column('max_capacity', sa.Integer(), nullable=True),
        sa.Column('registration_deadline', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cost', sa.Integer(), nullable=True),
        sa.Column('requires_certification', sa.Text(), nullable=True),
        sa.Column('is_public', sa.Boolean(), nullable=True),
        sa.Column('members_only', sa.Boolean(), nullable=True),
        sa.Column('board_only', sa.Boolean(), nullable=True),
        sa.Column('status', event_status_enum, nullable=False),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.String(), nullable=True),
        sa.Column('created_by', UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('events_start_time_idx', 'events', ['start_time'])
    op.create_index('events_status_idx', 'events', ['status'])

    op.create_table(
        'event_registrations',
        sa.Column('id', UUID(as_uuid=True), nullable=False),
        sa.Column('event_id', UUID(as_uuid=True), nullable=False),
        sa.Column('member_id', UUID(as_uuid=True), nullable=False),
        sa.Column('status', registration_status_enum, nullable=False),
        sa.Column('waitlist_seq', sa.Integer(), nullable=True),
        sa.Column('waitlist_position', sa.Integer(), nullable=True),
        sa.Column('promoted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('refund_percent', sa.Integer(), nullable=True),
        sa.Column('division', sa.String(), nullable=True),
        sa.Column('classification', sa.String(), nullable=True),
        sa.Column('checked_in_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('checked_in_by', UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['member_id'], ['members.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    # At most one active registration per (event, member)
    op.create_index(
        'event_registrations_active_member_idx',
        'event_registrations',
        ['event_id', 'member_id'],
        unique=True,
        postgresql_where=sa.text("status IN ('registered', 'waitlisted')"),
    )
    op.create_index(
        'event_registrations_event_status_idx',
        'event_registrations',
        ['event_id', 'status'],
    )

    op.create_table(
        'event_capacity_ledgers',
        sa.Column('event_id', UUID(as_uuid=True), nullable=False),
        sa.Column('confirmed_count', sa.Integer(), nullable=False),
        sa.Column('next_waitlist_seq', sa.Integer(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['event_id'], ['events.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('event_id'),
    )


def downgrade() -> None:
    """Downgrade schema - Drop everything created above."""
    op.drop_table('event_capacity_ledgers')
    op.drop_index('event_registrations_event_status_idx', table_name='event_registrations')
    op.drop_index('event_registrations_active_member_idx', table_name='event_registrations')
    op.drop_table('event_registrations')
    op.drop_index('events_status_idx', table_name='events')
    op.drop_index('events_start_time_idx', table_name='events')
    op.drop_table('events')
    op.drop_index('ix_board_memberships_is_current', table_name='board_memberships')
    op.drop_table('board_memberships')
    op.drop_index('member_certifications_member_type_idx', table_name='member_certifications')
    op.drop_table('member_certifications')
    op.drop_table('certification_types')
    op.drop_index('ix_members_status', table_name='members')
    op.drop_index('ix_members_email', table_name='members')
    op.drop_index('ix_members_auth_id', table_name='members')
    op.drop_table('members')

    bind = op.get_bind()
    for enum_type in (
        registration_status_enum,
        event_status_enum,
        event_category_enum,
        member_status_enum,
    ):
        enum_type.drop(bind, checkfirst=True)
