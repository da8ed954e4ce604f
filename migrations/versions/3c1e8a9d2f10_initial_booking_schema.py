"""Initial booking, consultation and video session schema

Revision ID: 3c1e8a9d2f10
Revises:
Create Date: 2026-10-18 09:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '3c1e8a9d2f10'
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_SLOT_WHERE = sa.text("status NOT IN ('cancelled', 'rescheduled')")


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    ]


def upgrade():
    op.create_table(
        'users',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('email', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('phone', sa.String(length=20), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='pet_owner'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])

    op.create_table(
        'schedule_rules',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('veterinarian_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('day_of_week', sa.String(length=10), nullable=False),
        sa.Column('start_time', sa.String(length=5), nullable=False),
        sa.Column('end_time', sa.String(length=5), nullable=False),
        sa.Column('slot_duration', sa.Integer(), nullable=False, server_default='30'),
        sa.Column('max_appointments', sa.Integer(), nullable=False, server_default='10'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
        sa.UniqueConstraint('veterinarian_id', 'day_of_week', name='uq_schedule_rules_vet_day'),
    )
    op.create_index('ix_schedule_rules_veterinarian_id', 'schedule_rules', ['veterinarian_id'])

    op.create_table(
        'consultations',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('veterinarian_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('booking_id', sa.String(length=36), nullable=True),
        sa.Column('animal_id', sa.String(length=36), nullable=True),
        sa.Column('animal_type', sa.String(length=50), nullable=True),
        sa.Column('symptom_description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='scheduled'),
        sa.Column('scheduled_at', sa.DateTime(), nullable=True),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('completed_at', sa.DateTime(), nullable=True),
        sa.Column('diagnosis', sa.Text(), nullable=True),
        sa.Column('prescription', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_consultations_user_id', 'consultations', ['user_id'])
    op.create_index('ix_consultations_veterinarian_id', 'consultations', ['veterinarian_id'])
    op.create_index('ix_consultations_booking_id', 'consultations', ['booking_id'])

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('pet_owner_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('veterinarian_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('animal_id', sa.String(length=36), nullable=True),
        sa.Column('enterprise_id', sa.String(length=36), nullable=True),
        sa.Column('group_id', sa.String(length=36), nullable=True),
        sa.Column('scheduled_date', sa.Date(), nullable=False),
        sa.Column('time_slot_start', sa.String(length=5), nullable=False),
        sa.Column('time_slot_end', sa.String(length=5), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='pending'),
        sa.Column('booking_type', sa.String(length=20), nullable=False, server_default='video_call'),
        sa.Column('priority', sa.String(length=20), nullable=False, server_default='normal'),
        sa.Column('reason_for_visit', sa.Text(), nullable=True),
        sa.Column('symptoms', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('cancellation_reason', sa.Text(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('rescheduled_from', sa.String(length=36), sa.ForeignKey('bookings.id'), nullable=True),
        sa.Column('consultation_id', sa.String(length=36), sa.ForeignKey('consultations.id'), nullable=True),
        *_timestamps(),
    )
    op.create_index('ix_bookings_pet_owner_id', 'bookings', ['pet_owner_id'])
    op.create_index('ix_bookings_veterinarian_id', 'bookings', ['veterinarian_id'])
    op.create_index('ix_bookings_rescheduled_from', 'bookings', ['rescheduled_from'])
    op.create_index('ix_bookings_consultation_id', 'bookings', ['consultation_id'])
    op.create_index('ix_bookings_status_date', 'bookings', ['status', 'scheduled_date'])
    op.create_index(
        'uq_bookings_active_slot',
        'bookings',
        ['veterinarian_id', 'scheduled_date', 'time_slot_start'],
        unique=True,
        postgresql_where=ACTIVE_SLOT_WHERE,
        sqlite_where=ACTIVE_SLOT_WHERE,
    )

    op.create_table(
        'video_sessions',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('consultation_id', sa.String(length=36), sa.ForeignKey('consultations.id'), nullable=True),
        sa.Column('room_id', sa.String(length=40), nullable=False),
        sa.Column('host_user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('participant_user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False, server_default='waiting'),
        sa.Column('started_at', sa.DateTime(), nullable=True),
        sa.Column('ended_at', sa.DateTime(), nullable=True),
        sa.Column('duration', sa.Integer(), nullable=True),
        sa.Column('recording_url', sa.String(length=500), nullable=True),
        sa.Column('quality', sa.String(length=10), nullable=False, server_default='high'),
        *_timestamps(),
    )
    op.create_index('ix_video_sessions_consultation_id', 'video_sessions', ['consultation_id'])
    op.create_index('ix_video_sessions_room_id', 'video_sessions', ['room_id'], unique=True)

    op.create_table(
        'chat_messages',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('session_id', sa.String(length=36), sa.ForeignKey('video_sessions.id'), nullable=False),
        sa.Column('sender_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('sender_name', sa.String(length=200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('message_type', sa.String(length=10), nullable=False, server_default='text'),
        sa.Column('timestamp', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_chat_messages_session_id', 'chat_messages', ['session_id'])

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('user_role', sa.String(length=20), nullable=True),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_entity_type', 'audit_logs', ['entity_type'])
    op.create_index('ix_audit_logs_entity_id', 'audit_logs', ['entity_id'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])
    op.create_index('ix_audit_logs_user_id', 'audit_logs', ['user_id'])


def downgrade():
    op.drop_table('audit_logs')
    op.drop_table('chat_messages')
    op.drop_table('video_sessions')
    op.drop_index('uq_bookings_active_slot', table_name='bookings')
    op.drop_table('bookings')
    op.drop_table('consultations')
    op.drop_table('schedule_rules')
    op.drop_table('users')
