"""initial schema

Revision ID: 0001
Revises: 
Create Date: 2026-10-19 09:12:04.118532

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('employee_id', sa.String(length=50), nullable=True),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('mobile_number', sa.String(length=20), nullable=False),
        sa.Column('password_hash', sa.Text(), nullable=True),
        sa.Column('role', sa.String(length=20), nullable=False, server_default='employee'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
        sa.UniqueConstraint('mobile_number', name='uq_users_mobile_number'),
        sa.UniqueConstraint('employee_id', name='uq_users_employee_id'),
    )
    op.create_index('ix_users_id', 'users', ['id'])
    op.create_index('idx_users_role', 'users', ['role'])

    op.create_table(
        'attendance_records',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('check_in_time', sa.DateTime(), nullable=False),
        sa.Column('check_in_latitude', sa.Float(), nullable=True),
        sa.Column('check_in_longitude', sa.Float(), nullable=True),
        sa.Column('check_out_time', sa.DateTime(), nullable=True),
        sa.Column('check_out_latitude', sa.Float(), nullable=True),
        sa.Column('check_out_longitude', sa.Float(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index('ix_attendance_records_id', 'attendance_records', ['id'])
    op.create_index('idx_attendance_user_id', 'attendance_records', ['user_id'])
    op.create_index('idx_attendance_check_in', 'attendance_records', ['check_in_time'])
    op.create_index('idx_attendance_check_out', 'attendance_records', ['check_out_time'])

    # At most one open record (no check-out yet) per user
    op.create_index(
        'uq_attendance_open_record',
        'attendance_records',
        ['user_id'],
        unique=True,
        postgresql_where=sa.text('check_out_time IS NULL'),
        sqlite_where=sa.text('check_out_time IS NULL'),
    )


def downgrade() -> None:
    op.drop_index('uq_attendance_open_record', table_name='attendance_records')
    op.drop_index('idx_attendance_check_out', table_name='attendance_records')
    op.drop_index('idx_attendance_check_in', table_name='attendance_records')
    op.drop_index('idx_attendance_user_id', table_name='attendance_records')
    op.drop_index('ix_attendance_records_id', table_name='attendance_records')
    op.drop_table('attendance_records')
    op.drop_index('idx_users_role', table_name='users')
    op.drop_index('ix_users_id', table_name='users')
    op.drop_table('users')
