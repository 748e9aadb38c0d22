"""create society, activity and credit tables

Revision ID: a1c2e3g4i5k6
Revises:
Create Date: 2025-11-03
"""
from alembic import op
import sqlalchemy as sa


revision = 'a1c2e3g4i5k6'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'societies',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('kitchen_price_per_member', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('username', sa.String(255), nullable=False, unique=True),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('function', sa.String(64), nullable=True),
        sa.Column('society_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('subscription_type_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_users_society_id', 'users', ['society_id'])

    op.create_table(
        'subscription_types',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('society_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('period', sa.String(16), nullable=False, server_default='monthly'),
        sa.Column('period_months', sa.SmallInteger(), nullable=False, server_default='1'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='true'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_subscription_types_society_id', 'subscription_types', ['society_id'])

    op.create_table(
        'consumptions',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('society_id', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='open'),
        sa.Column('notes', sa.String(500), nullable=True),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_consumptions_user_society_created', 'consumptions', ['user_id', 'society_id', 'created_at'])

    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('society_id', sa.Integer(), nullable=False),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('start_date', sa.TIMESTAMP(timezone=True), nullable=False),
        sa.Column('guests', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('use_kitchen', sa.Boolean(), nullable=False, server_default='false'),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('created_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_reservations_user_society_start', 'reservations', ['user_id', 'society_id', 'start_date'])

    op.create_table(
        'credits',
        sa.Column('id', sa.Integer(), autoincrement=True, primary_key=True),
        sa.Column('member_id', sa.Integer(), nullable=False),
        sa.Column('society_id', sa.Integer(), nullable=False),
        sa.Column('month', sa.String(7), nullable=False),
        sa.Column('year', sa.Integer(), nullable=False),
        sa.Column('month_number', sa.SmallInteger(), nullable=False),
        sa.Column('consumption_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('reservation_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('kitchen_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('subscription_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('total_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('paid_amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('marked_as_paid_by', sa.Integer(), nullable=True),
        sa.Column('marked_as_paid_at', sa.TIMESTAMP(timezone=True), nullable=True),
        sa.Column('calculated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.TIMESTAMP(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_credits_member_id', 'credits', ['member_id'])
    op.create_index('ix_credits_society_id', 'credits', ['society_id'])
    op.create_index('ix_credits_month', 'credits', ['month'])
    op.create_unique_constraint('uq_credit_member_society_month', 'credits', ['member_id', 'society_id', 'month'])


def downgrade():
    op.drop_table('credits')
    op.drop_table('reservations')
    op.drop_table('consumptions')
    op.drop_table('subscription_types')
    op.drop_table('users')
    op.drop_table('societies')
