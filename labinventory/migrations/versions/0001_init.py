"""create components, borrowing_records and procurement_requests

Revision ID: 0001_init
Revises:
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

revision = '0001_init'
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        'components',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('component_id', sa.String(40), nullable=False, unique=True, index=True),
        sa.Column('name', sa.String(200), nullable=False, index=True),
        sa.Column('category', sa.String(100), nullable=False, index=True),
        sa.Column('description', sa.Text, nullable=False, server_default=''),
        sa.Column('total_quantity', sa.Integer, nullable=False, server_default='0'),
        sa.Column('available_quantity', sa.Integer, nullable=False, server_default='0'),
        sa.Column('threshold', sa.Integer, nullable=False, server_default='5'),
        sa.Column('tags', sa.JSON, nullable=False),
        sa.Column('datasheet_link', sa.String(500), nullable=False, server_default=''),
        sa.Column('purchase_date', sa.Date, nullable=True),
        sa.Column('condition', sa.String(20), nullable=False, server_default='good'),
        sa.Column('remarks', sa.Text, nullable=False, server_default=''),
        sa.Column('version', sa.Integer, nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
        sa.CheckConstraint('available_quantity >= 0', name='ck_components_available_non_negative'),
        sa.CheckConstraint('available_quantity <= total_quantity', name='ck_components_available_le_total'),
    )
    op.create_table(
        'borrowing_records',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('record_id', sa.String(40), nullable=False, unique=True, index=True),
        sa.Column('user_id', sa.String(100), nullable=False, index=True),
        # No FK: records outlive deleted components
        sa.Column('component_id', sa.String(40), nullable=False, index=True),
        sa.Column('component_name', sa.String(200), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False, server_default='1'),
        sa.Column('borrow_date', sa.DateTime, nullable=False),
        sa.Column('expected_return_date', sa.Date, nullable=False),
        sa.Column('actual_return_date', sa.DateTime, nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending', index=True),
        sa.Column('remarks', sa.Text, nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime, nullable=False),
    )
    op.create_table(
        'procurement_requests',
        sa.Column('id', sa.Integer, primary_key=True),
        sa.Column('request_id', sa.String(40), nullable=False, unique=True, index=True),
        sa.Column('item_name', sa.String(200), nullable=False),
        sa.Column('quantity', sa.Integer, nullable=False),
        sa.Column('priority', sa.String(10), nullable=False, server_default='MEDIUM'),
        sa.Column('status', sa.String(20), nullable=False, server_default='PENDING', index=True),
        sa.Column('component_id', sa.String(40), nullable=True, index=True),
        sa.Column('category', sa.String(100), nullable=False, server_default=''),
        sa.Column('description', sa.Text, nullable=False, server_default=''),
        sa.Column('requested_by', sa.String(100), nullable=False, server_default='admin'),
        sa.Column('remarks', sa.Text, nullable=False, server_default=''),
        sa.Column('created_at', sa.DateTime, nullable=False),
        sa.Column('updated_at', sa.DateTime, nullable=False),
        sa.CheckConstraint('quantity >= 1', name='ck_procurement_quantity_positive'),
    )

def downgrade():
    op.drop_table('procurement_requests')
    op.drop_table('borrowing_records')
    op.drop_table('components')
