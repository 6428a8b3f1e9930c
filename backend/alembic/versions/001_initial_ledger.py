"""initial_ledger

Revision ID: 001
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('username', sa.String(64), nullable=True),
        sa.Column('status', sa.String(50), nullable=False, server_default='active'),
        sa.Column('user_role', sa.String(50), nullable=False, server_default='user'),
        sa.Column('platform_fee_percent', sa.Float(), nullable=True),
        sa.Column('hold_period_days', sa.Integer(), nullable=True),
        sa.Column('total_revenue', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_sales_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
        sa.UniqueConstraint('username', name='uq_users_username'),
    )
    op.create_index('idx_user_email', 'users', ['email'])
    op.create_index('idx_user_status', 'users', ['status'])

    # Create products table
    op.create_table(
        'products',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('user_id', sa.String(36), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.String(), nullable=True),
        sa.Column('images', sa.JSON(), nullable=True),
        sa.Column('pay_what_you_want', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('price', sa.Integer(), nullable=True),
        sa.Column('sale_price', sa.Integer(), nullable=True),
        sa.Column('minimum_price', sa.Integer(), nullable=True),
        sa.Column('total_quantity', sa.Integer(), nullable=True),
        sa.Column('limit_per_checkout', sa.Integer(), nullable=True),
        sa.Column('customer_questions', sa.JSON(), nullable=True),
        sa.Column('sales_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_revenue', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('is_deleted', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_products'),
        sa.ForeignKeyConstraint(['user_id'], ['users.uuid'], name='fk_products_user_id_users'),
    )
    op.create_index('idx_product_user_id', 'products', ['user_id'])
    op.create_index('idx_product_is_active', 'products', ['is_active'])

    # Create orders table (creator/product references are snapshots, no FKs)
    op.create_table(
        'orders',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('creator_id', sa.String(36), nullable=True),
        sa.Column('product_id', sa.String(36), nullable=True),
        sa.Column('product_title', sa.String(255), nullable=False),
        sa.Column('product_price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_image', sa.Text(), nullable=True),
        sa.Column('buyer_email', sa.String(255), nullable=False),
        sa.Column('buyer_name', sa.String(255), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('amount_paid', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('checkout_answers', sa.JSON(), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('checkout_group_id', sa.String(36), nullable=False),
        sa.Column('idempotency_key', sa.String(255), nullable=False),
        sa.Column('delivery_token', sa.String(36), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='completed'),
        sa.Column('email_sent', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('email_sent_at', sa.DateTime(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_orders'),
        sa.UniqueConstraint('idempotency_key', name='uq_orders_idempotency_key'),
        sa.UniqueConstraint('delivery_token', name='uq_orders_delivery_token'),
    )
    op.create_index('idx_order_creator_id', 'orders', ['creator_id'])
    op.create_index('idx_order_product_id', 'orders', ['product_id'])
    op.create_index('idx_order_buyer_email', 'orders', ['buyer_email'])
    op.create_index('idx_order_checkout_group_id', 'orders', ['checkout_group_id'])
    op.create_index('idx_order_status', 'orders', ['status'])

    # Create order_items table
    op.create_table(
        'order_items',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('order_id', sa.String(36), nullable=False),
        sa.Column('creator_id', sa.String(36), nullable=True),
        sa.Column('product_id', sa.String(36), nullable=True),
        sa.Column('product_title', sa.String(255), nullable=False),
        sa.Column('product_price', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('product_image', sa.Text(), nullable=True),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('amount_paid', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('checkout_answers', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_order_items'),
        sa.ForeignKeyConstraint(['order_id'], ['orders.uuid'], name='fk_order_items_order_id_orders'),
    )
    op.create_index('idx_order_item_order_id', 'order_items', ['order_id'])
    op.create_index('idx_order_item_creator_id', 'order_items', ['creator_id'])
    op.create_index('idx_order_item_product_id', 'order_items', ['product_id'])

    # Create transactions table (append-only ledger)
    op.create_table(
        'transactions',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('creator_id', sa.String(36), nullable=False),
        sa.Column('order_id', sa.String(36), nullable=True),
        sa.Column('payout_id', sa.String(36), nullable=True),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('net_amount', sa.Integer(), nullable=False),
        sa.Column('platform_fee_percent', sa.Float(), nullable=False, server_default='0'),
        sa.Column('platform_fee_amount', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('available_at', sa.DateTime(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_transactions'),
    )
    op.create_index('idx_transaction_creator_id', 'transactions', ['creator_id'])
    op.create_index('idx_transaction_order_id', 'transactions', ['order_id'])
    op.create_index('idx_transaction_payout_id', 'transactions', ['payout_id'])
    op.create_index('idx_transaction_type', 'transactions', ['type'])
    op.create_index('idx_transaction_available_at', 'transactions', ['available_at'])
    op.create_index('idx_transaction_creator_created', 'transactions', ['creator_id', 'created_at'])

    # Create payouts table
    op.create_table(
        'payouts',
        sa.Column('uuid', sa.String(36), nullable=False),
        sa.Column('creator_id', sa.String(36), nullable=False),
        sa.Column('amount', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('period_start', sa.DateTime(), nullable=True),
        sa.Column('period_end', sa.DateTime(), nullable=True),
        sa.Column('payout_method', sa.String(50), nullable=True),
        sa.Column('payout_details', sa.JSON(), nullable=True),
        sa.Column('processed_at', sa.DateTime(), nullable=True),
        sa.Column('failure_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint('uuid', name='pk_payouts'),
    )
    op.create_index('idx_payout_creator_id', 'payouts', ['creator_id'])
    op.create_index('idx_payout_status', 'payouts', ['status'])
    # At most one pending payout per creator
    op.create_index(
        'uq_payout_one_pending_per_creator',
        'payouts',
        ['creator_id'],
        unique=True,
        postgresql_where=sa.text("status = 'pending'"),
        sqlite_where=sa.text("status = 'pending'"),
    )


def downgrade() -> None:
    op.drop_index('uq_payout_one_pending_per_creator', table_name='payouts')
    op.drop_index('idx_payout_status', table_name='payouts')
    op.drop_index('idx_payout_creator_id', table_name='payouts')
    op.drop_table('payouts')

    op.drop_index('idx_transaction_creator_created', table_name='transactions')
    op.drop_index('idx_transaction_available_at', table_name='transactions')
    op.drop_index('idx_transaction_type', table_name='transactions')
    op.drop_index('idx_transaction_payout_id', table_name='transactions')
    op.drop_index('idx_transaction_order_id', table_name='transactions')
    op.drop_index('idx_transaction_creator_id', table_name='transactions')
    op.drop_table('transactions')

    op.drop_index('idx_order_item_product_id', table_name='order_items')
    op.drop_index('idx_order_item_creator_id', table_name='order_items')
    op.drop_index('idx_order_item_order_id', table_name='order_items')
    op.drop_table('order_items')

    op.drop_index('idx_order_status', table_name='orders')
    op.drop_index('idx_order_checkout_group_id', table_name='orders')
    op.drop_index('idx_order_buyer_email', table_name='orders')
    op.drop_index('idx_order_product_id', table_name='orders')
    op.drop_index('idx_order_creator_id', table_name='orders')
    op.drop_table('orders')

    op.drop_index('idx_product_is_active', table_name='products')
    op.drop_index('idx_product_user_id', table_name='products')
    op.drop_table('products')

    op.drop_index('idx_user_status', table_name='users')
    op.drop_index('idx_user_email', table_name='users')
    op.drop_table('users')
