"""Initial schema

Revision ID: 0000_initial
Revises:
Create Date: 2026-10-18

"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0000_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'merchants',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('phone', sa.String(length=40)),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.UniqueConstraint('name', name='uq_merchants_name'),
    )

    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('email', sa.String(length=255)),
        sa.Column('firstname', sa.String(length=120)),
        sa.Column('lastname', sa.String(length=120)),
        sa.Column('phone', sa.String(length=40)),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('merchant_id', sa.Integer(), sa.ForeignKey('merchants.id', ondelete='SET NULL')),
        sa.Column('is_active', sa.Boolean(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    op.create_table(
        'packages',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=60), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('kg', sa.Numeric(10, 3), nullable=False),
    )
    op.create_index('ix_packages_code', 'packages', ['code'], unique=True)

    op.create_table(
        'service_addons',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('key', sa.String(length=40), nullable=False),
        sa.Column('code', sa.String(length=60), nullable=False),
        sa.Column('name', sa.String(length=200)),
        sa.Column('price', sa.Numeric(14, 2), nullable=False),
        sa.Column('value', sa.JSON(), nullable=False),
    )
    op.create_index('ix_service_addons_key', 'service_addons', ['key'], unique=False)
    op.create_index('ix_service_addons_code', 'service_addons', ['code'], unique=True)

    op.create_table(
        'payment_accounts',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('label', sa.String(length=120), nullable=False),
        sa.Column('country', sa.String(length=2), nullable=False),
        sa.Column('is_default', sa.Boolean(), nullable=False),
    )
    op.create_index('ix_payment_accounts_country', 'payment_accounts', ['country'], unique=False)

    op.create_table(
        'commands',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('packages.id'), nullable=False),
        sa.Column('command_type', sa.String(length=20), nullable=False),
        sa.Column('description', sa.String(length=255)),
        sa.Column('order_min_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('merchant_kg_unit_cost', sa.Numeric(14, 2), nullable=False),
        sa.Column('delivery_per_day_cost', sa.Numeric(14, 2), nullable=False),
        sa.Column('command_kg', sa.Numeric(10, 3), nullable=False),
        sa.Column('command_spent_kg', sa.Numeric(10, 3), nullable=False),
        sa.Column('picking_days_times', sa.JSON(), nullable=False),
        sa.Column('command_start_at', sa.DateTime()),
        sa.Column('start_at', sa.DateTime()),
        sa.Column('end_at', sa.DateTime()),
        sa.Column('total_execution', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_commands_user_id', 'commands', ['user_id'], unique=False)
    op.create_index('ix_commands_status', 'commands', ['status'], unique=False)

    op.create_table(
        'command_addons',
        sa.Column('command_id', sa.Integer(), sa.ForeignKey('commands.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('addon_id', sa.Integer(), sa.ForeignKey('service_addons.id', ondelete='CASCADE'), primary_key=True),
    )
    op.create_index('ix_command_addons_command_id', 'command_addons', ['command_id'], unique=False)

    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('meta', sa.String(length=120)),
        sa.Column('amount', sa.String(length=40), nullable=False),
        sa.Column('margin', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('invoice_type', sa.String(length=40), nullable=False),
        sa.Column('payment_account_id', sa.Integer(), sa.ForeignKey('payment_accounts.id')),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_invoices_meta', 'invoices', ['meta'], unique=False)
    op.create_index('ix_invoices_status', 'invoices', ['status'], unique=False)
    op.create_index('ix_invoices_user_meta_status', 'invoices', ['user_id', 'meta', 'status'], unique=False)

    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_code', sa.String(length=12)),
        sa.Column('command_id', sa.Integer(), sa.ForeignKey('commands.id')),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('package_id', sa.Integer(), sa.ForeignKey('packages.id')),
        sa.Column('merchant_id', sa.Integer(), sa.ForeignKey('merchants.id')),
        sa.Column('invoice_id', sa.Integer(), sa.ForeignKey('invoices.id', ondelete='SET NULL')),
        sa.Column('title', sa.String(length=255)),
        sa.Column('order_type', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('merchant_payment_status', sa.String(length=20)),

        # Schedule
        sa.Column('execution_date', sa.DateTime(), nullable=False),
        sa.Column('execution_duration', sa.Integer()),
        sa.Column('delivery_date', sa.DateTime()),
        sa.Column('picking_hours', sa.JSON()),
        sa.Column('delivery_type', sa.String(length=60)),
        sa.Column('command_execution_index', sa.Integer(), nullable=False),
        sa.Column('order_execution_index', sa.Integer(), nullable=False),

        # Weight
        sa.Column('capacity_kg', sa.Numeric(10, 3), nullable=False),
        sa.Column('user_kg', sa.Numeric(10, 3)),

        # Costs and prices
        sa.Column('delivery_cost', sa.Numeric(14, 2), nullable=False),
        sa.Column('merchant_kg_cost', sa.Numeric(14, 2), nullable=False),
        sa.Column('merchant_total_cost', sa.Numeric(14, 2)),
        sa.Column('total_cost', sa.Numeric(14, 2)),
        sa.Column('margin', sa.Numeric(14, 2)),
        sa.Column('customer_order_kg_price', sa.Numeric(14, 4), nullable=False),
        sa.Column('customer_order_initial_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('customer_order_final_price', sa.Numeric(14, 2), nullable=False),
        sa.Column('customer_fees_to_pay', sa.Numeric(14, 2)),
        sa.Column('addons', sa.JSON(), nullable=False),

        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_orders_order_code', 'orders', ['order_code'], unique=False)
    op.create_index('ix_orders_command_id', 'orders', ['command_id'], unique=False)
    op.create_index('ix_orders_user_id', 'orders', ['user_id'], unique=False)
    op.create_index('ix_orders_merchant_id', 'orders', ['merchant_id'], unique=False)
    op.create_index('ix_orders_status', 'orders', ['status'], unique=False)
    op.create_index(
        'ix_orders_command_execution',
        'orders',
        ['command_id', 'command_execution_index', 'order_execution_index'],
        unique=False,
    )


def downgrade():
    op.drop_index('ix_orders_command_execution', table_name='orders')
    op.drop_index('ix_orders_status', table_name='orders')
    op.drop_index('ix_orders_merchant_id', table_name='orders')
    op.drop_index('ix_orders_user_id', table_name='orders')
    op.drop_index('ix_orders_command_id', table_name='orders')
    op.drop_index('ix_orders_order_code', table_name='orders')
    op.drop_table('orders')

    op.drop_index('ix_invoices_user_meta_status', table_name='invoices')
    op.drop_index('ix_invoices_status', table_name='invoices')
    op.drop_index('ix_invoices_meta', table_name='invoices')
    op.drop_table('invoices')

    op.drop_index('ix_command_addons_command_id', table_name='command_addons')
    op.drop_table('command_addons')

    op.drop_index('ix_commands_status', table_name='commands')
    op.drop_index('ix_commands_user_id', table_name='commands')
    op.drop_table('commands')

    op.drop_index('ix_payment_accounts_country', table_name='payment_accounts')
    op.drop_table('payment_accounts')

    op.drop_index('ix_service_addons_code', table_name='service_addons')
    op.drop_index('ix_service_addons_key', table_name='service_addons')
    op.drop_table('service_addons')

    op.drop_index('ix_packages_code', table_name='packages')
    op.drop_table('packages')

    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    op.drop_table('merchants')
