"""Initial concessions ledger schema

Revision ID: c0001_initial_ledger
Revises:
Create Date: 2026-10-19

This migration creates:
1. Programs and the menu catalog (items, composite components)
2. Inventory lots, lot consumptions and the inventory audit log
3. Purchases and purchase lines
4. Concession sessions and the main cashbox
5. Orders and order lines
6. Program transactions, profit distributions, losses
7. CashApp account/transactions, Zelle payments, reimbursement ledger
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c0001_initial_ledger'
down_revision = None
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False)


def upgrade():
    # ==========================================================================
    # 1. PROGRAMS AND CATALOG
    # ==========================================================================
    op.create_table('programs',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('programs', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_programs_is_active'), ['is_active'], unique=False)

    op.create_table('menu_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('price_cents', sa.Integer(), nullable=True),
        sa.Column('parent_id', sa.Integer(), nullable=True),
        sa.Column('is_supply', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_composite', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('track_inventory', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        _created_at(),
        sa.ForeignKeyConstraint(['parent_id'], ['menu_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('menu_items', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_menu_items_parent_id'), ['parent_id'], unique=False)
        batch_op.create_index('ix_menu_items_parent_active', ['parent_id', 'is_active'], unique=False)

    op.create_table('menu_item_components',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=False),
        sa.Column('component_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('position', sa.Integer(), nullable=False, server_default='0'),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.ForeignKeyConstraint(['component_item_id'], ['menu_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('menu_item_id', 'component_item_id', name='uq_menu_item_components_pair'),
        sa.CheckConstraint('quantity > 0', name='ck_menu_item_components_quantity_positive'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('menu_item_components', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_menu_item_components_menu_item_id'), ['menu_item_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_menu_item_components_component_item_id'), ['component_item_id'], unique=False)

    # ==========================================================================
    # 2. PURCHASES
    # ==========================================================================
    op.create_table('purchases',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('vendor', sa.String(length=255), nullable=True),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('tax_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('delivery_fee_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('other_fees_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('crv_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by', sa.String(length=128), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchases', schema=None) as batch_op:
        batch_op.create_index('ix_purchases_date', ['purchase_date'], unique=False)

    op.create_table('purchase_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('purchase_id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=True),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.Column('crv_per_unit_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('overhead_share_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['purchase_id'], ['purchases.id'], ),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_purchase_lines_quantity_positive'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_lines_purchase_id'), ['purchase_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_purchase_lines_menu_item_id'), ['menu_item_id'], unique=False)

    # ==========================================================================
    # 3. SESSIONS AND CASHBOX
    # ==========================================================================
    op.create_table('concession_sessions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('program_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False, server_default='created'),
        sa.Column('is_test', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('start_counts', sa.JSON(), nullable=True),
        sa.Column('end_counts', sa.JSON(), nullable=True),
        sa.Column('start_total_cents', sa.Integer(), nullable=True),
        sa.Column('end_total_cents', sa.Integer(), nullable=True),
        sa.Column('profit_cents', sa.Integer(), nullable=True),
        sa.Column('sales_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_total_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('order_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('created_by', sa.String(length=128), nullable=True),
        sa.Column('started_by', sa.String(length=128), nullable=True),
        sa.Column('closed_by', sa.String(length=128), nullable=True),
        _created_at(),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('closed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['program_id'], ['programs.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('concession_sessions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_concession_sessions_program_id'), ['program_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_concession_sessions_status'), ['status'], unique=False)
        batch_op.create_index('ix_concession_sessions_program_status', ['program_id', 'status'], unique=False)

    op.create_table('main_cashbox',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('quarters', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bills_1', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bills_5', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bills_10', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bills_20', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bills_50', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('bills_100', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    # ==========================================================================
    # 4. ORDERS
    # ==========================================================================
    op.create_table('orders',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('subtotal_cents', sa.Integer(), nullable=False),
        sa.Column('discount_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('final_total_cents', sa.Integer(), nullable=False),
        sa.Column('payment_method', sa.String(length=16), nullable=False),
        sa.Column('amount_tendered_cents', sa.Integer(), nullable=False),
        sa.Column('change_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('discount_charged_to_program_id', sa.Integer(), nullable=True),
        sa.Column('discount_reason', sa.String(length=255), nullable=True),
        sa.Column('is_comp', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('is_test', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('cogs_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('cogs_reimbursable_cents', sa.Integer(), nullable=False, server_default='0'),
        _created_at(),
        sa.ForeignKeyConstraint(['session_id'], ['concession_sessions.id'], ),
        sa.ForeignKeyConstraint(['discount_charged_to_program_id'], ['programs.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('discount_cents >= 0', name='ck_orders_discount_nonnegative'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('orders', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_orders_session_id'), ['session_id'], unique=False)
        batch_op.create_index('ix_orders_session_created', ['session_id', 'created_at'], unique=False)

    op.create_table('order_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.Integer(), nullable=False),
        sa.Column('line_total_cents', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('quantity > 0', name='ck_order_lines_quantity_positive'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('order_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_order_lines_order_id'), ['order_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_order_lines_menu_item_id'), ['menu_item_id'], unique=False)

    # ==========================================================================
    # 5. INVENTORY LOTS, CONSUMPTIONS, AUDIT LOG
    # ==========================================================================
    op.create_table('inventory_lots',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=False),
        sa.Column('purchase_line_id', sa.Integer(), nullable=True),
        sa.Column('source', sa.String(length=32), nullable=False, server_default='purchase'),
        sa.Column('purchase_date', sa.Date(), nullable=False),
        sa.Column('quantity_original', sa.Integer(), nullable=False),
        sa.Column('quantity_remaining', sa.Integer(), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('is_reimbursable', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('vendor', sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.ForeignKeyConstraint(['purchase_line_id'], ['purchase_lines.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            'quantity_remaining >= 0 AND quantity_remaining <= quantity_original',
            name='ck_inventory_lots_remaining_bounds',
        ),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory_lots', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_lots_menu_item_id'), ['menu_item_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_lots_purchase_line_id'), ['purchase_line_id'], unique=False)
        batch_op.create_index('ix_inventory_lots_item_fifo', ['menu_item_id', 'purchase_date', 'id'], unique=False)

    op.create_table('lot_consumptions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('lot_id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=False),
        sa.Column('is_reimbursable', sa.Boolean(), nullable=False),
        sa.Column('kind', sa.String(length=32), nullable=False, server_default='sale'),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('session_id', sa.Integer(), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['lot_id'], ['inventory_lots.id'], ),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['session_id'], ['concession_sessions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('lot_consumptions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_lot_consumptions_lot_id'), ['lot_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_lot_consumptions_menu_item_id'), ['menu_item_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_lot_consumptions_kind'), ['kind'], unique=False)
        batch_op.create_index(batch_op.f('ix_lot_consumptions_order_id'), ['order_id'], unique=False)
        batch_op.create_index('ix_lot_consumptions_session_kind', ['session_id', 'kind'], unique=False)

    op.create_table('inventory_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=32), nullable=False),
        sa.Column('quantity_delta', sa.Integer(), nullable=False),
        sa.Column('unit_cost_cents', sa.Integer(), nullable=True),
        sa.Column('is_reimbursable', sa.Boolean(), nullable=True),
        sa.Column('purchase_id', sa.Integer(), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('session_id', sa.Integer(), nullable=True),
        sa.Column('lot_id', sa.Integer(), nullable=True),
        sa.Column('note', sa.String(length=255), nullable=True),
        sa.Column('created_by', sa.String(length=128), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory_transactions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_transactions_menu_item_id'), ['menu_item_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_transactions_type'), ['type'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_transactions_purchase_id'), ['purchase_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_transactions_order_id'), ['order_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_transactions_occurred_at'), ['occurred_at'], unique=False)
        batch_op.create_index('ix_invtx_item_occurred', ['menu_item_id', 'occurred_at'], unique=False)

    # ==========================================================================
    # 6. PROGRAM LEDGER, DISTRIBUTIONS, LOSSES
    # ==========================================================================
    op.create_table('program_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('program_id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=True),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('kind', sa.String(length=32), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('note', sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['program_id'], ['programs.id'], ),
        sa.ForeignKeyConstraint(['session_id'], ['concession_sessions.id'], ),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('program_transactions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_program_transactions_program_id'), ['program_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_program_transactions_session_id'), ['session_id'], unique=False)
        batch_op.create_index('ix_program_transactions_program_created', ['program_id', 'created_at'], unique=False)

    op.create_table('profit_distributions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('program_id', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('distributed_by', sa.String(length=128), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['session_id'], ['concession_sessions.id'], ),
        sa.ForeignKeyConstraint(['program_id'], ['programs.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('profit_distributions', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_profit_distributions_session_id'), ['session_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_profit_distributions_program_id'), ['program_id'], unique=False)

    op.create_table('losses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=True),
        sa.Column('program_id', sa.Integer(), nullable=True),
        sa.Column('menu_item_id', sa.Integer(), nullable=True),
        sa.Column('loss_type', sa.String(length=32), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('recorded_by', sa.String(length=128), nullable=True),
        sa.Column('settled_to', sa.String(length=32), nullable=True),
        sa.Column('settled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('settled_by', sa.String(length=128), nullable=True),
        sa.Column('settlement_notes', sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['session_id'], ['concession_sessions.id'], ),
        sa.ForeignKeyConstraint(['program_id'], ['programs.id'], ),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('amount_cents >= 0', name='ck_losses_amount_nonnegative'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('losses', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_losses_session_id'), ['session_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_losses_program_id'), ['program_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_losses_loss_type'), ['loss_type'], unique=False)

    # ==========================================================================
    # 7. CASHAPP, ZELLE, REIMBURSEMENT LEDGER
    # ==========================================================================
    op.create_table('cashapp_account',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )

    op.create_table('cashapp_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('kind', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=True),
        sa.Column('session_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['session_id'], ['concession_sessions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )

    op.create_table('zelle_payments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('order_id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        _created_at(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ),
        sa.ForeignKeyConstraint(['session_id'], ['concession_sessions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('zelle_payments', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_zelle_payments_order_id'), ['order_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_zelle_payments_session_id'), ['session_id'], unique=False)

    op.create_table('reimbursement_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entry_type', sa.String(length=32), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=True),
        sa.Column('reference_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['session_id'], ['concession_sessions.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('reimbursement_entries', schema=None) as batch_op:
        batch_op.create_index('ix_reimbursement_entries_type', ['entry_type'], unique=False)


def downgrade():
    for table in (
        'reimbursement_entries',
        'zelle_payments',
        'cashapp_transactions',
        'cashapp_account',
        'losses',
        'profit_distributions',
        'program_transactions',
        'inventory_transactions',
        'lot_consumptions',
        'inventory_lots',
        'order_lines',
        'orders',
        'main_cashbox',
        'concession_sessions',
        'purchase_lines',
        'purchases',
        'menu_item_components',
        'menu_items',
        'programs',
    ):
        op.drop_table(table)
