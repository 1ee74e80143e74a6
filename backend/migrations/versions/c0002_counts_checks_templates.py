"""Count history, session stock checks, purchase templates

Revision ID: c0002_counts_checks_templates
Revises: c0001_initial_ledger
Create Date: 2026-10-19

This migration adds:
1. inventory_counts (one row per physical count, session stage optional)
2. Stock check flags on concession_sessions
3. purchase_templates and purchase_template_lines
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'c0002_counts_checks_templates'
down_revision = 'c0001_initial_ledger'
branch_labels = None
depends_on = None


def _created_at():
    return sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('(CURRENT_TIMESTAMP)'), nullable=False)


def upgrade():
    op.create_table('inventory_counts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=False),
        sa.Column('session_id', sa.Integer(), nullable=True),
        sa.Column('stage', sa.String(length=16), nullable=False, server_default='adhoc'),
        sa.Column('expected_quantity', sa.Integer(), nullable=False),
        sa.Column('actual_quantity', sa.Integer(), nullable=False),
        sa.Column('delta', sa.Integer(), nullable=False),
        sa.Column('loss_id', sa.Integer(), nullable=True),
        sa.Column('loss_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('counted_by', sa.String(length=128), nullable=True),
        sa.Column('notes', sa.String(length=255), nullable=True),
        _created_at(),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.ForeignKeyConstraint(['session_id'], ['concession_sessions.id'], ),
        sa.ForeignKeyConstraint(['loss_id'], ['losses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory_counts', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_inventory_counts_menu_item_id'), ['menu_item_id'], unique=False)
        batch_op.create_index(batch_op.f('ix_inventory_counts_session_id'), ['session_id'], unique=False)
        batch_op.create_index('ix_inventory_counts_session_stage', ['session_id', 'stage'], unique=False)

    with op.batch_alter_table('concession_sessions', schema=None) as batch_op:
        batch_op.add_column(sa.Column('inventory_verified_at_start', sa.Boolean(), nullable=True))
        batch_op.add_column(sa.Column('inventory_verified_at_end', sa.Boolean(), nullable=True))
        batch_op.add_column(sa.Column('start_verified_by', sa.String(length=128), nullable=True))
        batch_op.add_column(sa.Column('end_verified_by', sa.String(length=128), nullable=True))

    op.create_table('purchase_templates',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('vendor', sa.String(length=255), nullable=True),
        _created_at(),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )

    op.create_table('purchase_template_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('template_id', sa.Integer(), nullable=False),
        sa.Column('menu_item_id', sa.Integer(), nullable=True),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('default_quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['template_id'], ['purchase_templates.id'], ),
        sa.ForeignKeyConstraint(['menu_item_id'], ['menu_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint('default_quantity > 0', name='ck_purchase_template_lines_quantity_positive'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('purchase_template_lines', schema=None) as batch_op:
        batch_op.create_index(batch_op.f('ix_purchase_template_lines_template_id'), ['template_id'], unique=False)


def downgrade():
    op.drop_table('purchase_template_lines')
    op.drop_table('purchase_templates')
    with op.batch_alter_table('concession_sessions', schema=None) as batch_op:
        batch_op.drop_column('end_verified_by')
        batch_op.drop_column('start_verified_by')
        batch_op.drop_column('inventory_verified_at_end')
        batch_op.drop_column('inventory_verified_at_start')
    op.drop_table('inventory_counts')
