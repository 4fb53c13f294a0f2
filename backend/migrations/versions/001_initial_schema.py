"""
Alembic migration: Initial print farm schema.

Creates the reference data tables (colors, parts, product templates with
their part lists), the order hierarchy (orders, products, items with color
and part associations) and the append-only status history. Item rows carry
a version counter used for optimistic concurrency.

Revision ID: 001
Revises:
Create Date: 2026-10-12 09:30:00.000000
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# Revision identifiers, used by Alembic
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ITEM_STATUSES = (
    'In Queue',
    'In Printfarm',
    'Printed',
    'Assembled',
    'Packed',
    'Shipped',
)
PLATFORMS = ('Shopify', 'Etsy', 'Custom Order')


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            'created_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment='Timestamp when record was created',
        ),
        sa.Column(
            'updated_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment='Timestamp when record was last updated',
        ),
    ]


def _id() -> sa.Column:
    return sa.Column(
        'id',
        sa.Uuid(),
        nullable=False,
        comment='Unique identifier for the record',
    )


def _is_active() -> sa.Column:
    return sa.Column(
        'is_active',
        sa.Boolean(),
        nullable=False,
        server_default=sa.true(),
        comment='Soft delete flag; inactive records cannot be attached',
    )


def upgrade() -> None:
    """
    Upgrade database schema to the initial print farm layout.

    Enum types are created by the first table that uses them; the history
    table reuses the item_status type without creating it again.
    """
    item_status = sa.Enum(*ITEM_STATUSES, name='item_status', create_constraint=True)
    history_status = sa.Enum(
        *ITEM_STATUSES, name='item_status', create_constraint=False
    ).with_variant(
        postgresql.ENUM(*ITEM_STATUSES, name='item_status', create_type=False),
        'postgresql',
    )
    platform = sa.Enum(*PLATFORMS, name='order_platform', create_constraint=True)

    # Reference data
    op.create_table(
        'colors',
        _id(),
        sa.Column('color_name', sa.String(100), nullable=False, comment='Unique color name'),
        sa.Column('hex_code', sa.String(7), nullable=False, comment='Display color as #RRGGBB'),
        sa.Column('pantone_code', sa.String(50), nullable=True),
        sa.Column('material_type', sa.String(50), nullable=False, server_default='PLA'),
        sa.Column('supplier', sa.String(100), nullable=True),
        sa.Column('category', sa.String(50), nullable=True),
        sa.Column('cost_per_gram', sa.Numeric(precision=8, scale=4), nullable=True),
        sa.Column(
            'stock_grams',
            sa.Numeric(precision=10, scale=2),
            nullable=False,
            server_default='0',
        ),
        _is_active(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('color_name'),
        sa.CheckConstraint('stock_grams >= 0', name='ck_colors_stock_non_negative'),
        comment='Filament colors',
    )
    op.create_index('ix_colors_supplier', 'colors', ['supplier'])
    op.create_index('ix_colors_is_active', 'colors', ['is_active'])

    op.create_table(
        'parts',
        _id(),
        sa.Column('part_code', sa.String(50), nullable=False, comment='Unique part SKU'),
        sa.Column('part_name', sa.String(255), nullable=False, comment='Unique part name'),
        sa.Column('description', sa.Text(), nullable=True),
        _is_active(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('part_code'),
        sa.UniqueConstraint('part_name'),
        comment='Printable parts',
    )
    op.create_index('ix_parts_is_active', 'parts', ['is_active'])

    op.create_table(
        'product_templates',
        _id(),
        sa.Column('template_name', sa.String(255), nullable=False, comment='Unique template name'),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('num_colors', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('print_time_minutes', sa.Integer(), nullable=True),
        sa.Column('print_cost', sa.Numeric(precision=10, scale=2), nullable=True),
        _is_active(),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('template_name'),
        sa.CheckConstraint(
            'num_colors BETWEEN 1 AND 4',
            name='ck_product_templates_num_colors_range',
        ),
        comment='Reusable product templates',
    )
    op.create_index('ix_product_templates_is_active', 'product_templates', ['is_active'])

    op.create_table(
        'template_parts',
        sa.Column('template_id', sa.Uuid(), nullable=False),
        sa.Column('part_id', sa.Uuid(), nullable=False),
        sa.Column('quantity', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['template_id'], ['product_templates.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['part_id'], ['parts.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('template_id', 'part_id'),
        sa.CheckConstraint('quantity >= 1', name='ck_template_parts_quantity_positive'),
    )
    op.create_index('ix_template_parts_part_id', 'template_parts', ['part_id'])

    # Order hierarchy
    op.create_table(
        'orders',
        _id(),
        sa.Column('order_number', sa.String(50), nullable=False, comment='Human-readable order number'),
        sa.Column('customer_name', sa.String(255), nullable=False, comment='Customer name'),
        sa.Column('platform', platform, nullable=False, comment='Sales channel'),
        sa.Column('notes', sa.Text(), nullable=True, comment='Free-form order notes'),
        sa.Column('ship_by_date', sa.Date(), nullable=False, comment='Date the order must ship by'),
        sa.Column(
            'is_express',
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
            comment='Express orders are prioritized in every list view',
        ),
        sa.Column(
            'is_archived',
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
            comment='Set when the order ships',
        ),
        sa.Column(
            'shipped_at',
            sa.DateTime(timezone=True),
            nullable=True,
            comment='Timestamp the order was shipped',
        ),
        *_timestamps(),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('order_number'),
        comment='Customer orders tracked through production',
    )
    op.create_index(
        'ix_orders_priority', 'orders', ['is_archived', 'is_express', 'ship_by_date']
    )

    op.create_table(
        'products',
        _id(),
        sa.Column('order_id', sa.Uuid(), nullable=False, comment='Owning order'),
        sa.Column('product_name', sa.String(255), nullable=False, comment='Product display name'),
        *_timestamps(),
        sa.ForeignKeyConstraint(['order_id'], ['orders.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_products_order_id', 'products', ['order_id'])

    op.create_table(
        'items',
        _id(),
        sa.Column('product_id', sa.Uuid(), nullable=False, comment='Owning product'),
        sa.Column('item_name', sa.String(255), nullable=False, comment='Item display name'),
        sa.Column('status', item_status, nullable=False, comment='Current production status'),
        sa.Column(
            'version_id',
            sa.Integer(),
            nullable=False,
            comment='Optimistic concurrency version counter',
        ),
        *_timestamps(),
        sa.ForeignKeyConstraint(['product_id'], ['products.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        comment='Printable items carrying production status',
    )
    op.create_index('ix_items_product_id', 'items', ['product_id'])
    op.create_index('ix_items_status', 'items', ['status'])

    op.create_table(
        'item_colors',
        sa.Column('item_id', sa.Uuid(), nullable=False),
        sa.Column('color_id', sa.Uuid(), nullable=False),
        sa.Column(
            'color_order',
            sa.Integer(),
            nullable=False,
            comment='1-based position of the color on the item',
        ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['color_id'], ['colors.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('item_id', 'color_id'),
        sa.UniqueConstraint('item_id', 'color_order', name='uq_item_colors_position'),
        sa.CheckConstraint(
            'color_order BETWEEN 1 AND 4',
            name='ck_item_colors_color_order_range',
        ),
    )
    op.create_index('ix_item_colors_color_id', 'item_colors', ['color_id'])

    op.create_table(
        'item_parts',
        sa.Column('item_id', sa.Uuid(), nullable=False),
        sa.Column('part_id', sa.Uuid(), nullable=False),
        sa.Column(
            'needs_reprint',
            sa.Boolean(),
            nullable=False,
            server_default=sa.false(),
            comment='Part is flagged for reprint',
        ),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['part_id'], ['parts.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('item_id', 'part_id'),
    )
    op.create_index('ix_item_parts_part_id', 'item_parts', ['part_id'])
    op.create_index('ix_item_parts_needs_reprint', 'item_parts', ['needs_reprint'])

    # Audit trail
    op.create_table(
        'status_history',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('item_id', sa.Uuid(), nullable=False, comment='Item whose status changed'),
        sa.Column(
            'old_status',
            history_status,
            nullable=True,
            comment='Status before the change, NULL on creation',
        ),
        sa.Column('new_status', history_status, nullable=False, comment='Status after the change'),
        sa.Column(
            'changed_at',
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
            comment='When the change was recorded',
        ),
        sa.Column('reason', sa.String(500), nullable=True, comment='Reason for the change'),
        sa.ForeignKeyConstraint(['item_id'], ['items.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index('ix_status_history_item_id', 'status_history', ['item_id'])
    op.create_index(
        'ix_status_history_item_changed', 'status_history', ['item_id', 'changed_at']
    )


def downgrade() -> None:
    """Drop every print farm table and enum type."""
    op.drop_table('status_history')
    op.drop_table('item_parts')
    op.drop_table('item_colors')
    op.drop_table('items')
    op.drop_table('products')
    op.drop_table('orders')
    op.drop_table('template_parts')
    op.drop_table('product_templates')
    op.drop_table('parts')
    op.drop_table('colors')

    bind = op.get_bind()
    if bind.dialect.name == 'postgresql':
        postgresql.ENUM(name='item_status').drop(bind, checkfirst=True)
        postgresql.ENUM(name='order_platform').drop(bind, checkfirst=True)
