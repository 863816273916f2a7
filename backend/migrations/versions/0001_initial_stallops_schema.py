"""initial stallops schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-01-05 00:00:00.000000

Creates the document tables and the audit trail:
- Every entity row stores its full record in `document` (JSON)
- Query columns (status, stall_id, dates, amounts) are projections of the document
- version_id backs optimistic concurrency
- audit_events is append-only
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


def _document_columns():
    return [
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document', sa.JSON(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
    ]


def _create_document_table(name, *columns, **kwargs):
    op.create_table(
        name,
        *_document_columns(),
        *columns,
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
        **kwargs
    )
    op.create_index(f'ix_{name}_is_active', name, ['is_active'])


def upgrade():
    # ============================================================================
    # stalls
    # ============================================================================
    _create_document_table(
        'stalls',
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('city', sa.String(length=128), nullable=True),
    )
    op.create_index('ix_stalls_code', 'stalls', ['code'], unique=True)
    op.create_index('ix_stalls_status', 'stalls', ['status'])

    # ============================================================================
    # delivery_zones
    # ============================================================================
    _create_document_table(
        'delivery_zones',
        sa.Column('code', sa.String(length=16), nullable=False),
        sa.Column('name', sa.String(length=100), nullable=False),
        sa.Column('operational_status', sa.String(length=32), nullable=False),
        sa.Column('stall_id', sa.String(length=64), nullable=True),
        sa.Column('pin_codes', sa.Text(), nullable=True),
    )
    op.create_index('ix_delivery_zones_code', 'delivery_zones', ['code'], unique=True)
    op.create_index('ix_delivery_zones_operational_status', 'delivery_zones', ['operational_status'])
    op.create_index('ix_delivery_zones_stall_id', 'delivery_zones', ['stall_id'])

    # ============================================================================
    # payrolls
    # ============================================================================
    _create_document_table(
        'payrolls',
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('employee_id', sa.String(length=64), nullable=False),
        sa.Column('month_year', sa.String(length=32), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('stall_id', sa.String(length=64), nullable=True),
        sa.Column('final_payment', sa.Numeric(14, 2), nullable=False),
    )
    op.create_index('ix_payrolls_code', 'payrolls', ['code'], unique=True)
    op.create_index('ix_payrolls_employee_id', 'payrolls', ['employee_id'])
    op.create_index('ix_payrolls_month_year', 'payrolls', ['month_year'])
    op.create_index('ix_payrolls_status', 'payrolls', ['status'])
    op.create_index('ix_payrolls_stall_id', 'payrolls', ['stall_id'])

    # ============================================================================
    # investors
    # ============================================================================
    _create_document_table(
        'investors',
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('stall_id', sa.String(length=64), nullable=True),
        sa.Column('next_calculation_date', sa.Date(), nullable=True),
        sa.Column('total_profit_paid', sa.Numeric(14, 2), nullable=False),
    )
    op.create_index('ix_investors_code', 'investors', ['code'], unique=True)
    op.create_index('ix_investors_status', 'investors', ['status'])
    op.create_index('ix_investors_stall_id', 'investors', ['stall_id'])
    op.create_index('ix_investors_next_calculation_date', 'investors', ['next_calculation_date'])

    # ============================================================================
    # expenses
    # ============================================================================
    _create_document_table(
        'expenses',
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('expense_type', sa.String(length=32), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('expense_date', sa.Date(), nullable=False),
        sa.Column('stall_id', sa.String(length=64), nullable=True),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('next_due_date', sa.Date(), nullable=True),
    )
    op.create_index('ix_expenses_code', 'expenses', ['code'], unique=True)
    op.create_index('ix_expenses_expense_type', 'expenses', ['expense_type'])
    op.create_index('ix_expenses_status', 'expenses', ['status'])
    op.create_index('ix_expenses_expense_date', 'expenses', ['expense_date'])
    op.create_index('ix_expenses_stall_id', 'expenses', ['stall_id'])
    op.create_index('ix_expenses_recurring_due', 'expenses', ['is_recurring', 'next_due_date'])

    # ============================================================================
    # profit_loss_reports
    # ============================================================================
    _create_document_table(
        'profit_loss_reports',
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('period_type', sa.String(length=16), nullable=False),
        sa.Column('period_start', sa.Date(), nullable=False),
        sa.Column('period_end', sa.Date(), nullable=False),
        sa.Column('stall_id', sa.String(length=64), nullable=True),
        sa.Column('net_profit_loss', sa.Numeric(14, 2), nullable=False),
    )
    op.create_index('ix_profit_loss_reports_code', 'profit_loss_reports', ['code'], unique=True)
    op.create_index('ix_profit_loss_reports_status', 'profit_loss_reports', ['status'])
    op.create_index('ix_profit_loss_reports_period_start', 'profit_loss_reports', ['period_start'])
    op.create_index('ix_profit_loss_reports_stall_id', 'profit_loss_reports', ['stall_id'])

    # ============================================================================
    # inventory_batches
    # ============================================================================
    _create_document_table(
        'inventory_batches',
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('item_type', sa.String(length=32), nullable=False),
        sa.Column('item_name', sa.String(length=255), nullable=False),
        sa.Column('batch_status', sa.String(length=32), nullable=False),
        sa.Column('expiry_date', sa.DateTime(), nullable=False),
        sa.Column('total_stock', sa.Numeric(14, 3), nullable=False),
    )
    op.create_index('ix_inventory_batches_code', 'inventory_batches', ['code'], unique=True)
    op.create_index('ix_inventory_batches_item_type', 'inventory_batches', ['item_type'])
    op.create_index('ix_inventory_batches_item_name', 'inventory_batches', ['item_name'])
    op.create_index('ix_inventory_batches_batch_status', 'inventory_batches', ['batch_status'])
    op.create_index('ix_inventory_batches_expiry_date', 'inventory_batches', ['expiry_date'])

    # ============================================================================
    # stall_performance: one report per stall, date and period
    # ============================================================================
    _create_document_table(
        'stall_performance',
        sa.Column('stall_id', sa.String(length=64), nullable=False),
        sa.Column('performance_date', sa.Date(), nullable=False),
        sa.Column('period', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('performance_score', sa.Numeric(6, 2), nullable=False),
        sa.UniqueConstraint('stall_id', 'performance_date', 'period', name='uq_stall_performance_period'),
    )
    op.create_index('ix_stall_performance_stall_id', 'stall_performance', ['stall_id'])
    op.create_index('ix_stall_performance_performance_date', 'stall_performance', ['performance_date'])
    op.create_index('ix_stall_performance_status', 'stall_performance', ['status'])

    # ============================================================================
    # orders
    # ============================================================================
    _create_document_table(
        'orders',
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('stall_id', sa.String(length=64), nullable=False),
        sa.Column('order_type', sa.String(length=16), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('payment_status', sa.String(length=32), nullable=False),
        sa.Column('final_amount', sa.Numeric(14, 2), nullable=False),
    )
    op.create_index('ix_orders_code', 'orders', ['code'], unique=True)
    op.create_index('ix_orders_stall_id', 'orders', ['stall_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_index('ix_orders_payment_status', 'orders', ['payment_status'])

    # ============================================================================
    # audit_events: append-only
    # ============================================================================
    op.create_table(
        'audit_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('entity_type', sa.String(length=64), nullable=False),
        sa.Column('entity_id', sa.Integer(), nullable=False),
        sa.Column('entity_code', sa.String(length=64), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('from_status', sa.String(length=32), nullable=True),
        sa.Column('to_status', sa.String(length=32), nullable=True),
        sa.Column('version', sa.Integer(), nullable=True),
        sa.Column('actor_user_id', sa.String(length=64), nullable=True),
        sa.Column('actor_user_name', sa.String(length=255), nullable=True),
        sa.Column('actor_user_role', sa.String(length=64), nullable=True),
        sa.Column('note', sa.Text(), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_audit_events_entity', 'audit_events', ['entity_type', 'entity_id'])
    op.create_index('ix_audit_events_action', 'audit_events', ['action'])
    op.create_index('ix_audit_events_actor_user_id', 'audit_events', ['actor_user_id'])
    op.create_index('ix_audit_events_occurred_at', 'audit_events', ['occurred_at'])


def downgrade():
    op.drop_table('audit_events')
    for name in (
        'orders',
        'stall_performance',
        'inventory_batches',
        'profit_loss_reports',
        'expenses',
        'investors',
        'payrolls',
        'delivery_zones',
        'stalls',
    ):
        op.drop_table(name)
