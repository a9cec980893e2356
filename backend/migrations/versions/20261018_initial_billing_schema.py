"""initial billing schema

Revision ID: 20261018_initial_billing
Revises:
Create Date: 2026-10-18 00:00:00.000000

Creates the Bill Master schema:
- categories, items: stock master data (Numeric(14,3) quantities)
- customers: contact details plus the outstanding_credit accumulator
- invoices: snapshot document, totals and payment fields (Numeric(14,2))
- audit_log_entries: append-only audit trail
- shop_settings: single-row shop profile and invoice prefix

Every mutable table carries version_id for optimistic concurrency.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261018_initial_billing'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ============================================================================
    # categories
    # ============================================================================
    op.create_table(
        'categories',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('created_date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name', name='uq_categories_name'),
        sqlite_autoincrement=True
    )

    # ============================================================================
    # items: stock balance may go negative when over-selling is allowed
    # ============================================================================
    op.create_table(
        'items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('unit', sa.String(length=8), nullable=False),
        sa.Column('hsn_code', sa.String(length=16), nullable=True),
        sa.Column('quantity_in_stock', sa.Numeric(14, 3), nullable=False),
        sa.Column('minimum_stock_alert', sa.Numeric(14, 3), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('category_id', sa.Integer(), nullable=True),
        sa.Column('created_date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['category_id'], ['categories.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('items', schema=None) as batch_op:
        batch_op.create_index('ix_items_status', ['status'], unique=False)
        batch_op.create_index('ix_items_category_id', ['category_id'], unique=False)
        batch_op.create_index('ix_items_status_name', ['status', 'name'], unique=False)

    # ============================================================================
    # customers
    # ============================================================================
    op.create_table(
        'customers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('city', sa.String(length=128), nullable=True),
        sa.Column('state', sa.String(length=128), nullable=True),
        sa.Column('pincode', sa.String(length=16), nullable=True),
        sa.Column('gstin', sa.String(length=32), nullable=True),
        sa.Column('outstanding_credit', sa.Numeric(14, 2), nullable=False),
        sa.Column('credit_eligible', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('created_date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.create_index('ix_customers_name', ['name'], unique=False)
        batch_op.create_index('ix_customers_phone', ['phone'], unique=False)

    # ============================================================================
    # invoices: snapshot document; items is an ordered JSON list of lines
    # ============================================================================
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(length=64), nullable=False),
        sa.Column('customer_id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('customer_address', sa.String(length=512), nullable=True),
        sa.Column('items', sa.JSON(), nullable=False),
        sa.Column('subtotal', sa.Numeric(14, 2), nullable=False),
        sa.Column('discount', sa.Numeric(14, 2), nullable=False),
        sa.Column('rounding_off', sa.Numeric(14, 2), nullable=False),
        sa.Column('grand_total', sa.Numeric(14, 2), nullable=False),
        sa.Column('payment_mode', sa.String(length=16), nullable=False),
        sa.Column('credit_term', sa.String(length=16), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('amount_paid', sa.Numeric(14, 2), nullable=False),
        sa.Column('balance_due', sa.Numeric(14, 2), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('cancellation_reason', sa.String(length=512), nullable=True),
        sa.Column('cancellation_requested_by', sa.String(length=255), nullable=True),
        sa.Column('cancelled_by', sa.String(length=255), nullable=True),
        sa.Column('cancelled_date', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_by', sa.String(length=255), nullable=True),
        sa.Column('created_date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('updated_date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['customer_id'], ['customers.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('invoice_number', name='uq_invoices_invoice_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('invoices', schema=None) as batch_op:
        batch_op.create_index('ix_invoices_customer_id', ['customer_id'], unique=False)
        batch_op.create_index('ix_invoices_payment_mode', ['payment_mode'], unique=False)
        batch_op.create_index('ix_invoices_status', ['status'], unique=False)
        batch_op.create_index('ix_invoices_status_created', ['status', 'created_date'], unique=False)
        batch_op.create_index('ix_invoices_mode_due', ['payment_mode', 'due_date'], unique=False)

    # ============================================================================
    # audit_log_entries: append-only
    # ============================================================================
    op.create_table(
        'audit_log_entries',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('action', sa.String(length=64), nullable=False),
        sa.Column('user_email', sa.String(length=255), nullable=False),
        sa.Column('user_role', sa.String(length=32), nullable=False),
        sa.Column('details', sa.Text(), nullable=True),
        sa.Column('invoice_number', sa.String(length=64), nullable=True),
        sa.Column('created_date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('audit_log_entries', schema=None) as batch_op:
        batch_op.create_index('ix_audit_log_entries_action', ['action'], unique=False)
        batch_op.create_index('ix_audit_log_entries_user_email', ['user_email'], unique=False)
        batch_op.create_index('ix_audit_log_entries_invoice_number', ['invoice_number'], unique=False)
        batch_op.create_index('ix_audit_log_entries_created_date', ['created_date'], unique=False)
        batch_op.create_index('ix_audit_action_created', ['action', 'created_date'], unique=False)

    # ============================================================================
    # shop_settings: single row
    # ============================================================================
    op.create_table(
        'shop_settings',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('shop_name', sa.String(length=255), nullable=False),
        sa.Column('address', sa.String(length=512), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('gstin', sa.String(length=32), nullable=True),
        sa.Column('logo_url', sa.String(length=512), nullable=True),
        sa.Column('bank_name', sa.String(length=128), nullable=True),
        sa.Column('account_number', sa.String(length=64), nullable=True),
        sa.Column('ifsc_code', sa.String(length=32), nullable=True),
        sa.Column('upi_id', sa.String(length=128), nullable=True),
        sa.Column('invoice_prefix', sa.String(length=16), nullable=False, server_default='INV'),
        sa.Column('invoice_footer_text', sa.String(length=255), nullable=True),
        sa.Column('updated_by', sa.String(length=255), nullable=True),
        sa.Column('updated_date', sa.DateTime(timezone=True), nullable=False,
                  server_default=sa.text('(CURRENT_TIMESTAMP)')),
        sa.Column('version_id', sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )


def downgrade():
    op.drop_table('shop_settings')

    with op.batch_alter_table('audit_log_entries', schema=None) as batch_op:
        batch_op.drop_index('ix_audit_action_created')
        batch_op.drop_index('ix_audit_log_entries_created_date')
        batch_op.drop_index('ix_audit_log_entries_invoice_number')
        batch_op.drop_index('ix_audit_log_entries_user_email')
        batch_op.drop_index('ix_audit_log_entries_action')
    op.drop_table('audit_log_entries')

    with op.batch_alter_table('invoices', schema=None) as batch_op:
        batch_op.drop_index('ix_invoices_mode_due')
        batch_op.drop_index('ix_invoices_status_created')
        batch_op.drop_index('ix_invoices_status')
        batch_op.drop_index('ix_invoices_payment_mode')
        batch_op.drop_index('ix_invoices_customer_id')
    op.drop_table('invoices')

    with op.batch_alter_table('customers', schema=None) as batch_op:
        batch_op.drop_index('ix_customers_phone')
        batch_op.drop_index('ix_customers_name')
    op.drop_table('customers')

    with op.batch_alter_table('items', schema=None) as batch_op:
        batch_op.drop_index('ix_items_status_name')
        batch_op.drop_index('ix_items_category_id')
        batch_op.drop_index('ix_items_status')
    op.drop_table('items')

    op.drop_table('categories')
