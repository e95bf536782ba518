"""Initial schema: invoices, items, revenues, corte & cose debts

Revision ID: 001_initial
Revises: 
Create Date: 2025-01-06 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # Create invoices table
    op.create_table(
        'invoices',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('invoice_number', sa.String(), nullable=False),
        sa.Column('invoice_date', sa.Date(), nullable=False),
        sa.Column('delivery_date', sa.Date(), nullable=False),
        sa.Column('total_value', sa.Numeric(10, 2), nullable=False),
        sa.Column('image_url', sa.String(), nullable=True),
        sa.Column('original_filename', sa.String(), nullable=True),
        sa.Column('is_manual_entry', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('is_validated', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('contact_name', sa.String(), nullable=True),
        sa.Column('phone_number', sa.String(), nullable=True),
        sa.Column('observations', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_invoices_id'), 'invoices', ['id'], unique=False)
    op.create_index(op.f('ix_invoices_user_id'), 'invoices', ['user_id'], unique=False)
    op.create_index(op.f('ix_invoices_invoice_number'), 'invoices', ['invoice_number'], unique=False)
    op.create_index(op.f('ix_invoices_delivery_date'), 'invoices', ['delivery_date'], unique=False)
    op.create_index(op.f('ix_invoices_is_validated'), 'invoices', ['is_validated'], unique=False)

    # Create invoice_items table
    op.create_table(
        'invoice_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('invoice_id', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(), nullable=False),
        sa.Column('value', sa.Numeric(10, 2), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.ForeignKeyConstraint(['invoice_id'], ['invoices.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_invoice_items_id'), 'invoice_items', ['id'], unique=False)
    op.create_index(op.f('ix_invoice_items_invoice_id'), 'invoice_items', ['invoice_id'], unique=False)

    # Create revenues table
    op.create_table(
        'revenues',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('revenue_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('reference_month', sa.String(length=7), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_revenues_id'), 'revenues', ['id'], unique=False)
    op.create_index(op.f('ix_revenues_user_id'), 'revenues', ['user_id'], unique=False)
    op.create_index(op.f('ix_revenues_revenue_date'), 'revenues', ['revenue_date'], unique=False)

    # Create corte_cose_debts table
    op.create_table(
        'corte_cose_debts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('debt_date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=True),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_corte_cose_debts_id'), 'corte_cose_debts', ['id'], unique=False)
    op.create_index(op.f('ix_corte_cose_debts_user_id'), 'corte_cose_debts', ['user_id'], unique=False)
    op.create_index(op.f('ix_corte_cose_debts_debt_date'), 'corte_cose_debts', ['debt_date'], unique=False)


def downgrade() -> None:
    op.drop_index(op.f('ix_corte_cose_debts_debt_date'), table_name='corte_cose_debts')
    op.drop_index(op.f('ix_corte_cose_debts_user_id'), table_name='corte_cose_debts')
    op.drop_index(op.f('ix_corte_cose_debts_id'), table_name='corte_cose_debts')
    op.drop_table('corte_cose_debts')
    op.drop_index(op.f('ix_revenues_revenue_date'), table_name='revenues')
    op.drop_index(op.f('ix_revenues_user_id'), table_name='revenues')
    op.drop_index(op.f('ix_revenues_id'), table_name='revenues')
    op.drop_table('revenues')
    op.drop_index(op.f('ix_invoice_items_invoice_id'), table_name='invoice_items')
    op.drop_index(op.f('ix_invoice_items_id'), table_name='invoice_items')
    op.drop_table('invoice_items')
    op.drop_index(op.f('ix_invoices_is_validated'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_delivery_date'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_invoice_number'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_user_id'), table_name='invoices')
    op.drop_index(op.f('ix_invoices_id'), table_name='invoices')
    op.drop_table('invoices')
