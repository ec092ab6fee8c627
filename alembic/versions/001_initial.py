"""Initial tables: numbering, audit, sales orders, purchase orders, ledger

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    ]


def _soft_delete() -> list[sa.Column]:
    return [
        sa.Column("is_deleted", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade() -> None:
    # Numbering
    op.create_table(
        "document_sequences",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("document_type", sa.String(30), nullable=False),
        sa.Column("prefix", sa.String(100), nullable=False),
        sa.Column("last_number", sa.Integer(), nullable=False, server_default="0"),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "document_type",
            "prefix",
            name="uq_document_sequence_prefix",
        ),
    )

    op.create_table(
        "numbering_sequences",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("sequence_code", sa.String(30), nullable=False),
        sa.Column("prefix", sa.String(100), nullable=False, server_default=""),
        sa.Column("padding", sa.Integer(), nullable=False, server_default="4"),
        sa.Column("description", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_numbering_sequences_sequence_code",
        "numbering_sequences",
        ["sequence_code"],
        unique=True,
    )

    # Audit trail
    op.create_table(
        "audit_logs",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("code", sa.String(40), nullable=False),
        sa.Column("actor_code", sa.String(50), nullable=False),
        sa.Column("actor_name", sa.String(200), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(100), nullable=False),
        sa.Column("resource_id", sa.String(100), nullable=False),
        sa.Column("old_values", postgresql.JSONB(), nullable=True),
        sa.Column("new_values", postgresql.JSONB(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_audit_logs_code"),
    )
    op.create_index("ix_audit_logs_actor_code", "audit_logs", ["actor_code"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_type", "audit_logs", ["resource_type"])
    op.create_index("ix_audit_logs_resource_id", "audit_logs", ["resource_id"])
    op.create_index("ix_audit_logs_created_at", "audit_logs", ["created_at"])

    # Sales orders
    op.create_table(
        "sales_orders",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("so_code", sa.String(50), nullable=False),
        sa.Column("customer_name", sa.String(300), nullable=False),
        sa.Column("company_code", sa.String(50), nullable=False),
        sa.Column("project_code", sa.String(50), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="submitted"),
        sa.Column("total_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(50), nullable=False),
        *_soft_delete(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_sales_orders_so_code", "sales_orders", ["so_code"], unique=True)
    op.create_index("ix_sales_orders_status", "sales_orders", ["status"])
    op.create_index("ix_sales_orders_is_deleted", "sales_orders", ["is_deleted"])

    op.create_table(
        "sales_order_items",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("so_item_code", sa.String(60), nullable=False),
        sa.Column("so_code", sa.String(50), nullable=False),
        sa.Column("product_code", sa.String(100), nullable=False),
        sa.Column("product_name", sa.String(300), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(18, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(18, 2), nullable=False),
        sa.Column("line_order", sa.Integer(), nullable=False, server_default="0"),
        *_soft_delete(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["so_code"], ["sales_orders.so_code"]),
    )
    op.create_index(
        "ix_sales_order_items_so_item_code", "sales_order_items", ["so_item_code"], unique=True
    )
    op.create_index("ix_sales_order_items_so_code", "sales_order_items", ["so_code"])
    op.create_index("ix_sales_order_items_product_code", "sales_order_items", ["product_code"])
    op.create_index("ix_sales_order_items_is_deleted", "sales_order_items", ["is_deleted"])

    # Purchase orders
    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("po_code", sa.String(50), nullable=False),
        sa.Column("so_code", sa.String(50), nullable=False),
        sa.Column("supplier_name", sa.String(300), nullable=False),
        sa.Column("supplier_contact", sa.String(200), nullable=True),
        sa.Column("supplier_bank", sa.String(200), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="submitted"),
        sa.Column("priority", sa.String(20), nullable=False, server_default="medium"),
        sa.Column("total_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("customer_ref", sa.String(100), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("company_code", sa.String(50), nullable=False),
        sa.Column("project_code", sa.String(50), nullable=True),
        sa.Column("submitted_by", sa.String(50), nullable=False),
        sa.Column("approved_by_spv", sa.String(50), nullable=True),
        sa.Column("approved_date_spv", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by_finance", sa.String(50), nullable=True),
        sa.Column("approved_date_finance", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("rejected_by", sa.String(50), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("ap_code", sa.String(50), nullable=True),
        sa.Column("journal_code", sa.String(50), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_soft_delete(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["so_code"], ["sales_orders.so_code"]),
    )
    op.create_index("ix_purchase_orders_po_code", "purchase_orders", ["po_code"], unique=True)
    op.create_index("ix_purchase_orders_so_code", "purchase_orders", ["so_code"])
    op.create_index("ix_purchase_orders_supplier_name", "purchase_orders", ["supplier_name"])
    op.create_index("ix_purchase_orders_status", "purchase_orders", ["status"])
    op.create_index("ix_purchase_orders_is_deleted", "purchase_orders", ["is_deleted"])

    op.create_table(
        "purchase_order_items",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("po_item_code", sa.String(60), nullable=False),
        sa.Column("po_code", sa.String(50), nullable=False),
        sa.Column("so_item_code", sa.String(60), nullable=False),
        sa.Column("product_code", sa.String(100), nullable=False),
        sa.Column("product_name", sa.String(300), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("purchase_price", sa.Numeric(18, 2), nullable=False),
        sa.Column("subtotal", sa.Numeric(18, 2), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("line_order", sa.Integer(), nullable=False, server_default="0"),
        *_soft_delete(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["po_code"], ["purchase_orders.po_code"]),
        sa.CheckConstraint("quantity > 0", name="ck_purchase_order_items_quantity_positive"),
    )
    op.create_index(
        "ix_purchase_order_items_po_item_code",
        "purchase_order_items",
        ["po_item_code"],
        unique=True,
    )
    op.create_index("ix_purchase_order_items_po_code", "purchase_order_items", ["po_code"])
    op.create_index(
        "ix_purchase_order_items_so_item_code", "purchase_order_items", ["so_item_code"]
    )
    op.create_index(
        "ix_purchase_order_items_product_code", "purchase_order_items", ["product_code"]
    )
    op.create_index("ix_purchase_order_items_is_deleted", "purchase_order_items", ["is_deleted"])

    op.create_table(
        "purchase_order_payments",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("payment_code", sa.String(50), nullable=False),
        sa.Column("po_code", sa.String(50), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("payment_method", sa.String(20), nullable=False),
        sa.Column("company_bank_code", sa.String(50), nullable=True),
        sa.Column("supplier_bank_name", sa.String(200), nullable=True),
        sa.Column("supplier_account_number", sa.String(100), nullable=True),
        sa.Column("reference_number", sa.String(200), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="paid"),
        sa.Column("journal_code", sa.String(50), nullable=True),
        sa.Column("paid_by", sa.String(50), nullable=False),
        *_soft_delete(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["po_code"], ["purchase_orders.po_code"]),
    )
    op.create_index(
        "ix_purchase_order_payments_payment_code",
        "purchase_order_payments",
        ["payment_code"],
        unique=True,
    )
    op.create_index("ix_purchase_order_payments_po_code", "purchase_order_payments", ["po_code"])
    op.create_index("ix_purchase_order_payments_status", "purchase_order_payments", ["status"])
    op.create_index(
        "ix_purchase_order_payments_is_deleted", "purchase_order_payments", ["is_deleted"]
    )
    # At most one live payment per purchase order
    op.create_index(
        "uq_purchase_order_payments_active_po",
        "purchase_order_payments",
        ["po_code"],
        unique=True,
        postgresql_where=sa.text("is_deleted = false"),
        sqlite_where=sa.text("is_deleted = 0"),
    )

    op.create_table(
        "payment_documents",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("document_code", sa.String(60), nullable=False),
        sa.Column("payment_code", sa.String(50), nullable=False),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("document_type", sa.String(20), nullable=False),
        sa.Column("storage_path", sa.String(500), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("content_type", sa.String(100), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["payment_code"], ["purchase_order_payments.payment_code"]),
    )
    op.create_index(
        "ix_payment_documents_document_code", "payment_documents", ["document_code"], unique=True
    )
    op.create_index("ix_payment_documents_payment_code", "payment_documents", ["payment_code"])

    # Ledger
    op.create_table(
        "bank_accounts",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("account_code", sa.String(50), nullable=False),
        sa.Column("bank_name", sa.String(200), nullable=False),
        sa.Column("account_number", sa.String(100), nullable=False),
        sa.Column("account_holder", sa.String(200), nullable=False),
        sa.Column("branch", sa.String(200), nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default="IDR"),
        sa.Column("gl_account_code", sa.String(50), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        *_soft_delete(),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_bank_accounts_account_code", "bank_accounts", ["account_code"], unique=True
    )
    op.create_index("ix_bank_accounts_is_deleted", "bank_accounts", ["is_deleted"])

    op.create_table(
        "accounts_payable",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("ap_code", sa.String(50), nullable=False),
        sa.Column("po_code", sa.String(50), nullable=False),
        sa.Column("supplier_name", sa.String(300), nullable=False),
        sa.Column("invoice_date", sa.Date(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("outstanding_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="unpaid"),
        sa.Column("journal_code", sa.String(50), nullable=True),
        sa.Column("created_by", sa.String(50), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["po_code"], ["purchase_orders.po_code"]),
    )
    op.create_index("ix_accounts_payable_ap_code", "accounts_payable", ["ap_code"], unique=True)
    op.create_index("ix_accounts_payable_po_code", "accounts_payable", ["po_code"])
    op.create_index("ix_accounts_payable_status", "accounts_payable", ["status"])

    op.create_table(
        "journal_entries",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("journal_code", sa.String(50), nullable=False),
        sa.Column("transaction_date", sa.Date(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("reference_module", sa.String(50), nullable=False),
        sa.Column("reference_code", sa.String(50), nullable=False),
        sa.Column("total_amount", sa.Numeric(18, 2), nullable=False),
        sa.Column("created_by", sa.String(50), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_journal_entries_journal_code", "journal_entries", ["journal_code"], unique=True
    )
    op.create_index("ix_journal_entries_reference_code", "journal_entries", ["reference_code"])

    op.create_table(
        "journal_entry_lines",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("journal_code", sa.String(50), nullable=False),
        sa.Column("account_code", sa.String(50), nullable=False),
        sa.Column("debit_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("credit_amount", sa.Numeric(18, 2), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("line_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["journal_code"], ["journal_entries.journal_code"]),
    )
    op.create_index(
        "ix_journal_entry_lines_journal_code", "journal_entry_lines", ["journal_code"]
    )
    op.create_index(
        "ix_journal_entry_lines_account_code", "journal_entry_lines", ["account_code"]
    )


def downgrade() -> None:
    op.drop_table("journal_entry_lines")
    op.drop_table("journal_entries")
    op.drop_table("accounts_payable")
    op.drop_table("bank_accounts")
    op.drop_table("payment_documents")
    op.drop_table("purchase_order_payments")
    op.drop_table("purchase_order_items")
    op.drop_table("purchase_orders")
    op.drop_table("sales_order_items")
    op.drop_table("sales_orders")
    op.drop_table("audit_logs")
    op.drop_table("numbering_sequences")
    op.drop_table("document_sequences")
