"""Procurement models (Purchase Orders and their payments)."""

from datetime import date, datetime
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import (
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import Base, BaseModel, BigIntPK, SoftDeleteMixin


class PurchaseOrderStatus(StrEnum):
    """Purchase order status enumeration."""

    SUBMITTED = "submitted"
    APPROVED_SPV = "approved_spv"
    APPROVED_FINANCE = "approved_finance"
    PAID = "paid"
    REJECTED = "rejected"


class PurchaseOrderPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class PurchaseOrder(SoftDeleteMixin, Base):
    """Purchase order raised against a sales order."""

    __tablename__ = "purchase_orders"

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    po_code: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )
    so_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("sales_orders.so_code"), nullable=False, index=True
    )

    supplier_name: Mapped[str] = mapped_column(String(300), nullable=False, index=True)
    supplier_contact: Mapped[str | None] = mapped_column(String(200), nullable=True)
    supplier_bank: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=PurchaseOrderStatus.SUBMITTED.value, index=True
    )
    priority: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PurchaseOrderPriority.MEDIUM.value
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0.00")
    )

    customer_ref: Mapped[str | None] = mapped_column(String(100), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    company_code: Mapped[str] = mapped_column(String(50), nullable=False)
    project_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    submitted_by: Mapped[str] = mapped_column(String(50), nullable=False)
    approved_by_spv: Mapped[str | None] = mapped_column(String(50), nullable=True)
    approved_date_spv: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approved_by_finance: Mapped[str | None] = mapped_column(String(50), nullable=True)
    approved_date_finance: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    approval_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejected_by: Mapped[str | None] = mapped_column(String(50), nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    ap_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    journal_code: Mapped[str | None] = mapped_column(String(50), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __mapper_args__ = {"version_id_col": version}

    # Relationships
    items: Mapped[list["PurchaseOrderItem"]] = relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        order_by="PurchaseOrderItem.line_order",
    )
    payments: Mapped[list["PurchaseOrderPayment"]] = relationship(
        "PurchaseOrderPayment", back_populates="purchase_order"
    )


class PurchaseOrderItem(SoftDeleteMixin, BaseModel):
    """Purchase order line, drawn against one sales order line."""

    __tablename__ = "purchase_order_items"

    po_item_code: Mapped[str] = mapped_column(
        String(60), nullable=False, unique=True, index=True
    )
    po_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("purchase_orders.po_code"), nullable=False, index=True
    )
    so_item_code: Mapped[str] = mapped_column(String(60), nullable=False, index=True)
    product_code: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(300), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    purchase_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    line_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    purchase_order: Mapped["PurchaseOrder"] = relationship(
        "PurchaseOrder", back_populates="items"
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_purchase_order_items_quantity_positive"),
    )


class PaymentStatus(StrEnum):
    PAID = "paid"


class PaymentMethod(StrEnum):
    """Procurement payment method."""

    TRANSFER = "transfer"
    CASH = "cash"
    CHECK = "check"


class PaymentDocumentType(StrEnum):
    INVOICE = "invoice"
    PROOF = "proof"


class PurchaseOrderPayment(SoftDeleteMixin, BaseModel):
    """The single settlement of a finance-approved purchase order."""

    __tablename__ = "purchase_order_payments"

    payment_code: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )
    po_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("purchase_orders.po_code"), nullable=False, index=True
    )

    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    payment_date: Mapped[date] = mapped_column(Date, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(20), nullable=False)

    company_bank_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    supplier_bank_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    supplier_account_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    reference_number: Mapped[str | None] = mapped_column(String(200), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=PaymentStatus.PAID.value, index=True
    )
    journal_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    paid_by: Mapped[str] = mapped_column(String(50), nullable=False)

    purchase_order: Mapped["PurchaseOrder"] = relationship(
        "PurchaseOrder", back_populates="payments"
    )
    documents: Mapped[list["PaymentDocument"]] = relationship(
        "PaymentDocument", back_populates="payment", order_by="PaymentDocument.id"
    )

    __table_args__ = (
        # At most one live payment per purchase order
        Index(
            "uq_purchase_order_payments_active_po",
            "po_code",
            unique=True,
            postgresql_where=text("is_deleted = false"),
            sqlite_where=text("is_deleted = 0"),
        ),
    )


class PaymentDocument(BaseModel):
    """Invoice or proof of payment stored next to a payment."""

    __tablename__ = "payment_documents"

    document_code: Mapped[str] = mapped_column(
        String(60), nullable=False, unique=True, index=True
    )
    payment_code: Mapped[str] = mapped_column(
        String(50),
        ForeignKey("purchase_order_payments.payment_code"),
        nullable=False,
        index=True,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    document_type: Mapped[str] = mapped_column(String(20), nullable=False)
    storage_path: Mapped[str] = mapped_column(String(500), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, nullable=False)
    content_type: Mapped[str] = mapped_column(String(100), nullable=False)

    payment: Mapped["PurchaseOrderPayment"] = relationship(
        "PurchaseOrderPayment", back_populates="documents"
    )
