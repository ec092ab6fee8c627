"""Schemas for Procurement module (Purchase Orders)."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from src.modules.procurement.lifecycle import PurchaseOrderAction
from src.modules.procurement.models import PaymentMethod, PurchaseOrderPriority
from src.shared.schemas.base import BaseSchema


class PurchaseOrderItemCreate(BaseSchema):
    """Schema for one purchase order item."""

    so_item_code: str = Field(..., min_length=1, max_length=60)
    product_code: str = Field(..., min_length=1, max_length=100)
    product_name: str | None = Field(None, max_length=300)
    # Zero lines are dropped, negatives rejected, by the reconciler.
    quantity: int
    purchase_price: Decimal = Field(..., ge=0)
    notes: str | None = None


class PurchaseOrderCreate(BaseSchema):
    """Schema for creating a purchase order."""

    so_code: str = Field(..., min_length=1, max_length=50)
    supplier_name: str = Field(..., min_length=1, max_length=300)
    supplier_contact: str | None = Field(None, max_length=200)
    supplier_bank: str | None = Field(None, max_length=200)
    priority: PurchaseOrderPriority = PurchaseOrderPriority.MEDIUM
    customer_ref: str | None = Field(None, max_length=100)
    project_code: str | None = Field(None, max_length=50)
    notes: str | None = None
    items: list[PurchaseOrderItemCreate] = Field(..., min_length=1)


class PurchaseOrderDraft(BaseSchema):
    """One supplier form inside a batch submission."""

    supplier_name: str = Field(..., min_length=1, max_length=300)
    supplier_contact: str | None = Field(None, max_length=200)
    supplier_bank: str | None = Field(None, max_length=200)
    priority: PurchaseOrderPriority = PurchaseOrderPriority.MEDIUM
    notes: str | None = None
    items: list[PurchaseOrderItemCreate] = Field(..., min_length=1)


class BatchPurchaseOrderCreate(BaseSchema):
    """Several supplier forms against one sales order, created together."""

    so_code: str = Field(..., min_length=1, max_length=50)
    customer_ref: str | None = Field(None, max_length=100)
    project_code: str | None = Field(None, max_length=50)
    orders: list[PurchaseOrderDraft] = Field(..., min_length=1)


class TransitionRequest(BaseSchema):
    """Status change request (approve_spv, approve_finance, reject)."""

    action: PurchaseOrderAction
    notes: str | None = None
    rejection_reason: str | None = None


class PurchaseOrderItemResponse(BaseSchema):
    po_item_code: str
    so_item_code: str
    product_code: str
    product_name: str
    quantity: int
    purchase_price: Decimal
    subtotal: Decimal
    notes: str | None


class PurchaseOrderResponse(BaseSchema):
    """Schema for purchase order response."""

    po_code: str
    so_code: str
    supplier_name: str
    supplier_contact: str | None
    supplier_bank: str | None
    status: str
    priority: str
    total_amount: Decimal
    customer_ref: str | None
    notes: str | None
    company_code: str
    project_code: str | None
    submitted_by: str
    approved_by_spv: str | None
    approved_date_spv: datetime | None
    approved_by_finance: str | None
    approved_date_finance: datetime | None
    approval_notes: str | None
    rejected_by: str | None
    rejection_reason: str | None
    ap_code: str | None
    journal_code: str | None
    version: int
    available_actions: list[str] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
    items: list[PurchaseOrderItemResponse] = Field(default_factory=list)


class PurchaseOrderFilters(BaseSchema):
    """Filters for listing purchase orders."""

    status: str | None = None
    so_code: str | None = None
    priority: str | None = None
    search: str | None = None
    include_deleted: bool = False
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)


class PaymentCreate(BaseSchema):
    """Payment details; documents travel as multipart files next to it."""

    payment_method: PaymentMethod
    payment_date: date | None = None
    amount: Decimal | None = Field(None, gt=0)
    company_bank_code: str | None = Field(None, max_length=50)
    supplier_bank_name: str | None = Field(None, max_length=200)
    supplier_account_number: str | None = Field(None, max_length=100)
    reference_number: str | None = Field(None, max_length=200)
    notes: str | None = None


class PaymentDocumentResponse(BaseSchema):
    document_code: str
    file_name: str
    document_type: str
    storage_path: str
    file_size: int
    content_type: str


class PaymentResponse(BaseSchema):
    """Schema for purchase order payment response."""

    payment_code: str
    po_code: str
    amount: Decimal
    payment_date: date
    payment_method: str
    company_bank_code: str | None
    supplier_bank_name: str | None
    supplier_account_number: str | None
    reference_number: str | None
    notes: str | None
    status: str
    journal_code: str | None
    paid_by: str
    created_at: datetime
    documents: list[PaymentDocumentResponse] = Field(default_factory=list)


class PaymentFilters(BaseSchema):
    po_code: str | None = None
    payment_method: str | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)
