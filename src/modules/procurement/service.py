"""Service layer for Purchase Orders."""

import logging
from dataclasses import dataclass
from datetime import date, datetime, timezone

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.auth.schemas import Actor
from src.core.database.session import unit_of_work
from src.core.documents.number_generator import get_document_number
from src.core.exceptions import (
    AlreadyPaidError,
    NotFinanceApprovedError,
    NotFoundError,
    ValidationError,
)
from src.core.storage.service import read_document, save_document
from src.modules.accounting.models import BankAccount
from src.modules.accounting.service import BankAccountService, PostingEngine
from src.modules.procurement.lifecycle import PurchaseOrderAction, next_status
from src.modules.procurement.models import (
    PaymentDocument,
    PaymentDocumentType,
    PaymentMethod,
    PaymentStatus,
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderPayment,
    PurchaseOrderStatus,
)
from src.modules.procurement.reconciler import QuantityReconciler
from src.modules.procurement.schemas import (
    BatchPurchaseOrderCreate,
    PaymentCreate,
    PaymentFilters,
    PurchaseOrderCreate,
    PurchaseOrderDraft,
    PurchaseOrderFilters,
    TransitionRequest,
)
from src.modules.sales_orders.models import SalesOrder, SalesOrderLine, SalesOrderStatus
from src.modules.sales_orders.service import SalesOrderService
from src.shared.utils.money import line_total, round_money, sum_money

logger = logging.getLogger(__name__)

RESOURCE_TYPE = "purchase_order"


def classify_document(file_name: str) -> PaymentDocumentType:
    """Guess whether an uploaded file is the supplier invoice or a payment proof."""
    name = file_name.lower()
    if "invoice" in name:
        return PaymentDocumentType.INVOICE
    if "receipt" in name or "bukti" in name:
        return PaymentDocumentType.PROOF
    return PaymentDocumentType.PROOF


@dataclass(frozen=True)
class IncomingDocument:
    """An uploaded file not yet written to storage."""

    file_name: str
    content: bytes
    content_type: str | None = None


class PurchaseOrderService:
    """Service for purchase orders: submission and status transitions."""

    def __init__(self, db: AsyncSession, posting_engine: PostingEngine | None = None):
        self.db = db
        self.audit = AuditService(db)
        self.reconciler = QuantityReconciler(db)
        self.sales_orders = SalesOrderService(db)
        self.posting = posting_engine or PostingEngine(db)

    async def create_purchase_order(
        self, data: PurchaseOrderCreate, actor: Actor
    ) -> PurchaseOrder:
        """Submit a purchase order against a sales order."""
        draft = PurchaseOrderDraft(
            supplier_name=data.supplier_name,
            supplier_contact=data.supplier_contact,
            supplier_bank=data.supplier_bank,
            priority=data.priority,
            notes=data.notes,
            items=data.items,
        )
        async with unit_of_work(self.db):
            po_codes = await self._submit(
                data.so_code, [draft], data.customer_ref, data.project_code, actor
            )
        return await self.get_purchase_order(po_codes[0])

    async def create_batch(
        self, data: BatchPurchaseOrderCreate, actor: Actor
    ) -> list[PurchaseOrder]:
        """
        Submit several supplier forms against one sales order.

        Forms naming the same supplier are merged into one purchase order.
        All quantities are validated together and either every purchase order
        is created or none is.
        """
        grouped: dict[str, PurchaseOrderDraft] = {}
        for draft in data.orders:
            key = draft.supplier_name.strip().lower()
            if key in grouped:
                merged = grouped[key]
                grouped[key] = merged.model_copy(update={"items": merged.items + draft.items})
            else:
                grouped[key] = draft

        async with unit_of_work(self.db):
            po_codes = await self._submit(
                data.so_code, list(grouped.values()), data.customer_ref, data.project_code, actor
            )
        return [await self.get_purchase_order(po_code) for po_code in po_codes]

    async def _submit(
        self,
        so_code: str,
        drafts: list[PurchaseOrderDraft],
        customer_ref: str | None,
        project_code: str | None,
        actor: Actor,
    ) -> list[str]:
        sales_order = await self.sales_orders.lock_sales_order(so_code)
        if sales_order.status == SalesOrderStatus.CANCELLED.value:
            raise ValidationError(f"Sales order {so_code} is cancelled", field="so_code")

        for draft in drafts:
            if not draft.supplier_name.strip():
                raise ValidationError("Supplier name is required", field="supplier_name")

        all_items = [item for draft in drafts for item in draft.items]
        so_lines = await self.reconciler.validate_request(so_code, all_items)

        had_active_po = await self._has_active_purchase_order(so_code)

        po_codes = []
        for draft in drafts:
            items = [item for item in draft.items if item.quantity > 0]
            if not items:
                continue
            purchase_order = await self._insert_purchase_order(
                sales_order, draft, items, so_lines, customer_ref, project_code, actor
            )
            po_codes.append(purchase_order.po_code)

        if not had_active_po and await self.sales_orders.mark_processing(sales_order, actor):
            logger.info("sales order %s moved to processing", so_code)
        return po_codes

    async def _insert_purchase_order(
        self,
        sales_order: SalesOrder,
        draft: PurchaseOrderDraft,
        items: list,
        so_lines: dict[str, SalesOrderLine],
        customer_ref: str | None,
        project_code: str | None,
        actor: Actor,
    ) -> PurchaseOrder:
        project_code = project_code or sales_order.project_code
        po_code = await get_document_number(
            self.db, "PO", sales_order.company_code, project_code
        )

        purchase_order = PurchaseOrder(
            po_code=po_code,
            so_code=sales_order.so_code,
            supplier_name=draft.supplier_name.strip(),
            supplier_contact=draft.supplier_contact,
            supplier_bank=draft.supplier_bank,
            status=PurchaseOrderStatus.SUBMITTED.value,
            priority=draft.priority.value,
            customer_ref=customer_ref,
            notes=draft.notes,
            company_code=sales_order.company_code,
            project_code=project_code,
            submitted_by=actor.actor_code,
        )
        self.db.add(purchase_order)

        subtotals = []
        for index, item in enumerate(items, start=1):
            subtotal = line_total(item.quantity, item.purchase_price)
            subtotals.append(subtotal)
            self.db.add(
                PurchaseOrderItem(
                    po_item_code=f"{po_code}-{index:02d}",
                    po_code=po_code,
                    so_item_code=item.so_item_code,
                    product_code=item.product_code,
                    product_name=item.product_name or so_lines[item.so_item_code].product_name,
                    quantity=item.quantity,
                    purchase_price=round_money(item.purchase_price),
                    subtotal=subtotal,
                    notes=item.notes,
                    line_order=index,
                )
            )
        purchase_order.total_amount = sum_money(subtotals)
        await self.db.flush()

        await self.audit.log(
            actor=actor,
            action=AuditAction.CREATE,
            resource_type=RESOURCE_TYPE,
            resource_id=po_code,
            new_values={
                "status": purchase_order.status,
                "so_code": sales_order.so_code,
                "supplier_name": purchase_order.supplier_name,
                "total_amount": str(purchase_order.total_amount),
                "items": len(items),
            },
        )
        logger.info(
            "purchase order %s submitted against %s by %s",
            po_code,
            sales_order.so_code,
            actor.actor_code,
        )
        return purchase_order

    async def _has_active_purchase_order(self, so_code: str) -> bool:
        count = await self.db.scalar(
            select(func.count())
            .select_from(PurchaseOrder)
            .where(
                PurchaseOrder.so_code == so_code,
                PurchaseOrder.status != PurchaseOrderStatus.REJECTED.value,
                PurchaseOrder.is_deleted.is_(False),
            )
        )
        return bool(count)

    async def transition(
        self, po_code: str, data: TransitionRequest, actor: Actor
    ) -> PurchaseOrder:
        """Apply an approval or rejection."""
        if data.action == PurchaseOrderAction.PAY:
            raise ValidationError(
                "Payments are recorded through the payment endpoint", field="action"
            )

        async with unit_of_work(self.db):
            purchase_order = await self.lock_purchase_order(po_code)
            old_status = purchase_order.status
            target = next_status(old_status, data.action)
            now = datetime.now(timezone.utc)
            new_values: dict = {"status": target.value}

            if data.action == PurchaseOrderAction.APPROVE_SPV:
                purchase_order.approved_by_spv = actor.actor_code
                purchase_order.approved_date_spv = now
                purchase_order.approval_notes = data.notes
                audit_action = AuditAction.APPROVE
                notes = data.notes
            elif data.action == PurchaseOrderAction.APPROVE_FINANCE:
                # Post first: the payable flush must not carry half-applied PO fields.
                payable = await self.posting.create_ap_invoice(purchase_order, actor)
                purchase_order.approved_by_finance = actor.actor_code
                purchase_order.approved_date_finance = now
                if data.notes:
                    purchase_order.approval_notes = data.notes
                purchase_order.ap_code = payable.ap_code
                new_values["ap_code"] = payable.ap_code
                audit_action = AuditAction.APPROVE
                notes = data.notes
            else:
                reason = (data.rejection_reason or "").strip()
                if not reason:
                    raise ValidationError(
                        "Rejection reason is required", field="rejection_reason"
                    )
                purchase_order.rejected_by = actor.actor_code
                purchase_order.rejection_reason = reason
                audit_action = AuditAction.REJECT
                notes = reason

            purchase_order.status = target.value
            await self.db.flush()

            await self.audit.log(
                actor=actor,
                action=audit_action,
                resource_type=RESOURCE_TYPE,
                resource_id=po_code,
                old_values={"status": old_status},
                new_values=new_values,
                notes=notes,
            )

        logger.info(
            "purchase order %s: %s -> %s by %s",
            po_code,
            old_status,
            target.value,
            actor.actor_code,
        )
        return await self.get_purchase_order(po_code)

    async def soft_delete(self, po_code: str, actor: Actor) -> None:
        """Withdraw a submitted or rejected purchase order; its quantity is released."""
        async with unit_of_work(self.db):
            purchase_order = await self.lock_purchase_order(po_code)
            if purchase_order.status not in (
                PurchaseOrderStatus.SUBMITTED.value,
                PurchaseOrderStatus.REJECTED.value,
            ):
                raise ValidationError(
                    "Only submitted or rejected purchase orders can be deleted",
                    field="status",
                )
            now = datetime.now(timezone.utc)
            purchase_order.is_deleted = True
            purchase_order.deleted_at = now

            items = await self.db.execute(
                select(PurchaseOrderItem).where(PurchaseOrderItem.po_code == po_code)
            )
            for item in items.scalars().all():
                item.is_deleted = True
                item.deleted_at = now
            await self.db.flush()

            await self.audit.log(
                actor=actor,
                action=AuditAction.DELETE,
                resource_type=RESOURCE_TYPE,
                resource_id=po_code,
                old_values={"status": purchase_order.status, "is_deleted": False},
                new_values={"is_deleted": True},
            )

    async def lock_purchase_order(self, po_code: str) -> PurchaseOrder:
        """Row-lock a purchase order for a status change, reloading its state."""
        purchase_order = await self.db.scalar(
            select(PurchaseOrder)
            .where(PurchaseOrder.po_code == po_code, PurchaseOrder.is_deleted.is_(False))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if purchase_order is None:
            raise NotFoundError("Purchase order", po_code)
        return purchase_order

    async def get_purchase_order(
        self, po_code: str, include_deleted: bool = False
    ) -> PurchaseOrder:
        """Get purchase order by code."""
        query = (
            select(PurchaseOrder)
            .where(PurchaseOrder.po_code == po_code)
            .options(selectinload(PurchaseOrder.items))
            .execution_options(populate_existing=True)
        )
        if not include_deleted:
            query = query.where(PurchaseOrder.is_deleted.is_(False))
        purchase_order = (await self.db.execute(query)).scalar_one_or_none()
        if not purchase_order:
            raise NotFoundError("Purchase order", po_code)
        return purchase_order

    async def list_purchase_orders(
        self, filters: PurchaseOrderFilters
    ) -> tuple[list[PurchaseOrder], int]:
        """List purchase orders with filters."""
        query = select(PurchaseOrder).options(selectinload(PurchaseOrder.items))

        if not filters.include_deleted:
            query = query.where(PurchaseOrder.is_deleted.is_(False))
        if filters.status:
            query = query.where(PurchaseOrder.status == filters.status)
        if filters.so_code:
            query = query.where(PurchaseOrder.so_code == filters.so_code)
        if filters.priority:
            query = query.where(PurchaseOrder.priority == filters.priority)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.where(
                or_(
                    PurchaseOrder.po_code.ilike(pattern),
                    PurchaseOrder.supplier_name.ilike(pattern),
                    PurchaseOrder.customer_ref.ilike(pattern),
                )
            )

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        query = (
            query.order_by(PurchaseOrder.created_at.desc(), PurchaseOrder.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total or 0


class ProcurementPaymentService:
    """Records the payment of a finance-approved purchase order."""

    def __init__(self, db: AsyncSession, posting_engine: PostingEngine | None = None):
        self.db = db
        self.audit = AuditService(db)
        self.bank_accounts = BankAccountService(db)
        self.purchase_orders = PurchaseOrderService(db, posting_engine)
        self.posting = self.purchase_orders.posting

    async def record_payment(
        self,
        po_code: str,
        data: PaymentCreate,
        actor: Actor,
        documents: list[IncomingDocument] | None = None,
    ) -> PurchaseOrderPayment:
        """
        Pay a purchase order in full.

        Allocates the payment code, stores supporting documents, posts the
        journal entry, settles the payable and marks the purchase order paid,
        all in one transaction.
        """
        documents = documents or []

        async with unit_of_work(self.db):
            purchase_order = await self.purchase_orders.lock_purchase_order(po_code)
            if (
                purchase_order.status == PurchaseOrderStatus.PAID.value
                or await self._has_active_payment(po_code)
            ):
                raise AlreadyPaidError(po_code)
            if purchase_order.status != PurchaseOrderStatus.APPROVED_FINANCE.value:
                raise NotFinanceApprovedError(po_code, purchase_order.status)
            target = next_status(purchase_order.status, PurchaseOrderAction.PAY)

            bank_account = await self._resolve_bank_account(data)

            amount = round_money(data.amount) if data.amount is not None else purchase_order.total_amount
            if amount != purchase_order.total_amount:
                raise ValidationError(
                    f"Payment amount {amount} must equal the purchase order total "
                    f"{purchase_order.total_amount}",
                    field="amount",
                )

            payment_code = await get_document_number(
                self.db, "PAY", purchase_order.company_code, purchase_order.project_code
            )
            payment_date = data.payment_date or date.today()
            payment = PurchaseOrderPayment(
                payment_code=payment_code,
                po_code=po_code,
                amount=amount,
                payment_date=payment_date,
                payment_method=data.payment_method.value,
                company_bank_code=bank_account.account_code if bank_account else None,
                supplier_bank_name=data.supplier_bank_name,
                supplier_account_number=data.supplier_account_number,
                reference_number=data.reference_number,
                notes=data.notes,
                status=PaymentStatus.PAID.value,
                paid_by=actor.actor_code,
            )
            self.db.add(payment)
            await self.db.flush()

            stored_types = []
            for index, document in enumerate(documents, start=1):
                stored = await save_document(
                    document.content,
                    document.file_name,
                    document.content_type,
                    folder=f"payments/{payment_code}",
                )
                document_type = classify_document(document.file_name)
                stored_types.append(document_type.value)
                self.db.add(
                    PaymentDocument(
                        document_code=f"{payment_code}-D{index:02d}",
                        payment_code=payment_code,
                        file_name=stored.file_name,
                        document_type=document_type.value,
                        storage_path=stored.storage_path,
                        file_size=stored.file_size,
                        content_type=stored.content_type,
                    )
                )

            entry = await self.posting.create_journal_entry(
                payment_code,
                po_code,
                amount,
                bank_account,
                actor,
                company_code=purchase_order.company_code,
                project_code=purchase_order.project_code,
                transaction_date=payment_date,
            )
            payment.journal_code = entry.journal_code
            old_status = purchase_order.status
            purchase_order.journal_code = entry.journal_code
            purchase_order.status = target.value
            await self.db.flush()

            await self.audit.log(
                actor=actor,
                action=AuditAction.PAY,
                resource_type=RESOURCE_TYPE,
                resource_id=po_code,
                old_values={"status": old_status},
                new_values={
                    "status": target.value,
                    "payment_code": payment_code,
                    "journal_code": entry.journal_code,
                    "amount": str(amount),
                    "documents": stored_types,
                },
                notes=data.notes,
            )

        logger.info(
            "purchase order %s paid by %s (%s, %s)",
            po_code,
            actor.actor_code,
            payment_code,
            data.payment_method.value,
        )
        return await self.get_payment(payment_code)

    async def _resolve_bank_account(self, data: PaymentCreate) -> BankAccount | None:
        if data.payment_method == PaymentMethod.TRANSFER and not data.company_bank_code:
            raise ValidationError(
                "company_bank_code is required for transfer payments",
                field="company_bank_code",
            )
        if data.payment_method == PaymentMethod.CASH or not data.company_bank_code:
            return None
        return await self.bank_accounts.resolve(data.company_bank_code)

    async def _has_active_payment(self, po_code: str) -> bool:
        count = await self.db.scalar(
            select(func.count())
            .select_from(PurchaseOrderPayment)
            .where(
                PurchaseOrderPayment.po_code == po_code,
                PurchaseOrderPayment.is_deleted.is_(False),
            )
        )
        return bool(count)

    async def get_payment(self, payment_code: str) -> PurchaseOrderPayment:
        payment = await self.db.scalar(
            select(PurchaseOrderPayment)
            .where(
                PurchaseOrderPayment.payment_code == payment_code,
                PurchaseOrderPayment.is_deleted.is_(False),
            )
            .options(selectinload(PurchaseOrderPayment.documents))
            .execution_options(populate_existing=True)
        )
        if payment is None:
            raise NotFoundError("Payment", payment_code)
        return payment

    async def list_payments(
        self, filters: PaymentFilters
    ) -> tuple[list[PurchaseOrderPayment], int]:
        query = (
            select(PurchaseOrderPayment)
            .where(PurchaseOrderPayment.is_deleted.is_(False))
            .options(selectinload(PurchaseOrderPayment.documents))
        )
        if filters.po_code:
            query = query.where(PurchaseOrderPayment.po_code == filters.po_code)
        if filters.payment_method:
            query = query.where(PurchaseOrderPayment.payment_method == filters.payment_method)
        if filters.date_from:
            query = query.where(PurchaseOrderPayment.payment_date >= filters.date_from)
        if filters.date_to:
            query = query.where(PurchaseOrderPayment.payment_date <= filters.date_to)

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        query = (
            query.order_by(PurchaseOrderPayment.payment_date.desc(), PurchaseOrderPayment.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total or 0

    async def get_document_content(
        self, payment_code: str, document_code: str
    ) -> tuple[PaymentDocument, bytes]:
        document = await self.db.scalar(
            select(PaymentDocument).where(
                PaymentDocument.payment_code == payment_code,
                PaymentDocument.document_code == document_code,
            )
        )
        if document is None:
            raise NotFoundError("Payment document", document_code)
        try:
            content = await read_document(document.storage_path)
        except FileNotFoundError:
            raise NotFoundError("Payment document file", document_code) from None
        return document, content
