"""API endpoints for Procurement (Purchase Orders)."""

from datetime import date

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import CurrentActor
from src.core.database.session import get_db
from src.modules.procurement.lifecycle import available_actions
from src.modules.procurement.schemas import (
    BatchPurchaseOrderCreate,
    PaymentCreate,
    PaymentFilters,
    PaymentResponse,
    PurchaseOrderCreate,
    PurchaseOrderFilters,
    PurchaseOrderResponse,
    TransitionRequest,
)
from src.modules.procurement.service import (
    IncomingDocument,
    ProcurementPaymentService,
    PurchaseOrderService,
)
from src.shared.schemas.base import ApiResponse, PaginatedResponse


router = APIRouter(prefix="/procurement", tags=["Procurement"])


def _po_to_response(po) -> PurchaseOrderResponse:
    response = PurchaseOrderResponse.model_validate(po)
    response.available_actions = available_actions(po.status)
    return response


def _payment_to_response(payment) -> PaymentResponse:
    return PaymentResponse.model_validate(payment)


@router.post(
    "/purchase-orders",
    response_model=ApiResponse[PurchaseOrderResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_purchase_order(
    data: PurchaseOrderCreate,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    """Submit a purchase order against a sales order."""
    po = await PurchaseOrderService(db).create_purchase_order(data, actor)
    return ApiResponse(
        success=True,
        message="Purchase order created successfully",
        data=_po_to_response(po),
    )


@router.post(
    "/purchase-orders/batch",
    response_model=ApiResponse[list[PurchaseOrderResponse]],
    status_code=status.HTTP_201_CREATED,
)
async def create_purchase_orders_batch(
    data: BatchPurchaseOrderCreate,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    """Create one purchase order per supplier from several forms."""
    pos = await PurchaseOrderService(db).create_batch(data, actor)
    return ApiResponse(
        success=True,
        message=f"{len(pos)} purchase order(s) created",
        data=[_po_to_response(po) for po in pos],
    )


@router.get(
    "/purchase-orders",
    response_model=ApiResponse[PaginatedResponse[PurchaseOrderResponse]],
)
async def list_purchase_orders(
    actor: CurrentActor,
    status_filter: str | None = Query(None, alias="status"),
    so_code: str | None = Query(None),
    priority: str | None = Query(None),
    search: str | None = Query(None),
    include_deleted: bool = Query(False),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List purchase orders with filters."""
    filters = PurchaseOrderFilters(
        status=status_filter,
        so_code=so_code,
        priority=priority,
        search=search,
        include_deleted=include_deleted,
        page=page,
        limit=limit,
    )
    pos, total = await PurchaseOrderService(db).list_purchase_orders(filters)
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[_po_to_response(po) for po in pos],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get(
    "/purchase-orders/{po_code}",
    response_model=ApiResponse[PurchaseOrderResponse],
)
async def get_purchase_order(
    po_code: str,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    po = await PurchaseOrderService(db).get_purchase_order(po_code)
    return ApiResponse(success=True, data=_po_to_response(po))


@router.post(
    "/purchase-orders/{po_code}/transition",
    response_model=ApiResponse[PurchaseOrderResponse],
)
async def transition_purchase_order(
    po_code: str,
    data: TransitionRequest,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    """Approve (supervisor or finance) or reject a purchase order."""
    po = await PurchaseOrderService(db).transition(po_code, data, actor)
    return ApiResponse(
        success=True,
        message=f"Purchase order is now {po.status}",
        data=_po_to_response(po),
    )


@router.delete("/purchase-orders/{po_code}", response_model=ApiResponse[None])
async def delete_purchase_order(
    po_code: str,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    """Soft-delete a submitted or rejected purchase order."""
    await PurchaseOrderService(db).soft_delete(po_code, actor)
    return ApiResponse(success=True, message="Purchase order deleted", data=None)


@router.post(
    "/purchase-orders/{po_code}/payments",
    response_model=ApiResponse[PaymentResponse],
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    po_code: str,
    actor: CurrentActor,
    data: str = Form(..., description="Payment details as JSON"),
    files: list[UploadFile] | None = File(None),
    db: AsyncSession = Depends(get_db),
):
    """Record the payment of a finance-approved purchase order (multipart)."""
    try:
        payment_data = PaymentCreate.model_validate_json(data)
    except PydanticValidationError as exc:
        raise RequestValidationError(exc.errors()) from exc

    documents = [
        IncomingDocument(
            file_name=upload.filename or "document",
            content=await upload.read(),
            content_type=upload.content_type,
        )
        for upload in files or []
    ]
    payment = await ProcurementPaymentService(db).record_payment(
        po_code, payment_data, actor, documents
    )
    return ApiResponse(
        success=True,
        message="Payment recorded",
        data=_payment_to_response(payment),
    )


@router.get(
    "/payments",
    response_model=ApiResponse[PaginatedResponse[PaymentResponse]],
)
async def list_payments(
    actor: CurrentActor,
    po_code: str | None = Query(None),
    payment_method: str | None = Query(None),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    filters = PaymentFilters(
        po_code=po_code,
        payment_method=payment_method,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    payments, total = await ProcurementPaymentService(db).list_payments(filters)
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[_payment_to_response(p) for p in payments],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get("/payments/{payment_code}", response_model=ApiResponse[PaymentResponse])
async def get_payment(
    payment_code: str,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    payment = await ProcurementPaymentService(db).get_payment(payment_code)
    return ApiResponse(success=True, data=_payment_to_response(payment))


@router.get("/payments/{payment_code}/documents/{document_code}")
async def download_payment_document(
    payment_code: str,
    document_code: str,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    """Stream a stored invoice or proof file."""
    document, content = await ProcurementPaymentService(db).get_document_content(
        payment_code, document_code
    )
    return Response(
        content=content,
        media_type=document.content_type,
        headers={"Content-Disposition": f'inline; filename="{document.file_name}"'},
    )
