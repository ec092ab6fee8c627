"""API endpoints for Sales Orders and their remaining quantities."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import CurrentActor
from src.core.database.session import get_db
from src.modules.procurement.reconciler import LineAvailability, QuantityReconciler
from src.modules.sales_orders.schemas import (
    AvailabilityRequest,
    RemainingQuantityResponse,
    SalesOrderCreate,
    SalesOrderFilters,
    SalesOrderResponse,
)
from src.modules.sales_orders.service import SalesOrderService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/sales-orders", tags=["Sales Orders"])


def _availability_to_response(so_code: str, line: LineAvailability) -> RemainingQuantityResponse:
    return RemainingQuantityResponse(
        so_code=so_code,
        so_item_code=line.so_item_code,
        product_code=line.product_code,
        ordered_quantity=line.ordered_quantity,
        committed_quantity=line.committed_quantity,
        draft_quantity=line.draft_quantity,
        remaining=line.remaining,
    )


@router.post(
    "",
    response_model=ApiResponse[SalesOrderResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_sales_order(
    data: SalesOrderCreate,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    sales_order = await SalesOrderService(db).create_sales_order(data, actor)
    return ApiResponse(
        success=True,
        message="Sales order created",
        data=SalesOrderResponse.model_validate(sales_order),
    )


@router.get("", response_model=ApiResponse[PaginatedResponse[SalesOrderResponse]])
async def list_sales_orders(
    actor: CurrentActor,
    status_filter: str | None = Query(None, alias="status"),
    search: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    filters = SalesOrderFilters(status=status_filter, search=search, page=page, limit=limit)
    orders, total = await SalesOrderService(db).list_sales_orders(filters)
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[SalesOrderResponse.model_validate(o) for o in orders],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get("/{so_code}", response_model=ApiResponse[SalesOrderResponse])
async def get_sales_order(
    so_code: str,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    sales_order = await SalesOrderService(db).get_sales_order(so_code)
    return ApiResponse(success=True, data=SalesOrderResponse.model_validate(sales_order))


@router.get(
    "/{so_code}/items/{item_code}/remaining",
    response_model=ApiResponse[RemainingQuantityResponse],
)
async def get_remaining_quantity(
    so_code: str,
    item_code: str,
    actor: CurrentActor,
    product_code: str = Query(..., min_length=1),
    db: AsyncSession = Depends(get_db),
):
    """Quantity of a sales order line still free for new purchase orders."""
    await SalesOrderService(db).get_sales_order(so_code)
    line = await QuantityReconciler(db).line_availability(so_code, item_code, product_code)
    return ApiResponse(success=True, data=_availability_to_response(so_code, line))


@router.post(
    "/{so_code}/availability",
    response_model=ApiResponse[list[RemainingQuantityResponse]],
)
async def get_availability(
    so_code: str,
    data: AvailabilityRequest,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    """Per-line remaining quantity, taking unsaved draft lines into account."""
    await SalesOrderService(db).get_sales_order(so_code)
    lines = await QuantityReconciler(db).availability(so_code, data.draft_lines)
    return ApiResponse(
        success=True,
        data=[_availability_to_response(so_code, line) for line in lines],
    )
