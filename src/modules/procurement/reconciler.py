"""Remaining-quantity reconciliation between sales order lines and purchase orders."""

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import QuantityExceededError, ValidationError
from src.modules.procurement.models import (
    PurchaseOrder,
    PurchaseOrderItem,
    PurchaseOrderStatus,
)
from src.modules.sales_orders.models import SalesOrderLine


class RequestedLine(Protocol):
    so_item_code: str
    product_code: str
    quantity: int


@dataclass(frozen=True)
class LineAvailability:
    so_item_code: str
    product_code: str
    ordered_quantity: int
    committed_quantity: int
    draft_quantity: int

    @property
    def remaining(self) -> int:
        return max(0, self.ordered_quantity - self.committed_quantity - self.draft_quantity)


def _draft_total(draft_lines: Iterable[RequestedLine], so_item_code: str, product_code: str) -> int:
    return sum(
        line.quantity
        for line in draft_lines
        if line.so_item_code == so_item_code and line.product_code == product_code
    )


class QuantityReconciler:
    """
    Computes how much of a sales order line is still free for new purchase orders.

    Committed quantity counts items drawn against the same sales order line
    and product whose purchase orders are neither rejected nor deleted. Two
    lines carrying one product are reconciled independently. Callers
    creating purchase orders must hold the sales order row lock while
    validating and inserting.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def committed_quantity(self, so_code: str, so_item_code: str, product_code: str) -> int:
        total = await self.db.scalar(
            select(func.coalesce(func.sum(PurchaseOrderItem.quantity), 0))
            .join(PurchaseOrder, PurchaseOrder.po_code == PurchaseOrderItem.po_code)
            .where(
                PurchaseOrder.so_code == so_code,
                PurchaseOrder.status != PurchaseOrderStatus.REJECTED.value,
                PurchaseOrder.is_deleted.is_(False),
                PurchaseOrderItem.so_item_code == so_item_code,
                PurchaseOrderItem.product_code == product_code,
                PurchaseOrderItem.is_deleted.is_(False),
            )
        )
        return int(total or 0)

    async def _so_lines(self, so_code: str) -> dict[str, SalesOrderLine]:
        result = await self.db.execute(
            select(SalesOrderLine).where(
                SalesOrderLine.so_code == so_code,
                SalesOrderLine.is_deleted.is_(False),
            )
        )
        return {line.so_item_code: line for line in result.scalars().all()}

    @staticmethod
    def _check_line(
        so_lines: dict[str, SalesOrderLine], so_code: str, so_item_code: str, product_code: str
    ) -> SalesOrderLine:
        so_line = so_lines.get(so_item_code)
        if so_line is None:
            raise ValidationError(
                f"Sales order item {so_item_code} does not belong to {so_code}",
                field="so_item_code",
            )
        if so_line.product_code != product_code:
            raise ValidationError(
                f"Sales order item {so_item_code} is for product {so_line.product_code}, "
                f"not {product_code}",
                field="product_code",
            )
        return so_line

    async def line_availability(
        self,
        so_code: str,
        so_item_code: str,
        product_code: str,
        draft_lines: Iterable[RequestedLine] = (),
    ) -> LineAvailability:
        so_lines = await self._so_lines(so_code)
        so_line = self._check_line(so_lines, so_code, so_item_code, product_code)
        return LineAvailability(
            so_item_code=so_item_code,
            product_code=product_code,
            ordered_quantity=so_line.quantity,
            committed_quantity=await self.committed_quantity(
                so_code, so_item_code, product_code
            ),
            draft_quantity=_draft_total(draft_lines, so_item_code, product_code),
        )

    async def remaining(
        self,
        so_code: str,
        so_item_code: str,
        product_code: str,
        draft_lines: Iterable[RequestedLine] = (),
    ) -> int:
        """Quantity still available for new purchase orders (never negative)."""
        availability = await self.line_availability(
            so_code, so_item_code, product_code, list(draft_lines)
        )
        return availability.remaining

    async def availability(
        self, so_code: str, draft_lines: Iterable[RequestedLine] = ()
    ) -> list[LineAvailability]:
        """Availability of every line of a sales order."""
        draft_lines = list(draft_lines)
        so_lines = await self._so_lines(so_code)
        for draft in draft_lines:
            self._check_line(so_lines, so_code, draft.so_item_code, draft.product_code)

        result = []
        for so_line in sorted(so_lines.values(), key=lambda line: line.line_order):
            committed = await self.committed_quantity(
                so_code, so_line.so_item_code, so_line.product_code
            )
            result.append(
                LineAvailability(
                    so_item_code=so_line.so_item_code,
                    product_code=so_line.product_code,
                    ordered_quantity=so_line.quantity,
                    committed_quantity=committed,
                    draft_quantity=_draft_total(
                        draft_lines, so_line.so_item_code, so_line.product_code
                    ),
                )
            )
        return result

    async def validate_request(
        self, so_code: str, lines: Iterable[RequestedLine]
    ) -> dict[str, SalesOrderLine]:
        """
        Check a whole submission against what is left on the sales order.

        Zero-quantity lines are ignored and negative ones rejected. Quantities
        for the same (so_item_code, product_code) are summed across the
        submission before comparing. Returns the referenced sales order lines
        keyed by so_item_code.
        """
        requested: dict[tuple[str, str], int] = {}
        for line in lines:
            if line.quantity < 0:
                raise ValidationError(
                    f"Quantity for {line.so_item_code} cannot be negative", field="quantity"
                )
            if line.quantity == 0:
                continue
            key = (line.so_item_code, line.product_code)
            requested[key] = requested.get(key, 0) + line.quantity

        if not requested:
            raise ValidationError("At least one item with quantity > 0 is required", field="items")

        so_lines = await self._so_lines(so_code)
        referenced: dict[str, SalesOrderLine] = {}
        for (so_item_code, product_code), quantity in requested.items():
            so_line = self._check_line(so_lines, so_code, so_item_code, product_code)
            committed = await self.committed_quantity(so_code, so_item_code, product_code)
            available = max(0, so_line.quantity - committed)
            if quantity > available:
                raise QuantityExceededError(so_item_code, product_code, quantity, available)
            referenced[so_item_code] = so_line
        return referenced
