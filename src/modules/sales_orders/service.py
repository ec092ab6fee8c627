"""Service layer for Sales Orders."""

import logging

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.auth.schemas import Actor
from src.core.config import settings
from src.core.database.session import unit_of_work
from src.core.documents.number_generator import get_document_number
from src.core.exceptions import NotFoundError
from src.modules.sales_orders.models import SalesOrder, SalesOrderLine, SalesOrderStatus
from src.modules.sales_orders.schemas import SalesOrderCreate, SalesOrderFilters
from src.shared.utils.money import line_total, sum_money

logger = logging.getLogger(__name__)


def line_code(so_code: str, index: int) -> str:
    return f"{so_code}-{index:02d}"


class SalesOrderService:
    """Service for sales orders and their lines."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def create_sales_order(self, data: SalesOrderCreate, actor: Actor) -> SalesOrder:
        """Create a sales order; lines are fixed from here on."""
        company_code = data.company_code or settings.default_company_code

        async with unit_of_work(self.db):
            so_code = await get_document_number(
                self.db, "SO", company_code, data.project_code
            )
            sales_order = SalesOrder(
                so_code=so_code,
                customer_name=data.customer_name,
                company_code=company_code,
                project_code=data.project_code,
                status=SalesOrderStatus.SUBMITTED.value,
                notes=data.notes,
                created_by=actor.actor_code,
            )
            self.db.add(sales_order)

            subtotals = []
            for index, line in enumerate(data.lines, start=1):
                subtotal = line_total(line.quantity, line.unit_price)
                subtotals.append(subtotal)
                self.db.add(
                    SalesOrderLine(
                        so_item_code=line_code(so_code, index),
                        so_code=so_code,
                        product_code=line.product_code,
                        product_name=line.product_name,
                        quantity=line.quantity,
                        unit_price=line.unit_price,
                        subtotal=subtotal,
                        line_order=index,
                    )
                )
            sales_order.total_amount = sum_money(subtotals)
            await self.db.flush()

            await self.audit.log(
                actor=actor,
                action=AuditAction.CREATE,
                resource_type="sales_order",
                resource_id=so_code,
                new_values={
                    "customer_name": data.customer_name,
                    "total_amount": str(sales_order.total_amount),
                    "lines": len(data.lines),
                },
            )

        logger.info("sales order %s created by %s", so_code, actor.actor_code)
        return await self.get_sales_order(so_code)

    async def get_sales_order(self, so_code: str) -> SalesOrder:
        result = await self.db.execute(
            select(SalesOrder)
            .where(SalesOrder.so_code == so_code, SalesOrder.is_deleted.is_(False))
            .options(selectinload(SalesOrder.lines))
            .execution_options(populate_existing=True)
        )
        sales_order = result.scalar_one_or_none()
        if not sales_order:
            raise NotFoundError("Sales order", so_code)
        return sales_order

    async def lock_sales_order(self, so_code: str) -> SalesOrder:
        """
        Take a row lock on the sales order.

        Purchase order writers against the same sales order serialize here,
        so a remaining-quantity read stays valid until the transaction ends.
        """
        sales_order = await self.db.scalar(
            select(SalesOrder)
            .where(SalesOrder.so_code == so_code, SalesOrder.is_deleted.is_(False))
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        if sales_order is None:
            raise NotFoundError("Sales order", so_code)
        return sales_order

    async def mark_processing(self, sales_order: SalesOrder, actor: Actor) -> bool:
        """Flip a submitted sales order to processing. Returns True if it changed."""
        if sales_order.status != SalesOrderStatus.SUBMITTED.value:
            return False
        old_status = sales_order.status
        sales_order.status = SalesOrderStatus.PROCESSING.value
        await self.db.flush()
        await self.audit.log(
            actor=actor,
            action=AuditAction.UPDATE,
            resource_type="sales_order",
            resource_id=sales_order.so_code,
            old_values={"status": old_status},
            new_values={"status": sales_order.status},
            notes="first purchase order raised",
        )
        return True

    async def list_sales_orders(
        self, filters: SalesOrderFilters
    ) -> tuple[list[SalesOrder], int]:
        """List sales orders with filters."""
        query = (
            select(SalesOrder)
            .where(SalesOrder.is_deleted.is_(False))
            .options(selectinload(SalesOrder.lines))
        )
        if filters.status:
            query = query.where(SalesOrder.status == filters.status)
        if filters.search:
            pattern = f"%{filters.search}%"
            query = query.where(
                or_(
                    SalesOrder.so_code.ilike(pattern),
                    SalesOrder.customer_name.ilike(pattern),
                )
            )

        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        query = (
            query.order_by(SalesOrder.created_at.desc(), SalesOrder.id.desc())
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total or 0
