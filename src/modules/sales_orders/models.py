"""Sales order models (the demand purchase orders are drawn against)."""

from decimal import Decimal
from enum import StrEnum

from sqlalchemy import ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel, SoftDeleteMixin


class SalesOrderStatus(StrEnum):
    """Sales order status enumeration."""

    SUBMITTED = "submitted"
    PROCESSING = "processing"
    DELIVERED = "delivered"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SalesOrder(SoftDeleteMixin, BaseModel):
    """Customer order; its lines cap what purchase orders may buy."""

    __tablename__ = "sales_orders"

    so_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    customer_name: Mapped[str] = mapped_column(String(300), nullable=False)
    company_code: Mapped[str] = mapped_column(String(50), nullable=False)
    project_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(30), nullable=False, default=SalesOrderStatus.SUBMITTED.value, index=True
    )
    total_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0.00")
    )
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_by: Mapped[str] = mapped_column(String(50), nullable=False)

    lines: Mapped[list["SalesOrderLine"]] = relationship(
        "SalesOrderLine",
        back_populates="sales_order",
        order_by="SalesOrderLine.line_order",
    )


class SalesOrderLine(SoftDeleteMixin, BaseModel):
    """Sales order line. Immutable once created."""

    __tablename__ = "sales_order_items"

    so_item_code: Mapped[str] = mapped_column(
        String(60), nullable=False, unique=True, index=True
    )
    so_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("sales_orders.so_code"), nullable=False, index=True
    )
    product_code: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    product_name: Mapped[str] = mapped_column(String(300), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    line_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    sales_order: Mapped["SalesOrder"] = relationship("SalesOrder", back_populates="lines")
