"""Schemas for Sales Orders."""

from datetime import datetime
from decimal import Decimal

from pydantic import Field

from src.shared.schemas.base import BaseSchema


class SalesOrderLineCreate(BaseSchema):
    product_code: str = Field(..., min_length=1, max_length=100)
    product_name: str = Field(..., min_length=1, max_length=300)
    quantity: int = Field(..., gt=0)
    unit_price: Decimal = Field(..., ge=0)


class SalesOrderCreate(BaseSchema):
    customer_name: str = Field(..., min_length=1, max_length=300)
    company_code: str | None = Field(None, max_length=50)
    project_code: str | None = Field(None, max_length=50)
    notes: str | None = None
    lines: list[SalesOrderLineCreate] = Field(..., min_length=1)


class SalesOrderLineResponse(BaseSchema):
    so_item_code: str
    product_code: str
    product_name: str
    quantity: int
    unit_price: Decimal
    subtotal: Decimal


class SalesOrderResponse(BaseSchema):
    so_code: str
    customer_name: str
    company_code: str
    project_code: str | None
    status: str
    total_amount: Decimal
    notes: str | None
    created_by: str
    created_at: datetime
    updated_at: datetime
    lines: list[SalesOrderLineResponse] = Field(default_factory=list)


class SalesOrderFilters(BaseSchema):
    status: str | None = None
    search: str | None = None
    page: int = Field(1, ge=1)
    limit: int = Field(50, ge=1, le=100)


class RemainingQuantityResponse(BaseSchema):
    so_code: str
    so_item_code: str
    product_code: str
    ordered_quantity: int
    committed_quantity: int
    draft_quantity: int = 0
    remaining: int


class DraftLine(BaseSchema):
    """A line staked out in a purchase order form that is not saved yet."""

    so_item_code: str = Field(..., min_length=1)
    product_code: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=0)


class AvailabilityRequest(BaseSchema):
    draft_lines: list[DraftLine] = Field(default_factory=list)
