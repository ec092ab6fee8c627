"""Schemas for bank accounts, payables and journal entries."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from src.shared.schemas.base import BaseSchema


class BankAccountCreate(BaseSchema):
    account_code: str = Field(..., min_length=1, max_length=50)
    bank_name: str = Field(..., min_length=1, max_length=200)
    account_number: str = Field(..., min_length=1, max_length=100)
    account_holder: str = Field(..., min_length=1, max_length=200)
    branch: str | None = Field(None, max_length=200)
    currency: str = Field("IDR", min_length=3, max_length=3)
    gl_account_code: str = Field(..., min_length=1, max_length=50)
    is_active: bool = True


class BankAccountResponse(BaseSchema):
    account_code: str
    bank_name: str
    account_number: str
    account_holder: str
    branch: str | None
    currency: str
    gl_account_code: str
    is_active: bool


class AccountsPayableResponse(BaseSchema):
    ap_code: str
    po_code: str
    supplier_name: str
    invoice_date: date
    amount: Decimal
    outstanding_amount: Decimal
    status: str
    journal_code: str | None
    created_by: str
    created_at: datetime


class JournalEntryLineResponse(BaseSchema):
    account_code: str
    debit_amount: Decimal
    credit_amount: Decimal
    description: str | None


class JournalEntryResponse(BaseSchema):
    journal_code: str
    transaction_date: date
    description: str
    reference_module: str
    reference_code: str
    total_amount: Decimal
    created_by: str
    created_at: datetime
    lines: list[JournalEntryLineResponse] = Field(default_factory=list)
