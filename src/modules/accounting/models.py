"""Accounting models: bank accounts, payables and the general journal."""

from datetime import date
from decimal import Decimal
from enum import StrEnum

from sqlalchemy import Boolean, Date, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.core.database.base import BaseModel, SoftDeleteMixin


class AccountsPayableStatus(StrEnum):
    UNPAID = "unpaid"
    PAID = "paid"


class BankAccount(SoftDeleteMixin, BaseModel):
    """Company bank account; payments by transfer credit its GL account."""

    __tablename__ = "bank_accounts"

    account_code: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )
    bank_name: Mapped[str] = mapped_column(String(200), nullable=False)
    account_number: Mapped[str] = mapped_column(String(100), nullable=False)
    account_holder: Mapped[str] = mapped_column(String(200), nullable=False)
    branch: Mapped[str | None] = mapped_column(String(200), nullable=True)
    currency: Mapped[str] = mapped_column(String(3), nullable=False, default="IDR")
    gl_account_code: Mapped[str] = mapped_column(String(50), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)


class AccountsPayable(BaseModel):
    """Payable raised when a purchase order passes finance approval."""

    __tablename__ = "accounts_payable"

    ap_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)
    po_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("purchase_orders.po_code"), nullable=False, index=True
    )
    supplier_name: Mapped[str] = mapped_column(String(300), nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    outstanding_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=AccountsPayableStatus.UNPAID.value, index=True
    )
    journal_code: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_by: Mapped[str] = mapped_column(String(50), nullable=False)


class JournalEntry(BaseModel):
    """Balanced double-entry journal header."""

    __tablename__ = "journal_entries"

    journal_code: Mapped[str] = mapped_column(
        String(50), nullable=False, unique=True, index=True
    )
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    reference_module: Mapped[str] = mapped_column(String(50), nullable=False)
    reference_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    total_amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    created_by: Mapped[str] = mapped_column(String(50), nullable=False)

    lines: Mapped[list["JournalEntryLine"]] = relationship(
        "JournalEntryLine",
        back_populates="journal_entry",
        order_by="JournalEntryLine.line_order",
    )


class JournalEntryLine(BaseModel):
    __tablename__ = "journal_entry_lines"

    journal_code: Mapped[str] = mapped_column(
        String(50), ForeignKey("journal_entries.journal_code"), nullable=False, index=True
    )
    account_code: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    debit_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0.00")
    )
    credit_amount: Mapped[Decimal] = mapped_column(
        Numeric(18, 2), nullable=False, default=Decimal("0.00")
    )
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    line_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    journal_entry: Mapped["JournalEntry"] = relationship(
        "JournalEntry", back_populates="lines"
    )
