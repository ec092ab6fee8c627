"""Posting engine and ledger queries."""

import logging
from datetime import date
from decimal import Decimal
from typing import Protocol

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from src.core.audit.service import AuditAction, AuditService
from src.core.auth.schemas import Actor
from src.core.config import settings
from src.core.database.session import unit_of_work
from src.core.documents.number_generator import get_document_number
from src.core.exceptions import (
    DuplicateError,
    NotFoundError,
    PostingError,
    SequenceUnavailableError,
    ValidationError,
)
from src.modules.accounting.models import (
    AccountsPayable,
    AccountsPayableStatus,
    BankAccount,
    JournalEntry,
    JournalEntryLine,
)
from src.modules.accounting.schemas import BankAccountCreate
from src.shared.utils.money import ZERO, round_money, sum_money

logger = logging.getLogger(__name__)


class PostableOrder(Protocol):
    """What the posting engine needs to know about a purchase order."""

    po_code: str
    supplier_name: str
    total_amount: Decimal
    company_code: str
    project_code: str | None


class PostingEngine:
    """
    Writes the financial side of purchase-order events.

    Everything runs in the caller's session and transaction. Any failure is
    raised as PostingError so the triggering status change rolls back with it.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_ap_invoice(self, po: PostableOrder, actor: Actor) -> AccountsPayable:
        """Raise an unpaid payable for the full purchase order total."""
        amount = round_money(po.total_amount)
        if amount <= ZERO:
            raise PostingError(
                f"Cannot raise a payable of {amount} for {po.po_code}", reference=po.po_code
            )
        try:
            ap_code = await get_document_number(
                self.db, "AP", po.company_code, po.project_code
            )
            payable = AccountsPayable(
                ap_code=ap_code,
                po_code=po.po_code,
                supplier_name=po.supplier_name,
                invoice_date=date.today(),
                amount=amount,
                outstanding_amount=amount,
                status=AccountsPayableStatus.UNPAID.value,
                created_by=actor.actor_code,
            )
            self.db.add(payable)
            await self.db.flush()
        except (SQLAlchemyError, SequenceUnavailableError) as exc:
            logger.error("AP invoice for %s failed: %s", po.po_code, exc)
            raise PostingError(
                f"Could not create AP invoice for {po.po_code}", reference=po.po_code
            ) from exc

        logger.info("AP invoice %s raised for %s (%s)", ap_code, po.po_code, amount)
        return payable

    async def create_journal_entry(
        self,
        payment_code: str,
        po_code: str,
        amount: Decimal,
        bank_account: BankAccount | None,
        actor: Actor,
        company_code: str | None = None,
        project_code: str | None = None,
        transaction_date: date | None = None,
    ) -> JournalEntry:
        """
        Post a supplier payment: debit the AP control account, credit the bank
        GL account (or cash when no bank account is given). The matching
        payable is settled in the same step.
        """
        amount = round_money(amount)
        credit_account = (
            bank_account.gl_account_code if bank_account else settings.cash_account_code
        )
        paid_from = bank_account.bank_name if bank_account else "cash"
        postings = [
            (settings.ap_account_code, amount, ZERO, f"Settle payable for {po_code}"),
            (credit_account, ZERO, amount, f"Payment {payment_code} from {paid_from}"),
        ]
        total_debit = sum_money(debit for _, debit, _, _ in postings)
        total_credit = sum_money(credit for _, _, credit, _ in postings)
        if amount <= ZERO or total_debit != total_credit:
            raise PostingError(
                f"Unbalanced journal for {payment_code}: "
                f"debit {total_debit}, credit {total_credit}",
                reference=payment_code,
            )

        try:
            payable = await self.db.scalar(
                select(AccountsPayable)
                .where(
                    AccountsPayable.po_code == po_code,
                    AccountsPayable.status == AccountsPayableStatus.UNPAID.value,
                )
                .with_for_update()
            )
            if payable is None:
                raise PostingError(
                    f"No open payable found for {po_code}", reference=payment_code
                )

            journal_code = await get_document_number(
                self.db, "JE", company_code, project_code
            )
            entry = JournalEntry(
                journal_code=journal_code,
                transaction_date=transaction_date or date.today(),
                description=f"Payment {payment_code} for purchase order {po_code}",
                reference_module="procurement",
                reference_code=payment_code,
                total_amount=total_debit,
                created_by=actor.actor_code,
            )
            self.db.add(entry)
            for index, (account_code, debit, credit, description) in enumerate(
                postings, start=1
            ):
                self.db.add(
                    JournalEntryLine(
                        journal_code=journal_code,
                        account_code=account_code,
                        debit_amount=debit,
                        credit_amount=credit,
                        description=description,
                        line_order=index,
                    )
                )

            payable.outstanding_amount = ZERO
            payable.status = AccountsPayableStatus.PAID.value
            payable.journal_code = journal_code
            await self.db.flush()
        except (SQLAlchemyError, SequenceUnavailableError) as exc:
            logger.error("journal for %s failed: %s", payment_code, exc)
            raise PostingError(
                f"Could not post journal entry for {payment_code}", reference=payment_code
            ) from exc

        logger.info(
            "journal %s posted for %s: Dr %s / Cr %s %s",
            journal_code,
            payment_code,
            settings.ap_account_code,
            credit_account,
            amount,
        )
        return entry


class BankAccountService:
    """Company bank accounts."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)

    async def create_bank_account(self, data: BankAccountCreate, actor: Actor) -> BankAccount:
        async with unit_of_work(self.db):
            existing = await self.db.scalar(
                select(BankAccount).where(BankAccount.account_code == data.account_code)
            )
            if existing is not None:
                raise DuplicateError("Bank account", "account_code", data.account_code)
            account = BankAccount(**data.model_dump())
            self.db.add(account)
            await self.db.flush()
            await self.audit.log(
                actor=actor,
                action=AuditAction.CREATE,
                resource_type="bank_account",
                resource_id=account.account_code,
                new_values={
                    "bank_name": account.bank_name,
                    "gl_account_code": account.gl_account_code,
                },
            )
        return account

    async def list_bank_accounts(self, include_inactive: bool = False) -> list[BankAccount]:
        query = select(BankAccount).where(BankAccount.is_deleted.is_(False))
        if not include_inactive:
            query = query.where(BankAccount.is_active.is_(True))
        result = await self.db.execute(query.order_by(BankAccount.account_code))
        return list(result.scalars().all())

    async def resolve(self, account_code: str) -> BankAccount:
        """Look up an active bank account by code."""
        account = await self.db.scalar(
            select(BankAccount).where(
                BankAccount.account_code == account_code,
                BankAccount.is_deleted.is_(False),
            )
        )
        if account is None:
            raise ValidationError(
                f"Bank account {account_code} does not exist", field="company_bank_code"
            )
        if not account.is_active:
            raise ValidationError(
                f"Bank account {account_code} is inactive", field="company_bank_code"
            )
        return account


class LedgerService:
    """Read side of payables and journal entries."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_payables(
        self,
        po_code: str | None = None,
        status: str | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[AccountsPayable], int]:
        query = select(AccountsPayable)
        if po_code:
            query = query.where(AccountsPayable.po_code == po_code)
        if status:
            query = query.where(AccountsPayable.status == status)
        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        query = (
            query.order_by(AccountsPayable.created_at.desc(), AccountsPayable.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total or 0

    async def list_journal_entries(
        self,
        reference_code: str | None = None,
        page: int = 1,
        limit: int = 50,
    ) -> tuple[list[JournalEntry], int]:
        query = select(JournalEntry).options(selectinload(JournalEntry.lines))
        if reference_code:
            query = query.where(JournalEntry.reference_code == reference_code)
        total = await self.db.scalar(select(func.count()).select_from(query.subquery()))
        query = (
            query.order_by(JournalEntry.created_at.desc(), JournalEntry.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all()), total or 0

    async def get_journal_entry(self, journal_code: str) -> JournalEntry:
        entry = await self.db.scalar(
            select(JournalEntry)
            .where(JournalEntry.journal_code == journal_code)
            .options(selectinload(JournalEntry.lines))
        )
        if entry is None:
            raise NotFoundError("Journal entry", journal_code)
        return entry
