from dataclasses import dataclass
from datetime import date
from decimal import Decimal

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.exceptions import DuplicateError, PostingError, ValidationError
from src.modules.accounting.models import AccountsPayable, JournalEntry
from src.modules.accounting.service import BankAccountService, LedgerService, PostingEngine

YEAR = date.today().year


@dataclass
class ApprovedOrder:
    po_code: str
    supplier_name: str
    total_amount: Decimal
    company_code: str = "CS"
    project_code: str | None = None


class TestPostingEngine:
    """AP invoices and payment journals without the purchase order workflow."""

    async def test_ap_invoice_for_full_total(self, db_session: AsyncSession, finance):
        engine = PostingEngine(db_session)
        payable = await engine.create_ap_invoice(
            ApprovedOrder("PO-X-0001", "PT Baja Prima", Decimal("2500000.555")), finance
        )

        assert payable.ap_code == f"AP-{YEAR}-0001"
        assert payable.amount == Decimal("2500000.56")
        assert payable.outstanding_amount == payable.amount
        assert payable.status == "unpaid"
        assert payable.invoice_date == date.today()
        assert payable.created_by == "FIN-001"

    async def test_ap_invoice_rejects_zero_total(self, db_session: AsyncSession, finance):
        with pytest.raises(PostingError) as exc_info:
            await PostingEngine(db_session).create_ap_invoice(
                ApprovedOrder("PO-X-0002", "PT Baja Prima", Decimal("0")), finance
            )
        assert exc_info.value.details["reference"] == "PO-X-0002"

    async def test_journal_settles_payable(
        self, db_session: AsyncSession, make_bank_account, finance
    ):
        engine = PostingEngine(db_session)
        await engine.create_ap_invoice(
            ApprovedOrder("PO-X-0003", "PT Baja Prima", Decimal("750000")), finance
        )
        bank = await make_bank_account(account_code="MDR-01", gl_account_code="1202")

        entry = await engine.create_journal_entry(
            "PAY-X-0001", "PO-X-0003", Decimal("750000"), bank, finance
        )
        await db_session.flush()

        assert entry.journal_code == f"JE-{YEAR}-0001"
        assert entry.reference_module == "procurement"
        assert entry.reference_code == "PAY-X-0001"

        loaded = await LedgerService(db_session).get_journal_entry(entry.journal_code)
        assert [
            (line.account_code, line.debit_amount, line.credit_amount) for line in loaded.lines
        ] == [
            ("2100", Decimal("750000.00"), Decimal("0")),
            ("1202", Decimal("0"), Decimal("750000.00")),
        ]

        payable = await db_session.scalar(
            select(AccountsPayable).where(AccountsPayable.po_code == "PO-X-0003")
        )
        assert payable.status == "paid"
        assert payable.outstanding_amount == Decimal("0")
        assert payable.journal_code == entry.journal_code

    async def test_journal_without_open_payable(self, db_session: AsyncSession, finance):
        with pytest.raises(PostingError):
            await PostingEngine(db_session).create_journal_entry(
                "PAY-X-0002", "PO-X-NONE", Decimal("100"), None, finance
            )
        assert await db_session.scalar(select(func.count()).select_from(JournalEntry)) == 0


class TestBankAccounts:
    async def test_duplicate_code(self, db_session: AsyncSession, make_bank_account):
        await make_bank_account(account_code="BCA-01")
        with pytest.raises(DuplicateError):
            await make_bank_account(account_code="BCA-01")

    async def test_resolve(self, db_session: AsyncSession, make_bank_account):
        await make_bank_account(account_code="BCA-01", gl_account_code="1201")
        await make_bank_account(account_code="BNI-02", is_active=False)
        service = BankAccountService(db_session)

        assert (await service.resolve("BCA-01")).gl_account_code == "1201"
        with pytest.raises(ValidationError):
            await service.resolve("BNI-02")
        with pytest.raises(ValidationError) as exc_info:
            await service.resolve("XXX-00")
        assert exc_info.value.details["field"] == "company_bank_code"

    async def test_list_hides_inactive(self, db_session: AsyncSession, make_bank_account):
        await make_bank_account(account_code="BCA-01")
        await make_bank_account(account_code="BNI-02", is_active=False)
        service = BankAccountService(db_session)

        assert [a.account_code for a in await service.list_bank_accounts()] == ["BCA-01"]
        assert len(await service.list_bank_accounts(include_inactive=True)) == 2


class TestAccountingEndpoints:
    async def test_bank_account_crud(self, client: AsyncClient, auth_headers):
        payload = {
            "account_code": "BCA-01",
            "bank_name": "Bank Central Asia",
            "account_number": "1234567890",
            "account_holder": "PT Procurement Ledger",
            "gl_account_code": "1201",
        }
        response = await client.post(
            "/api/v1/accounting/bank-accounts", headers=auth_headers, json=payload
        )
        assert response.status_code == 201
        assert response.json()["data"]["currency"] == "IDR"

        response = await client.post(
            "/api/v1/accounting/bank-accounts", headers=auth_headers, json=payload
        )
        assert response.status_code == 409

        response = await client.get("/api/v1/accounting/bank-accounts", headers=auth_headers)
        assert [a["account_code"] for a in response.json()["data"]] == ["BCA-01"]

    async def test_payables_and_journals(
        self, client: AsyncClient, auth_headers, db_session: AsyncSession, finance
    ):
        engine = PostingEngine(db_session)
        await engine.create_ap_invoice(
            ApprovedOrder("PO-X-0010", "PT Baja Prima", Decimal("1000")), finance
        )
        await engine.create_ap_invoice(
            ApprovedOrder("PO-X-0011", "CV Sumber Rejeki", Decimal("2000")), finance
        )
        entry = await engine.create_journal_entry(
            "PAY-X-0010", "PO-X-0010", Decimal("1000"), None, finance
        )
        journal_code = entry.journal_code
        await db_session.commit()

        response = await client.get(
            "/api/v1/accounting/payables", headers=auth_headers, params={"status": "unpaid"}
        )
        data = response.json()["data"]
        assert data["total"] == 1
        assert data["items"][0]["po_code"] == "PO-X-0011"

        response = await client.get(
            "/api/v1/accounting/journal-entries",
            headers=auth_headers,
            params={"reference_code": "PAY-X-0010"},
        )
        assert response.json()["data"]["total"] == 1

        response = await client.get(
            f"/api/v1/accounting/journal-entries/{journal_code}", headers=auth_headers
        )
        assert response.status_code == 200
        lines = response.json()["data"]["lines"]
        assert [line["account_code"] for line in lines] == ["2100", "1100"]

        response = await client.get(
            "/api/v1/accounting/journal-entries/JE-NOPE", headers=auth_headers
        )
        assert response.status_code == 404
