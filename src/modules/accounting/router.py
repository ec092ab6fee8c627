"""API endpoints for bank accounts, payables and journal entries."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import CurrentActor
from src.core.database.session import get_db
from src.modules.accounting.schemas import (
    AccountsPayableResponse,
    BankAccountCreate,
    BankAccountResponse,
    JournalEntryResponse,
)
from src.modules.accounting.service import BankAccountService, LedgerService
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/accounting", tags=["Accounting"])


@router.post(
    "/bank-accounts",
    response_model=ApiResponse[BankAccountResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_bank_account(
    data: BankAccountCreate,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    account = await BankAccountService(db).create_bank_account(data, actor)
    return ApiResponse(
        success=True,
        message="Bank account created",
        data=BankAccountResponse.model_validate(account),
    )


@router.get("/bank-accounts", response_model=ApiResponse[list[BankAccountResponse]])
async def list_bank_accounts(
    actor: CurrentActor,
    include_inactive: bool = Query(False),
    db: AsyncSession = Depends(get_db),
):
    accounts = await BankAccountService(db).list_bank_accounts(include_inactive)
    return ApiResponse(
        success=True,
        data=[BankAccountResponse.model_validate(a) for a in accounts],
    )


@router.get(
    "/payables",
    response_model=ApiResponse[PaginatedResponse[AccountsPayableResponse]],
)
async def list_payables(
    actor: CurrentActor,
    po_code: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    payables, total = await LedgerService(db).list_payables(po_code, status_filter, page, limit)
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[AccountsPayableResponse.model_validate(p) for p in payables],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get(
    "/journal-entries",
    response_model=ApiResponse[PaginatedResponse[JournalEntryResponse]],
)
async def list_journal_entries(
    actor: CurrentActor,
    reference_code: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    entries, total = await LedgerService(db).list_journal_entries(reference_code, page, limit)
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[JournalEntryResponse.model_validate(e) for e in entries],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get("/journal-entries/{journal_code}", response_model=ApiResponse[JournalEntryResponse])
async def get_journal_entry(
    journal_code: str,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    entry = await LedgerService(db).get_journal_entry(journal_code)
    return ApiResponse(success=True, data=JournalEntryResponse.model_validate(entry))
