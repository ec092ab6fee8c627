"""API endpoints for numbering sequences."""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.auth import CurrentActor
from src.core.database.session import get_db
from src.core.documents.schemas import (
    AllocateSequenceRequest,
    AllocateSequenceResponse,
    NumberingSequenceCreate,
    NumberingSequenceResponse,
    ResetSequenceRequest,
    SequenceCounterResponse,
)
from src.core.documents.service import NumberingService
from src.shared.schemas.base import ApiResponse

router = APIRouter(prefix="/sequences", tags=["Numbering Sequences"])


def _counter_to_response(counter) -> SequenceCounterResponse:
    return SequenceCounterResponse(
        document_type=counter.document_type,
        prefix=counter.prefix,
        last_number=counter.last_number,
        next_number=counter.last_number + 1,
    )


@router.post(
    "/allocate",
    response_model=ApiResponse[AllocateSequenceResponse],
    status_code=status.HTTP_201_CREATED,
)
async def allocate_sequence(
    data: AllocateSequenceRequest,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    """Allocate the next number for a document type and scope."""
    allocated = await NumberingService(db).allocate(
        data.document_type, actor, data.company_code, data.project_code
    )
    return ApiResponse(
        success=True,
        data=AllocateSequenceResponse(
            document_type=allocated.document_type,
            prefix=allocated.prefix,
            number=allocated.number,
            code=allocated.code,
        ),
    )


@router.get("/templates", response_model=ApiResponse[list[NumberingSequenceResponse]])
async def list_templates(actor: CurrentActor, db: AsyncSession = Depends(get_db)):
    templates = await NumberingService(db).list_templates()
    return ApiResponse(
        success=True,
        data=[NumberingSequenceResponse.model_validate(t) for t in templates],
    )


@router.put("/templates", response_model=ApiResponse[NumberingSequenceResponse])
async def save_template(
    data: NumberingSequenceCreate,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    """Create or replace the prefix template of a document type."""
    template = await NumberingService(db).save_template(data, actor)
    return ApiResponse(
        success=True,
        message="Numbering sequence saved",
        data=NumberingSequenceResponse.model_validate(template),
    )


@router.get("/counters", response_model=ApiResponse[list[SequenceCounterResponse]])
async def list_counters(
    actor: CurrentActor,
    document_type: str | None = Query(None),
    db: AsyncSession = Depends(get_db),
):
    counters = await NumberingService(db).list_counters(document_type)
    return ApiResponse(success=True, data=[_counter_to_response(c) for c in counters])


@router.post("/counters/reset", response_model=ApiResponse[SequenceCounterResponse])
async def reset_counter(
    data: ResetSequenceRequest,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
):
    """Move a counter forward. Counters never go backwards."""
    counter = await NumberingService(db).reset_counter(data, actor)
    return ApiResponse(
        success=True,
        message=f"Sequence reset; next number is {counter.last_number + 1}",
        data=_counter_to_response(counter),
    )
