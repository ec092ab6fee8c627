"""Schemas for numbering sequences."""

from datetime import datetime

from pydantic import Field

from src.shared.schemas.base import BaseSchema


class NumberingSequenceCreate(BaseSchema):
    """Register (or replace) the prefix template for a document type."""

    sequence_code: str = Field(..., min_length=1, max_length=30)
    prefix: str = Field("", max_length=100)
    padding: int = Field(4, ge=1, le=12)
    description: str | None = None


class NumberingSequenceResponse(BaseSchema):
    id: int
    sequence_code: str
    prefix: str
    padding: int
    description: str | None
    created_at: datetime
    updated_at: datetime


class SequenceCounterResponse(BaseSchema):
    document_type: str
    prefix: str
    last_number: int
    next_number: int


class AllocateSequenceRequest(BaseSchema):
    document_type: str = Field(..., min_length=1, max_length=30)
    company_code: str | None = Field(None, max_length=50)
    project_code: str | None = Field(None, max_length=50)


class AllocateSequenceResponse(BaseSchema):
    document_type: str
    prefix: str
    number: int
    code: str


class ResetSequenceRequest(BaseSchema):
    document_type: str = Field(..., min_length=1, max_length=30)
    company_code: str | None = Field(None, max_length=50)
    project_code: str | None = Field(None, max_length=50)
    next_number: int = Field(..., ge=1)
