from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text, UniqueConstraint, func
from sqlalchemy.orm import Mapped, mapped_column

from src.core.database.base import Base, BaseModel


class DocumentSequence(Base):
    """Counter per document type and rendered prefix. Only ever incremented."""

    __tablename__ = "document_sequences"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    document_type: Mapped[str] = mapped_column(String(30), nullable=False)
    prefix: Mapped[str] = mapped_column(String(100), nullable=False)
    last_number: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint(
            "document_type",
            "prefix",
            name="uq_document_sequence_prefix",
        ),
    )


class NumberingSequence(BaseModel):
    """Prefix template used to render codes for one document type."""

    __tablename__ = "numbering_sequences"

    sequence_code: Mapped[str] = mapped_column(
        String(30), nullable=False, unique=True, index=True
    )
    prefix: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    padding: Mapped[int] = mapped_column(Integer, nullable=False, default=4)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
