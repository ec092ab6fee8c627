import logging
import re
from dataclasses import dataclass
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import settings
from src.core.documents.models import DocumentSequence, NumberingSequence
from src.core.exceptions import SequenceUnavailableError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_TEMPLATE_VARIABLES = ("{company}", "{project}", "{year}", "{month}")
_TEMPLATE_VARIABLE = re.compile(r"\{\w+\}")


def validate_template(template: str) -> None:
    """Reject templates that use variables the renderer does not know."""
    invalid = [v for v in _TEMPLATE_VARIABLE.findall(template) if v not in ALLOWED_TEMPLATE_VARIABLES]
    if invalid:
        raise ValidationError(
            f"Invalid template variables: {', '.join(invalid)}. "
            f"Allowed: {', '.join(ALLOWED_TEMPLATE_VARIABLES)}",
            field="prefix",
        )


def default_template(
    document_type: str, company_code: str | None = None, project_code: str | None = None
) -> str:
    """
    Prefix template used when none is registered for the document type.

    The default company without a project renders as PO-2026-; other scopes
    carry their company and project: PO-ACME-2026-, PO-JKT-2026-.
    """
    parts = [document_type]
    if company_code and company_code != settings.default_company_code:
        parts.append("{company}")
    if project_code:
        parts.append("{project}")
    parts.append("{year}")
    return "-".join(parts) + "-"


def render_prefix(
    template: str,
    company_code: str | None,
    project_code: str | None,
    on: date,
) -> str:
    return (
        template.replace("{company}", company_code or settings.default_company_code)
        .replace("{project}", project_code or settings.default_project_code)
        .replace("{year}", f"{on.year:04d}")
        .replace("{month}", f"{on.month:02d}")
    )


@dataclass(frozen=True)
class AllocatedNumber:
    """One allocated sequence value and its rendered prefix."""

    document_type: str
    prefix: str
    number: int
    padding: int

    @property
    def code(self) -> str:
        return f"{self.prefix}{self.number:0{self.padding}d}"


class DocumentNumberGenerator:
    """
    Allocates gap-free document numbers per (document_type, rendered prefix).

    Examples (default template):
        PO-2026-0001
        PAY-JKT-2026-0042

    Scopes whose prefixes render differently count independently; scopes
    sharing a prefix share its counter, so a code is never handed out twice.

    The increment is a single INSERT ... ON CONFLICT DO UPDATE ... RETURNING
    statement, so the row is locked and bumped in one round trip. It runs in
    the caller's transaction: a rolled back operation releases its number.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def resolve_prefix(
        self,
        document_type: str,
        company_code: str | None = None,
        project_code: str | None = None,
        on: date | None = None,
    ) -> tuple[str, int]:
        """Rendered prefix and padding for a document type and scope."""
        template = await self.session.scalar(
            select(NumberingSequence).where(NumberingSequence.sequence_code == document_type)
        )
        company = company_code or settings.default_company_code
        if template is not None and template.prefix:
            prefix_template, padding = template.prefix, template.padding
        else:
            prefix_template = default_template(document_type, company, project_code)
            padding = template.padding if template is not None else settings.sequence_padding
        prefix = render_prefix(prefix_template, company, project_code, on or date.today())
        return prefix, padding

    async def allocate(
        self,
        document_type: str,
        company_code: str | None = None,
        project_code: str | None = None,
        on: date | None = None,
    ) -> AllocatedNumber:
        """Allocate the next number for the given scope."""
        if not document_type or not document_type.strip():
            raise ValidationError("document_type is required", field="document_type")
        document_type = document_type.strip().upper()

        try:
            prefix, padding = await self.resolve_prefix(
                document_type, company_code, project_code, on
            )
            number = await self._increment(document_type, prefix)
        except SQLAlchemyError as exc:
            logger.warning("sequence allocation failed for %s: %s", document_type, exc)
            raise SequenceUnavailableError(document_type) from exc

        return AllocatedNumber(
            document_type=document_type,
            prefix=prefix,
            number=number,
            padding=padding,
        )

    async def generate(
        self,
        document_type: str,
        company_code: str | None = None,
        project_code: str | None = None,
    ) -> str:
        """Allocate and format the next document code."""
        allocated = await self.allocate(document_type, company_code, project_code)
        return allocated.code

    async def _increment(self, document_type: str, prefix: str) -> int:
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            from sqlalchemy.dialects.postgresql import insert
        elif dialect == "sqlite":
            from sqlalchemy.dialects.sqlite import insert
        else:
            return await self._increment_locked(document_type, prefix)

        stmt = (
            insert(DocumentSequence)
            .values(
                document_type=document_type,
                prefix=prefix,
                last_number=1,
            )
            .on_conflict_do_update(
                index_elements=["document_type", "prefix"],
                set_={
                    "last_number": DocumentSequence.last_number + 1,
                    "updated_at": func.now(),
                },
            )
            .returning(DocumentSequence.last_number)
        )
        result = await self.session.execute(stmt)
        return int(result.scalar_one())

    async def _increment_locked(self, document_type: str, prefix: str) -> int:
        """Fallback for dialects without upsert: SELECT ... FOR UPDATE, then bump."""
        stmt = (
            select(DocumentSequence)
            .where(
                DocumentSequence.document_type == document_type,
                DocumentSequence.prefix == prefix,
            )
            .with_for_update()
        )
        sequence = (await self.session.execute(stmt)).scalar_one_or_none()
        if sequence is None:
            sequence = DocumentSequence(
                document_type=document_type,
                prefix=prefix,
                last_number=0,
            )
            self.session.add(sequence)
            await self.session.flush()
            sequence = (await self.session.execute(stmt)).scalar_one()

        sequence.last_number += 1
        await self.session.flush()
        return sequence.last_number


async def get_document_number(
    session: AsyncSession,
    document_type: str,
    company_code: str | None = None,
    project_code: str | None = None,
) -> str:
    """Convenience function to generate a document code."""
    generator = DocumentNumberGenerator(session)
    return await generator.generate(document_type, company_code, project_code)
