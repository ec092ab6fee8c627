"""Administration of numbering templates and counters."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.service import AuditAction, AuditService
from src.core.auth.schemas import Actor
from src.core.database.session import unit_of_work
from src.core.documents.models import DocumentSequence, NumberingSequence
from src.core.documents.number_generator import (
    AllocatedNumber,
    DocumentNumberGenerator,
    validate_template,
)
from src.core.documents.schemas import NumberingSequenceCreate, ResetSequenceRequest
from src.core.exceptions import ValidationError


class NumberingService:
    """Service for numbering templates, counters and explicit allocation."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditService(db)
        self.generator = DocumentNumberGenerator(db)

    async def save_template(
        self, data: NumberingSequenceCreate, actor: Actor
    ) -> NumberingSequence:
        """Create or update the template for a document type."""
        validate_template(data.prefix)
        sequence_code = data.sequence_code.strip().upper()

        async with unit_of_work(self.db):
            template = await self.db.scalar(
                select(NumberingSequence).where(
                    NumberingSequence.sequence_code == sequence_code
                )
            )
            old_values = None
            if template is None:
                template = NumberingSequence(sequence_code=sequence_code)
                self.db.add(template)
                action = AuditAction.CREATE
            else:
                old_values = {"prefix": template.prefix, "padding": template.padding}
                action = AuditAction.UPDATE
            template.prefix = data.prefix
            template.padding = data.padding
            template.description = data.description
            await self.db.flush()

            await self.audit.log(
                actor=actor,
                action=action,
                resource_type="numbering_sequence",
                resource_id=sequence_code,
                old_values=old_values,
                new_values={"prefix": data.prefix, "padding": data.padding},
            )
        await self.db.refresh(template)
        return template

    async def list_templates(self) -> list[NumberingSequence]:
        result = await self.db.execute(
            select(NumberingSequence).order_by(NumberingSequence.sequence_code)
        )
        return list(result.scalars().all())

    async def list_counters(self, document_type: str | None = None) -> list[DocumentSequence]:
        query = select(DocumentSequence).order_by(
            DocumentSequence.document_type,
            DocumentSequence.prefix,
        )
        if document_type:
            query = query.where(DocumentSequence.document_type == document_type.upper())
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def allocate(
        self,
        document_type: str,
        actor: Actor,
        company_code: str | None = None,
        project_code: str | None = None,
    ) -> AllocatedNumber:
        """Allocate a number outside of any document flow (audited)."""
        async with unit_of_work(self.db):
            allocated = await self.generator.allocate(document_type, company_code, project_code)
            await self.audit.log(
                actor=actor,
                action=AuditAction.ALLOCATE,
                resource_type="numbering_sequence",
                resource_id=allocated.document_type,
                new_values={"code": allocated.code, "number": allocated.number},
            )
        return allocated

    async def reset_counter(self, data: ResetSequenceRequest, actor: Actor) -> DocumentSequence:
        """
        Move a counter forward so the next allocation returns next_number.

        The counter is the one the scope renders to today.
        """
        document_type = data.document_type.strip().upper()

        async with unit_of_work(self.db):
            prefix, _ = await self.generator.resolve_prefix(
                document_type, data.company_code, data.project_code
            )
            sequence = await self.db.scalar(
                select(DocumentSequence)
                .where(
                    DocumentSequence.document_type == document_type,
                    DocumentSequence.prefix == prefix,
                )
                .with_for_update()
                .execution_options(populate_existing=True)
            )
            if sequence is None:
                sequence = DocumentSequence(
                    document_type=document_type,
                    prefix=prefix,
                    last_number=0,
                )
                self.db.add(sequence)
                await self.db.flush()

            old_last = sequence.last_number
            if data.next_number <= old_last:
                raise ValidationError(
                    f"Sequence can only move forward: next number must be greater than {old_last}",
                    field="next_number",
                )
            sequence.last_number = data.next_number - 1
            await self.db.flush()

            await self.audit.log(
                actor=actor,
                action=AuditAction.RESET,
                resource_type="numbering_sequence",
                resource_id=document_type,
                old_values={"last_number": old_last},
                new_values={"last_number": sequence.last_number},
                notes=f"prefix {prefix}",
            )
        return sequence
