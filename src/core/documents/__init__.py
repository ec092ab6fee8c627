from src.core.documents.models import DocumentSequence, NumberingSequence
from src.core.documents.number_generator import (
    AllocatedNumber,
    DocumentNumberGenerator,
    get_document_number,
)

__all__ = [
    "DocumentSequence",
    "NumberingSequence",
    "AllocatedNumber",
    "DocumentNumberGenerator",
    "get_document_number",
]
