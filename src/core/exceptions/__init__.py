from src.core.exceptions.base import (
    AppException,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    DuplicateError,
    QuantityExceededError,
    InvalidTransitionError,
    AlreadyPaidError,
    NotFinanceApprovedError,
    SequenceUnavailableError,
    PostingError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "DuplicateError",
    "QuantityExceededError",
    "InvalidTransitionError",
    "AlreadyPaidError",
    "NotFinanceApprovedError",
    "SequenceUnavailableError",
    "PostingError",
]
