from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found."""

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier:
            message = f"{resource} with code={identifier} not found"
        super().__init__(message=message, status_code=404)


class ValidationError(AppException):
    """Validation error."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class AuthenticationError(AppException):
    """Caller identity missing."""

    def __init__(self, message: str = "Actor identity required"):
        super().__init__(message=message, status_code=401)


class DuplicateError(AppException):
    """Duplicate resource."""

    def __init__(self, resource: str, field: str, value: Any):
        message = f"{resource} with {field}={value} already exists"
        super().__init__(message=message, status_code=409, details={"field": field, "value": value})


class QuantityExceededError(AppException):
    """Requested quantity is more than what is left on the sales order line."""

    def __init__(
        self,
        so_item_code: str,
        product_code: str,
        requested: int,
        remaining: int,
    ):
        message = (
            f"Quantity exceeds remaining for {so_item_code} ({product_code}): "
            f"requested {requested}, remaining {remaining}"
        )
        super().__init__(
            message=message,
            status_code=400,
            details={
                "field": "items",
                "so_item_code": so_item_code,
                "product_code": product_code,
                "requested": requested,
                "remaining": remaining,
            },
        )


class InvalidTransitionError(AppException):
    """Status change not allowed from the current status."""

    def __init__(self, current_status: str, action: str):
        message = f"Cannot {action} a purchase order with status '{current_status}'"
        super().__init__(
            message=message,
            status_code=409,
            details={"current_status": current_status, "action": action},
        )


class AlreadyPaidError(AppException):
    """Purchase order already has a payment."""

    def __init__(self, po_code: str):
        super().__init__(
            message=f"Purchase order {po_code} is already paid",
            status_code=409,
            details={"po_code": po_code},
        )


class NotFinanceApprovedError(AppException):
    """Payment attempted before finance approval."""

    def __init__(self, po_code: str, current_status: str):
        super().__init__(
            message=(
                f"Only finance-approved purchase orders can be paid "
                f"({po_code} is '{current_status}')"
            ),
            status_code=409,
            details={"po_code": po_code, "current_status": current_status},
        )


class SequenceUnavailableError(AppException):
    """Counter store could not allocate a number."""

    def __init__(self, document_type: str, message: str | None = None):
        super().__init__(
            message=message or f"Numbering sequence for {document_type} is unavailable",
            status_code=503,
            details={"document_type": document_type},
        )


class PostingError(AppException):
    """AP invoice or journal entry could not be recorded."""

    def __init__(self, message: str, reference: str | None = None):
        details = {"reference": reference} if reference else {}
        super().__init__(message=message, status_code=500, details=details)
