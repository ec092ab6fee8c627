"""Purchase order state machine."""

from enum import StrEnum

from src.core.config import settings
from src.core.exceptions import InvalidTransitionError
from src.modules.procurement.models import PurchaseOrderStatus


class PurchaseOrderAction(StrEnum):
    APPROVE_SPV = "approve_spv"
    APPROVE_FINANCE = "approve_finance"
    REJECT = "reject"
    PAY = "pay"


S = PurchaseOrderStatus
A = PurchaseOrderAction

TRANSITIONS: dict[tuple[PurchaseOrderStatus, PurchaseOrderAction], PurchaseOrderStatus] = {
    (S.SUBMITTED, A.APPROVE_SPV): S.APPROVED_SPV,
    (S.SUBMITTED, A.REJECT): S.REJECTED,
    (S.APPROVED_SPV, A.APPROVE_FINANCE): S.APPROVED_FINANCE,
    (S.APPROVED_SPV, A.REJECT): S.REJECTED,
    (S.APPROVED_FINANCE, A.PAY): S.PAID,
}

# Only used when finance may approve without a supervisor step.
DIRECT_FINANCE_TRANSITION = {(S.SUBMITTED, A.APPROVE_FINANCE): S.APPROVED_FINANCE}


def allowed_transitions(
    spv_required: bool | None = None,
) -> dict[tuple[PurchaseOrderStatus, PurchaseOrderAction], PurchaseOrderStatus]:
    if spv_required is None:
        spv_required = settings.finance_requires_spv_approval
    if spv_required:
        return TRANSITIONS
    return {**TRANSITIONS, **DIRECT_FINANCE_TRANSITION}


def next_status(
    current: str,
    action: str,
    spv_required: bool | None = None,
) -> PurchaseOrderStatus:
    """
    Resolve the status an action leads to.

    Raises InvalidTransitionError for any pair missing from the table,
    including unknown statuses and actions.
    """
    try:
        key = (PurchaseOrderStatus(current), PurchaseOrderAction(action))
    except ValueError:
        raise InvalidTransitionError(str(current), str(action)) from None

    target = allowed_transitions(spv_required).get(key)
    if target is None:
        raise InvalidTransitionError(key[0].value, key[1].value)
    return target


def available_actions(current: str, spv_required: bool | None = None) -> list[str]:
    """Actions a caller may take next; pay is listed but only the payment flow performs it."""
    return [
        action.value
        for (status, action) in allowed_transitions(spv_required)
        if status == current
    ]
