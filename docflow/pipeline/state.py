from docflow.database.models import FORWARD_ORDER, DocumentStatus
from docflow.pipeline.exceptions import InvalidTransitionError

# Each completion status maps to the pending status that must precede it.
_COMPLETES: dict[DocumentStatus, DocumentStatus] = {
    FORWARD_ORDER[i + 1]: status
    for i, status in enumerate(FORWARD_ORDER[:-1])
    if status.is_pending
}


def ensure_transition(current: DocumentStatus, target: DocumentStatus) -> None:
    """Validate one status change.

    Pending statuses may always be entered (forward progress or re-entry).
    A completion status requires its own pending status. Failed requires a
    non-terminal status.

    Raises:
        InvalidTransitionError: when the change is not allowed.
    """
    if target is DocumentStatus.FAILED:
        if current.is_terminal:
            raise InvalidTransitionError(f"Cannot fail a document in terminal state {current.value}")
        return
    if target.is_pending:
        return
    required = _COMPLETES.get(target)
    if required is None or current is not required:
        raise InvalidTransitionError(f"Cannot move from {current.value} to {target.value}")
