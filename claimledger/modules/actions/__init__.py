"""Pending actions and their single-execution coordinator."""

from .exceptions import (
    ActionAlreadyResolvedError,
    ActionConflictError,
    ActionEffectFailedError,
    ActionError,
    ActionNotFoundError,
)
from .models import ActionResolution, ActionStatus, PendingActionRecord
from .service import PendingActionService

__all__ = [
    "ActionAlreadyResolvedError",
    "ActionConflictError",
    "ActionEffectFailedError",
    "ActionError",
    "ActionNotFoundError",
    "ActionResolution",
    "ActionStatus",
    "PendingActionRecord",
    "PendingActionService",
]
