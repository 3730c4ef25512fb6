"""Pending action specific exceptions."""

from claimledger.modules.common.exceptions import EffectFailedError, EngineError


class ActionError(EngineError):
    """Base class for pending action errors."""


class ActionNotFoundError(ActionError):
    """No pending action with this id belongs to the caller."""

    code = "ACTION_NOT_FOUND"


class ActionConflictError(ActionError):
    """Another caller already started or finished this action."""

    code = "ACTION_CONFLICT"


class ActionEffectFailedError(EffectFailedError):
    """The action was taken for execution but its effect failed."""


class ActionAlreadyResolvedError(ActionError):
    """The action is not awaiting reconciliation or was already resolved."""

    code = "ALREADY_RESOLVED"
