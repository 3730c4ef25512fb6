"""External reference specific exceptions."""

from claimledger.modules.common.exceptions import EffectFailedError, EngineError, ValidationError


class ExternalReferenceError(EngineError):
    """Base class for external reference errors."""


class InvalidReferenceError(ValidationError):
    """Reference is malformed or the ledger does not confirm it."""

    code = "INVALID_REFERENCE"


class DuplicateReferenceError(ExternalReferenceError):
    """The reference was already recorded."""

    code = "DUPLICATE_REFERENCE"


class ReferenceMismatchError(ExternalReferenceError):
    """The ledger attributes the reference to a different subject."""

    code = "REFERENCE_MISMATCH"


class ReferenceEffectFailedError(EffectFailedError):
    """The effect for a reference failed; nothing was recorded."""
