"""Claim domain specific exceptions."""

from claimledger.modules.common.exceptions import EffectFailedError, EngineError, ValidationError


class ClaimError(EngineError):
    """Base class for claim related errors."""


class ComputationError(ValidationError):
    """The authoritative amount could not be computed."""

    code = "COMPUTATION_ERROR"


class InvalidAmountError(ValidationError):
    """Amount is not a non-negative decimal integer."""

    code = "INVALID_AMOUNT"


class ClaimPersistenceError(ClaimError):
    """The claim record could not be durably written; nothing was signed."""

    code = "PERSISTENCE_FAILED"


class InvalidSignatureError(ClaimError):
    """Signature does not verify or was not produced by the authorized signer."""

    code = "INVALID_SIGNATURE"


class ClaimExpiredError(ClaimError):
    """The claim is past its expiry."""

    code = "SIGNATURE_EXPIRED"


class ClaimNotFoundError(ClaimError):
    """No claim with this id exists."""

    code = "CLAIM_NOT_FOUND"


class ClaimAlreadyUsedError(ClaimError):
    """The claim was already consumed by another request."""

    code = "CLAIM_ALREADY_USED"


class AmountMismatchError(ClaimError):
    """Payload amount differs from the amount recorded at issuance."""

    code = "AMOUNT_MISMATCH"


class SubjectMismatchError(ClaimError):
    """Payload subject differs from the subject recorded at issuance."""

    code = "UNAUTHORIZED_SUBJECT"


class ClaimEffectFailedError(EffectFailedError):
    """The claim is consumed but its credit failed; needs reconciliation."""


class ClaimAlreadyResolvedError(ClaimError):
    """The claim is not awaiting reconciliation or was already resolved."""

    code = "ALREADY_RESOLVED"
