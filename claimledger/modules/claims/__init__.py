"""Signed claim issuance, verification and consumption."""

from .calculator import AmountCalculator, RewardScheduleCalculator
from .exceptions import (
    AmountMismatchError,
    ClaimAlreadyResolvedError,
    ClaimAlreadyUsedError,
    ClaimEffectFailedError,
    ClaimError,
    ClaimExpiredError,
    ClaimNotFoundError,
    ClaimPersistenceError,
    ComputationError,
    InvalidAmountError,
    InvalidSignatureError,
    SubjectMismatchError,
)
from .models import (
    ClaimPayload,
    ClaimPurpose,
    ClaimReceipt,
    ClaimRecord,
    ClaimResolution,
    ClaimStats,
    EffectStatus,
    SignedClaim,
)
from .service import ClaimService, ResolutionOutcome
from .signer import ClaimSigner
from .verifier import ClaimVerifier

__all__ = [
    "AmountCalculator",
    "RewardScheduleCalculator",
    "AmountMismatchError",
    "ClaimAlreadyResolvedError",
    "ClaimAlreadyUsedError",
    "ClaimEffectFailedError",
    "ClaimError",
    "ClaimExpiredError",
    "ClaimNotFoundError",
    "ClaimPersistenceError",
    "ComputationError",
    "InvalidAmountError",
    "InvalidSignatureError",
    "SubjectMismatchError",
    "ClaimPayload",
    "ClaimPurpose",
    "ClaimReceipt",
    "ClaimRecord",
    "ClaimResolution",
    "ClaimStats",
    "EffectStatus",
    "SignedClaim",
    "ClaimService",
    "ResolutionOutcome",
    "ClaimSigner",
    "ClaimVerifier",
]
