"""External ledger references and the replay guard."""

from .exceptions import (
    DuplicateReferenceError,
    ExternalReferenceError,
    InvalidReferenceError,
    ReferenceEffectFailedError,
    ReferenceMismatchError,
)
from .models import ExternalTxRecord, LedgerVerification, ReferenceAcceptance
from .service import ReplayGuard, normalize_tx_hash
from .verifier import LedgerVerifier

__all__ = [
    "DuplicateReferenceError",
    "ExternalReferenceError",
    "InvalidReferenceError",
    "ReferenceEffectFailedError",
    "ReferenceMismatchError",
    "ExternalTxRecord",
    "LedgerVerification",
    "ReferenceAcceptance",
    "ReplayGuard",
    "normalize_tx_hash",
    "LedgerVerifier",
]
