"""Stateless claim signature verification.

Verification only answers "did the authorized signer produce this exact
payload, and is it still fresh". Whether the claim was already consumed is
the ledger's business, so this class touches no storage and can run on any
instance in parallel.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

from claimledger.core.crypto import SignatureFormatError, domain_digest, recover_signer
from claimledger.modules.common.exceptions import ValidationError

from .exceptions import ClaimExpiredError, InvalidAmountError, InvalidSignatureError
from .models import ClaimPayload

logger = logging.getLogger(__name__)

_AMOUNT_RE = re.compile(r"^(0|[1-9][0-9]*)$")


def parse_amount(value: Any) -> int:
    """Parse a canonical non-negative decimal string into an int."""
    if not isinstance(value, str) or not _AMOUNT_RE.match(value):
        raise InvalidAmountError(f"amount must be a canonical decimal string, got {value!r}")
    return int(value)


def coerce_payload(data: Mapping[str, Any] | ClaimPayload) -> ClaimPayload:
    if isinstance(data, ClaimPayload):
        payload = data
    else:
        try:
            payload = ClaimPayload.from_mapping(dict(data))
        except (KeyError, TypeError) as exc:
            raise ValidationError(f"malformed claim payload: {exc}") from exc
    if not isinstance(payload.claim_id, str) or not payload.claim_id:
        raise ValidationError("claim_id must be a non-empty string")
    if not isinstance(payload.subject, str) or not payload.subject:
        raise ValidationError("subject must be a non-empty string")
    if isinstance(payload.expires_at, bool) or not isinstance(payload.expires_at, int):
        raise ValidationError("expires_at must be an integer unix timestamp")
    parse_amount(payload.amount)
    return payload


@dataclass(slots=True)
class ClaimVerifier:
    domain: Mapping[str, str]
    authorized_signer: str
    clock_skew_seconds: int = 30
    clock: Callable[[], float] = field(default=time.time)

    def digest(self, payload: ClaimPayload) -> bytes:
        return domain_digest(self.domain, payload.as_message())

    def recover(self, payload: Mapping[str, Any] | ClaimPayload, signature: str) -> str:
        """Return the public key that signed ``payload``; raises on any failure."""
        payload = coerce_payload(payload)
        try:
            signer = recover_signer(self.digest(payload), signature)
        except SignatureFormatError as exc:
            raise InvalidSignatureError(f"malformed signature: {exc}") from exc
        if signer is None:
            raise InvalidSignatureError("signature does not match payload")
        return signer

    def verify(self, payload: Mapping[str, Any] | ClaimPayload, signature: str) -> str:
        """Authenticate and freshness-check a claim; returns its subject."""
        payload = coerce_payload(payload)
        signer = self.recover(payload, signature)
        if signer != self.authorized_signer.lower():
            logger.warning("Claim %s signed by unauthorized key %s", payload.claim_id, signer)
            raise InvalidSignatureError("signature not produced by the authorized signer")

        now = self.clock()
        if now > payload.expires_at + self.clock_skew_seconds:
            raise ClaimExpiredError(
                f"claim {payload.claim_id} expired at {payload.expires_at}",
                claim_id=payload.claim_id,
            )
        return payload.subject
