"""Subject identity and clock helpers."""

from __future__ import annotations

import re
from datetime import datetime, timezone

from .exceptions import ValidationError

_SUBJECT_RE = re.compile(r"^[A-Za-z0-9:._@\-]{1,128}$")


class InvalidSubjectError(ValidationError):
    """Subject identity is malformed."""

    code = "INVALID_SUBJECT"


def normalize_subject(subject: str) -> str:
    """Return the canonical (lower-cased) form of a subject identity.

    Wallet addresses arrive in mixed checksum case from clients, so every
    comparison and every stored row uses the lower-cased value.
    """
    if not isinstance(subject, str):
        raise InvalidSubjectError("subject must be a string")
    value = subject.strip()
    if not _SUBJECT_RE.match(value):
        raise InvalidSubjectError(f"invalid subject: {subject!r}")
    return value.lower()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
