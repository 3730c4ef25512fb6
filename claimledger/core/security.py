"""JWT helpers for principals calling the HTTP API."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from claimledger.core.config import Settings, get_settings

ROLE_SUBJECT = "subject"
ROLE_ISSUER = "issuer"
ROLE_OPERATOR = "operator"

# higher roles may do everything lower roles can
ROLE_RANK = {ROLE_SUBJECT: 0, ROLE_ISSUER: 1, ROLE_OPERATOR: 2}


class TokenError(Exception):
    """The bearer token is missing, malformed, expired or incomplete."""


@dataclass(slots=True, frozen=True)
class Principal:
    subject: str
    role: str

    def has_role(self, role: str) -> bool:
        return ROLE_RANK.get(self.role, -1) >= ROLE_RANK[role]


def create_access_token(
    subject: str,
    role: str,
    settings: Optional[Settings] = None,
    expires_delta: Optional[timedelta] = None,
) -> str:
    if role not in ROLE_RANK:
        raise ValueError(f"unknown role {role!r}")
    settings = settings or get_settings()
    expire_delta = expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": subject,
        "role": role,
        "exp": datetime.now(timezone.utc) + expire_delta,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> Principal:
    settings = settings or get_settings()
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    except JWTError as exc:
        raise TokenError("could not validate credentials") from exc

    subject = payload.get("sub")
    role = payload.get("role")
    if not subject or role not in ROLE_RANK:
        raise TokenError("could not validate credentials")
    return Principal(subject=subject, role=role)
