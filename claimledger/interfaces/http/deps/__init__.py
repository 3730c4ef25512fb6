"""Reusable FastAPI dependencies."""

from .container import get_container
from .principal import get_current_principal, require_role

__all__ = [
    "get_container",
    "get_current_principal",
    "require_role",
]
