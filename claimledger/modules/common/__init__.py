"""Shared primitives for the feature modules."""

from .effects import EffectResult, StateMutator
from .exceptions import EffectFailedError, EngineError, ValidationError
from .subjects import normalize_subject, utcnow

__all__ = [
    "EffectResult",
    "StateMutator",
    "EngineError",
    "ValidationError",
    "EffectFailedError",
    "normalize_subject",
    "utcnow",
]
