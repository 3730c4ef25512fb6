"""Feature modules and their public exports."""

from . import actions, balances, claims, common, references

__all__ = [
    "actions",
    "balances",
    "claims",
    "common",
    "references",
]
