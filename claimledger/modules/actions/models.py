"""Domain models for pending actions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Optional


class ActionStatus(str, Enum):
    PENDING = "pending"
    EXECUTING = "executing"
    EXECUTED = "executed"
    FAILED = "failed"


class ActionResolution(str, Enum):
    MANUALLY_APPLIED = "manually_applied"
    WRITTEN_OFF = "written_off"


@dataclass(slots=True)
class PendingActionRecord:
    id: str
    subject: str
    action_type: str
    status: str
    payload: dict[str, Any] = field(default_factory=dict)
    execution_token: Optional[str] = None
    tx_hash: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    executed_at: Optional[datetime] = None
    resolution: Optional[str] = None
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolution_note: Optional[str] = None
