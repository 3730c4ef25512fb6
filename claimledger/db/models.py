"""SQLAlchemy ORM models."""
import uuid

from sqlalchemy import BigInteger, Boolean, Column, DateTime, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.sql import func

from claimledger.infrastructure.database.base import Base


def generate_uuid() -> str:
    return str(uuid.uuid4())


class ClaimRecord(Base):
    __tablename__ = "claim_records"

    claim_id = Column(String(36), primary_key=True, default=generate_uuid)
    subject = Column(String(128), nullable=False, index=True)
    # decimal string, never a float
    amount = Column(String(80), nullable=False)
    purpose = Column(String(32), nullable=False)
    meta = Column(Text)
    signer = Column(String(64), nullable=False)
    # unix seconds
    expires_at = Column(BigInteger, nullable=False, index=True)
    used = Column(Boolean, nullable=False, default=False)
    used_at = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    effect_status = Column(String(20), nullable=False, default="unconsumed")  # unconsumed, applying, applied, failed
    effect_error = Column(Text)
    effect_reference = Column(String(36))
    effect_updated_at = Column(DateTime(timezone=True))

    resolution = Column(String(32))  # reissued, manually_applied, written_off
    resolved_by = Column(String(128))
    resolved_at = Column(DateTime(timezone=True))
    resolution_note = Column(Text)
    reissued_claim_id = Column(String(36))

    __table_args__ = (Index("ix_claim_records_used_expires_at", "used", "expires_at"),)


class ClaimAttempt(Base):
    __tablename__ = "claim_attempts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    claim_id = Column(String(36), index=True)
    subject = Column(String(128), index=True)
    outcome = Column(String(40), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class PendingAction(Base):
    __tablename__ = "pending_actions"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    subject = Column(String(128), nullable=False, index=True)
    action_type = Column(String(50), nullable=False)
    payload = Column(Text, nullable=False, default="{}")
    status = Column(String(20), nullable=False, default="pending", index=True)  # pending, executing, executed, failed
    execution_token = Column(String(36), unique=True)
    tx_hash = Column(String(130))
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    started_at = Column(DateTime(timezone=True))
    executed_at = Column(DateTime(timezone=True))

    resolution = Column(String(32))
    resolved_by = Column(String(128))
    resolved_at = Column(DateTime(timezone=True))
    resolution_note = Column(Text)


class ExternalTransaction(Base):
    __tablename__ = "external_transactions"

    # lower-cased; the primary key is the replay guard
    tx_hash = Column(String(130), primary_key=True)
    subject = Column(String(128), nullable=False, index=True)
    meta = Column(Text)
    action_id = Column(String(36), index=True)
    recorded_at = Column(DateTime(timezone=True), server_default=func.now())


class BalanceEntry(Base):
    __tablename__ = "balance_entries"

    id = Column(String(36), primary_key=True, default=generate_uuid)
    subject = Column(String(128), nullable=False, index=True)
    amount = Column(String(80), nullable=False)
    source = Column(String(20), nullable=False)  # claim, action, reference
    reference = Column(String(130))
    description = Column(String(255))
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # one credit per claim / action / transaction reference
    __table_args__ = (UniqueConstraint("source", "reference", name="uq_balance_entries_source_reference"),)
