"""create claim ledger, pending action, reference and balance tables

Revision ID: 20261018_01
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "claim_records",
        sa.Column("claim_id", sa.String(length=36), primary_key=True),
        sa.Column("subject", sa.String(length=128), nullable=False),
        sa.Column("amount", sa.String(length=80), nullable=False),
        sa.Column("purpose", sa.String(length=32), nullable=False),
        sa.Column("meta", sa.Text(), nullable=True),
        sa.Column("signer", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.BigInteger(), nullable=False),
        sa.Column("used", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("effect_status", sa.String(length=20), nullable=False, server_default="unconsumed"),
        sa.Column("effect_error", sa.Text(), nullable=True),
        sa.Column("effect_reference", sa.String(length=36), nullable=True),
        sa.Column("effect_updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution", sa.String(length=32), nullable=True),
        sa.Column("resolved_by", sa.String(length=128), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_note", sa.Text(), nullable=True),
        sa.Column("reissued_claim_id", sa.String(length=36), nullable=True),
    )
    op.create_index("ix_claim_records_subject", "claim_records", ["subject"])
    op.create_index("ix_claim_records_expires_at", "claim_records", ["expires_at"])
    op.create_index("ix_claim_records_used_expires_at", "claim_records", ["used", "expires_at"])

    op.create_table(
        "claim_attempts",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("claim_id", sa.String(length=36), nullable=True),
        sa.Column("subject", sa.String(length=128), nullable=True),
        sa.Column("outcome", sa.String(length=40), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_claim_attempts_claim_id", "claim_attempts", ["claim_id"])
    op.create_index("ix_claim_attempts_subject", "claim_attempts", ["subject"])

    op.create_table(
        "pending_actions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("subject", sa.String(length=128), nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("payload", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("execution_token", sa.String(length=36), nullable=True, unique=True),
        sa.Column("tx_hash", sa.String(length=130), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("executed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution", sa.String(length=32), nullable=True),
        sa.Column("resolved_by", sa.String(length=128), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_note", sa.Text(), nullable=True),
    )
    op.create_index("ix_pending_actions_subject", "pending_actions", ["subject"])
    op.create_index("ix_pending_actions_status", "pending_actions", ["status"])

    op.create_table(
        "external_transactions",
        sa.Column("tx_hash", sa.String(length=130), primary_key=True),
        sa.Column("subject", sa.String(length=128), nullable=False),
        sa.Column("meta", sa.Text(), nullable=True),
        sa.Column("action_id", sa.String(length=36), nullable=True),
        sa.Column("recorded_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_external_transactions_subject", "external_transactions", ["subject"])
    op.create_index("ix_external_transactions_action_id", "external_transactions", ["action_id"])

    op.create_table(
        "balance_entries",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("subject", sa.String(length=128), nullable=False),
        sa.Column("amount", sa.String(length=80), nullable=False),
        sa.Column("source", sa.String(length=20), nullable=False),
        sa.Column("reference", sa.String(length=130), nullable=True),
        sa.Column("description", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint("source", "reference", name="uq_balance_entries_source_reference"),
    )
    op.create_index("ix_balance_entries_subject", "balance_entries", ["subject"])


def downgrade() -> None:
    op.drop_index("ix_balance_entries_subject", table_name="balance_entries")
    op.drop_table("balance_entries")
    op.drop_index("ix_external_transactions_action_id", table_name="external_transactions")
    op.drop_index("ix_external_transactions_subject", table_name="external_transactions")
    op.drop_table("external_transactions")
    op.drop_index("ix_pending_actions_status", table_name="pending_actions")
    op.drop_index("ix_pending_actions_subject", table_name="pending_actions")
    op.drop_table("pending_actions")
    op.drop_index("ix_claim_attempts_subject", table_name="claim_attempts")
    op.drop_index("ix_claim_attempts_claim_id", table_name="claim_attempts")
    op.drop_table("claim_attempts")
    op.drop_index("ix_claim_records_used_expires_at", table_name="claim_records")
    op.drop_index("ix_claim_records_expires_at", table_name="claim_records")
    op.drop_index("ix_claim_records_subject", table_name="claim_records")
    op.drop_table("claim_records")
