"""Dependency container wiring the engine's services together."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from claimledger.core.config import Settings, get_settings
from claimledger.core.crypto import Ed25519KeyManager
from claimledger.infrastructure.database.session import build_engine, build_session_factory
from claimledger.infrastructure.ledger import JsonRpcLedgerVerifier
from claimledger.modules.actions import PendingActionService
from claimledger.modules.balances import SqlBalanceMutator
from claimledger.modules.claims import AmountCalculator, ClaimService, ClaimSigner, ClaimVerifier, RewardScheduleCalculator
from claimledger.modules.common.effects import StateMutator
from claimledger.modules.references import LedgerVerifier, ReplayGuard

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ApplicationContainer:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    key_manager: Ed25519KeyManager
    calculator: AmountCalculator
    mutator: StateMutator
    ledger_verifier: LedgerVerifier | None
    signer: ClaimSigner
    verifier: ClaimVerifier
    claim_service: ClaimService
    replay_guard: ReplayGuard
    action_service: PendingActionService

    async def dispose(self) -> None:
        await self.engine.dispose()


def load_key_manager(settings: Settings) -> Ed25519KeyManager:
    """Load the claim signing key from a seed or a PEM file.

    Development and test environments fall back to an ephemeral key; any
    claim it signed becomes unverifiable on restart.
    """
    signing = settings.signing
    if signing.private_key_seed:
        return Ed25519KeyManager.from_seed_hex(signing.private_key_seed)
    if signing.private_key_path:
        return Ed25519KeyManager.from_file(signing.private_key_path)
    if settings.environment in {"development", "test"}:
        logger.warning("No signing key configured; using an ephemeral key")
        return Ed25519KeyManager.generate()
    raise RuntimeError("signing.private_key_seed or signing.private_key_path must be configured")


def build_ledger_verifier(settings: Settings) -> LedgerVerifier | None:
    if not settings.ledger.rpc_url:
        return None
    return JsonRpcLedgerVerifier(
        settings.ledger.rpc_url,
        target_address=settings.ledger.target_address,
        confirmations=settings.ledger.confirmations,
        timeout=settings.ledger.timeout_seconds,
    )


def build_container(settings: Settings | None = None, **overrides: Any) -> ApplicationContainer:
    """Build every service from settings; keyword overrides replace collaborators.

    Recognised overrides: ``engine``, ``key_manager``, ``calculator``,
    ``mutator``, ``ledger_verifier`` and ``clock``.
    """
    settings = settings or get_settings()
    unknown = set(overrides) - {"engine", "key_manager", "calculator", "mutator", "ledger_verifier", "clock"}
    if unknown:
        raise TypeError(f"unknown container overrides: {sorted(unknown)}")

    engine = overrides.get("engine") or build_engine(settings)
    session_factory = build_session_factory(engine)
    key_manager = overrides.get("key_manager") or load_key_manager(settings)
    calculator = overrides.get("calculator") or RewardScheduleCalculator(
        base_reward=settings.claims.base_reward,
        achievement_reward=settings.claims.achievement_reward,
    )
    mutator = overrides.get("mutator") or SqlBalanceMutator()
    if "ledger_verifier" in overrides:
        ledger_verifier = overrides["ledger_verifier"]
    else:
        ledger_verifier = build_ledger_verifier(settings)
    clock_kwargs = {"clock": overrides["clock"]} if overrides.get("clock") else {}

    domain = settings.signing_domain
    authorized_signer = settings.signing.authorized_signer or key_manager.public_key_hex
    if authorized_signer.lower() != key_manager.public_key_hex:
        logger.warning("Authorized signer %s differs from the local signing key", authorized_signer)

    signer = ClaimSigner(
        session_factory=session_factory,
        key_manager=key_manager,
        calculator=calculator,
        domain=domain,
        ttl_seconds=settings.claims.ttl_seconds,
        persist_timeout_seconds=settings.claims.persist_timeout_seconds,
        **clock_kwargs,
    )
    verifier = ClaimVerifier(
        domain=domain,
        authorized_signer=authorized_signer,
        clock_skew_seconds=settings.claims.clock_skew_seconds,
        **clock_kwargs,
    )
    claim_service = ClaimService(
        session_factory=session_factory,
        verifier=verifier,
        mutator=mutator,
        signer=signer,
        gc_grace_seconds=settings.claims.gc_grace_seconds,
        stalled_after_seconds=settings.claims.stalled_after_seconds,
        **clock_kwargs,
    )
    replay_guard = ReplayGuard(session_factory=session_factory, mutator=mutator, verifier=ledger_verifier)
    action_service = PendingActionService(
        session_factory=session_factory,
        mutator=mutator,
        replay_guard=replay_guard,
        stalled_after_seconds=settings.claims.stalled_after_seconds,
    )
    return ApplicationContainer(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        key_manager=key_manager,
        calculator=calculator,
        mutator=mutator,
        ledger_verifier=ledger_verifier,
        signer=signer,
        verifier=verifier,
        claim_service=claim_service,
        replay_guard=replay_guard,
        action_service=action_service,
    )


__all__ = ["ApplicationContainer", "build_container", "build_ledger_verifier", "load_key_manager"]
