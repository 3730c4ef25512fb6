import pytest
import pytest_asyncio

from claimledger.core.config import Settings
from claimledger.core.container import build_container
from claimledger.infrastructure.database.session import init_db
from claimledger.modules.balances import BalanceService, SqlBalanceMutator
from claimledger.modules.common.effects import EffectResult
from claimledger.modules.references import LedgerVerification

SIGNER_SEED = "7f" * 32
OTHER_SEED = "3c" * 32


def make_settings(tmp_path, **claims) -> Settings:
    return Settings(
        environment="test",
        database={"url": f"sqlite+aiosqlite:///{tmp_path / 'claims.db'}", "busy_timeout": 30},
        security={"secret_key": "test-secret-key-123"},
        signing={"private_key_seed": SIGNER_SEED, "network": "testnet"},
        claims=claims,
    )


class StaticLedgerVerifier:
    """Ledger double: every hash is confirmed for ``subject`` unless listed as rejected."""

    def __init__(self, subject="0xaaa", metadata=None, rejected=()):
        self.subject = subject
        self.metadata = dict(metadata or {})
        self.rejected = set(rejected)
        self.calls = []

    async def verify_reference(self, tx_hash):
        self.calls.append(tx_hash)
        if tx_hash in self.rejected:
            return LedgerVerification(valid=False, reason="unknown transaction")
        return LedgerVerification(valid=True, subject=self.subject, metadata=dict(self.metadata))


class FailingMutator(SqlBalanceMutator):
    """Balance mutator whose credits blow up, as a broken downstream would."""

    def __init__(self):
        self.attempts = 0

    async def credit(self, session, *, subject, amount, source, reference):
        self.attempts += 1
        raise RuntimeError("balance store unavailable")


class DecliningMutator(SqlBalanceMutator):
    async def apply_action(self, session, action):
        return EffectResult(applied=False, detail={"reason": "upgrade slot locked"})


async def balance_of(container, subject):
    async with container.session_factory() as session:
        return (await BalanceService.with_session(session).get_balance(subject)).balance


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def ledger():
    return StaticLedgerVerifier(metadata={"amount": 50})


@pytest_asyncio.fixture
async def container(settings, ledger):
    container = build_container(settings, ledger_verifier=ledger)
    await init_db(container.engine)
    yield container
    await container.dispose()
