"""Shared fixtures and in-memory collaborators for the submitter tests."""
import base64
import random
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from curveguard.core import BondingCurve, CurveConfig
from curveguard.core.exceptions import SubmissionError
from curveguard.execution.broadcast import (
    AtomicBundleBackend,
    SignedTransaction,
    TransactionBroadcaster,
)
from curveguard.execution.ledger import SqliteLedger
from curveguard.execution.signals import RiskSignalSource
from curveguard.models import MarketAnalysis


def b64(raw: bytes) -> str:
    return base64.b64encode(raw).decode()


class FakeBroadcaster(TransactionBroadcaster):
    """Records sends; payloads listed in `failing` never land."""

    def __init__(self, failing=(), confirm_errors=()):
        self.failing = set(failing)
        self.confirm_errors = set(confirm_errors)
        self.sent = []
        self.attempts = 0

    async def sign(self, raw: bytes) -> SignedTransaction:
        return SignedTransaction(raw=raw, signature=f"sig_{raw.decode()}")

    async def send(self, tx, max_retries=1, skip_preflight=False):
        self.attempts += 1
        if tx.raw in self.failing:
            raise SubmissionError(f"rpc rejected {tx.signature}")
        self.sent.append(tx)
        return tx.signature

    async def confirm(self, signature):
        if signature in self.confirm_errors:
            return {"err": "InstructionError"}
        return {}


class FakeAtomicBackend(AtomicBundleBackend):
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.bundles = []

    async def send_bundle(self, txs):
        if self.fail:
            raise SubmissionError("relay rejected bundle")
        self.bundles.append(list(txs))
        return "relay-bundle-1"


class StaticSignals(RiskSignalSource):
    """Fixed market signals, or a failure when `error` is set."""

    def __init__(self, analysis=None, conflicts=0, error=None):
        self.analysis = analysis or MarketAnalysis()
        self.conflicts = conflicts
        self.error = error

    async def market_analysis(self, token_address):
        if self.error:
            raise self.error
        return self.analysis

    async def mempool_conflicts(self, token_address, analysis):
        return self.conflicts


class SleepRecorder:
    def __init__(self):
        self.delays = []

    async def __call__(self, delay):
        self.delays.append(delay)


@pytest.fixture
def curve():
    return BondingCurve(CurveConfig())


@pytest.fixture
def fresh_state(curve):
    return curve.get_state(sol_raised=0, tokens_sold=0)


@pytest.fixture
def ledger():
    ledger = SqliteLedger(":memory:", curve_supply=CurveConfig().curve_supply)
    yield ledger
    ledger.close()


@pytest.fixture
def rng():
    return random.Random(42)
