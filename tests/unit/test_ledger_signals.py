# =============================================================================
# UNIT TESTS - Trade Ledger, Bundle Audit Log, Risk Signals
# =============================================================================

import asyncio
import time

import numpy as np
import pytest

from curveguard.core.exceptions import SignalSourceError
from curveguard.execution.ledger import SqliteLedger
from curveguard.execution.signals import LedgerSignalSource, analyze_trades
from curveguard.models import (
    BundleRecord,
    BundleStatus,
    BundleType,
    MarketAnalysis,
    TradeRecord,
    TradeSide,
)


def _trade(ts, amount=1.0, profit=0.0, token="mint"):
    return TradeRecord(token_address=token, amount=amount, profit_pct=profit, timestamp=ts)


class FixedRandom:
    """random() always returns the same value."""

    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


# =============================================================================
# MARKET ANALYSIS
# =============================================================================

class TestAnalyzeTrades:

    def test_empty_window(self):
        analysis = analyze_trades([])
        assert analysis == MarketAnalysis()

    def test_bot_pattern(self):
        trades = [
            _trade(100.0, amount=5, profit=10),
            _trade(100.5, amount=12, profit=-10),
            _trade(100.8, amount=15, profit=30),
            _trade(110.0, amount=1, profit=0),
        ]
        analysis = analyze_trades(trades)

        assert analysis.recent_volume == pytest.approx(33)
        assert analysis.price_volatility == pytest.approx(np.std([10, -10, 30, 0]))
        assert analysis.suspicious_activity is True
        assert analysis.large_trades == 2
        assert analysis.mev_bots_active is True
        assert analysis.trade_count == 4

    def test_single_trade_has_no_volatility(self):
        analysis = analyze_trades([_trade(100.0, profit=40)])
        assert analysis.price_volatility == 0.0
        assert analysis.suspicious_activity is False

    def test_one_fast_pair_without_large_trades(self):
        analysis = analyze_trades([_trade(100.0), _trade(100.5), _trade(105.0)])
        assert analysis.suspicious_activity is True
        assert analysis.mev_bots_active is False

    def test_one_fast_pair_with_large_trade(self):
        analysis = analyze_trades([_trade(100.0, amount=11), _trade(100.5)])
        assert analysis.mev_bots_active is True

    def test_unsorted_input(self):
        analysis = analyze_trades([_trade(105.0), _trade(100.0), _trade(100.4)])
        assert analysis.suspicious_activity is True


# =============================================================================
# LEDGER
# =============================================================================

class TestSqliteLedger:

    def test_recent_trades_window(self, ledger):
        now = time.time()

        async def run():
            await ledger.append_trade(_trade(now - 400))
            await ledger.append_trade(_trade(now - 10, amount=2.5))
            await ledger.append_trade(_trade(now - 5, token="other"))
            return await ledger.recent_trades("mint", window=300)

        trades = asyncio.run(run())
        assert len(trades) == 1
        assert trades[0].amount == 2.5
        assert trades[0].side == TradeSide.BUY

    def test_unknown_token_counters(self, ledger):
        assert asyncio.run(ledger.get_counters("nobody")) == (0.0, 0.0)

    def test_counters_floor_at_zero(self, ledger):
        async def run():
            await ledger.apply_trade("mint", 2.0, 50_000_000)
            return await ledger.apply_trade("mint", -5.0, -80_000_000)

        assert asyncio.run(run()) == (0.0, 0.0)

    def test_counters_clamped_to_curve_supply(self, ledger):
        async def run():
            await ledger.apply_trade("mint", 90.0, 790_000_000)
            await ledger.apply_trade("mint", 1.0, 20_000_000)
            return await ledger.get_counters("mint")

        sol_raised, tokens_sold = asyncio.run(run())
        assert sol_raised == pytest.approx(91.0)
        assert tokens_sold == 800_000_000

    def test_bundle_audit_round_trip(self, ledger):
        bundle = BundleRecord(
            bundle_id="bundle_1",
            wallet="wallet-a",
            bundle_type=BundleType.PRIORITY,
            transaction_count=2,
            status=BundleStatus.INCLUDED,
            signatures=["sig_a", "sig_b"],
            priority_fee=200_000,
            risk_score=35.0,
            created_at=1000.0,
        )

        async def run():
            await ledger.record_bundle(bundle)
            await ledger.record_bundle(BundleRecord(
                bundle_id="bundle_2",
                wallet="wallet-b",
                bundle_type=BundleType.FLASH,
                transaction_count=1,
                status=BundleStatus.FAILED,
                degraded=True,
                created_at=2000.0,
            ))
            return await ledger.bundles(), await ledger.bundles(wallet="wallet-a")

        everything, mine = asyncio.run(run())

        assert [b.bundle_id for b in everything] == ["bundle_2", "bundle_1"]
        assert everything[0].degraded is True
        assert everything[0].risk_score is None
        assert mine == [bundle]


# =============================================================================
# SIGNAL SOURCE
# =============================================================================

class TestLedgerSignalSource:

    def test_market_analysis_from_ledger(self, ledger):
        now = time.time()

        async def run():
            await ledger.append_trade(_trade(now - 30, amount=60))
            await ledger.append_trade(_trade(now - 20, amount=50))
            await ledger.append_trade(_trade(now - 900, amount=500))
            return await LedgerSignalSource(ledger).market_analysis("mint")

        analysis = asyncio.run(run())
        assert analysis.trade_count == 2
        assert analysis.recent_volume == pytest.approx(110)
        assert analysis.large_trades == 2

    def test_mempool_counts_very_recent_trades(self, ledger):
        now = time.time()

        async def run():
            await ledger.append_trade(_trade(now - 0.5))
            await ledger.append_trade(_trade(now - 1.0))
            await ledger.append_trade(_trade(now - 60))
            source = LedgerSignalSource(ledger, rng=FixedRandom(0.99))
            return await source.mempool_conflicts("mint", MarketAnalysis(mev_bots_active=True))

        assert asyncio.run(run()) == 2

    def test_mempool_extra_conflict_while_bots_active(self, ledger):
        source = LedgerSignalSource(ledger, rng=FixedRandom(0.0))

        active = asyncio.run(source.mempool_conflicts("mint", MarketAnalysis(mev_bots_active=True)))
        quiet = asyncio.run(source.mempool_conflicts("mint", MarketAnalysis()))

        assert active == 1
        assert quiet == 0

    def test_ledger_failure_raises_signal_error(self):
        broken = SqliteLedger(":memory:")
        broken.close()
        source = LedgerSignalSource(broken)

        with pytest.raises(SignalSourceError):
            asyncio.run(source.market_analysis("mint"))
        with pytest.raises(SignalSourceError):
            asyncio.run(source.mempool_conflicts("mint", MarketAnalysis()))
