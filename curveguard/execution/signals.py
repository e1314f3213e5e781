"""
Risk Signal Sources
===================

Market-analysis and mempool signals consumed by the anti-sandwich
scorer. The scorer only sees the RiskSignalSource interface, so real
telemetry (validator/mempool data) can replace the heuristic source
without touching the scoring state machine.

LedgerSignalSource:
- Market analysis from the token's last 5 minutes of ledger trades
- Mempool scan simulated from very recent activity
"""

import logging
import random
import time
from abc import ABC, abstractmethod
from typing import List, Optional

import numpy as np

from ..core.exceptions import SignalSourceError
from ..models import MarketAnalysis, TradeRecord
from .ledger import TradeLedger

logger = logging.getLogger(__name__)


ANALYSIS_WINDOW = 300.0         # 5 minutes
BACK_TO_BACK_SECONDS = 1.0      # Trades closer than this look scripted
LARGE_TRADE_SOL = 10.0
MEMPOOL_WINDOW = 2.0            # Seconds of activity treated as "pending"


def analyze_trades(trades: List[TradeRecord]) -> MarketAnalysis:
    """Compute market signals from a window of trades."""
    if not trades:
        return MarketAnalysis()

    trades = sorted(trades, key=lambda t: t.timestamp)
    amounts = np.array([t.amount for t in trades], dtype=float)
    profits = np.array([t.profit_pct for t in trades], dtype=float)
    timestamps = np.array([t.timestamp for t in trades], dtype=float)

    gaps = np.diff(timestamps)
    back_to_back = int(np.sum(gaps < BACK_TO_BACK_SECONDS)) if len(gaps) else 0
    large_trades = int(np.sum(amounts > LARGE_TRADE_SOL))
    volatility = float(np.std(profits)) if len(profits) > 1 else 0.0

    suspicious = back_to_back > 0

    return MarketAnalysis(
        recent_volume=float(np.sum(amounts)),
        price_volatility=volatility,
        suspicious_activity=suspicious,
        large_trades=large_trades,
        mev_bots_active=back_to_back >= 2 or (suspicious and large_trades > 0),
        trade_count=len(trades),
    )


class RiskSignalSource(ABC):
    """Source of real-time risk signals for one token."""

    @abstractmethod
    async def market_analysis(self, token_address: str) -> MarketAnalysis:
        pass

    @abstractmethod
    async def mempool_conflicts(self, token_address: str, analysis: MarketAnalysis) -> int:
        """Number of pending transactions that conflict with a trade on this token."""
        pass


class LedgerSignalSource(RiskSignalSource):
    """
    Heuristic signals from the trade ledger.

    The mempool scan is simulated: trades seen in the last couple of
    seconds stand in for pending transactions, with a random extra
    conflict while bots look active.
    """

    def __init__(
        self,
        ledger: TradeLedger,
        window: float = ANALYSIS_WINDOW,
        rng: Optional[random.Random] = None,
    ):
        self.ledger = ledger
        self.window = window
        self.rng = rng or random.Random()

    async def market_analysis(self, token_address: str) -> MarketAnalysis:
        try:
            trades = await self.ledger.recent_trades(token_address, window=self.window)
        except Exception as e:
            raise SignalSourceError(f"Trade history unavailable for {token_address}: {e}") from e

        analysis = analyze_trades(trades)
        logger.debug(
            f"{token_address}: {analysis.trade_count} trades, "
            f"volume={analysis.recent_volume:.2f}, vol={analysis.price_volatility:.2f}"
        )
        return analysis

    async def mempool_conflicts(self, token_address: str, analysis: MarketAnalysis) -> int:
        try:
            trades = await self.ledger.recent_trades(token_address, window=MEMPOOL_WINDOW)
        except Exception as e:
            raise SignalSourceError(f"Mempool scan failed for {token_address}: {e}") from e

        cutoff = time.time() - MEMPOOL_WINDOW
        conflicts = sum(1 for t in trades if t.timestamp >= cutoff)

        if analysis.mev_bots_active and self.rng.random() < 0.3:
            conflicts += 1

        return conflicts
