"""
Anti-Sandwich Guard
===================

Re-scores real-time sandwich risk for a token right before submission,
then blocks, delays or releases the trade.

Score bands (0-100+):
    > 80      BLOCKED            reject, suggest a 15-45s retry delay
    (60, 80]  HIGH_PROTECTION    wait 5-15s, then proceed
    (30, 60]  MEDIUM_PROTECTION  wait 1-4s, then proceed
    <= 30     LOW_RISK           proceed immediately

If scoring itself fails the guard fails open with a fixed score of 50
(ERROR_FALLBACK). That weakens protection, so it is logged at WARNING
and counted in `stats['error_fallback']`.

Delays are `asyncio.sleep` calls: they never pin a worker and are
cancelled with the request task.
"""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional

from ..models import MarketAnalysis, RiskLevel, SandwichCheck
from .signals import RiskSignalSource

logger = logging.getLogger(__name__)


# Score bands
BLOCK_SCORE = 80
HIGH_SCORE = 60
MEDIUM_SCORE = 30
FALLBACK_SCORE = 50

# Delay windows (seconds)
BLOCKED_RETRY_DELAY = (15, 45)
HIGH_PROTECTION_DELAY = (5.0, 15.0)
MEDIUM_PROTECTION_DELAY = (1.0, 4.0)

# Own trade size (SOL)
LARGE_TRADE_SIZE = 5.0
HUGE_TRADE_SIZE = 10.0


def score_risk(analysis: MarketAnalysis, mempool_conflicts: int, trade_size: Optional[float]) -> float:
    """Sandwich risk score from market signals and the trade's own size."""
    score = 0.0

    # Recent volume
    if analysis.recent_volume > 100:
        score += 20
    elif analysis.recent_volume > 50:
        score += 10

    # Volatility
    if analysis.price_volatility > 20:
        score += 20
    elif analysis.price_volatility > 10:
        score += 10

    # Back-to-back trades < 1s apart
    if analysis.suspicious_activity:
        score += 25

    if analysis.large_trades >= 3:
        score += 10

    if analysis.mev_bots_active:
        score += 10

    # Conflicting pending transactions
    score += min(30, 10 * max(0, mempool_conflicts))

    # The trade itself
    if trade_size:
        if trade_size > HUGE_TRADE_SIZE:
            score += 25
        elif trade_size > LARGE_TRADE_SIZE:
            score += 15

    return score


class AntiSandwichGuard:
    """
    Per-request anti-sandwich check.

    Holds no per-token state: concurrent requests for the same token are
    scored independently.
    """

    def __init__(
        self,
        signals: RiskSignalSource,
        rng: Optional[random.Random] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.signals = signals
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.stats = {
            "checks": 0,
            "blocked": 0,
            "high_protection": 0,
            "medium_protection": 0,
            "low_risk": 0,
            "error_fallback": 0,
        }

    async def evaluate(self, token_address: Optional[str], trade_size: Optional[float] = None):
        """
        Score without acting. Returns (score, analysis).

        With no token there are no market signals to read, so only the
        trade's own size contributes.
        """
        if not token_address:
            analysis = MarketAnalysis()
            return score_risk(analysis, 0, trade_size), analysis

        analysis = await self.signals.market_analysis(token_address)
        conflicts = await self.signals.mempool_conflicts(token_address, analysis)
        return score_risk(analysis, conflicts, trade_size), analysis

    async def check(self, token_address: Optional[str], trade_size: Optional[float] = None) -> SandwichCheck:
        """
        Run the anti-sandwich check, sleeping through protective delays.

        Returns:
            SandwichCheck; safe=False means the caller must not submit
            before `suggested_delay` seconds have elapsed.
        """
        self.stats["checks"] += 1

        try:
            score, analysis = await self.evaluate(token_address, trade_size)
        except Exception as e:
            self.stats["error_fallback"] += 1
            logger.warning(
                f"Anti-sandwich scoring failed for {token_address} ({e}); "
                f"degraded protection, proceeding with score {FALLBACK_SCORE}",
                exc_info=True,
            )
            return SandwichCheck(
                safe=True,
                risk_score=FALLBACK_SCORE,
                level=RiskLevel.ERROR_FALLBACK,
                reason="Risk analysis unavailable",
            )

        if score > BLOCK_SCORE:
            self.stats["blocked"] += 1
            delay = self.rng.randint(*BLOCKED_RETRY_DELAY)
            logger.warning(f"Blocked trade on {token_address}: score {score:.0f}, retry in {delay}s")
            return SandwichCheck(
                safe=False,
                risk_score=score,
                level=RiskLevel.BLOCKED,
                suggested_delay=delay,
                reason="High sandwich attack risk detected",
                analysis=analysis,
            )

        if score > HIGH_SCORE:
            self.stats["high_protection"] += 1
            level = RiskLevel.HIGH_PROTECTION
            delay = self.rng.uniform(*HIGH_PROTECTION_DELAY)
        elif score > MEDIUM_SCORE:
            self.stats["medium_protection"] += 1
            level = RiskLevel.MEDIUM_PROTECTION
            delay = self.rng.uniform(*MEDIUM_PROTECTION_DELAY)
        else:
            self.stats["low_risk"] += 1
            level = RiskLevel.LOW_RISK
            delay = 0.0

        if delay > 0:
            logger.info(f"{level.value} for {token_address}: score {score:.0f}, delaying {delay:.1f}s")
            await self.sleep(delay)

        return SandwichCheck(
            safe=True,
            risk_score=score,
            level=level,
            delay_applied=delay,
            analysis=analysis,
        )
