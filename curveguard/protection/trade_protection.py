"""
Trade Protection - Slippage + MEV risk gate
===========================================

Merges the slippage assessment with trade-value and liquidity-ratio
heuristics into a proceed / wait / bundle decision.

Callers MUST block execution when `should_proceed` is False.

Usage:
    from curveguard.protection import TradeProtector

    protector = TradeProtector(BondingCurve())
    state = protector.curve.get_state(sol_raised=0, tokens_sold=0)
    protection = protector.assess_trade(state, 2.0, TradeSide.BUY)
    if not protection.should_proceed:
        ...
"""

import math
from typing import List, Optional

from ..core.config import ProtectionConfig
from ..core.curve import BondingCurve
from ..models import (
    BundleType,
    CurveState,
    MevRisk,
    OptimalTiming,
    TradeProtection,
    TradeSide,
)
from .slippage import SlippageAssessor


# Per-transaction protection cost (SOL)
PROTECTION_COST_SOL = {
    BundleType.FLASH: 0.002,
    BundleType.PRIORITY: 0.001,
    BundleType.STANDARD: 0.0005,
}


class TradeProtector:
    """Risk/protection orchestrator."""

    def __init__(self, curve: BondingCurve, config: Optional[ProtectionConfig] = None):
        self.curve = curve
        self.config = config or ProtectionConfig()
        self.slippage = SlippageAssessor(curve, self.config)

    def classify_mev_risk(self, trade_value: float) -> MevRisk:
        if trade_value > self.config.high_risk_value:
            return MevRisk.HIGH
        if trade_value > self.config.medium_risk_value:
            return MevRisk.MEDIUM
        return MevRisk.LOW

    def assess_trade(self, state: CurveState, amount: float, side: TradeSide) -> TradeProtection:
        cfg = self.config

        trade = self.slippage.simulate(state, amount, side)
        slippage = self.slippage.assess(state, amount, side, trade=trade)

        sol_value = trade.sol_value
        trade_value = sol_value * cfg.quote_price
        mev_risk = self.classify_mev_risk(trade_value)

        total_liquidity = state.total_liquidity
        if sol_value > total_liquidity * cfg.liquidity_danger_ratio:
            liquidity_warning = (
                "Trade size is >20% of available liquidity. High sandwich attack risk detected."
            )
        elif sol_value > total_liquidity * cfg.liquidity_warning_ratio:
            liquidity_warning = (
                "Large trade detected. Consider using MEV protection to prevent sandwich attacks."
            )
        elif mev_risk == MevRisk.HIGH:
            liquidity_warning = "High MEV risk detected. Recommend using priority bundling."
        else:
            liquidity_warning = None

        if mev_risk == MevRisk.HIGH or slippage.price_impact > cfg.bundle_impact:
            timing = OptimalTiming.BUNDLE
        elif slippage.price_impact > cfg.wait_impact:
            timing = OptimalTiming.WAIT
        else:
            timing = OptimalTiming.IMMEDIATE

        return TradeProtection(
            slippage=slippage,
            mev_risk=mev_risk,
            optimal_timing=timing,
            trade_value=trade_value,
            liquidity_warning=liquidity_warning,
        )


def recommendations(protection: TradeProtection) -> List[str]:
    """Human-readable advice for a protection result."""
    recs = []
    impact = protection.slippage.price_impact

    if impact > 10:
        recs.append(f"Consider splitting trade into {math.ceil(impact / 5)} smaller trades")

    if protection.mev_risk == MevRisk.HIGH:
        recs.append("High sandwich attack risk - use FLASH MEV protection")
        recs.append("Set high priority fees to avoid being frontrun")
    elif protection.mev_risk == MevRisk.MEDIUM:
        recs.append("Medium MEV risk - use PRIORITY protection bundle")
        recs.append("Add random delay to avoid bot detection")

    if protection.optimal_timing == OptimalTiming.BUNDLE:
        recs.append("Bundle transaction with MEV protection for safety")
    elif protection.optimal_timing == OptimalTiming.WAIT:
        recs.append("Wait for lower MEV bot activity")
        recs.append("Monitor for increased liquidity before trading")

    if protection.liquidity_warning:
        recs.append("Trade during higher activity periods for better liquidity")

    return recs


def suggest_bundle_type(trade_size: float, token_volume: Optional[float] = None) -> BundleType:
    """Pick a protection tier from trade size (SOL) and token volume."""
    volume = token_volume or 0.0
    if trade_size > 20 or volume > 10_000:
        return BundleType.FLASH
    if trade_size > 5 or volume > 1_000:
        return BundleType.PRIORITY
    return BundleType.STANDARD


def estimate_protection_cost(bundle_type: BundleType, transaction_count: int = 1) -> float:
    """Estimated protection cost in SOL."""
    return PROTECTION_COST_SOL[bundle_type] * transaction_count
