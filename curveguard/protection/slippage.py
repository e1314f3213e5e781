"""
Slippage Assessor
=================

Derives price impact and a recommended slippage bound from a simulated
trade on the bonding curve.

Two-tier policy:
- Soft: impact above `max_slippage` is flagged excessive and warned about
- Hard: impact at or above `hard_ceiling` blocks the trade (can_proceed=False)
"""

from typing import Optional

from ..core.config import ProtectionConfig
from ..core.curve import BondingCurve
from ..models import CurveState, ProtectionAssessment, TradeResult, TradeSide


class SlippageAssessor:
    """
    Slippage assessment on top of the trade simulator.

    Recommended slippage is the largest of:
    1. Price impact with a 20% buffer
    2. A 0.5% minimum
    3. Trade size relative to liquidity (x50%)
    floored at 3% on thin liquidity and capped at 25%.
    """

    def __init__(self, curve: BondingCurve, config: Optional[ProtectionConfig] = None):
        self.curve = curve
        self.config = config or ProtectionConfig()

    def simulate(self, state: CurveState, amount: float, side: TradeSide) -> TradeResult:
        if side == TradeSide.BUY:
            return self.curve.simulate_buy(state, amount)
        return self.curve.simulate_sell(state, amount)

    def assess(
        self,
        state: CurveState,
        amount: float,
        side: TradeSide,
        trade: Optional[TradeResult] = None,
    ) -> ProtectionAssessment:
        """
        Assess slippage for trading `amount` (SOL on buys, tokens on sells).

        Args:
            state: Curve state before the trade
            amount: Trade amount
            side: Buy or sell
            trade: Already simulated result for the same inputs, if any

        Returns:
            ProtectionAssessment with percentages (5.0 = 5%)
        """
        cfg = self.config
        trade = trade or self.simulate(state, amount, side)

        price_before = state.current_price
        price_impact = abs(trade.price_after - price_before) / price_before * 100

        # Size relative to liquidity, in SOL on both sides
        liquidity = state.total_liquidity
        liquidity_ratio = trade.sol_value / liquidity if liquidity > 0 else 1.0

        recommended = max(
            price_impact * cfg.impact_buffer,
            cfg.min_slippage,
            liquidity_ratio * cfg.liquidity_factor,
        )
        if liquidity < cfg.low_liquidity:
            recommended = max(recommended, cfg.low_liquidity_floor)
        recommended = min(recommended, cfg.slippage_cap)

        is_excessive = price_impact > cfg.max_slippage
        can_proceed = not is_excessive or price_impact < cfg.hard_ceiling

        if is_excessive:
            warning = f"High slippage detected ({price_impact:.2f}%). Consider reducing trade size."
        elif price_impact > cfg.warning_threshold:
            warning = f"Moderate slippage ({price_impact:.2f}%). Price may move against you."
        elif liquidity_ratio > cfg.large_trade_ratio:
            warning = "Large trade relative to liquidity. Consider splitting into smaller trades."
        else:
            warning = None

        return ProtectionAssessment(
            price_impact=price_impact,
            recommended_slippage=recommended if cfg.auto_adjust else cfg.max_slippage,
            is_excessive_slippage=is_excessive,
            can_proceed=can_proceed,
            warning_message=warning,
        )
