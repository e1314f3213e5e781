"""
Bonding Curve - Virtual constant product pricing.

The curve is a constant product AMM (k = x * y) over virtual reserves:
    x = virtual_sol_base + sol_raised
    y = virtual_token_base - tokens_sold

Price increases as SOL is added to buy tokens and decreases as tokens
are sold back. All state is derived from the two persisted counters
(sol_raised, tokens_sold), so nothing here is cached between trades.

Usage:
    from curveguard.core import BondingCurve, CurveConfig

    curve = BondingCurve(CurveConfig())
    state = curve.get_state(sol_raised=0, tokens_sold=0)
    result = curve.simulate_buy(state, sol_in=1.0)
    print(f"{result.tokens_out:,.0f} tokens @ {format_price(result.price_after)}")
"""
from typing import Dict, List

from ..models import CurveState, TradeResult
from .config import CurveConfig
from .exceptions import ValidationError


class BondingCurve:
    """
    Curve state calculator and trade simulator.

    Double precision previews; settlement-grade
    precision is the ledger's concern.
    """

    def __init__(self, config: CurveConfig = None):
        self.config = config or CurveConfig()

    # ============================================================
    # STATE
    # ============================================================

    def get_state(self, sol_raised: float = 0.0, tokens_sold: float = 0.0) -> CurveState:
        """Derive the full curve state from the persisted counters."""
        cfg = self.config

        if sol_raised < 0:
            raise ValidationError(f"sol_raised must be >= 0, got {sol_raised}")
        if tokens_sold < 0 or tokens_sold > cfg.curve_supply:
            raise ValidationError(
                f"tokens_sold must be in [0, {cfg.curve_supply}], got {tokens_sold}"
            )

        virtual_sol_reserves = cfg.virtual_sol_base + sol_raised
        virtual_token_reserves = cfg.virtual_token_base - tokens_sold

        current_price = virtual_sol_reserves / virtual_token_reserves
        market_cap = current_price * cfg.total_supply

        return CurveState(
            tokens_sold=tokens_sold,
            sol_raised=sol_raised,
            tokens_remaining=cfg.curve_supply - tokens_sold,
            virtual_sol_reserves=virtual_sol_reserves,
            virtual_token_reserves=virtual_token_reserves,
            current_price=current_price,
            market_cap=market_cap,
            progress_percentage=(tokens_sold / cfg.curve_supply) * 100,
            is_graduated=market_cap >= cfg.graduation_threshold,
        )

    # ============================================================
    # SIMULATION
    # ============================================================

    def simulate_buy(self, state: CurveState, sol_in: float) -> TradeResult:
        """
        Preview a buy of `sol_in` SOL.

        Tokens out are clamped to the remaining curve supply; when that
        happens sol_in is recomputed from the inverse formula so the
        buyer never receives more than the clamp for the requested SOL.
        """
        if sol_in <= 0:
            raise ValidationError(f"Buy amount must be positive, got {sol_in}")

        sol_reserves = state.virtual_sol_reserves
        token_reserves = state.virtual_token_reserves

        # Constant product formula: x * y = k
        k = sol_reserves * token_reserves
        new_token_reserves = k / (sol_reserves + sol_in)
        tokens_out = token_reserves - new_token_reserves

        clamped = tokens_out > state.tokens_remaining
        if clamped:
            tokens_out = max(0.0, state.tokens_remaining)
            # Inverse: SOL needed for exactly tokens_out
            sol_in = sol_reserves * tokens_out / (token_reserves - tokens_out)

        after = self.get_state(
            sol_raised=state.sol_raised + sol_in,
            tokens_sold=min(self.config.curve_supply, state.tokens_sold + tokens_out),
        )

        return TradeResult(
            tokens_out=tokens_out,
            sol_in=sol_in,
            price_before=state.current_price,
            price_after=after.current_price,
            market_cap_after=after.market_cap,
            new_tokens_remaining=after.tokens_remaining,
            new_sol_raised=after.sol_raised,
            new_tokens_sold=after.tokens_sold,
            clamped=clamped,
        )

    def simulate_sell(self, state: CurveState, tokens_in: float) -> TradeResult:
        """Preview selling `tokens_in` tokens back to the curve."""
        if tokens_in <= 0:
            raise ValidationError(f"Sell amount must be positive, got {tokens_in}")
        if tokens_in > state.tokens_sold:
            raise ValidationError(
                f"Cannot sell {tokens_in:,.0f} tokens, only {state.tokens_sold:,.0f} sold by the curve"
            )

        sol_reserves = state.virtual_sol_reserves
        token_reserves = state.virtual_token_reserves

        k = sol_reserves * token_reserves
        new_sol_reserves = k / (token_reserves + tokens_in)
        sol_out = sol_reserves - new_sol_reserves

        # Counters floor at zero
        after = self.get_state(
            sol_raised=max(0.0, state.sol_raised - sol_out),
            tokens_sold=max(0.0, state.tokens_sold - tokens_in),
        )

        return TradeResult(
            tokens_out=-tokens_in,
            sol_in=-sol_out,
            price_before=state.current_price,
            price_after=after.current_price,
            market_cap_after=after.market_cap,
            new_tokens_remaining=after.tokens_remaining,
            new_sol_raised=after.sol_raised,
            new_tokens_sold=after.tokens_sold,
        )

    # ============================================================
    # CHARTING
    # ============================================================

    def price_at(self, tokens_sold: float) -> float:
        """Price at a point on the curve with no raised funds."""
        cfg = self.config
        return cfg.virtual_sol_base / (cfg.virtual_token_base - tokens_sold)

    def curve_data(self, points: int = 100) -> List[Dict]:
        """Evenly spaced points across the curve supply."""
        if points < 1:
            raise ValidationError(f"points must be >= 1, got {points}")
        cfg = self.config
        step = cfg.curve_supply / points
        data = []

        for i in range(points + 1):
            tokens_sold = i * step
            price = self.price_at(tokens_sold)
            market_cap = price * cfg.total_supply
            data.append({
                'tokens_sold': tokens_sold,
                'price': price,
                'market_cap': market_cap,
                'progress': (tokens_sold / cfg.curve_supply) * 100,
                'is_graduated': market_cap >= cfg.graduation_threshold,
            })

        return data


# ============================================================
# FORMATTING
# ============================================================

def format_price(price: float) -> str:
    if price < 0.000001:
        return f"{price:.9f}"
    if price < 0.001:
        return f"{price:.8f}"
    return f"{price:.6f}"


def format_market_cap(market_cap: float) -> str:
    if market_cap >= 1_000_000:
        return f"${market_cap / 1_000_000:.2f}M"
    if market_cap >= 1_000:
        return f"${market_cap / 1_000:.1f}K"
    return f"${market_cap:.0f}"


def format_token_amount(amount: float) -> str:
    if amount >= 1_000_000:
        return f"{amount / 1_000_000:.2f}M"
    if amount >= 1_000:
        return f"{amount / 1_000:.1f}K"
    return f"{amount:.0f}"
