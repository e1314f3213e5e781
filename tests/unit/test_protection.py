# =============================================================================
# UNIT TESTS - Slippage Assessor + Trade Protection
# =============================================================================

import pytest

from curveguard.core import BondingCurve, CurveConfig, ProtectionConfig, ValidationError
from curveguard.models import BundleType, MevRisk, OptimalTiming, TradeSide
from curveguard.protection import (
    SlippageAssessor,
    TradeProtector,
    estimate_protection_cost,
    recommendations,
    suggest_bundle_type,
)


def _impact(sol_in, base=30.0):
    """Price impact (%) of a buy on an untouched curve: ((x + dx) / x)^2 - 1."""
    return (((base + sol_in) / base) ** 2 - 1) * 100


# =============================================================================
# SLIPPAGE
# =============================================================================

class TestSlippageAssessor:

    def test_small_buy(self, curve, fresh_state):
        assessment = SlippageAssessor(curve).assess(fresh_state, 0.1, TradeSide.BUY)

        assert assessment.price_impact == pytest.approx(_impact(0.1), rel=1e-6)
        assert assessment.recommended_slippage == pytest.approx(_impact(0.1) * 1.2, rel=1e-6)
        assert assessment.is_excessive_slippage is False
        assert assessment.can_proceed is True
        assert assessment.warning_message is None

    def test_moderate_slippage_warning(self, curve, fresh_state):
        assessment = SlippageAssessor(curve).assess(fresh_state, 1.2, TradeSide.BUY)

        assert assessment.price_impact == pytest.approx(8.16, abs=0.01)
        assert assessment.is_excessive_slippage is False
        assert assessment.warning_message.startswith("Moderate slippage (8.16%)")

    def test_excessive_but_allowed(self, curve, fresh_state):
        assessment = SlippageAssessor(curve).assess(fresh_state, 1.8, TradeSide.BUY)

        assert assessment.price_impact == pytest.approx(12.36, abs=0.01)
        assert assessment.is_excessive_slippage is True
        assert assessment.can_proceed is True
        assert assessment.warning_message == (
            "High slippage detected (12.36%). Consider reducing trade size."
        )

    def test_hard_ceiling_blocks(self, curve, fresh_state):
        assessment = SlippageAssessor(curve).assess(fresh_state, 20, TradeSide.BUY)

        assert assessment.price_impact == pytest.approx(_impact(20), rel=1e-6)
        assert assessment.is_excessive_slippage is True
        assert assessment.can_proceed is False
        assert assessment.recommended_slippage == 25.0

    def test_large_trade_warning_when_impact_tolerated(self, curve, fresh_state):
        config = ProtectionConfig(warning_threshold=50, max_slippage=60)
        assessment = SlippageAssessor(curve, config).assess(fresh_state, 4, TradeSide.BUY)

        assert assessment.is_excessive_slippage is False
        assert assessment.warning_message == (
            "Large trade relative to liquidity. Consider splitting into smaller trades."
        )

    def test_low_liquidity_floor(self):
        curve = BondingCurve(CurveConfig(virtual_sol_base=5.0))
        assessment = SlippageAssessor(curve).assess(curve.get_state(), 0.01, TradeSide.BUY)
        assert assessment.recommended_slippage == 3.0

    def test_auto_adjust_off_uses_max_slippage(self, curve, fresh_state):
        config = ProtectionConfig(auto_adjust=False)
        assessment = SlippageAssessor(curve, config).assess(fresh_state, 1.0, TradeSide.BUY)
        assert assessment.recommended_slippage == 10.0

    def test_sell_side_impact(self, curve):
        state = curve.get_state(sol_raised=10, tokens_sold=200_000_000)
        assessment = SlippageAssessor(curve).assess(state, 10_000_000, TradeSide.SELL)
        assert assessment.price_impact > 0
        assert assessment.can_proceed is True

    def test_assessments_share_no_state(self, curve, fresh_state):
        assessor = SlippageAssessor(curve)
        first = assessor.assess(fresh_state, 1.8, TradeSide.BUY)
        assessor.assess(fresh_state, 20, TradeSide.BUY)

        assert assessor.assess(fresh_state, 1.8, TradeSide.BUY) == first
        assert vars(assessor).keys() == {"curve", "config"}

    def test_invalid_amount(self, curve, fresh_state):
        with pytest.raises(ValidationError):
            SlippageAssessor(curve).assess(fresh_state, 0, TradeSide.BUY)


# =============================================================================
# TRADE PROTECTION
# =============================================================================

class TestTradeProtector:

    def test_twenty_sol_buy_on_fresh_curve(self, curve, fresh_state):
        protection = TradeProtector(curve).assess_trade(fresh_state, 20, TradeSide.BUY)

        assert protection.slippage.price_impact > 10
        assert protection.liquidity_warning.startswith("Trade size is >20% of available liquidity")
        assert protection.optimal_timing == OptimalTiming.BUNDLE
        assert protection.mev_risk == MevRisk.MEDIUM
        assert protection.trade_value == pytest.approx(4600)
        assert protection.should_proceed is False

    def test_small_buy_proceeds_immediately(self, curve, fresh_state):
        protection = TradeProtector(curve).assess_trade(fresh_state, 0.1, TradeSide.BUY)

        assert protection.mev_risk == MevRisk.LOW
        assert protection.optimal_timing == OptimalTiming.IMMEDIATE
        assert protection.liquidity_warning is None
        assert protection.should_proceed is True

    def test_wait_timing(self, curve, fresh_state):
        protection = TradeProtector(curve).assess_trade(fresh_state, 1.8, TradeSide.BUY)
        assert protection.optimal_timing == OptimalTiming.WAIT
        assert protection.should_proceed is True

    def test_large_trade_liquidity_warning(self, curve, fresh_state):
        protection = TradeProtector(curve).assess_trade(fresh_state, 4, TradeSide.BUY)
        assert protection.liquidity_warning.startswith("Large trade detected")

    def test_high_mev_risk_blocks(self, curve, fresh_state):
        protector = TradeProtector(curve, ProtectionConfig(quote_price=10_000))
        protection = protector.assess_trade(fresh_state, 1.2, TradeSide.BUY)

        assert protection.mev_risk == MevRisk.HIGH
        assert protection.slippage.can_proceed is True
        assert protection.should_proceed is False
        assert protection.optimal_timing == OptimalTiming.BUNDLE
        assert protection.liquidity_warning.startswith("High MEV risk detected")

    @pytest.mark.parametrize("value,expected", [
        (0, MevRisk.LOW),
        (1000, MevRisk.LOW),
        (1000.01, MevRisk.MEDIUM),
        (10_000, MevRisk.MEDIUM),
        (10_000.5, MevRisk.HIGH),
    ])
    def test_mev_risk_thresholds(self, curve, value, expected):
        assert TradeProtector(curve).classify_mev_risk(value) == expected

    def test_sell_trade_value_uses_sol_out(self, curve):
        state = curve.get_state(sol_raised=10, tokens_sold=200_000_000)
        sell = curve.simulate_sell(state, 10_000_000)
        protection = TradeProtector(curve).assess_trade(state, 10_000_000, TradeSide.SELL)
        assert protection.trade_value == pytest.approx(-sell.sol_in * 230)

    def test_to_dict(self, curve, fresh_state):
        data = TradeProtector(curve).assess_trade(fresh_state, 20, TradeSide.BUY).to_dict()
        assert data["mevRisk"] == "medium"
        assert data["optimalTiming"] == "bundle"
        assert data["shouldProceed"] is False
        assert data["slippage"]["canProceed"] is False


# =============================================================================
# RECOMMENDATIONS + TIERS
# =============================================================================

class TestRecommendations:

    def test_risky_trade_advice(self, curve, fresh_state):
        recs = recommendations(TradeProtector(curve).assess_trade(fresh_state, 20, TradeSide.BUY))

        assert "Consider splitting trade into 36 smaller trades" in recs
        assert "Medium MEV risk - use PRIORITY protection bundle" in recs
        assert "Bundle transaction with MEV protection for safety" in recs
        assert "Trade during higher activity periods for better liquidity" in recs

    def test_quiet_trade_has_no_advice(self, curve, fresh_state):
        assert recommendations(TradeProtector(curve).assess_trade(fresh_state, 0.1, TradeSide.BUY)) == []

    @pytest.mark.parametrize("size,volume,expected", [
        (25, None, BundleType.FLASH),
        (20, None, BundleType.PRIORITY),
        (10, None, BundleType.PRIORITY),
        (5, None, BundleType.STANDARD),
        (1, 20_000, BundleType.FLASH),
        (1, 5_000, BundleType.PRIORITY),
        (1, 500, BundleType.STANDARD),
    ])
    def test_suggest_bundle_type(self, size, volume, expected):
        assert suggest_bundle_type(size, volume) == expected

    def test_protection_cost(self):
        assert estimate_protection_cost(BundleType.FLASH, 3) == pytest.approx(0.006)
        assert estimate_protection_cost(BundleType.STANDARD) == pytest.approx(0.0005)
