"""
curveguard - Bonding Curve Pricing + Trade Protection
=====================================================

Virtual constant product bonding curve with a trade-protection layer:
slippage assessment, MEV/sandwich risk scoring and tiered protected
submission.

Usage:
    from curveguard import BondingCurve, TradeProtector, TradeSide

    curve = BondingCurve()
    state = curve.get_state(sol_raised=0, tokens_sold=0)
    preview = curve.simulate_buy(state, 1.0)
    gate = TradeProtector(curve).assess_trade(state, 1.0, TradeSide.BUY)

The server-side submitter lives in `curveguard.execution`.
"""

# Core
from .core import (
    BondingCurve,
    CurveConfig,
    ProtectionConfig,
    SubmitterConfig,
    CurveGuardError,
    ValidationError,
    TradeBlockedError,
)

# Data models
from .models import (
    CurveState,
    TradeResult,
    ProtectionAssessment,
    TradeProtection,
    MarketAnalysis,
    BundleRecord,
    TradeSide,
    MevRisk,
    OptimalTiming,
    BundleType,
    BundleStatus,
    RiskLevel,
)

# Protection
from .protection import SlippageAssessor, TradeProtector


__all__ = [
    # Core
    'BondingCurve',
    'CurveConfig',
    'ProtectionConfig',
    'SubmitterConfig',
    'CurveGuardError',
    'ValidationError',
    'TradeBlockedError',

    # Models
    'CurveState',
    'TradeResult',
    'ProtectionAssessment',
    'TradeProtection',
    'MarketAnalysis',
    'BundleRecord',
    'TradeSide',
    'MevRisk',
    'OptimalTiming',
    'BundleType',
    'BundleStatus',
    'RiskLevel',

    # Protection
    'SlippageAssessor',
    'TradeProtector',
]
