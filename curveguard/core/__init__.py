"""
Core curve modules.
"""
from .config import CurveConfig, ProtectionConfig, SubmitterConfig, ENDPOINTS
from .curve import BondingCurve, format_price, format_market_cap, format_token_amount
from .exceptions import (
    CurveGuardError,
    ValidationError,
    SignalSourceError,
    SubmissionError,
    TradeBlockedError,
)

__all__ = [
    'CurveConfig', 'ProtectionConfig', 'SubmitterConfig', 'ENDPOINTS',
    'BondingCurve', 'format_price', 'format_market_cap', 'format_token_amount',
    'CurveGuardError', 'ValidationError', 'SignalSourceError',
    'SubmissionError', 'TradeBlockedError',
]
