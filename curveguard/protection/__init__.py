"""
Protection Module
=================

Client-side trade gate. Pure and synchronous; safe to call concurrently.

Usage:
    from curveguard.protection import SlippageAssessor, TradeProtector
"""

from .slippage import SlippageAssessor
from .trade_protection import (
    TradeProtector,
    recommendations,
    suggest_bundle_type,
    estimate_protection_cost,
    PROTECTION_COST_SOL,
)

__all__ = [
    'SlippageAssessor',
    'TradeProtector',
    'recommendations',
    'suggest_bundle_type',
    'estimate_protection_cost',
    'PROTECTION_COST_SOL',
]
