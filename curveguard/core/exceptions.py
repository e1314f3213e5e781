"""
Exceptions raised across curveguard.
"""


class CurveGuardError(Exception):
    """Base class for all curveguard errors."""


class ValidationError(CurveGuardError):
    """Invalid trade input, rejected before simulation."""


class SignalSourceError(CurveGuardError):
    """A risk signal (market analysis, mempool scan) could not be produced."""


class SubmissionError(CurveGuardError):
    """A transaction could not be signed, sent or confirmed."""


class TradeBlockedError(CurveGuardError):
    """Anti-sandwich check rejected the trade."""

    def __init__(self, reason: str, suggested_delay: int, risk_score: float):
        super().__init__(reason)
        self.reason = reason
        self.suggested_delay = suggested_delay
        self.risk_score = risk_score

    def to_dict(self) -> dict:
        return {
            'error': 'Transaction blocked for MEV protection',
            'reason': self.reason,
            'suggestedDelay': self.suggested_delay,
            'riskScore': self.risk_score,
        }
