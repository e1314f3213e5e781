"""
Curveguard Models - Shared Data Structures
==========================================

All data structures passed between the curve calculator, the
protection layer and the bundle submitter.

Curve and protection results are ephemeral (recomputed on every call).
Only TradeRecord and BundleRecord are persisted by the ledger.
"""

from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List
from enum import Enum
import math
import time


class TradeSide(Enum):
    BUY = "buy"
    SELL = "sell"


class MevRisk(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class OptimalTiming(Enum):
    IMMEDIATE = "immediate"
    WAIT = "wait"
    BUNDLE = "bundle"


class BundleType(Enum):
    """Submission protection tiers"""
    FLASH = "flash"         # Atomic bundle, highest fees
    PRIORITY = "priority"   # Staggered sequential submission
    STANDARD = "standard"   # Plain sequential submission


class BundleStatus(Enum):
    PENDING = "pending"
    INCLUDED = "included"
    FAILED = "failed"


class RiskLevel(Enum):
    """Anti-sandwich score bands"""
    BLOCKED = "BLOCKED"
    HIGH_PROTECTION = "HIGH_PROTECTION"
    MEDIUM_PROTECTION = "MEDIUM_PROTECTION"
    LOW_RISK = "LOW_RISK"
    ERROR_FALLBACK = "ERROR_FALLBACK"


# ============================================================
# CURVE
# ============================================================

@dataclass
class CurveState:
    """Curve snapshot derived from the persisted counters (never stored)"""
    tokens_sold: float
    sol_raised: float
    tokens_remaining: float
    virtual_sol_reserves: float
    virtual_token_reserves: float
    current_price: float
    market_cap: float
    progress_percentage: float
    is_graduated: bool

    @property
    def total_liquidity(self) -> float:
        """Virtual SOL base plus raised funds"""
        return self.virtual_sol_reserves

    def to_dict(self) -> dict:
        return {
            'tokensSold': self.tokens_sold,
            'solRaised': self.sol_raised,
            'tokensRemaining': self.tokens_remaining,
            'virtualSolReserves': self.virtual_sol_reserves,
            'virtualTokenReserves': self.virtual_token_reserves,
            'currentPrice': self.current_price,
            'marketCap': self.market_cap,
            'progressPercentage': self.progress_percentage,
            'isGraduated': self.is_graduated,
        }


@dataclass
class TradeResult:
    """Simulated trade outcome. Negative amounts on sells."""
    tokens_out: float
    sol_in: float
    price_before: float
    price_after: float
    market_cap_after: float
    new_tokens_remaining: float
    new_sol_raised: float
    new_tokens_sold: float
    clamped: bool = False

    @property
    def side(self) -> TradeSide:
        return TradeSide.SELL if self.tokens_out < 0 else TradeSide.BUY

    @property
    def sol_value(self) -> float:
        return abs(self.sol_in)

    def to_dict(self) -> dict:
        return {
            'tokensOut': self.tokens_out,
            'solIn': self.sol_in,
            'priceBefore': self.price_before,
            'priceAfter': self.price_after,
            'marketCapAfter': self.market_cap_after,
            'newTokensRemaining': self.new_tokens_remaining,
            'newSolRaised': self.new_sol_raised,
            'newTokensSold': self.new_tokens_sold,
            'clamped': self.clamped,
        }


# ============================================================
# PROTECTION
# ============================================================

@dataclass
class ProtectionAssessment:
    """Slippage assessment for one simulated trade (percent units)"""
    price_impact: float
    recommended_slippage: float
    is_excessive_slippage: bool
    can_proceed: bool
    warning_message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'priceImpact': self.price_impact,
            'recommendedSlippage': self.recommended_slippage,
            'isExcessiveSlippage': self.is_excessive_slippage,
            'canProceed': self.can_proceed,
            'warningMessage': self.warning_message,
        }


@dataclass
class TradeProtection:
    """Combined slippage + MEV gate for a trade"""
    slippage: ProtectionAssessment
    mev_risk: MevRisk
    optimal_timing: OptimalTiming
    trade_value: float
    liquidity_warning: Optional[str] = None

    @property
    def should_proceed(self) -> bool:
        return self.slippage.can_proceed and self.mev_risk != MevRisk.HIGH

    def to_dict(self) -> dict:
        return {
            'slippage': self.slippage.to_dict(),
            'mevRisk': self.mev_risk.value,
            'liquidityWarning': self.liquidity_warning,
            'optimalTiming': self.optimal_timing.value,
            'shouldProceed': self.should_proceed,
            'tradeValue': self.trade_value,
        }


# ============================================================
# MARKET / AUDIT
# ============================================================

@dataclass
class TradeRecord:
    """Confirmed trade as stored in the ledger"""
    token_address: str
    amount: float                       # SOL value of the trade
    side: TradeSide = TradeSide.BUY
    profit_pct: float = 0.0
    timestamp: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            'token_address': self.token_address,
            'amount': self.amount,
            'side': self.side.value,
            'profit_pct': self.profit_pct,
            'timestamp': self.timestamp,
        }


@dataclass
class MarketAnalysis:
    """Rolling-window market signals for one token"""
    recent_volume: float = 0.0
    price_volatility: float = 0.0
    suspicious_activity: bool = False
    large_trades: int = 0
    mev_bots_active: bool = False
    trade_count: int = 0

    def to_dict(self) -> dict:
        return {
            'recentVolume': self.recent_volume,
            'priceVolatility': self.price_volatility,
            'suspiciousActivity': self.suspicious_activity,
            'largeTrades': self.large_trades,
            'mevBotsActive': self.mev_bots_active,
            'tradeCount': self.trade_count,
        }


@dataclass
class SandwichCheck:
    """Outcome of the anti-sandwich check"""
    safe: bool
    risk_score: float
    level: RiskLevel
    delay_applied: float = 0.0
    suggested_delay: int = 0
    reason: str = ""
    analysis: Optional[MarketAnalysis] = None

    def to_dict(self) -> dict:
        return {
            'safe': self.safe,
            'riskScore': self.risk_score,
            'level': self.level.value,
            'delayApplied': self.delay_applied,
            'suggestedDelay': self.suggested_delay,
            'reason': self.reason,
        }


@dataclass
class BundleRecord:
    """Audit row for every submission attempt"""
    bundle_id: str
    wallet: str
    bundle_type: BundleType
    transaction_count: int
    status: BundleStatus = BundleStatus.PENDING
    signatures: List[str] = field(default_factory=list)
    priority_fee: int = 0
    degraded: bool = False
    risk_score: Optional[float] = None
    created_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict:
        return {
            'bundleId': self.bundle_id,
            'status': self.status.value,
            'signatures': list(self.signatures),
        }


@dataclass
class SubmissionRequest:
    """Body of a protected submission request"""
    transactions: List[str]             # Base64 encoded signed transactions
    user_wallet: str
    bundle_type: BundleType = BundleType.STANDARD
    token_address: Optional[str] = None
    expected_price: Optional[float] = None
    max_slippage: Optional[float] = None
    trade_size: Optional[float] = None
    skip_preflight: bool = False
    max_compute_units: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'SubmissionRequest':
        """Parse a camelCase request body. Raises ValueError/TypeError on malformed fields."""
        options = data.get('options') or {}
        if not isinstance(options, dict):
            raise TypeError("options must be an object")
        max_compute_units = _optional_number(options.get('maxComputeUnits'), 'maxComputeUnits')
        return cls(
            transactions=list(data.get('transactions') or []),
            user_wallet=data.get('userWallet', ''),
            bundle_type=BundleType(data.get('bundleType', 'standard')),
            token_address=data.get('tokenAddress'),
            expected_price=_optional_number(data.get('expectedPrice'), 'expectedPrice'),
            max_slippage=_optional_number(data.get('maxSlippage'), 'maxSlippage'),
            trade_size=_optional_number(data.get('tradeSize'), 'tradeSize'),
            skip_preflight=bool(options.get('skipPreflightCheck', False)),
            max_compute_units=int(max_compute_units) if max_compute_units is not None else None,
        )


def _optional_number(value: Any, name: str) -> Optional[float]:
    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError(f"{name} must be a number, got {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be a number, got {value!r}")
    if not math.isfinite(number):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return number


@dataclass
class SubmissionResult:
    """Result returned to the caller after submission"""
    bundle: BundleRecord
    estimated_savings: str = ""
    check: Optional[SandwichCheck] = None

    @property
    def success(self) -> bool:
        return self.bundle.status == BundleStatus.INCLUDED

    def to_dict(self) -> dict:
        return {
            'success': self.success,
            'result': self.bundle.to_dict(),
            'protectionLevel': self.bundle.bundle_type.value,
            'estimatedSavings': self.estimated_savings,
            'degraded': self.bundle.degraded,
            'riskScore': self.bundle.risk_score,
        }
