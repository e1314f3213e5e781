"""
Configuration - Curve, protection and submission parameters.

Usage:
    from curveguard.core import CurveConfig, ProtectionConfig, SubmitterConfig

    # Default pump.fun-style curve
    curve_config = CurveConfig()
    print(curve_config.virtual_sol_base)

    # Server settings from the environment
    submitter_config = SubmitterConfig.from_env()
"""
from dataclasses import dataclass, field
from typing import Dict, Any, Optional
import os

from .exceptions import ValidationError


# API Endpoints
ENDPOINTS = {
    # Solana RPC
    'SOLANA_MAINNET': 'https://api.mainnet-beta.solana.com',
    'HELIUS_RPC': 'https://mainnet.helius-rpc.com/?api-key={api_key}',

    # Jito block engine (atomic bundles)
    'JITO_BUNDLES': 'https://mainnet.block-engine.jito.wtf/api/v1/bundles',
}


@dataclass(frozen=True)
class CurveConfig:
    """
    Bonding curve parameters for one token.

    Immutable and passed into the calculator, so several token
    configurations can be evaluated side by side.
    """

    # Supply split (tokens)
    total_supply: float = 1_000_000_000
    curve_supply: float = 800_000_000     # Sold through the curve
    creator_supply: float = 200_000_000   # Held back for the creator

    # Market cap at which trading moves to an external venue
    graduation_threshold: float = 75_000

    # Virtual AMM reserves
    virtual_sol_base: float = 30.0
    virtual_token_base: float = 1_073_000_000

    def __post_init__(self):
        if self.virtual_sol_base <= 0 or self.virtual_token_base <= 0:
            raise ValidationError("Virtual reserves must be positive")
        if self.curve_supply <= 0 or self.curve_supply >= self.virtual_token_base:
            raise ValidationError(
                f"Curve supply {self.curve_supply} must be in (0, {self.virtual_token_base})"
            )
        if self.curve_supply > self.total_supply:
            raise ValidationError("Curve supply cannot exceed total supply")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_supply': self.total_supply,
            'curve_supply': self.curve_supply,
            'creator_supply': self.creator_supply,
            'graduation_threshold': self.graduation_threshold,
            'virtual_sol_base': self.virtual_sol_base,
            'virtual_token_base': self.virtual_token_base,
        }


@dataclass
class ProtectionConfig:
    """Slippage and MEV-risk thresholds (percentages unless noted)."""

    # Slippage policy
    max_slippage: float = 10.0          # Soft threshold - warn above
    warning_threshold: float = 5.0      # Moderate slippage warning
    hard_ceiling: float = 25.0          # Hard stop - never proceed above
    auto_adjust: bool = True

    # Recommended slippage
    min_slippage: float = 0.5
    impact_buffer: float = 1.2          # 20% buffer over price impact
    liquidity_factor: float = 50.0      # % per 100% of liquidity
    low_liquidity: float = 10.0         # SOL - below this floor the recommendation
    low_liquidity_floor: float = 3.0
    slippage_cap: float = 25.0
    large_trade_ratio: float = 0.10     # 10% of reserves

    # MEV risk (quote currency)
    quote_price: float = 230.0          # Approximate SOL price
    high_risk_value: float = 10_000.0
    medium_risk_value: float = 1_000.0

    # Liquidity warnings (fraction of total liquidity)
    liquidity_warning_ratio: float = 0.10
    liquidity_danger_ratio: float = 0.20

    # Timing
    bundle_impact: float = 15.0
    wait_impact: float = 10.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'max_slippage': self.max_slippage,
            'warning_threshold': self.warning_threshold,
            'hard_ceiling': self.hard_ceiling,
            'auto_adjust': self.auto_adjust,
            'min_slippage': self.min_slippage,
            'slippage_cap': self.slippage_cap,
            'quote_price': self.quote_price,
            'high_risk_value': self.high_risk_value,
            'medium_risk_value': self.medium_risk_value,
        }


@dataclass
class SubmitterConfig:
    """Server-side submission settings."""

    rpc_url: str = ENDPOINTS['SOLANA_MAINNET']
    helius_api_key: Optional[str] = None
    jito_url: Optional[str] = None
    db_path: str = "curveguard.db"
    host: str = "0.0.0.0"
    port: int = 8080
    base_priority_fee: int = 100_000     # microlamports, fallback when oracle fails
    analysis_window: float = 300.0       # 5 minute trade window
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_env(cls) -> 'SubmitterConfig':
        """Create config from environment variables."""
        config = cls()
        config.helius_api_key = os.getenv("HELIUS_API_KEY")
        if config.helius_api_key:
            config.rpc_url = ENDPOINTS['HELIUS_RPC'].format(api_key=config.helius_api_key)
        config.rpc_url = os.getenv("SOLANA_RPC_URL", config.rpc_url)
        config.jito_url = os.getenv("JITO_BLOCK_ENGINE_URL")
        config.db_path = os.getenv("CURVEGUARD_DB_PATH", config.db_path)
        config.host = os.getenv("CURVEGUARD_HOST", config.host)
        config.port = int(os.getenv("CURVEGUARD_PORT", config.port))
        return config

    def to_dict(self) -> Dict[str, Any]:
        return {
            'rpc_url': self.rpc_url,
            'jito_enabled': bool(self.jito_url),
            'db_path': self.db_path,
            'host': self.host,
            'port': self.port,
            'base_priority_fee': self.base_priority_fee,
            'analysis_window': self.analysis_window,
        }
