"""
Priority Fees + Protection Tiers
================================

Each protection tier pays a multiple of the network's recommended
priority fee and requests a larger compute budget:

    flash     3.0x   1.4M CU   atomic bundle
    priority  2.0x   0.8M CU   staggered sequential
    standard  1.5x   0.4M CU   plain sequential

Usage:
    oracle = HeliusFeeOracle(rpc_url)
    fee = await oracle.recommended_fee(BundleType.FLASH)
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, Optional

import aiohttp

from ..models import BundleType

logger = logging.getLogger(__name__)


DEFAULT_PRIORITY_FEE = 100_000      # microlamports per CU, used on oracle failure


@dataclass(frozen=True)
class BundleTier:
    """Fee and submission policy for one protection tier"""
    bundle_type: BundleType
    fee_multiplier: float
    compute_units: int
    max_retries: int
    tx_spacing: float = 0.0         # Seconds between sequential sends
    mev_savings_pct: float = 0.0    # Estimated share of MEV avoided


BUNDLE_TIERS: Dict[BundleType, BundleTier] = {
    BundleType.FLASH: BundleTier(BundleType.FLASH, 3.0, 1_400_000, max_retries=3, mev_savings_pct=0.15),
    BundleType.PRIORITY: BundleTier(BundleType.PRIORITY, 2.0, 800_000, max_retries=2, tx_spacing=0.1, mev_savings_pct=0.08),
    BundleType.STANDARD: BundleTier(BundleType.STANDARD, 1.5, 400_000, max_retries=1, mev_savings_pct=0.03),
}


class FeeOracle(ABC):
    """Recommended priority fee per tier."""

    @abstractmethod
    async def base_fee(self) -> int:
        """Network's recommended (high) priority fee in microlamports."""
        pass

    async def recommended_fee(self, bundle_type: BundleType) -> int:
        tier = BUNDLE_TIERS[bundle_type]
        return int(await self.base_fee() * tier.fee_multiplier)


class StaticFeeOracle(FeeOracle):
    """Fixed base fee."""

    def __init__(self, fee: int = DEFAULT_PRIORITY_FEE):
        self.fee = fee

    async def base_fee(self) -> int:
        return self.fee


class HeliusFeeOracle(FeeOracle):
    """
    Helius `getPriorityFeeEstimate` over JSON-RPC.

    Falls back to DEFAULT_PRIORITY_FEE when the RPC is unreachable or
    returns no estimate.
    """

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 5.0,
        fallback: int = DEFAULT_PRIORITY_FEE,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.fallback = fallback
        self._session = session

    async def base_fee(self) -> int:
        payload = {
            "jsonrpc": "2.0",
            "id": "curveguard",
            "method": "getPriorityFeeEstimate",
            "params": [{"options": {"includeAllPriorityFeeLevels": True}}],
        }

        try:
            data = await self._post(payload)
            levels = (data.get("result") or {}).get("priorityFeeLevels") or {}
            fee = levels.get("high")
            if fee:
                return int(fee)
            logger.warning("Priority fee estimate missing, using fallback")
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError, AttributeError, TypeError) as e:
            logger.warning(f"Priority fee lookup failed ({e}), using fallback {self.fallback}")

        return self.fallback

    async def _post(self, payload: dict) -> dict:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        if self._session is not None:
            async with self._session.post(self.rpc_url, json=payload, timeout=timeout) as resp:
                return await resp.json()

        async with aiohttp.ClientSession() as session:
            async with session.post(self.rpc_url, json=payload, timeout=timeout) as resp:
                return await resp.json()
