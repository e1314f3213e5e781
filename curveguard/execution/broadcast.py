"""
Transaction Broadcast
=====================

Signing/broadcast capability consumed by the bundle submitter, plus the
optional atomic bundle relay used by the flash tier.

- SolanaBroadcaster: user-signed transactions over Solana RPC
- JitoBundleBackend: atomic bundles via the Jito block engine

Requirements:
    pip install solana solders
"""

import base64
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import aiohttp
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts
from solders.signature import Signature
from solders.transaction import Transaction, VersionedTransaction

from ..core.config import ENDPOINTS
from ..core.exceptions import SubmissionError

logger = logging.getLogger(__name__)


@dataclass
class SignedTransaction:
    """Wire bytes of a signed transaction and its primary signature"""
    raw: bytes
    signature: str
    priority_fee: int = 0
    compute_units: int = 0


class TransactionBroadcaster(ABC):
    """sign / send / confirm against the ledger."""

    @abstractmethod
    async def sign(self, raw: bytes) -> SignedTransaction:
        pass

    @abstractmethod
    async def send(self, tx: SignedTransaction, max_retries: int = 1, skip_preflight: bool = False) -> str:
        """Broadcast and return the signature. Raises SubmissionError."""
        pass

    @abstractmethod
    async def confirm(self, signature: str) -> Dict[str, Any]:
        """Wait for confirmation. Returns {'err': ...} on failure, {} on success."""
        pass


class AtomicBundleBackend(ABC):
    """Relay that lands a list of transactions all-or-nothing."""

    @abstractmethod
    async def send_bundle(self, txs: List[SignedTransaction]) -> str:
        """Submit the bundle and return the relay's bundle id. Raises SubmissionError."""
        pass


# ============================================================
# SOLANA
# ============================================================

def decode_transaction(raw: bytes):
    """Versioned first, legacy as fallback."""
    try:
        return VersionedTransaction.from_bytes(raw)
    except Exception:
        return Transaction.from_bytes(raw)


class SolanaBroadcaster(TransactionBroadcaster):
    """
    Broadcasts transactions the user already signed client-side.

    `sign` decodes and checks the payload; the platform never holds the
    user's key.
    """

    def __init__(self, rpc_url: str = ENDPOINTS['SOLANA_MAINNET'], client: Optional[AsyncClient] = None):
        self.rpc_url = rpc_url
        self._client = client or AsyncClient(rpc_url, commitment=Confirmed)

    async def sign(self, raw: bytes) -> SignedTransaction:
        try:
            tx = decode_transaction(raw)
        except Exception as e:
            raise SubmissionError(f"Undecodable transaction: {e}") from e

        if not tx.signatures:
            raise SubmissionError("Transaction carries no signatures")

        return SignedTransaction(raw=bytes(tx), signature=str(tx.signatures[0]))

    async def send(self, tx: SignedTransaction, max_retries: int = 1, skip_preflight: bool = False) -> str:
        opts = TxOpts(
            skip_preflight=skip_preflight,
            preflight_commitment=Confirmed,
            max_retries=max_retries,
        )
        try:
            resp = await self._client.send_raw_transaction(tx.raw, opts=opts)
        except Exception as e:
            raise SubmissionError(f"sendTransaction failed: {e}") from e
        return str(resp.value)

    async def confirm(self, signature: str) -> Dict[str, Any]:
        try:
            resp = await self._client.confirm_transaction(
                Signature.from_string(signature),
                commitment=Confirmed,
            )
        except Exception as e:
            logger.error(f"Confirmation failed for {signature[:16]}...: {e}")
            return {"err": str(e)}

        status = resp.value[0] if resp.value else None
        if status is None:
            return {"err": "signature status unavailable"}
        if status.err is not None:
            return {"err": str(status.err)}
        return {}

    async def close(self):
        await self._client.close()


# ============================================================
# JITO
# ============================================================

class JitoBundleBackend(AtomicBundleBackend):
    """Jito block engine `sendBundle` (max 5 transactions per bundle)."""

    MAX_BUNDLE_SIZE = 5

    def __init__(self, url: str = ENDPOINTS['JITO_BUNDLES'], timeout: float = 10.0):
        self.url = url
        self.timeout = timeout

    async def send_bundle(self, txs: List[SignedTransaction]) -> str:
        if len(txs) > self.MAX_BUNDLE_SIZE:
            raise SubmissionError(f"Bundle of {len(txs)} exceeds {self.MAX_BUNDLE_SIZE} transactions")

        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": "sendBundle",
            "params": [
                [base64.b64encode(tx.raw).decode() for tx in txs],
                {"encoding": "base64"},
            ],
        }

        try:
            async with aiohttp.ClientSession() as session:
                timeout = aiohttp.ClientTimeout(total=self.timeout)
                async with session.post(self.url, json=payload, timeout=timeout) as resp:
                    data = await resp.json()
        except Exception as e:
            raise SubmissionError(f"Jito sendBundle failed: {e}") from e

        if "error" in data:
            raise SubmissionError(f"Jito rejected bundle: {data['error']}")
        return str(data.get("result"))
