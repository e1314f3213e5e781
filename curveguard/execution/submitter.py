"""
MEV Bundle Submitter
====================

Stateless per-request handler for protected submission:

    RECEIVED -> anti-sandwich check -> {BLOCKED | DELAYED -> SAFE | SAFE}
             -> ENHANCE -> SUBMIT -> {INCLUDED | FAILED}

Tiers:
- flash: one atomic bundle through an AtomicBundleBackend. Without a
  backend it degrades to sequential submission and says so (degraded=True)
- priority: sequential, ~100ms between transactions
- standard: plain sequential, minimal retries

Every attempt is written to the BundleStore whatever its outcome.
There is no idempotency key; duplicate-submission safety is left to
the ledger.
"""

import asyncio
import base64
import binascii
import logging
import time
import uuid
from typing import List, Optional, Tuple

from ..core.exceptions import SubmissionError, TradeBlockedError, ValidationError
from ..models import (
    BundleRecord,
    BundleStatus,
    BundleType,
    SandwichCheck,
    SubmissionRequest,
    SubmissionResult,
)
from .anti_sandwich import AntiSandwichGuard
from .broadcast import AtomicBundleBackend, SignedTransaction, TransactionBroadcaster
from .fees import BUNDLE_TIERS, BundleTier, FeeOracle
from .ledger import BundleStore

logger = logging.getLogger(__name__)


RETRY_DELAY = 0.25      # Seconds between send retries


def generate_bundle_id() -> str:
    return f"bundle_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def estimate_mev_savings(bundle_type: BundleType, transaction_count: int) -> str:
    tier = BUNDLE_TIERS[bundle_type]
    savings = tier.mev_savings_pct * transaction_count * 0.1
    return f"~{savings:.4f} SOL in MEV protection"


class BundleSubmitter:
    """
    Protected transaction submission.

    Usage:
        submitter = BundleSubmitter(broadcaster, fee_oracle, ledger, guard)
        result = await submitter.submit(request)   # may raise TradeBlockedError
    """

    def __init__(
        self,
        broadcaster: TransactionBroadcaster,
        fee_oracle: FeeOracle,
        store: BundleStore,
        guard: Optional[AntiSandwichGuard] = None,
        atomic_backend: Optional[AtomicBundleBackend] = None,
    ):
        self.broadcaster = broadcaster
        self.fee_oracle = fee_oracle
        self.store = store
        self.guard = guard
        self.atomic_backend = atomic_backend
        self.stats = {
            "bundles_sent": 0,
            "included": 0,
            "failed": 0,
            "blocked": 0,
            "degraded_flash": 0,
        }

    async def submit(self, request: SubmissionRequest) -> SubmissionResult:
        """
        Run the full protected submission flow for one request.

        Raises:
            ValidationError: empty or undecodable transaction list
            TradeBlockedError: anti-sandwich check rejected the trade
        """
        if not request.transactions:
            raise ValidationError("No transactions provided")
        if not request.user_wallet:
            raise ValidationError("userWallet is required")
        for name in ("trade_size", "expected_price", "max_slippage"):
            value = getattr(request, name)
            if value is not None and (isinstance(value, bool) or not isinstance(value, (int, float))):
                raise ValidationError(f"{name} must be a number, got {value!r}")

        payloads = self._decode(request.transactions)
        tier = BUNDLE_TIERS[request.bundle_type]

        logger.info(
            f"Processing MEV protection for {len(payloads)} transactions, type: {tier.bundle_type.value}"
        )

        # 1. Anti-sandwich check (may sleep)
        check = await self._check(request)

        bundle = BundleRecord(
            bundle_id=generate_bundle_id(),
            wallet=request.user_wallet,
            bundle_type=tier.bundle_type,
            transaction_count=len(payloads),
            risk_score=check.risk_score if check else None,
        )
        self.stats["bundles_sent"] += 1

        # 2. Fees, enhance + submit
        try:
            bundle.priority_fee = await self.fee_oracle.recommended_fee(tier.bundle_type)
            compute_units = tier.compute_units
            if request.max_compute_units:
                compute_units = min(compute_units, request.max_compute_units)

            signed = [
                await self._enhance(raw, bundle.priority_fee, compute_units, tier)
                for raw in payloads
            ]
            signatures, degraded = await self._dispatch(signed, tier, request.skip_preflight)
            bundle.signatures = signatures
            bundle.degraded = degraded
            bundle.status = await self._settle(signed, signatures)
        except SubmissionError as e:
            logger.error(f"{tier.bundle_type.value} bundle {bundle.bundle_id} failed: {e}")
            bundle.status = BundleStatus.FAILED
        except Exception as e:
            logger.error(
                f"{tier.bundle_type.value} bundle {bundle.bundle_id} failed unexpectedly: {e}",
                exc_info=True,
            )
            bundle.status = BundleStatus.FAILED

        if bundle.status == BundleStatus.INCLUDED:
            self.stats["included"] += 1
        else:
            self.stats["failed"] += 1

        # 3. Audit, regardless of outcome
        await self.store.record_bundle(bundle)

        return SubmissionResult(
            bundle=bundle,
            estimated_savings=estimate_mev_savings(tier.bundle_type, len(payloads)),
            check=check,
        )

    # ============================================================
    # STAGES
    # ============================================================

    def _decode(self, transactions: List[str]) -> List[bytes]:
        payloads = []
        for i, tx in enumerate(transactions):
            try:
                payloads.append(base64.b64decode(tx, validate=True))
            except (binascii.Error, ValueError, TypeError) as e:
                raise ValidationError(f"Transaction {i} is not valid base64: {e}") from e
        return payloads

    async def _check(self, request: SubmissionRequest) -> Optional[SandwichCheck]:
        if not self.guard:
            return None

        # Without a token only the trade's own size is scored
        check = await self.guard.check(request.token_address, request.trade_size)
        if not check.safe:
            self.stats["blocked"] += 1
            raise TradeBlockedError(
                reason=check.reason,
                suggested_delay=check.suggested_delay,
                risk_score=check.risk_score,
            )
        return check

    async def _enhance(
        self,
        raw: bytes,
        priority_fee: int,
        compute_units: int,
        tier: BundleTier,
    ) -> SignedTransaction:
        """
        Attach the tier's fee and compute budget.

        The payload is user-signed, so compute budget instructions cannot
        be rewritten here; the budget travels with the transaction for the
        relay and the audit log.
        """
        signed = await self.broadcaster.sign(raw)
        signed.priority_fee = priority_fee
        signed.compute_units = compute_units
        logger.debug(
            f"Enhanced {signed.signature[:16]}... ({tier.bundle_type.value}): "
            f"{priority_fee} priority fee, {compute_units} compute units"
        )
        return signed

    async def _dispatch(
        self,
        signed: List[SignedTransaction],
        tier: BundleTier,
        skip_preflight: bool,
    ) -> Tuple[List[str], bool]:
        """Returns (signatures, degraded)."""
        if tier.bundle_type == BundleType.FLASH:
            if self.atomic_backend is not None:
                relay_id = await self.atomic_backend.send_bundle(signed)
                logger.info(f"Atomic bundle accepted by relay: {relay_id}")
                return [tx.signature for tx in signed], False

            self.stats["degraded_flash"] += 1
            logger.warning(
                "No atomic bundle backend configured; flash bundle degraded to sequential submission"
            )
            return await self._send_sequential(signed, tier, skip_preflight), True

        return await self._send_sequential(signed, tier, skip_preflight), False

    async def _send_sequential(
        self,
        signed: List[SignedTransaction],
        tier: BundleTier,
        skip_preflight: bool,
    ) -> List[str]:
        signatures = []

        for i, tx in enumerate(signed):
            signature = await self._send_with_retry(tx, tier, skip_preflight)
            if signature:
                signatures.append(signature)

            # Stagger to reduce timing detectability
            if tier.tx_spacing and i < len(signed) - 1:
                await asyncio.sleep(tier.tx_spacing)

        return signatures

    async def _send_with_retry(
        self,
        tx: SignedTransaction,
        tier: BundleTier,
        skip_preflight: bool,
    ) -> Optional[str]:
        for attempt in range(tier.max_retries):
            try:
                return await self.broadcaster.send(
                    tx,
                    max_retries=tier.max_retries,
                    skip_preflight=skip_preflight,
                )
            except SubmissionError as e:
                logger.error(
                    f"{tier.bundle_type.value} transaction failed "
                    f"(attempt {attempt + 1}/{tier.max_retries}): {e}"
                )
                if attempt < tier.max_retries - 1:
                    await asyncio.sleep(RETRY_DELAY)
        return None

    async def _settle(self, signed: List[SignedTransaction], signatures: List[str]) -> BundleStatus:
        """Included only if every transaction landed and confirmed."""
        if not signatures or len(signatures) < len(signed):
            return BundleStatus.FAILED

        for signature in signatures:
            result = await self.broadcaster.confirm(signature)
            if result.get("err"):
                logger.error(f"Transaction {signature[:16]}... failed: {result['err']}")
                return BundleStatus.FAILED

        return BundleStatus.INCLUDED
