"""
EXECUTION MODULE
================

Server-side protected submission for bonding curve trades.

Components:
- AntiSandwichGuard: real-time sandwich risk scoring + protective delays
- BundleSubmitter: tiered submission (flash / priority / standard)
- RiskSignalSource / LedgerSignalSource: market + mempool signals
- SqliteLedger: trade ledger and bundle audit log
- FeeOracle: tier-scaled priority fees
- SolanaBroadcaster / JitoBundleBackend: chain and relay clients

Usage:
    from curveguard.execution import BundleSubmitter, AntiSandwichGuard

    submitter = BundleSubmitter(broadcaster, fee_oracle, ledger, guard)
    result = await submitter.submit(request)
"""

from .anti_sandwich import AntiSandwichGuard, score_risk
from .broadcast import (
    AtomicBundleBackend,
    JitoBundleBackend,
    SignedTransaction,
    SolanaBroadcaster,
    TransactionBroadcaster,
)
from .fees import (
    BUNDLE_TIERS,
    BundleTier,
    FeeOracle,
    HeliusFeeOracle,
    StaticFeeOracle,
)
from .ledger import BundleStore, SqliteLedger, TradeLedger
from .signals import LedgerSignalSource, RiskSignalSource, analyze_trades
from .submitter import BundleSubmitter, estimate_mev_savings, generate_bundle_id


__all__ = [
    # Anti-sandwich
    'AntiSandwichGuard',
    'score_risk',

    # Submission
    'BundleSubmitter',
    'estimate_mev_savings',
    'generate_bundle_id',

    # Signals
    'RiskSignalSource',
    'LedgerSignalSource',
    'analyze_trades',

    # Persistence
    'TradeLedger',
    'BundleStore',
    'SqliteLedger',

    # Fees
    'BUNDLE_TIERS',
    'BundleTier',
    'FeeOracle',
    'StaticFeeOracle',
    'HeliusFeeOracle',

    # Broadcast
    'TransactionBroadcaster',
    'AtomicBundleBackend',
    'SignedTransaction',
    'SolanaBroadcaster',
    'JitoBundleBackend',
]
