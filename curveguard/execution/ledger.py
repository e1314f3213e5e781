"""
Trade Ledger + Bundle Audit Store
=================================

Persistence for the two things the submitter needs to remember:
- Confirmed trades per token, and the token's cumulative counters
  (sol_raised, tokens_sold) the curve state is derived from
- One audit row per submission attempt, whatever its outcome

Usage:
    ledger = SqliteLedger("curveguard.db")
    await ledger.append_trade(TradeRecord("mint", amount=1.5))
    trades = await ledger.recent_trades("mint", window=300)
"""

import json
import logging
import sqlite3
import time
from abc import ABC, abstractmethod
from typing import List, Optional, Tuple

from ..models import BundleRecord, BundleStatus, BundleType, TradeRecord, TradeSide

logger = logging.getLogger(__name__)


class TradeLedger(ABC):
    """Trade/token ledger consumed by the risk signals."""

    @abstractmethod
    async def recent_trades(self, token_address: str, window: float = 300.0) -> List[TradeRecord]:
        """Trades for a token within the last `window` seconds, oldest first."""
        pass

    @abstractmethod
    async def append_trade(self, trade: TradeRecord) -> None:
        pass

    @abstractmethod
    async def get_counters(self, token_address: str) -> Tuple[float, float]:
        """(sol_raised, tokens_sold) for a token."""
        pass

    @abstractmethod
    async def apply_trade(self, token_address: str, sol_delta: float, token_delta: float) -> Tuple[float, float]:
        """Apply a confirmed trade to the counters. Counters floor at zero."""
        pass


class BundleStore(ABC):
    """Audit log of submission attempts."""

    @abstractmethod
    async def record_bundle(self, bundle: BundleRecord) -> None:
        pass

    @abstractmethod
    async def bundles(self, wallet: Optional[str] = None, limit: int = 100) -> List[BundleRecord]:
        pass


class SqliteLedger(TradeLedger, BundleStore):
    """
    SQLite implementation of both stores.

    Queries run inline on the event loop.
    """

    def __init__(self, db_path: str = ":memory:", curve_supply: Optional[float] = None):
        self.db_path = db_path
        self.curve_supply = curve_supply
        self.conn = sqlite3.connect(db_path)
        self.conn.row_factory = sqlite3.Row
        self._init_schema()

    def close(self) -> None:
        self.conn.close()

    def _init_schema(self) -> None:
        cur = self.conn.cursor()
        cur.executescript(
            """
            CREATE TABLE IF NOT EXISTS trades (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                token_address TEXT NOT NULL,
                side TEXT NOT NULL,
                amount REAL NOT NULL,
                profit_pct REAL NOT NULL DEFAULT 0,
                timestamp REAL NOT NULL
            );
            CREATE INDEX IF NOT EXISTS idx_trades_token_ts ON trades(token_address, timestamp);

            CREATE TABLE IF NOT EXISTS tokens (
                token_address TEXT PRIMARY KEY,
                sol_raised REAL NOT NULL DEFAULT 0,
                tokens_sold REAL NOT NULL DEFAULT 0
            );

            CREATE TABLE IF NOT EXISTS mev_protection_logs (
                bundle_id TEXT PRIMARY KEY,
                user_wallet TEXT NOT NULL,
                bundle_type TEXT NOT NULL,
                transaction_count INTEGER NOT NULL,
                status TEXT NOT NULL,
                signatures TEXT NOT NULL,
                priority_fee INTEGER NOT NULL,
                degraded INTEGER NOT NULL DEFAULT 0,
                risk_score REAL,
                created_at REAL NOT NULL
            );
            """
        )
        self.conn.commit()

    # ============================================================
    # TRADES
    # ============================================================

    async def recent_trades(self, token_address: str, window: float = 300.0) -> List[TradeRecord]:
        since = time.time() - window
        rows = self.conn.execute(
            "SELECT * FROM trades WHERE token_address = ? AND timestamp >= ? ORDER BY timestamp",
            (token_address, since),
        ).fetchall()
        return [
            TradeRecord(
                token_address=row["token_address"],
                amount=row["amount"],
                side=TradeSide(row["side"]),
                profit_pct=row["profit_pct"],
                timestamp=row["timestamp"],
            )
            for row in rows
        ]

    async def append_trade(self, trade: TradeRecord) -> None:
        self.conn.execute(
            "INSERT INTO trades (token_address, side, amount, profit_pct, timestamp) VALUES (?, ?, ?, ?, ?)",
            (trade.token_address, trade.side.value, trade.amount, trade.profit_pct, trade.timestamp),
        )
        self.conn.commit()

    async def get_counters(self, token_address: str) -> Tuple[float, float]:
        row = self.conn.execute(
            "SELECT sol_raised, tokens_sold FROM tokens WHERE token_address = ?",
            (token_address,),
        ).fetchone()
        if row is None:
            return 0.0, 0.0
        return row["sol_raised"], row["tokens_sold"]

    async def apply_trade(self, token_address: str, sol_delta: float, token_delta: float) -> Tuple[float, float]:
        sol_raised, tokens_sold = await self.get_counters(token_address)
        sol_raised = max(0.0, sol_raised + sol_delta)
        tokens_sold = max(0.0, tokens_sold + token_delta)
        if self.curve_supply is not None:
            tokens_sold = min(tokens_sold, self.curve_supply)

        self.conn.execute(
            """
            INSERT INTO tokens (token_address, sol_raised, tokens_sold) VALUES (?, ?, ?)
            ON CONFLICT(token_address) DO UPDATE SET
                sol_raised = excluded.sol_raised,
                tokens_sold = excluded.tokens_sold
            """,
            (token_address, sol_raised, tokens_sold),
        )
        self.conn.commit()
        return sol_raised, tokens_sold

    # ============================================================
    # BUNDLE AUDIT
    # ============================================================

    async def record_bundle(self, bundle: BundleRecord) -> None:
        self.conn.execute(
            """
            INSERT OR REPLACE INTO mev_protection_logs (
                bundle_id, user_wallet, bundle_type, transaction_count, status,
                signatures, priority_fee, degraded, risk_score, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                bundle.bundle_id,
                bundle.wallet,
                bundle.bundle_type.value,
                bundle.transaction_count,
                bundle.status.value,
                json.dumps(bundle.signatures),
                bundle.priority_fee,
                int(bundle.degraded),
                bundle.risk_score,
                bundle.created_at,
            ),
        )
        self.conn.commit()
        logger.debug(f"Recorded bundle {bundle.bundle_id} ({bundle.status.value})")

    async def bundles(self, wallet: Optional[str] = None, limit: int = 100) -> List[BundleRecord]:
        if wallet:
            rows = self.conn.execute(
                "SELECT * FROM mev_protection_logs WHERE user_wallet = ? ORDER BY created_at DESC LIMIT ?",
                (wallet, limit),
            ).fetchall()
        else:
            rows = self.conn.execute(
                "SELECT * FROM mev_protection_logs ORDER BY created_at DESC LIMIT ?",
                (limit,),
            ).fetchall()

        return [
            BundleRecord(
                bundle_id=row["bundle_id"],
                wallet=row["user_wallet"],
                bundle_type=BundleType(row["bundle_type"]),
                transaction_count=row["transaction_count"],
                status=BundleStatus(row["status"]),
                signatures=json.loads(row["signatures"]),
                priority_fee=row["priority_fee"],
                degraded=bool(row["degraded"]),
                risk_score=row["risk_score"],
                created_at=row["created_at"],
            )
            for row in rows
        ]
