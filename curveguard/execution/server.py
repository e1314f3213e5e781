"""
Submission Server
=================

aiohttp endpoints around the bundle submitter and the trade gate.

    POST /mev-protection   protected submission
    POST /assess           slippage + MEV preview for a trade
    POST /trades           record a confirmed trade
    GET  /bundles          submission audit log
    GET  /health           counters, including degraded-protection events

Usage:
    python main.py serve --port 8080
"""

import logging
from typing import Any, Dict

from aiohttp import web

from ..core.config import SubmitterConfig
from ..core.curve import BondingCurve
from ..core.exceptions import TradeBlockedError, ValidationError
from ..models import SubmissionRequest, TradeRecord, TradeSide
from ..protection.trade_protection import TradeProtector, recommendations
from .anti_sandwich import AntiSandwichGuard
from .broadcast import JitoBundleBackend, SolanaBroadcaster
from .fees import HeliusFeeOracle, StaticFeeOracle
from .ledger import SqliteLedger
from .signals import LedgerSignalSource
from .submitter import BundleSubmitter

logger = logging.getLogger(__name__)

STANDARD_FALLBACK = "Consider using standard transaction submission"


class SubmissionServer:
    """HTTP handlers. One instance per process; handlers share no request state."""

    def __init__(self, submitter: BundleSubmitter, ledger: SqliteLedger, protector: TradeProtector):
        self.submitter = submitter
        self.ledger = ledger
        self.protector = protector

    def routes(self):
        return [
            web.post("/mev-protection", self.submit_handler),
            web.post("/assess", self.assess_handler),
            web.post("/trades", self.trade_handler),
            web.get("/bundles", self.bundles_handler),
            web.get("/health", self.health_handler),
        ]

    async def _json_body(self, request: web.Request) -> Dict[str, Any]:
        try:
            body = await request.json()
        except ValueError:
            raise ValidationError("invalid json body")
        if not isinstance(body, dict):
            raise ValidationError("json body must be an object")
        return body

    async def submit_handler(self, request: web.Request) -> web.Response:
        try:
            body = await self._json_body(request)
            try:
                submission = SubmissionRequest.from_dict(body)
            except (ValueError, TypeError) as e:
                raise ValidationError(str(e))
            result = await self.submitter.submit(submission)
        except ValidationError as e:
            return web.json_response({"error": str(e)}, status=400)
        except TradeBlockedError as e:
            return web.json_response(e.to_dict(), status=429)
        except Exception as e:
            logger.error(f"MEV protection error: {e}", exc_info=True)
            return web.json_response(
                {"error": str(e), "fallback": STANDARD_FALLBACK},
                status=500,
            )

        return web.json_response(result.to_dict())

    async def assess_handler(self, request: web.Request) -> web.Response:
        try:
            body = await self._json_body(request)
            token_address = body.get("tokenAddress")
            if token_address and "solRaised" not in body:
                sol_raised, tokens_sold = await self.ledger.get_counters(token_address)
            else:
                sol_raised = float(body.get("solRaised", 0))
                tokens_sold = float(body.get("tokensSold", 0))

            side = TradeSide(body.get("side", "buy"))
            amount = float(body.get("amount", 0))

            state = self.protector.curve.get_state(sol_raised, tokens_sold)
            protection = self.protector.assess_trade(state, amount, side)
        except ValidationError as e:
            return web.json_response({"error": str(e)}, status=400)
        except (ValueError, TypeError) as e:
            return web.json_response({"error": f"invalid request: {e}"}, status=400)

        payload = protection.to_dict()
        payload["state"] = state.to_dict()
        payload["recommendations"] = recommendations(protection)
        return web.json_response(payload)

    async def trade_handler(self, request: web.Request) -> web.Response:
        try:
            body = await self._json_body(request)
            token_address = body.get("tokenAddress")
            if not token_address:
                raise ValidationError("tokenAddress is required")
            side = TradeSide(body.get("side", "buy"))
            sol_amount = float(body["solAmount"])
            token_amount = float(body["tokenAmount"])
            if sol_amount <= 0 or token_amount <= 0:
                raise ValidationError("solAmount and tokenAmount must be positive")
            profit_pct = float(body.get("profitPct", 0.0))
        except ValidationError as e:
            return web.json_response({"error": str(e)}, status=400)
        except (KeyError, ValueError, TypeError) as e:
            return web.json_response({"error": f"invalid request: {e}"}, status=400)

        sign = 1 if side == TradeSide.BUY else -1
        sol_raised, tokens_sold = await self.ledger.apply_trade(
            token_address, sign * sol_amount, sign * token_amount
        )
        await self.ledger.append_trade(
            TradeRecord(token_address=token_address, amount=sol_amount, side=side, profit_pct=profit_pct)
        )

        state = self.protector.curve.get_state(sol_raised, tokens_sold)
        return web.json_response({"ok": True, "state": state.to_dict()})

    async def bundles_handler(self, request: web.Request) -> web.Response:
        wallet = request.query.get("wallet")
        rows = await self.ledger.bundles(wallet=wallet)
        items = []
        for row in rows:
            item = row.to_dict()
            item.update({
                "wallet": row.wallet,
                "bundleType": row.bundle_type.value,
                "transactionCount": row.transaction_count,
                "priorityFee": row.priority_fee,
                "degraded": row.degraded,
                "createdAt": row.created_at,
            })
            items.append(item)
        return web.json_response({"count": len(items), "items": items})

    async def health_handler(self, request: web.Request) -> web.Response:
        guard = self.submitter.guard
        return web.json_response({
            "ok": True,
            "submitter": dict(self.submitter.stats),
            "antiSandwich": dict(guard.stats) if guard else None,
        })


def build_submitter(config: SubmitterConfig, ledger: SqliteLedger) -> BundleSubmitter:
    """Wire the production collaborators from config."""
    if config.helius_api_key:
        fee_oracle = HeliusFeeOracle(config.rpc_url, fallback=config.base_priority_fee)
    else:
        fee_oracle = StaticFeeOracle(config.base_priority_fee)

    atomic_backend = JitoBundleBackend(config.jito_url) if config.jito_url else None

    return BundleSubmitter(
        broadcaster=SolanaBroadcaster(config.rpc_url),
        fee_oracle=fee_oracle,
        store=ledger,
        guard=AntiSandwichGuard(LedgerSignalSource(ledger, window=config.analysis_window)),
        atomic_backend=atomic_backend,
    )


def create_app(
    submitter: BundleSubmitter,
    ledger: SqliteLedger,
    protector: TradeProtector = None,
) -> web.Application:
    server = SubmissionServer(submitter, ledger, protector or TradeProtector(BondingCurve()))
    app = web.Application()
    app.add_routes(server.routes())
    return app
