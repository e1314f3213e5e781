#!/usr/bin/env python3
"""
curveguard - Unified Entry Point
================================

Bonding curve previews and the protected submission server.

Usage:
    # Curve state for the persisted counters
    python main.py state --sol-raised 12.5 --tokens-sold 250000000

    # Preview a 1 SOL buy
    python main.py preview buy 1.0

    # Full slippage + MEV gate for a trade
    python main.py assess buy 20

    # Curve points for charting
    python main.py curve --points 10

    # Run the submission server
    python main.py serve --port 8080
"""
import argparse
import logging
import sys

from aiohttp import web

from curveguard.core import (
    BondingCurve,
    CurveConfig,
    SubmitterConfig,
    ValidationError,
    format_market_cap,
    format_price,
    format_token_amount,
)
from curveguard.models import TradeSide
from curveguard.protection import TradeProtector, recommendations


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(message)s",
        datefmt="%H:%M:%S",
    )


def show_state(curve: BondingCurve, sol_raised: float, tokens_sold: float):
    state = curve.get_state(sol_raised, tokens_sold)

    print(f"\n{'='*60}")
    print(f"  CURVE STATE")
    print(f"{'='*60}")
    print(f"  SOL Raised:       {state.sol_raised:.4f}")
    print(f"  Tokens Sold:      {format_token_amount(state.tokens_sold)}")
    print(f"  Tokens Remaining: {format_token_amount(state.tokens_remaining)}")
    print(f"  Price:            {format_price(state.current_price)} SOL")
    print(f"  Market Cap:       {format_market_cap(state.market_cap)}")
    print(f"  Progress:         {state.progress_percentage:.2f}%")
    print(f"  Graduated:        {state.is_graduated}")
    print()


def show_preview(curve: BondingCurve, side: TradeSide, amount: float, sol_raised: float, tokens_sold: float):
    state = curve.get_state(sol_raised, tokens_sold)
    if side == TradeSide.BUY:
        result = curve.simulate_buy(state, amount)
    else:
        result = curve.simulate_sell(state, amount)

    print(f"\n{side.value.upper()} PREVIEW:")
    print(f"  Tokens:           {result.tokens_out:,.2f}")
    print(f"  SOL:              {result.sol_in:,.6f}")
    print(f"  Price Before:     {format_price(result.price_before)}")
    print(f"  Price After:      {format_price(result.price_after)}")
    print(f"  Market Cap After: {format_market_cap(result.market_cap_after)}")
    if result.clamped:
        print(f"  NOTE: clamped to remaining curve supply")
    print()


def show_assessment(curve: BondingCurve, side: TradeSide, amount: float, sol_raised: float, tokens_sold: float):
    protector = TradeProtector(curve)
    state = curve.get_state(sol_raised, tokens_sold)
    protection = protector.assess_trade(state, amount, side)
    slippage = protection.slippage

    print(f"\nTRADE PROTECTION ({side.value} {amount}):")
    print(f"  Price Impact:     {slippage.price_impact:.2f}%")
    print(f"  Rec. Slippage:    {slippage.recommended_slippage:.2f}%")
    print(f"  Excessive:        {slippage.is_excessive_slippage}")
    print(f"  MEV Risk:         {protection.mev_risk.value}")
    print(f"  Timing:           {protection.optimal_timing.value}")
    print(f"  Should Proceed:   {protection.should_proceed}")
    if slippage.warning_message:
        print(f"  Warning:          {slippage.warning_message}")
    if protection.liquidity_warning:
        print(f"  Liquidity:        {protection.liquidity_warning}")

    recs = recommendations(protection)
    if recs:
        print(f"\nRECOMMENDATIONS:")
        for rec in recs:
            print(f"  - {rec}")
    print()


def show_curve(curve: BondingCurve, points: int):
    print(f"\n{'Progress':>9} | {'Tokens Sold':>12} | {'Price':>14} | {'Market Cap':>10}")
    print('-' * 56)
    for point in curve.curve_data(points):
        print(
            f"{point['progress']:>8.1f}% | {format_token_amount(point['tokens_sold']):>12} | "
            f"{format_price(point['price']):>14} | {format_market_cap(point['market_cap']):>10}"
        )
    print()


def run_server(host: str, port: int):
    from curveguard.execution.ledger import SqliteLedger
    from curveguard.execution.server import build_submitter, create_app

    config = SubmitterConfig.from_env()
    config.host = host or config.host
    config.port = port or config.port

    logger = logging.getLogger(__name__)
    logger.info(f"Starting submission server: {config.to_dict()}")

    ledger = SqliteLedger(config.db_path, curve_supply=CurveConfig().curve_supply)
    app = create_app(build_submitter(config, ledger), ledger)
    web.run_app(app, host=config.host, port=config.port)


def main():
    parser = argparse.ArgumentParser(description="Bonding curve pricing and trade protection")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_counters(p):
        p.add_argument("--sol-raised", type=float, default=0.0, help="Cumulative SOL raised")
        p.add_argument("--tokens-sold", type=float, default=0.0, help="Cumulative tokens sold")

    add_counters(sub.add_parser("state", help="Show curve state"))

    for name, help_text in (("preview", "Simulate a trade"), ("assess", "Slippage + MEV gate")):
        p = sub.add_parser(name, help=help_text)
        p.add_argument("side", choices=[s.value for s in TradeSide])
        p.add_argument("amount", type=float, help="SOL on buys, tokens on sells")
        add_counters(p)

    p = sub.add_parser("curve", help="Print curve points")
    p.add_argument("--points", type=int, default=10)

    p = sub.add_parser("serve", help="Run the submission server")
    p.add_argument("--host", default=None)
    p.add_argument("--port", type=int, default=None)

    args = parser.parse_args()
    setup_logging(args.verbose)

    curve = BondingCurve(CurveConfig())

    try:
        if args.command == "state":
            show_state(curve, args.sol_raised, args.tokens_sold)
        elif args.command == "preview":
            show_preview(curve, TradeSide(args.side), args.amount, args.sol_raised, args.tokens_sold)
        elif args.command == "assess":
            show_assessment(curve, TradeSide(args.side), args.amount, args.sol_raised, args.tokens_sold)
        elif args.command == "curve":
            show_curve(curve, args.points)
        elif args.command == "serve":
            run_server(args.host, args.port)
    except ValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
