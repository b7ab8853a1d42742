"""
DEX arbitrage scanner CLI.

Usage:
    python -m dex_arbitrage scan --config configs/example.yaml --base WETH --quote USDC
    python -m dex_arbitrage scan --config configs/example.yaml --base SOL --quote USDC --chain 101 --json
    python -m dex_arbitrage scan --config configs/example.yaml --base WETH --quote USDC --watch 30
    python -m dex_arbitrage sources --config configs/example.yaml --chain 1
    python -m dex_arbitrage disable curve --config configs/example.yaml
    python -m dex_arbitrage --quiet sources --chain 101 --json
"""

import argparse
import asyncio
import sys
from typing import List, Optional

import aiohttp
from tabulate import tabulate

from . import logging_config
from .config import ScannerConfig, get_default_config, load_config
from .exceptions import ConfigurationError, DexArbitrageError
from .metrics import ScannerMetrics
from .scanner import ArbitrageScanner
from .types import ScanResult, network_name
from .utils import format_percent, safe_json_dump
from .version import get_version


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="dex_arbitrage",
        description="Cross-DEX price aggregation and arbitrage scanner",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Single scan on Ethereum
  python -m dex_arbitrage scan --config configs/example.yaml --base WETH --quote USDC

  # Show sources serving Solana
  python -m dex_arbitrage sources --config configs/example.yaml --chain 101
        """,
    )
    parser.add_argument(
        "--config", default=None, help="Path to config YAML file (defaults apply when omitted)"
    )
    parser.add_argument("--log-level", default=None, help="Override the configured log level")
    parser.add_argument(
        "--quiet", action="store_true", help="Only log warnings and errors"
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")

    sub = parser.add_subparsers(dest="command", required=True)

    scan = sub.add_parser("scan", help="Scan a token pair for opportunities")
    scan.add_argument("--base", required=True, help="Base token symbol (e.g. WETH)")
    scan.add_argument("--quote", required=True, help="Quote token symbol (e.g. USDC)")
    scan.add_argument("--chain", type=int, default=1, help="Chain id (default: 1)")
    scan.add_argument("--amount", type=float, default=None, help="Investment amount")
    scan.add_argument(
        "--min-profit", type=float, default=None, help="Minimum price difference in percent"
    )
    scan.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    scan.add_argument(
        "--watch",
        type=float,
        default=None,
        metavar="SECONDS",
        help="Repeat the scan every SECONDS until interrupted",
    )

    sources = sub.add_parser("sources", help="List price sources and their health")
    sources.add_argument("--chain", type=int, default=None, help="Only sources serving this chain")
    sources.add_argument("--json", action="store_true", help="Print JSON instead of a table")

    for name, help_text in (("enable", "Enable a price source"), ("disable", "Disable a price source")):
        toggle = sub.add_parser(name, help=help_text)
        toggle.add_argument("slug", help="Source identifier (e.g. uniswap)")

    return parser.parse_args(argv)


def format_opportunities(result: ScanResult) -> str:
    rows = []
    for opp in result.sorted_by_net_profit():
        rows.append(
            [
                opp.buy_source,
                opp.sell_source,
                f"{opp.buy_price:.6g}",
                f"{opp.sell_price:.6g}",
                format_percent(opp.price_difference_percent),
                f"{opp.gross_profit:.2f}",
                f"{opp.trading_fees + opp.gas_fee + opp.platform_fee:.2f}",
                f"{opp.net_profit:.2f}",
                format_percent(opp.net_profit_percent),
                opp.risk_level,
                "yes" if opp.uses_fallback_quote else "",
            ]
        )
    return tabulate(
        rows,
        headers=[
            "Buy", "Sell", "Buy Px", "Sell Px", "Diff", "Gross",
            "Costs", "Net", "Net %", "Risk", "Fallback",
        ],
        tablefmt="simple",
    )


def format_quotes(result: ScanResult) -> str:
    rows = [
        [
            name,
            f"{q.price:.6g}",
            f"{q.fee_rate * 100:.2f}%",
            f"{q.liquidity_usd:,.0f}" if q.liquidity_usd else "unknown",
            f"{q.gas_estimate_usd:.4f}",
            "fallback" if q.is_fallback else "live",
        ]
        for name, q in sorted(result.quotes.items())
    ]
    return tabulate(rows, headers=["Source", "Price", "Fee", "Liquidity", "Gas", "Kind"])


def print_scan(result: ScanResult, pair: str, as_json: bool) -> None:
    if as_json:
        print(
            safe_json_dump(
                {
                    "pair": pair,
                    "network": network_name(result.chain_id),
                    "message": result.message,
                    "quotes": {n: q.to_dict() for n, q in result.quotes.items()},
                    "opportunities": [o.to_dict() for o in result.sorted_by_net_profit()],
                },
                indent=2,
            )
        )
        return

    print(f"\n{pair} on {network_name(result.chain_id)}")
    if result.quotes:
        print(format_quotes(result))
    if result.opportunities:
        print()
        print(format_opportunities(result))
    if result.message:
        print(f"\n{result.message}")


async def run_scan(config: ScannerConfig, args: argparse.Namespace) -> int:
    base = config.resolve_token(args.base, args.chain)
    quote = config.resolve_token(args.quote, args.chain)
    metrics = ScannerMetrics() if config.metrics.enabled else None

    async with aiohttp.ClientSession() as session:
        scanner = ArbitrageScanner.from_config(config, session, metrics=metrics)
        try:
            await scanner.restore_source_flags()
            if metrics is not None:
                await metrics.start_server(
                    port=config.metrics.port,
                    health_provider=lambda: [h.to_dict() for h in scanner.check_health()],
                )
            while True:
                result = await scanner.scan(
                    base,
                    quote,
                    investment_amount=args.amount,
                    min_profit_percent=args.min_profit,
                    force_refresh=args.watch is not None,
                )
                print_scan(result, f"{base.symbol}/{quote.symbol}", args.json)
                if args.watch is None:
                    break
                await asyncio.sleep(args.watch)
        finally:
            if metrics is not None:
                await metrics.stop_server()
            await scanner.close()
    return 0


async def run_sources(config: ScannerConfig, args: argparse.Namespace) -> int:
    async with aiohttp.ClientSession() as session:
        scanner = ArbitrageScanner.from_config(config, session)
        try:
            await scanner.restore_source_flags()
            health = scanner.check_health(args.chain)
        finally:
            await scanner.close()

    if args.json:
        print(safe_json_dump([h.to_dict() for h in health], indent=2))
        return 0
    rows = [
        [h.slug, h.source, h.network, h.chain_id, h.status, h.consecutive_errors]
        for h in health
    ]
    print(tabulate(rows, headers=["Slug", "Source", "Network", "Chain", "Status", "Errors"]))
    return 0


async def run_toggle(config: ScannerConfig, args: argparse.Namespace) -> int:
    enabled = args.command == "enable"
    if config.store.backend != "sqlite":
        print(
            f"Warning: the {config.store.backend} store does not outlive this process; "
            f"set store.backend to sqlite to keep the change",
            file=sys.stderr,
        )
    async with aiohttp.ClientSession() as session:
        scanner = ArbitrageScanner.from_config(config, session)
        try:
            await scanner.restore_source_flags()
            await scanner.set_source_enabled(args.slug, enabled)
        finally:
            await scanner.close()
    print(f"{args.slug} {'enabled' if enabled else 'disabled'}")
    return 0


def configure_logging(config: ScannerConfig, args: argparse.Namespace) -> None:
    if args.quiet:
        logging_config.setup_minimal()
        return
    level = (args.log_level or config.log_level).upper()
    if level == "DEBUG":
        logging_config.setup_debug()
    else:
        logging_config.setup(level)


COMMANDS = {
    "scan": run_scan,
    "sources": run_sources,
    "enable": run_toggle,
    "disable": run_toggle,
}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point.

    Returns:
        Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    try:
        config = load_config(args.config) if args.config else get_default_config()
    except ConfigurationError as e:
        print(f"Config error: {e}", file=sys.stderr)
        return 1

    configure_logging(config, args)

    try:
        return asyncio.run(COMMANDS[args.command](config, args))
    except KeyboardInterrupt:
        return 0
    except DexArbitrageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
