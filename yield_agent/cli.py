"""Command-line interface for the lending yield agent."""
from __future__ import annotations

import argparse
import asyncio
import sys

from .config import load_config
from .logging_setup import configure_logging
from .models import (
    ActionKind,
    ActionRequest,
    PortfolioSummary,
    ProtocolId,
    RateScan,
    Recommendation,
)
from .services import Monitor


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="yield-agent",
        description="Cross-protocol lending yield agent for Venus and Aave",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    sub.add_parser("rates", help="Show current rates for every market")

    portfolio_parser = sub.add_parser("portfolio", help="Show positions and health")
    portfolio_parser.add_argument(
        "address", nargs="?", default=None, help="Account (default: signer/watch address)"
    )

    recommend_parser = sub.add_parser("recommend", help="Show ranked recommendations")
    recommend_parser.add_argument(
        "address", nargs="?", default=None, help="Account (default: signer/watch address)"
    )

    sub.add_parser("check", help="Run a single agent check")

    monitor_parser = sub.add_parser("monitor", help="Continuous monitoring loop")
    monitor_parser.add_argument(
        "interval",
        nargs="?",
        type=float,
        default=None,
        help="Check interval in minutes (overrides config)",
    )
    monitor_parser.add_argument(
        "--auto",
        action="store_true",
        help="Auto-execute the top non-high-risk recommendation",
    )

    execute_parser = sub.add_parser("execute", help="Execute a single action")
    execute_parser.add_argument("protocol", choices=[p.value for p in ProtocolId])
    execute_parser.add_argument("action", choices=[a.value for a in ActionKind])
    execute_parser.add_argument("token", help="Token symbol, e.g. USDT")
    execute_parser.add_argument("amount", type=float, help="Amount in token units")

    return parser


def format_rates(scan: RateScan) -> str:
    lines = [
        f"{'PROTOCOL':<8} {'TOKEN':<6} {'SUPPLY':>8} {'REWARD':>8} "
        f"{'BORROW':>8} {'UTIL':>7} {'CF':>5}"
    ]
    for rate in sorted(scan.rates, key=lambda r: (r.token.symbol, r.protocol.value)):
        reward = f"{rate.reward_apy:.2f}%" if rate.reward_available else "n/a"
        lines.append(
            f"{rate.protocol.value:<8} {rate.token.symbol:<6} "
            f"{rate.supply_apy:>7.2f}% {reward:>8} {rate.borrow_apy:>7.2f}% "
            f"{rate.utilization:>6.1f}% {rate.collateral_factor:>5.2f}"
        )
    for diag in scan.diagnostics:
        lines.append(f"! {diag.protocol.value} {diag.token}: {diag.error}")
    return "\n".join(lines)


def format_portfolio(summary: PortfolioSummary) -> str:
    lines = [
        f"Supplied:   ${summary.total_supplied_usd:,.2f} "
        f"({summary.weighted_supply_apy:.2f}% APY)",
        f"Borrowed:   ${summary.total_borrowed_usd:,.2f} "
        f"({summary.weighted_borrow_apy:.2f}% APY)",
        f"Net worth:  ${summary.net_worth_usd:,.2f}",
        f"Net APY:    {summary.net_apy:.2f}%",
        f"Health:     {summary.health_factor:.2f}",
    ]
    for protocol, hf in summary.protocol_health.items():
        lines.append(f"  {protocol.value}: {hf:.2f}")
    for p in summary.positions:
        lines.append(
            f"{p.protocol.value:<6} {p.kind.value:<7} {p.amount:,.4f} {p.token.symbol} "
            f"(${p.amount_usd:,.2f}) @ {p.apy:.2f}%"
        )
    return "\n".join(lines)


def format_recommendations(recs: list[Recommendation]) -> str:
    if not recs:
        return "No recommendations."
    lines = []
    for i, rec in enumerate(recs, 1):
        lines.append(
            f"{i}. [{rec.strategy}] {rec.expected_apy:.2f}% ({rec.risk.value} risk)"
        )
        lines.append(f"   {rec.reasoning}")
    return "\n".join(lines)


def _resolve_address(monitor: Monitor, address: str | None) -> str:
    resolved = address or monitor.monitored_address()
    if not resolved:
        print("No address given and no wallet/watch address configured", file=sys.stderr)
        sys.exit(1)
    return resolved


async def _run(args: argparse.Namespace) -> None:
    """Execute the selected command."""
    configure_logging(args.log_level)
    config = load_config(args.config)
    monitor = Monitor(config)

    if args.command == "rates":
        print(format_rates(await monitor.engine.get_all_rates()))
    elif args.command == "portfolio":
        address = _resolve_address(monitor, args.address)
        print(format_portfolio(await monitor.aggregator.get_portfolio(address)))
    elif args.command == "recommend":
        address = _resolve_address(monitor, args.address)
        report = await monitor.engine.scan(address)
        print(format_recommendations(list(report.recommendations)))
    elif args.command == "check":
        await monitor.run_check()
        status = monitor.status()
        print(format_recommendations(status.recommendations))
        for error in status.errors:
            print(f"! {error}")
    elif args.command == "monitor":
        if args.auto:
            monitor.set_auto_execute(True)
        await monitor.run_continuous(args.interval)
    elif args.command == "execute":
        request = ActionRequest(
            protocol=ProtocolId(args.protocol),
            action=ActionKind(args.action),
            token=args.token,
            amount=args.amount,
        )
        result = await monitor.executor.execute_action(request)
        if result.ok:
            print(f"Confirmed: {result.tx_hash} (gas {result.gas_used})")
        else:
            print(f"Failed ({result.failure.value}): {result.error}", file=sys.stderr)
            sys.exit(1)
    else:
        build_parser().print_help()
        sys.exit(1)


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    asyncio.run(_run(args))
