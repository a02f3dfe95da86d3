#!/usr/bin/env python3.13
"""CLI entry point to print the latest portfolio snapshot."""

from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from display_format import format_roi, format_tokens_received, pnl_color, roi_color
from portfolio_snapshot import PortfolioSnapshot
from portfolio_views import top_liquid_positions
from table_sort import (
    FUND_COLUMNS,
    INDIVIDUAL_COLUMNS,
    SortState,
    find_column,
    merge_overview_fields,
    sort_rows,
)
from upstream_client import UpstreamClient, UpstreamError

console = Console()

# Columns shown in the terminal; the web table carries the full set.
FUND_CLI_COLUMNS = ["totalInvested", "totalValue", "realisedValue", "realisedPnL", "roi", "realisedRoi", "liquidValue"]
INDIVIDUAL_CLI_COLUMNS = ["totalInvested", "share", "totalValue", "realisedValue", "realisedPnL", "unrealisedRoi", "dpi"]


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Print the portfolio published by the spreadsheet service."
    )
    parser.add_argument(
        "--portfolio",
        default="fund",
        help="Portfolio to show: 'fund' or an individual portfolio key (default: fund)",
    )
    parser.add_argument(
        "--sort",
        default="totalValue",
        help="Column key to sort the investments by (default: totalValue)",
    )
    parser.add_argument(
        "--asc",
        action="store_true",
        help="Sort ascending instead of descending.",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Ask the spreadsheet to refresh prices before fetching.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw upstream payload instead of tables.",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase logging verbosity (repeat for more detail).",
    )
    return parser.parse_args(argv)


def configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _styled(key: str, rendered: str) -> Text:
    if key == "realisedPnL":
        return Text(rendered, style=pnl_color(rendered))
    if key in ("roi", "realisedRoi", "unrealisedRoi"):
        return Text(rendered, style=roi_color(rendered))
    return Text(rendered)


def print_summary(snapshot: PortfolioSnapshot, portfolio_key: str) -> None:
    summary = Table.grid(padding=(0, 2))
    summary.add_column(justify="right", style="bold cyan")
    summary.add_column(justify="left")

    if portfolio_key == "fund":
        overview = snapshot.overview
        title = "Fund Snapshot"
        rows = snapshot.investments
        summary.add_row("Total invested", format_tokens_received(overview.total_invested))
        summary.add_row("Total value", format_tokens_received(overview.total_value))
        summary.add_row("Realised value", format_tokens_received(overview.realised_value))
        summary.add_row("Realised P&L", _styled("realisedPnL", format_tokens_received(overview.realised_pnl)))
        summary.add_row("ROI", _styled("roi", format_roi(overview.roi)))
        summary.add_row("Realised ROI", _styled("realisedRoi", format_roi(overview.realised_roi)))
        summary.add_row("Liquid", top_liquid_positions(rows))
    else:
        portfolio = snapshot.individual_portfolios[portfolio_key]
        title = portfolio.label
        rows = portfolio.investments
        totals = portfolio.summary
        summary.add_row("Total invested", format_tokens_received(totals.total_invested))
        summary.add_row("Total value", format_tokens_received(totals.total_value))
        summary.add_row("Realised value", format_tokens_received(totals.realised_value))
        summary.add_row("Realised P&L", _styled("realisedPnL", format_tokens_received(totals.realised_pnl)))
        summary.add_row("Unrealised ROI", _styled("unrealisedRoi", format_roi(totals.unrealised_roi)))
        summary.add_row("DPI", totals.dpi or "-")
        summary.add_row("Liquid", top_liquid_positions(rows, limit=3))

    console.print(Panel(summary, title=title, border_style="cyan"))


def print_breakdown(snapshot: PortfolioSnapshot, portfolio_key: str, sort_state: SortState) -> None:
    if portfolio_key == "fund":
        columns, keys = FUND_COLUMNS, FUND_CLI_COLUMNS
        rows = snapshot.investments
    else:
        columns, keys = INDIVIDUAL_COLUMNS, INDIVIDUAL_CLI_COLUMNS
        rows = merge_overview_fields(
            snapshot.individual_portfolios[portfolio_key].investments, snapshot.investments
        )
    if not rows:
        console.print("No investments.")
        return

    shown = [find_column(columns, key) for key in keys]
    table = Table(title="Investments", box=box.SIMPLE_HEAVY, highlight=True)
    table.add_column("Name", style="bold", no_wrap=True)
    for column in shown:
        table.add_column(column.label, justify="right")

    for row in sort_rows(rows, sort_state, columns):
        table.add_row(row.name, *(_styled(c.key, c.render(row)) for c in shown))
    console.print(table)


def main(argv: List[str] | None = None) -> None:
    args = parse_args(argv)
    configure_logging(args.verbose)

    client = UpstreamClient.from_env()
    if args.refresh:
        try:
            result = client.trigger_refresh()
        except UpstreamError as exc:
            raise SystemExit(f"Failed to refresh prices: {exc}") from exc
        console.print(Text(str(result.get("message", "Prices refreshed")), style="yellow"))

    try:
        payload: Dict[str, Any] = client.fetch_snapshot()
    except UpstreamError as exc:
        raise SystemExit(f"Failed to load portfolio: {exc}") from exc

    if args.json:
        console.print_json(data=payload)
        return

    try:
        snapshot = PortfolioSnapshot.from_payload(payload)
    except ValueError as exc:
        raise SystemExit(f"Failed to load portfolio: {exc}") from exc

    if args.portfolio != "fund" and args.portfolio not in snapshot.individual_portfolios:
        known = ", ".join(["fund", *snapshot.individual_portfolios])
        raise SystemExit(f"Unknown portfolio '{args.portfolio}'. Choose from: {known}")

    columns = FUND_COLUMNS if args.portfolio == "fund" else INDIVIDUAL_COLUMNS
    sort_state = SortState.from_args(
        {"sort": args.sort, "dir": "asc" if args.asc else "desc"}, columns
    )
    print_summary(snapshot, args.portfolio)
    print_breakdown(snapshot, args.portfolio, sort_state)


if __name__ == "__main__":
    main()
