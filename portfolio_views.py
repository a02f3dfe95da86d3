"""Derived display values: stat cards, top-N rankings and chart payloads."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from display_format import (
    DEFAULT_COLOR,
    NEGATIVE_COLOR,
    PLACEHOLDER,
    POSITIVE_COLOR,
    format_month,
    format_percentage,
    format_roi,
    format_tokens_received,
    format_tokens_roi,
    parse_amount,
)
from portfolio_snapshot import (
    BlockchainCategory,
    IndividualInvestment,
    ListedProjects,
    Overview,
    PortfolioSummary,
    VestingMonth,
)

# Projects still vesting; fully unlocked ones are left off the schedule.
VESTING_PROJECTS: Dict[str, str] = {
    "Tars": "#ef4444",
    "Heurist": "#84cc16",
    "Humanity": "#f97316",
    "Giza Seed": "#ec4899",
    "Giza Legion": "#6366f1",
    "Creatorbid": "#14b8a6",
}

# Names the individual sheets use for vesting projects, where they differ.
VESTING_SHEET_NAMES = {"Creatorbid": "Creator Bid", "Tars": "Tars AI"}

# Outstanding amounts at or below these are not listed per investment.
OUTSTANDING_THRESHOLDS = {"USDC": 20.0, "ETH": 0.05, "SOL": 0.1}

CATEGORY_COLORS = [
    "#6366f1", "#ef4444", "#10b981", "#f59e0b", "#8b5cf6",
    "#06b6d4", "#84cc16", "#f97316", "#ec4899", "#3b82f6",
    "#14b8a6", "#f43f5e", "#22c55e", "#a855f7", "#0ea5e9",
]

TREND_COLORS = {"positive": POSITIVE_COLOR, "negative": NEGATIVE_COLOR, "neutral": DEFAULT_COLOR}


@dataclass
class Stat:
    label: str
    value: object
    trend: str = "neutral"
    subtitle: str = ""
    color: Optional[str] = None

    @property
    def display_color(self) -> str:
        return self.color or TREND_COLORS.get(self.trend, DEFAULT_COLOR)


@dataclass
class RankedPosition:
    name: str
    amount: float
    percentage: float
    record: object = None


@dataclass
class VestingBar:
    month: str
    label: str
    total: float
    segments: List[Dict[str, object]] = field(default_factory=list)


@dataclass
class VestingChart:
    projects: Dict[str, str]
    bars: List[VestingBar]
    max_total: float

    @property
    def empty(self) -> bool:
        return not any(bar.segments for bar in self.bars)


def _trend(multiple: str) -> str:
    return "positive" if parse_amount(multiple.replace("x", "")) > 1 else "negative"


def overview_stats(overview: Overview) -> List[Stat]:
    return [
        Stat("Total Invested", format_tokens_received(overview.total_invested)),
        Stat("Realised Value", format_tokens_received(overview.realised_value)),
        Stat("Unrealised Value", format_tokens_received(overview.unrealised_value)),
        Stat("Realised P&L", format_tokens_received(overview.realised_pnl),
             trend="negative" if overview.realised_pnl.startswith("-") else "positive"),
        Stat("Realised ROI", format_roi(overview.realised_roi), trend=_trend(overview.realised_roi)),
        Stat("Unrealised P&L", format_tokens_received(overview.unrealised_pnl),
             trend="negative" if overview.unrealised_pnl.startswith("-") else "positive"),
        Stat("ROI", format_roi(overview.roi), trend=_trend(overview.roi)),
    ]


def composition_stats(listed: ListedProjects) -> List[Stat]:
    return [
        Stat("Listed Projects", listed.listed_count,
             subtitle=f"of {listed.total_investments} total investments"),
        Stat("Pre-TGE Projects", listed.non_listed_count, subtitle="Awaiting token generation"),
        Stat("Received from Total Invested", format_tokens_received(listed.tokens_received),
             color="#000000",
             subtitle=f"{format_percentage(listed.tokens_received_percentage)} of total invested"),
        Stat("Return on tokens received", format_tokens_roi(listed.tokens_received_roi),
             trend=_trend(listed.tokens_received_roi),
             subtitle="Including sold and liquid tokens"),
    ]


def _dollars(amount: float) -> str:
    """Whole dollars, rounded half up, with a leading minus for losses."""
    rounded = math.floor(abs(amount) + 0.5)
    return f"{'-' if amount < 0 else ''}${rounded:,}"


def summary_stats(summary: PortfolioSummary) -> List[Stat]:
    unrealised_pnl = parse_amount(summary.total_value) - parse_amount(summary.total_invested)
    return [
        Stat("Total Invested", format_tokens_received(summary.total_invested),
             subtitle=f"{format_percentage(summary.share)} of fund"),
        Stat("Realised Value", format_tokens_received(summary.realised_value)),
        Stat("Total Value", format_tokens_received(summary.total_value)),
        Stat("Realised P&L", format_tokens_received(summary.realised_pnl),
             trend="negative" if summary.realised_pnl.startswith("-") else "positive"),
        Stat("Realised ROI", format_roi(summary.realised_roi), trend=_trend(summary.realised_roi)),
        Stat("Unrealised P&L", _dollars(unrealised_pnl),
             trend="positive" if unrealised_pnl >= 0 else "negative",
             subtitle="Total value less total invested"),
        Stat("Unrealised ROI", format_roi(summary.unrealised_roi), trend=_trend(summary.unrealised_roi)),
        Stat("DPI", summary.dpi or "-"),
    ]


def _received_fraction(percent: str) -> Optional[float]:
    """``"45%"``, ``"45"`` and ``"0.45"`` all mean 45 percent received."""
    if percent in ("", PLACEHOLDER):
        return None
    if "%" in percent:
        return parse_amount(percent.replace("%", "")) / 100.0
    number = parse_amount(percent)
    return number / 100.0 if number > 1 else number


def portfolio_composition(
    rows: Sequence[IndividualInvestment], summary: PortfolioSummary
) -> List[Stat]:
    """Composition row of one manager's portfolio.

    ``rows`` must already carry the fund's ``percent_received`` (see
    ``table_sort.merge_overview_fields``).  A project whose unrealised ROI is
    exactly 1x has not had its token generation event yet.
    """
    total = len(rows)
    pre_tge = sum(1 for row in rows if parse_amount(row.unrealised_roi) == 1.0)
    invested = 0.0
    received = 0.0
    for row in rows:
        amount = parse_amount(row.total_invested)
        invested += amount
        fraction = _received_fraction(row.percent_received)
        if fraction is not None:
            received += amount * fraction

    received_share = received / invested * 100.0 if invested > 0 else 0.0
    returned = parse_amount(summary.realised_value) + parse_amount(summary.liquid_value)
    multiple = returned / received if received > 0 else 0.0
    return [
        Stat("Listed Projects", total - pre_tge, subtitle=f"of {total} total investments"),
        Stat("Pre-TGE Projects", pre_tge, subtitle="Awaiting token generation"),
        Stat("Received from Total Invested", format_tokens_received(str(received)),
             color="#000000", subtitle=f"{received_share:.1f}% of total invested"),
        Stat("Return on tokens received", f"{multiple:.2f}x",
             trend="positive" if multiple > 1 else "negative",
             subtitle="Including sold and liquid tokens"),
    ]


@dataclass
class Outstanding:
    currency: str
    total: str
    positions: List[Tuple[str, str]]


@dataclass
class Distributions:
    dpi: str
    total_distributed: str
    outstanding: List[Outstanding]
    withdrawn: List[str]


def _outstanding_total(currency: str, amount: float) -> str:
    if currency == "USDC":
        rendered = _trim(f"{amount:,.3f}") if amount >= 20 else "0"
        return f"{rendered} USDC"
    if currency == "ETH":
        return f"{abs(amount):.4f} ETH"
    return f"{abs(amount):.2f} SOL"


def _outstanding_amount(currency: str, amount: float) -> str:
    if currency == "USDC":
        return f"{math.floor(amount + 0.5):,}"
    return f"{amount:.4f}" if currency == "ETH" else f"{amount:.2f}"


def _trim(text: str) -> str:
    return text.rstrip("0").rstrip(".") if "." in text else text


def distributions(
    rows: Sequence[IndividualInvestment], summary: PortfolioSummary
) -> Distributions:
    """The "Distributions to Investors" card of an individual portfolio.

    Total distributed is the sum of invested × DPI over the portfolio's rows.
    Per-investment outstanding amounts are listed largest first when above
    ``OUTSTANDING_THRESHOLDS``.
    """
    distributed = sum(parse_amount(row.total_invested) * parse_amount(row.dpi) for row in rows)
    outstanding = []
    for currency, attr in (("USDC", "outstanding_usdc"), ("ETH", "outstanding_eth"), ("SOL", "outstanding_sol")):
        amounts = sorted(
            ((row.name, parse_amount(getattr(row, attr))) for row in rows),
            key=lambda item: item[1],
            reverse=True,
        )
        outstanding.append(
            Outstanding(
                currency=currency,
                total=_outstanding_total(currency, parse_amount(getattr(summary, attr))),
                positions=[
                    (name, _outstanding_amount(currency, amount))
                    for name, amount in amounts
                    if amount > OUTSTANDING_THRESHOLDS[currency]
                ],
            )
        )
    return Distributions(
        dpi=f"{parse_amount(summary.dpi):.2f}x",
        total_distributed=_dollars(distributed),
        outstanding=outstanding,
        withdrawn=[
            format_tokens_received(summary.withdraw_usd),
            f"{summary.withdraw_eth or PLACEHOLDER} ETH",
            f"{summary.withdraw_sol or PLACEHOLDER} SOL",
        ],
    )


def top_positions(
    rows: Sequence, key: str, total: float = 0.0, limit: int = 5
) -> List[RankedPosition]:
    """Largest ``limit`` rows by the amount in ``key``; zero and blank amounts are skipped."""
    ranked = sorted(
        (
            RankedPosition(
                name=row.name,
                amount=parse_amount(row.value(key)),
                percentage=0.0,
                record=row,
            )
            for row in rows
        ),
        key=lambda position: position.amount,
        reverse=True,
    )
    ranked = [position for position in ranked if position.amount > 0][:limit]
    for position in ranked:
        position.percentage = position.amount / total * 100.0 if total > 0 else 0.0
    return ranked


def combined(positions: Sequence[RankedPosition], total: float) -> Tuple[float, float]:
    """Summed amount of ``positions`` and its percent of ``total``."""
    amount = sum(position.amount for position in positions)
    return amount, amount / total * 100.0 if total > 0 else 0.0


def top_liquid_positions(rows: Sequence, limit: int = 5) -> str:
    positions = top_positions(rows, "liquidValue", limit=limit)
    if not positions:
        return "No liquid positions"
    return " • ".join(
        f"{position.name}: {format_tokens_received(str(position.amount))}"
        for position in positions
    )


def category_allocation(categories: Sequence[BlockchainCategory]) -> pd.DataFrame:
    """One row per category with its share of total invested capital, largest first.

    Colours are assigned in upstream order, before sorting.
    """
    columns = ["category", "invested", "value", "count", "investments", "percentage", "color"]
    if not categories:
        return pd.DataFrame(columns=columns)

    frame = pd.DataFrame(
        {
            "category": [c.category for c in categories],
            "invested": [parse_amount(c.total_invested) for c in categories],
            "value": [parse_amount(c.total_value) for c in categories],
            "count": [c.investment_count for c in categories],
            "investments": [list(c.investments) for c in categories],
        }
    )
    total = frame["invested"].sum()
    frame["percentage"] = frame["invested"] / total * 100.0 if total > 0 else 0.0
    frame["color"] = [CATEGORY_COLORS[i % len(CATEGORY_COLORS)] for i in range(len(frame))]
    frame = frame.sort_values("invested", ascending=False, kind="stable").reset_index(drop=True)
    return frame[columns]


def _point(cx: float, cy: float, radius: float, angle: float) -> str:
    radians = math.radians(angle - 90.0)
    return f"{cx + radius * math.cos(radians):.3f} {cy + radius * math.sin(radians):.3f}"


def donut_segments(
    allocation: pd.DataFrame,
    outer: float = 90.0,
    inner: float = 55.0,
    center: float = 100.0,
) -> List[Dict[str, object]]:
    """SVG ring-segment paths, one per category with a non-zero share."""
    segments = []
    start = 0.0
    for row in allocation.itertuples(index=False):
        if row.percentage <= 0:
            continue
        # A full circle collapses to a zero-length arc.
        sweep = min(row.percentage * 3.6, 359.99)
        end = start + sweep
        large = 1 if sweep > 180 else 0
        path = (
            f"M {_point(center, center, outer, start)} "
            f"A {outer} {outer} 0 {large} 1 {_point(center, center, outer, end)} "
            f"L {_point(center, center, inner, end)} "
            f"A {inner} {inner} 0 {large} 0 {_point(center, center, inner, start)} Z"
        )
        segments.append(
            {
                "category": row.category,
                "color": row.color,
                "percentage": row.percentage,
                "path": path,
                "investments": row.investments,
            }
        )
        start = end
    return segments


def vesting_chart(
    months: Sequence[VestingMonth], projects: Optional[Dict[str, str]] = None
) -> VestingChart:
    """Stacked monthly unlock bars scaled against the largest month."""
    projects = dict(VESTING_PROJECTS if projects is None else projects)
    if not months:
        return VestingChart(projects=projects, bars=[], max_total=0.0)

    frame = pd.DataFrame([{"month": m.month, **m.amounts} for m in months])
    frame = frame.reindex(columns=["month", *projects])
    amounts = frame[list(projects)].apply(pd.to_numeric, errors="coerce").fillna(0.0).clip(lower=0.0)
    totals = amounts.sum(axis=1)
    max_total = float(totals.max()) if len(totals) else 0.0

    bars = []
    for index, month in enumerate(frame["month"]):
        segments = []
        for project, color in projects.items():
            amount = float(amounts.iloc[index][project])
            if amount <= 0:
                continue
            segments.append(
                {
                    "project": project,
                    "color": color,
                    "amount": amount,
                    "height": amount / max_total * 100.0 if max_total > 0 else 0.0,
                }
            )
        bars.append(
            VestingBar(
                month=str(month),
                label=format_month(str(month)),
                total=float(totals.iloc[index]),
                segments=segments,
            )
        )
    return VestingChart(projects=projects, bars=bars, max_total=max_total)


def _share_fraction(share: str) -> float:
    """``"0.25"`` and ``"25%"`` are both a quarter."""
    if "%" in share:
        return parse_amount(share.replace("%", "")) / 100.0
    return parse_amount(share)


def individual_vesting(
    months: Sequence[VestingMonth],
    rows: Sequence[IndividualInvestment],
    projects: Optional[Dict[str, str]] = None,
) -> List[VestingMonth]:
    """Scale the fund's vesting schedule down to one manager's share.

    Each project's monthly amount is multiplied by the ``share`` of the
    manager's investment in it; projects the manager does not hold drop to 0.
    """
    projects = VESTING_PROJECTS if projects is None else projects
    shares = {row.name: row.share for row in rows}
    factors = {}
    for project in projects:
        share = shares.get(VESTING_SHEET_NAMES.get(project, project))
        factors[project] = _share_fraction(share) if share else 0.0
    return [
        VestingMonth(
            month=month.month,
            amounts={
                project: month.amounts.get(project, 0.0) * factor
                for project, factor in factors.items()
            },
        )
        for month in months
    ]
