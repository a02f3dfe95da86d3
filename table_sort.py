"""Sortable investment tables: column definitions and ordering."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, List, Mapping, Optional, Sequence, TypeVar

from display_format import (
    PLACEHOLDER,
    format_cell,
    format_outstanding_distribution,
    format_percentage,
    format_price,
    format_roi,
    format_tokens_received,
    format_unlock_column,
    parse_number_like,
)

DESC = "desc"
ASC = "asc"

Row = TypeVar("Row")


def _cell(value: str) -> str:
    return format_cell(value) or PLACEHOLDER


@dataclass(frozen=True)
class Column:
    key: str
    label: str
    numeric: bool = False
    formatter: Callable[[str], str] = _cell

    def render(self, row) -> str:
        return self.formatter(row.value(self.key))


FUND_COLUMNS: List[Column] = [
    Column("name", "Name"),
    Column("totalInvested", "Total Invested", numeric=True),
    Column("totalValue", "Total Value", numeric=True),
    Column("realisedValue", "Realised Value", numeric=True),
    Column("realisedPnL", "Realised P&L", numeric=True),
    Column("roi", "ROI", numeric=True),
    Column("realisedRoi", "Realised ROI", numeric=True),
    Column("percentReceived", "% Received", numeric=True),
    Column("percentSold", "% Sold", numeric=True),
    Column("liquidValue", "Liquid Value", numeric=True),
    Column("nextUnlock", "Next Unlock", formatter=lambda v: format_unlock_column(v, "days")),
    Column("nextUnlock2", "Next Unlock", formatter=lambda v: format_unlock_column(v, "currency")),
    Column("fullUnlock", "Full Unlock", formatter=lambda v: format_unlock_column(v, "days-full")),
    Column("buyPrice", "Buy Price", numeric=True, formatter=format_price),
    Column("currentPrice", "Current Price", numeric=True, formatter=format_price),
    Column("avgSellPrice", "Avg Sell Price", numeric=True),
    Column("vesting", "Vesting", formatter=lambda v: v or PLACEHOLDER),
]

INDIVIDUAL_COLUMNS: List[Column] = [
    Column("name", "Investment"),
    Column("totalInvested", "Total Invested", numeric=True, formatter=format_tokens_received),
    Column("share", "Share %", numeric=True, formatter=format_percentage),
    Column("totalValue", "Total Value", numeric=True, formatter=format_tokens_received),
    Column("realisedValue", "Realised Value", numeric=True, formatter=format_tokens_received),
    Column("realisedPnL", "Realised P&L", numeric=True, formatter=format_tokens_received),
    Column("unrealisedValue", "Unrealised Value", numeric=True, formatter=format_tokens_received),
    Column("unrealisedRoi", "Unrealised ROI", numeric=True, formatter=format_roi),
    Column("realisedRoi", "Realised ROI", numeric=True, formatter=format_roi),
    Column("outstandingUSDC", "Outstanding USDC", numeric=True,
           formatter=lambda v: format_outstanding_distribution(v, "USDC")),
    Column("outstandingETH", "Outstanding ETH", numeric=True,
           formatter=lambda v: format_outstanding_distribution(v, "ETH")),
    Column("outstandingSOL", "Outstanding SOL", numeric=True,
           formatter=lambda v: format_outstanding_distribution(v, "SOL")),
    Column("liquidValue", "Liquid Value", numeric=True, formatter=format_tokens_received),
    Column("dpi", "DPI", numeric=True),
    Column("percentReceived", "% Received", numeric=True, formatter=format_percentage),
    Column("percentSold", "% Sold", numeric=True, formatter=format_percentage),
]

# Extra columns of the "top 5" tables.
PRICE_COLUMNS: List[Column] = [
    Column("buyPrice", "Buy Price", numeric=True, formatter=format_price),
    Column("currentPrice", "Current Price", numeric=True, formatter=format_price),
    Column("avgSellPrice", "Avg Sell Price", numeric=True, formatter=format_price),
]

REALISED_COLUMNS: List[Column] = [
    Column("realisedRoi", "Realised ROI", numeric=True, formatter=format_roi),
    Column("percentReceived", "% Received", numeric=True, formatter=format_percentage),
    Column("percentSold", "% Sold", numeric=True, formatter=format_percentage),
]

# Fields an individual portfolio row borrows from the fund row of the same name.
OVERVIEW_FIELDS = ("buy_price", "current_price", "avg_sell_price", "percent_received", "percent_sold")


def find_column(columns: Sequence[Column], key: str) -> Optional[Column]:
    for column in columns:
        if column.key == key:
            return column
    return None


@dataclass(frozen=True)
class SortState:
    """Current sort column and direction of a table."""

    key: str = "totalValue"
    direction: str = DESC

    def toggle(self, key: str) -> "SortState":
        """Clicking a new column sorts it descending; clicking the same one flips direction."""
        if key != self.key:
            return SortState(key, DESC)
        return SortState(key, ASC if self.direction == DESC else DESC)

    def indicator(self, key: str) -> str:
        if key != self.key:
            return ""
        return "↓" if self.direction == DESC else "↑"

    @classmethod
    def from_args(cls, args: Mapping[str, str], columns: Sequence[Column]) -> "SortState":
        default = cls()
        key = args.get("sort") or default.key
        direction = args.get("dir") or default.direction
        if find_column(columns, key) is None:
            key = default.key
        if direction not in (ASC, DESC):
            direction = default.direction
        return cls(key, direction)


def sort_rows(rows: Sequence[Row], state: SortState, columns: Sequence[Column]) -> List[Row]:
    """Return ``rows`` ordered by ``state``; the input is left untouched.

    Numeric columns go through ``parse_number_like`` so blanks and text such
    as ``TGE`` sort after every number when descending.
    """
    column = find_column(columns, state.key)
    reverse = state.direction == DESC
    if column is not None and column.numeric:
        return sorted(rows, key=lambda row: parse_number_like(row.value(state.key)), reverse=reverse)
    return sorted(rows, key=lambda row: str(row.value(state.key) or "").casefold(), reverse=reverse)


def merge_overview_fields(rows: Sequence[Row], fund_investments: Sequence) -> List[Row]:
    """Copy prices and received/sold percentages from the fund table onto individual rows."""
    by_name = {investment.name: investment for investment in fund_investments}
    merged = []
    for row in rows:
        source = by_name.get(row.name)
        merged.append(
            replace(row, **{attr: getattr(source, attr) if source else "" for attr in OVERVIEW_FIELDS})
        )
    return merged
