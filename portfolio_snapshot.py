"""Typed view of the spreadsheet service's portfolio payload."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from display_format import PLACEHOLDER, parse_amount

logger = logging.getLogger(__name__)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def _upstream(key: str, default: str = "") -> Any:
    """A string field whose upstream key is not the plain camelCase of its name."""
    return field(default=default, metadata={"key": key})


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _count(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


class _Record:
    """Mixin mapping upstream camelCase keys onto string dataclass fields."""

    @classmethod
    def _keys(cls) -> Dict[str, str]:
        return {f.metadata.get("key", _camel(f.name)): f.name for f in fields(cls)}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]):
        values: Dict[str, Any] = {}
        for key, attr in cls._keys().items():
            if key in payload:
                values[attr] = _text(payload[key])
        return cls(**values)

    @classmethod
    def placeholder(cls):
        """An instance with every text field set to ``-``; used when a section is missing."""
        return cls(**{f.name: PLACEHOLDER for f in fields(cls) if isinstance(f.default, str)})

    def value(self, key: str) -> str:
        """Look a field up by its upstream key (``"realisedPnL"``) or attribute name."""
        attr = self._keys().get(key, key)
        return getattr(self, attr, "")


@dataclass
class Investment(_Record):
    name: str = ""
    total_invested: str = ""
    total_value: str = ""
    realised_value: str = ""
    realised_pnl: str = _upstream("realisedPnL")
    roi: str = ""
    realised_roi: str = ""
    percent_received: str = ""
    percent_sold: str = ""
    liquid_value: str = ""
    next_unlock: str = ""
    next_unlock2: str = ""
    full_unlock: str = ""
    buy_price: str = ""
    current_price: str = ""
    avg_sell_price: str = ""
    vesting: str = ""


@dataclass
class Overview(_Record):
    total_invested: str = ""
    total_value: str = ""
    realised_value: str = ""
    realised_pnl: str = _upstream("realisedPnL")
    unrealised_value: str = ""
    unrealised_pnl: str = _upstream("unrealisedPnL")
    liquid_value: str = ""
    roi: str = ""
    realised_roi: str = ""
    percent_received: str = ""
    percent_sold: str = ""
    tokens_received: str = ""
    tokens_received_percentage: str = ""
    investments_count: Optional[int] = None
    listed_count: Optional[int] = None
    non_listed_count: Optional[int] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Overview":
        overview = super().from_dict(
            {k: v for k, v in payload.items() if not k.endswith("Count")}
        )
        overview.investments_count = _count(payload.get("investmentsCount"))
        overview.listed_count = _count(payload.get("listedCount"))
        overview.non_listed_count = _count(payload.get("nonListedCount"))
        return overview


@dataclass
class ListedProjects(_Record):
    total_invested: str = ""
    total_invested_percentage: str = ""
    total_value: str = ""
    total_value_percentage: str = ""
    next_unlock: str = ""
    next_unlock_days: str = ""
    total_investments: str = ""
    listed_count: str = ""
    non_listed_count: str = ""
    next_unlock_amount: str = ""
    next_unlock_days_detailed: str = ""
    next_unlock_project: str = ""
    tokens_received: str = ""
    tokens_received_percentage: str = ""
    tokens_received_roi: str = _upstream("tokensReceivedROI")


@dataclass
class PortfolioSummary(_Record):
    """Aggregate row of one manager's portfolio."""

    total_invested: str = ""
    share: str = ""
    total_value: str = ""
    realised_value: str = ""
    unrealised_value: str = ""
    realised_pnl: str = _upstream("realisedPnL")
    unrealised_roi: str = ""
    realised_roi: str = ""
    outstanding_usdc: str = _upstream("outstandingUSDC")
    outstanding_eth: str = _upstream("outstandingETH")
    outstanding_sol: str = _upstream("outstandingSOL")
    liquid_value: str = ""
    dpi: str = ""
    withdraw_usd: str = _upstream("withdrawUSD")
    withdraw_eth: str = _upstream("withdrawETH")
    withdraw_sol: str = _upstream("withdrawSOL")


@dataclass
class IndividualInvestment(PortfolioSummary):
    name: str = ""
    buy_price: str = ""
    current_price: str = ""
    avg_sell_price: str = ""
    percent_received: str = ""
    percent_sold: str = ""


@dataclass
class IndividualPortfolio:
    key: str
    name: str
    range: str = ""
    investments: List[IndividualInvestment] = field(default_factory=list)
    summary: PortfolioSummary = field(default_factory=PortfolioSummary)

    @property
    def label(self) -> str:
        return self.name or f"{self.key.title()} Portfolio"

    @classmethod
    def from_dict(cls, key: str, payload: Mapping[str, Any]) -> "IndividualPortfolio":
        summary = payload.get("summary")
        return cls(
            key=key,
            name=_text(payload.get("name")),
            range=_text(payload.get("range")),
            investments=[
                IndividualInvestment.from_dict(item)
                for item in payload.get("investments") or []
                if isinstance(item, Mapping)
            ],
            summary=PortfolioSummary.from_dict(summary if isinstance(summary, Mapping) else {}),
        )


@dataclass
class BlockchainCategory(_Record):
    category: str = ""
    total_invested: str = ""
    total_value: str = ""
    realised_value: str = ""
    realised_pnl: str = _upstream("realisedPnL")
    unrealised_value: str = ""
    roi: str = ""
    realised_roi: str = ""
    unrealised_roi: str = ""
    investment_count: int = 0
    investments: List[str] = field(default_factory=list)
    percentage: float = 0.0

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BlockchainCategory":
        category = super().from_dict(
            {
                key: value
                for key, value in payload.items()
                if key not in ("investmentCount", "investmentsCount", "investments", "percentage")
            }
        )
        count = payload.get("investmentCount", payload.get("investmentsCount"))
        category.investments = [str(name) for name in payload.get("investments") or []]
        category.investment_count = _count(count) or len(category.investments)
        category.percentage = parse_amount(payload.get("percentage"))
        return category


@dataclass
class VestingMonth:
    """Unlocked value per project for one month, as monthly deltas."""

    month: str
    amounts: Dict[str, float] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "VestingMonth":
        return cls(
            month=_text(payload.get("month")),
            amounts={
                str(project): parse_amount(amount)
                for project, amount in payload.items()
                if project != "month"
            },
        )


@dataclass
class PortfolioSnapshot:
    overview: Overview
    investments: List[Investment]
    listed_projects: ListedProjects
    individual_portfolios: Dict[str, IndividualPortfolio] = field(default_factory=dict)
    vesting_chart: List[VestingMonth] = field(default_factory=list)
    blockchain_categories: List[BlockchainCategory] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "PortfolioSnapshot":
        """Build a snapshot from the decoded upstream JSON.

        Missing or wrongly shaped sections fall back to placeholders or empty
        collections.  Raises ``ValueError`` if the payload is not an object or
        only carries an upstream error.
        """
        if not isinstance(payload, dict):
            raise ValueError("Portfolio payload must be a JSON object.")
        if payload.get("error") and not payload.get("investments"):
            raise ValueError(f"Upstream reported an error: {payload['error']}")

        overview = payload.get("overview")
        listed = payload.get("listedProjects")
        portfolios = payload.get("individualPortfolios")
        if not isinstance(portfolios, Mapping):
            if portfolios:
                logger.warning("Ignoring individualPortfolios of type %s", type(portfolios).__name__)
            portfolios = {}

        snapshot = cls(
            overview=Overview.from_dict(overview) if isinstance(overview, Mapping) else Overview.placeholder(),
            investments=_records(Investment, payload.get("investments")),
            listed_projects=ListedProjects.from_dict(listed) if isinstance(listed, Mapping) else ListedProjects.placeholder(),
            individual_portfolios={
                str(key): IndividualPortfolio.from_dict(str(key), value)
                for key, value in portfolios.items()
                if isinstance(value, Mapping)
            },
            vesting_chart=_records(VestingMonth, payload.get("vestingChart")),
            blockchain_categories=_records(BlockchainCategory, payload.get("blockchainCategories")),
        )
        logger.debug(
            "Snapshot: %d investments, %d portfolios, %d categories, %d vesting months",
            len(snapshot.investments),
            len(snapshot.individual_portfolios),
            len(snapshot.blockchain_categories),
            len(snapshot.vesting_chart),
        )
        return snapshot


def _records(kind, items: Any) -> list:
    if not isinstance(items, list):
        return []
    return [kind.from_dict(item) for item in items if isinstance(item, Mapping)]
