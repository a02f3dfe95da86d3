"""
Pytest configuration and shared fixtures for the dashboard tests.

The project is a flat set of modules, so the repository root is put on
sys.path to make them importable without an install.
"""
import copy
import sys
from pathlib import Path
from typing import Any, Dict, Optional

import pytest


def pytest_configure():
    root = Path(__file__).resolve().parents[1]
    sys.path.insert(0, str(root))


SAMPLE_PAYLOAD: Dict[str, Any] = {
    "overview": {
        "totalInvested": "$1,000,000",
        "totalValue": "$2,500,000.75",
        "realisedValue": "$400,000",
        "realisedPnL": "$150,000",
        "unrealisedValue": "$2,100,000",
        "unrealisedPnL": "$1,100,000",
        "liquidValue": "$300,000",
        "roi": "2.5x",
        "realisedRoi": "0.4x",
        "percentReceived": "0.61",
        "percentSold": "0.2",
        "investmentsCount": 3,
        "listedCount": 2,
        "nonListedCount": 1,
        "tokensReceived": "$600,000",
        "tokensReceivedPercentage": "0.6",
    },
    "investments": [
        {
            "name": "Alpha Protocol",
            "totalInvested": "$500,000",
            "totalValue": "$1,500,000",
            "realisedValue": "$300,000",
            "realisedPnL": "$100,000",
            "roi": "3.0x",
            "realisedRoi": "0.6x",
            "percentReceived": "0.8",
            "percentSold": "0.3",
            "liquidValue": "$200,000",
            "nextUnlock": "12.4",
            "nextUnlock2": "$25,000.40",
            "fullUnlock": "Finished",
            "buyPrice": "$0.05",
            "currentPrice": "$0.1234",
            "avgSellPrice": "$0.09",
            "vesting": "24m",
        },
        {
            "name": "Beta Chain",
            "totalInvested": "$300,000",
            "totalValue": "$900,000",
            "realisedValue": "$100,000",
            "realisedPnL": "($20,000)",
            "roi": "3.0x",
            "realisedRoi": "0.33x",
            "percentReceived": "0.5",
            "percentSold": "0.1",
            "liquidValue": "$100,000",
            "nextUnlock": "40",
            "nextUnlock2": "$0.50",
            "fullUnlock": "400",
            "buyPrice": "$1.2",
            "currentPrice": "$3.6",
            "avgSellPrice": "",
            "vesting": "",
        },
        {
            "name": "Gamma AI",
            "totalInvested": "$200,000",
            "totalValue": "-",
            "realisedValue": "$0",
            "realisedPnL": "-",
            "roi": "-",
            "realisedRoi": "-",
            "percentReceived": "",
            "percentSold": "",
            "liquidValue": "-",
            "nextUnlock": "TGE",
            "nextUnlock2": "-",
            "fullUnlock": "-",
            "buyPrice": "",
            "currentPrice": "",
            "avgSellPrice": "",
            "vesting": "TBD",
        },
    ],
    "listedProjects": {
        "totalInvested": "$800,000",
        "totalInvestedPercentage": "0.8",
        "totalValue": "$2,400,000",
        "totalValuePercentage": "0.96",
        "nextUnlock": "Alpha Protocol",
        "nextUnlockDays": "12",
        "totalInvestments": "3",
        "listedCount": "2",
        "nonListedCount": "1",
        "nextUnlockAmount": "$25,000.40",
        "nextUnlockDaysDetailed": "12 days",
        "nextUnlockProject": "Alpha Protocol",
        "tokensReceived": "$600,000",
        "tokensReceivedPercentage": "0.75",
        "tokensReceivedROI": "1.8x",
    },
    "individualPortfolios": {
        "alice": {
            "name": "Alice Portfolio",
            "range": "B10:R20",
            "investments": [
                {
                    "name": "Alpha Protocol",
                    "totalInvested": "$50,000",
                    "share": "0.1",
                    "totalValue": "$150,000",
                    "realisedValue": "$30,000",
                    "unrealisedValue": "$120,000",
                    "realisedPnL": "$10,000",
                    "unrealisedRoi": "2.4x",
                    "realisedRoi": "0.6x",
                    "outstandingUSDC": "1234.5",
                    "outstandingETH": "0.5",
                    "outstandingSOL": "",
                    "liquidValue": "$20,000",
                    "dpi": "0.6",
                },
                {
                    "name": "Beta Chain",
                    "totalInvested": "$30,000",
                    "share": "0.1",
                    "totalValue": "$90,000",
                    "realisedValue": "$10,000",
                    "unrealisedValue": "$80,000",
                    "realisedPnL": "($2,000)",
                    "unrealisedRoi": "2.67x",
                    "realisedRoi": "0.33x",
                    "outstandingUSDC": "",
                    "outstandingETH": "",
                    "outstandingSOL": "12",
                    "liquidValue": "$10,000",
                    "dpi": "0.33",
                },
            ],
            "summary": {
                "totalInvested": "$80,000",
                "share": "0.1",
                "totalValue": "$240,000",
                "realisedValue": "$40,000",
                "unrealisedValue": "$200,000",
                "realisedPnL": "$8,000",
                "unrealisedRoi": "2.5x",
                "realisedRoi": "0.5x",
                "outstandingUSDC": "1234.5",
                "outstandingETH": "0.5",
                "outstandingSOL": "12",
                "liquidValue": "$30,000",
                "dpi": "0.5",
                "withdrawUSD": "$0",
                "withdrawETH": "0",
                "withdrawSOL": "0",
            },
        }
    },
    "vestingChart": [
        {"month": "2025-10", "Tars": 1000, "Heurist": -50, "Humanity": 500},
        {"month": "2025-11", "Tars": 2000, "Giza Seed": 500, "Hatom": 900},
    ],
    "blockchainCategories": [
        {
            "category": "AI",
            "totalInvested": "$600,000",
            "totalValue": "$1,600,000",
            "realisedValue": "$300,000",
            "realisedPnL": "$100,000",
            "unrealisedValue": "$1,300,000",
            "roi": "2.67x",
            "realisedRoi": "0.5x",
            "unrealisedRoi": "2.17x",
            "investmentsCount": 2,
            "investments": ["Alpha Protocol", "Gamma AI"],
            "percentage": 60,
        },
        {
            "category": "DeFi",
            "totalInvested": "$400,000",
            "totalValue": "$900,000",
            "realisedValue": "$100,000",
            "realisedPnL": "($20,000)",
            "unrealisedValue": "$800,000",
            "roi": "2.25x",
            "realisedRoi": "0.25x",
            "unrealisedRoi": "2x",
            "investmentCount": 1,
            "investments": ["Beta Chain"],
        },
    ],
    "individualVestingData": {
        "alice": [{"month": "2025-10", "Tars": 100}],
    },
}


class FakeUpstream:
    """Stands in for UpstreamClient; raises ``error`` when one is given."""

    def __init__(
        self,
        payload: Optional[Dict[str, Any]] = None,
        error: Optional[Exception] = None,
        refresh_result: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.payload = payload
        self.error = error
        self.refresh_result = refresh_result or {"success": True, "message": "All data refreshed successfully"}
        self.refresh_calls = 0

    def fetch_snapshot(self) -> Dict[str, Any]:
        if self.error is not None:
            raise self.error
        return self.payload

    def trigger_refresh(self) -> Dict[str, Any]:
        self.refresh_calls += 1
        if self.error is not None:
            raise self.error
        return self.refresh_result


@pytest.fixture
def sample_payload() -> Dict[str, Any]:
    """A fresh copy of a realistic upstream payload."""
    return copy.deepcopy(SAMPLE_PAYLOAD)


@pytest.fixture
def fake_upstream():
    """Factory for upstream stand-ins: ``fake_upstream(payload=..., error=...)``."""
    return FakeUpstream


@pytest.fixture
def snapshot(sample_payload):
    from portfolio_snapshot import PortfolioSnapshot

    return PortfolioSnapshot.from_payload(sample_payload)


@pytest.fixture
def flask_app(sample_payload):
    from dashboard_app import app

    app.config.update(TESTING=True, UPSTREAM_CLIENT=FakeUpstream(payload=sample_payload))
    yield app
    app.config.pop("UPSTREAM_CLIENT", None)


@pytest.fixture
def http(flask_app):
    with flask_app.test_client() as client:
        yield client
