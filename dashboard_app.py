#!/usr/bin/env python3.13
"""Flask dashboard that renders the spreadsheet-backed portfolio."""

from __future__ import annotations

import logging
import os
from typing import Dict, Tuple

from flask import Flask, abort, jsonify, redirect, render_template, request, url_for

import display_format
from portfolio_snapshot import PortfolioSnapshot
from portfolio_views import (
    category_allocation,
    combined,
    composition_stats,
    distributions,
    donut_segments,
    individual_vesting,
    overview_stats,
    portfolio_composition,
    summary_stats,
    top_liquid_positions,
    top_positions,
    vesting_chart,
)
from table_sort import (
    FUND_COLUMNS,
    INDIVIDUAL_COLUMNS,
    PRICE_COLUMNS,
    REALISED_COLUMNS,
    SortState,
    merge_overview_fields,
    sort_rows,
)
from upstream_client import UpstreamClient, UpstreamError

logger = logging.getLogger(__name__)

FUND_KEY = "fund"
FUND_LABEL = os.environ.get("FUND_LABEL", "X Ventures Fund")
DASHBOARD_POLL_SECONDS = int(os.environ.get("DASHBOARD_POLL_SECONDS", "60"))
ANALYTICS_POLL_SECONDS = int(os.environ.get("ANALYTICS_POLL_SECONDS", "30"))

app = Flask(__name__)
app.json.sort_keys = False
app.jinja_env.filters.update(
    tokens=display_format.format_tokens_received,
    percentage=display_format.format_percentage,
    roi=display_format.format_roi,
    price=display_format.format_price,
    roi_color=display_format.roi_color,
    pnl_color=display_format.pnl_color,
)


def _client() -> UpstreamClient:
    client = app.config.get("UPSTREAM_CLIENT")
    return client if client is not None else UpstreamClient.from_env()


def _load_snapshot() -> Tuple[PortfolioSnapshot | None, str | None]:
    try:
        return PortfolioSnapshot.from_payload(_client().fetch_snapshot()), None
    except (UpstreamError, ValueError) as exc:
        logger.error("Failed to load portfolio: %s", exc)
        return None, str(exc)


def _portfolio_options(snapshot: PortfolioSnapshot | None) -> list[Tuple[str, str]]:
    options = [(FUND_KEY, FUND_LABEL)]
    if snapshot is not None:
        options.extend((key, p.label) for key, p in snapshot.individual_portfolios.items())
    return options


def _top_tables(rows, total_value: float, realised_value: float) -> Dict[str, object]:
    biggest = top_positions(rows, "totalValue", total=total_value)
    realised = top_positions(rows, "realisedValue", total=realised_value)
    return {
        "biggest": biggest,
        "biggest_total": combined(biggest, total_value),
        "realised": realised,
        "realised_total": combined(realised, realised_value),
        "price_columns": PRICE_COLUMNS,
        "realised_columns": REALISED_COLUMNS,
    }


def _prepare_fund(snapshot: PortfolioSnapshot, sort_state: SortState) -> Dict[str, object]:
    overview = snapshot.overview
    context: Dict[str, object] = {
        "columns": FUND_COLUMNS,
        "rows": sort_rows(snapshot.investments, sort_state, FUND_COLUMNS),
        "stats": overview_stats(overview),
        "composition": composition_stats(snapshot.listed_projects),
        "listed": snapshot.listed_projects,
        "liquid_value": overview.liquid_value,
        "liquid_summary": top_liquid_positions(snapshot.investments),
        "vesting": vesting_chart(snapshot.vesting_chart),
    }
    context.update(
        _top_tables(
            snapshot.investments,
            display_format.parse_amount(overview.total_value),
            display_format.parse_amount(overview.realised_value),
        )
    )
    return context


def _prepare_individual(
    snapshot: PortfolioSnapshot, key: str, sort_state: SortState
) -> Dict[str, object]:
    portfolio = snapshot.individual_portfolios.get(key)
    if portfolio is None:
        abort(404, f"Unknown portfolio: {key}")

    rows = merge_overview_fields(portfolio.investments, snapshot.investments)
    summary = portfolio.summary
    context: Dict[str, object] = {
        "portfolio": portfolio,
        "columns": INDIVIDUAL_COLUMNS,
        "rows": sort_rows(rows, sort_state, INDIVIDUAL_COLUMNS),
        "stats": summary_stats(summary),
        "composition": portfolio_composition(rows, summary),
        "distributions": distributions(rows, summary),
        "liquid_value": summary.liquid_value,
        "liquid_summary": top_liquid_positions(rows, limit=3),
        "vesting": vesting_chart(individual_vesting(snapshot.vesting_chart, rows)),
    }
    context.update(
        _top_tables(
            rows,
            display_format.parse_amount(summary.total_value),
            display_format.parse_amount(summary.realised_value),
        )
    )
    return context


@app.get("/")
def dashboard():
    selected = request.args.get("portfolio", FUND_KEY)
    if selected == "analytics":
        return redirect(url_for("analytics"))

    columns = FUND_COLUMNS if selected == FUND_KEY else INDIVIDUAL_COLUMNS
    sort_state = SortState.from_args(request.args, columns)
    snapshot, error = _load_snapshot()
    context: Dict[str, object] = {
        "selected": selected,
        "options": _portfolio_options(snapshot),
        "sort_state": sort_state,
        "poll_seconds": DASHBOARD_POLL_SECONDS,
        "fund_label": FUND_LABEL,
        "error": error,
    }
    if snapshot is None:
        return render_template("dashboard.html", **context), 502

    if selected == FUND_KEY:
        context.update(_prepare_fund(snapshot, sort_state))
    else:
        context.update(_prepare_individual(snapshot, selected, sort_state))
    return render_template("dashboard.html", **context)


@app.get("/analytics")
def analytics():
    snapshot, error = _load_snapshot()
    context: Dict[str, object] = {
        "selected": "analytics",
        "options": _portfolio_options(snapshot),
        "poll_seconds": ANALYTICS_POLL_SECONDS,
        "fund_label": FUND_LABEL,
        "error": error,
    }
    if snapshot is None:
        return render_template("analytics.html", **context), 502

    allocation = category_allocation(snapshot.blockchain_categories)
    context.update(
        {
            "overview": snapshot.overview,
            "stats": overview_stats(snapshot.overview),
            "categories": snapshot.blockchain_categories,
            "allocation": allocation.to_dict("records"),
            "segments": donut_segments(allocation),
        }
    )
    return render_template("analytics.html", **context)


@app.get("/api/portfolio")
def api_portfolio():
    try:
        data = _client().fetch_snapshot()
    except UpstreamError as exc:
        logger.error("API error: %s", exc)
        return jsonify({"error": str(exc) or "Unknown error"}), 500
    return jsonify(data), 200


@app.post("/api/refresh")
def api_refresh():
    try:
        data = _client().trigger_refresh()
    except UpstreamError as exc:
        logger.error("Refresh error: %s", exc)
        return (
            jsonify(
                {
                    "success": False,
                    "error": "Failed to refresh prices",
                    "details": str(exc) or "Unknown error",
                }
            ),
            500,
        )
    return jsonify(
        {"success": True, "message": "Prices refreshed successfully", "data": data}
    )


@app.get("/healthz")
def healthcheck() -> str:
    return "ok", 200


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    app.run(debug=True, host="0.0.0.0", port=int(os.environ.get("PORT", "5000")))
