"""Client for the spreadsheet macro service that publishes the portfolio."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

DEFAULT_UPSTREAM_URL = (
    "https://script.google.com/macros/s/"
    "AKfycbwPXZhIDoumMOw26oVcnJjGZlI_kw_l2f0luUh5RYdrhjYyPIq36ZujIxdBip6IdOeQ/exec"
)
DEFAULT_UPSTREAM_TOKEN = "blueeyeswillrule"
DEFAULT_TIMEOUT = 30.0


class UpstreamError(RuntimeError):
    """Raised when the spreadsheet service does not return usable JSON."""


@dataclass
class UpstreamClient:
    """Forward snapshot and refresh requests to the spreadsheet service.

    There is no retry and no caching: every call goes to the service and any
    failure surfaces as ``UpstreamError``.  Calls go through ``requests.get``
    unless a ``session`` is supplied.
    """

    base_url: str = DEFAULT_UPSTREAM_URL
    token: str = DEFAULT_UPSTREAM_TOKEN
    timeout: float = DEFAULT_TIMEOUT
    session: Optional[requests.Session] = field(default=None, repr=False)

    @classmethod
    def from_env(cls) -> "UpstreamClient":
        return cls(
            base_url=os.environ.get("PORTFOLIO_UPSTREAM_URL", DEFAULT_UPSTREAM_URL),
            token=os.environ.get("PORTFOLIO_UPSTREAM_TOKEN", DEFAULT_UPSTREAM_TOKEN),
            timeout=float(os.environ.get("PORTFOLIO_UPSTREAM_TIMEOUT", DEFAULT_TIMEOUT)),
        )

    def fetch_snapshot(self) -> Dict[str, Any]:
        """Fetch the full portfolio payload, blockchain categories included."""
        response = self._get({"includeBlockchainCategories": "true"})
        if not response.ok:
            logger.error("Upstream returned status %s", response.status_code)
            raise UpstreamError(f"Upstream error {response.status_code}")

        data = self._decode(response)
        if isinstance(data, dict):
            logger.info(
                "Received %d investments and %d blockchain categories",
                len(data.get("investments") or []),
                len(data.get("blockchainCategories") or []),
            )
        return data

    def trigger_refresh(self) -> Dict[str, Any]:
        """Ask the spreadsheet to recompute prices; the service expects a GET."""
        response = self._get({"refresh": "true"})
        if not response.ok:
            logger.error(
                "Refresh failed with status %s: %s", response.status_code, response.text
            )
            raise UpstreamError(
                f"Refresh failed with status {response.status_code}: {response.text}"
            )

        data = self._decode(response)
        logger.info("Refresh response: %s", data)
        return data

    def _get(self, extra: Dict[str, str]) -> requests.Response:
        params = {"token": self.token, **extra}
        logger.info("Calling %s with %s", self.base_url, sorted(extra))
        try:
            return (self.session or requests).get(
                self.base_url,
                params=params,
                headers={"Cache-Control": "no-store"},
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.error("Upstream request failed: %s", exc)
            raise UpstreamError(f"Upstream request failed: {exc}") from exc

    @staticmethod
    def _decode(response: requests.Response) -> Dict[str, Any]:
        try:
            return response.json()
        except ValueError as exc:
            logger.error("Upstream returned invalid JSON: %s", exc)
            raise UpstreamError("Upstream returned invalid JSON") from exc
