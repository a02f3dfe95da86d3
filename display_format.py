"""Display helpers that re-render the spreadsheet's pre-formatted strings.

Every value arrives from the spreadsheet as a loosely formatted string
(``"$12,345"``, ``"1.42x"``, ``"0.61"``).  The helpers below parse those
strings leniently and render them with a fixed decimal policy.  None of them
raise: unparseable input is returned unchanged or replaced by ``-``.
"""

from __future__ import annotations

import math
import re
from datetime import date
from typing import Optional

PLACEHOLDER = "-"

POSITIVE_COLOR = "#059669"
NEGATIVE_COLOR = "#dc2626"
NEUTRAL_COLOR = "#6c7281"
DEFAULT_COLOR = "#1a1d29"

_LEADING_FLOAT = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_PLAIN_NUMBER = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?$")
_TEXT_ONLY = re.compile(r"^[a-zA-Z/ -]+$")
_MULTIPLE = re.compile(r"^-?\d+(\.\d+)?x$", re.IGNORECASE)
_PERCENT = re.compile(r"^-?\d+(\.\d+)?%$")
_PARENTHESIZED = re.compile(r"^\(.*\)$")
_DECIMAL = re.compile(r"^-?\d+(\.\d+)?$")
_AMOUNT_NOISE = re.compile(r"[$,\s\u00a0\u202f]")


def _is_blank(value: Optional[str]) -> bool:
    return value is None or value == "" or value == PLACEHOLDER


def _leading_float(text: str) -> Optional[float]:
    """Parse the longest numeric prefix of ``text`` or return None."""
    match = _LEADING_FLOAT.match(text)
    if not match:
        return None
    return float(match.group(1))


def _strict_float(text: str) -> Optional[float]:
    text = text.strip()
    if text == "":
        return 0.0
    if _PLAIN_NUMBER.match(text):
        return float(text)
    if text in ("Infinity", "+Infinity"):
        return math.inf
    if text == "-Infinity":
        return -math.inf
    return None


def _strip_currency(value: str) -> str:
    return re.sub(r"[,\s]", "", re.sub(r"^\$", "", value))


def _trim_fraction(text: str) -> str:
    if "." not in text:
        return text
    return text.rstrip("0").rstrip(".")


def _round_half_up(number: float) -> int:
    return math.floor(number + 0.5)


def format_currency_clean(value: Optional[str]) -> str:
    """Render a dollar amount in thousands by dropping its last three digits."""
    if _is_blank(value):
        return PLACEHOLDER
    number = _leading_float(_strip_currency(value))
    if number is None or not math.isfinite(number):
        return value
    digits = str(math.floor(number))
    truncated = int(digits[:-3]) if len(digits) > 3 else math.floor(number)
    return f"${truncated:,}"


def format_tokens_received(value: Optional[str]) -> str:
    """Render a dollar amount without cents; the fraction is floored, not rounded."""
    if _is_blank(value):
        return PLACEHOLDER
    number = _leading_float(_strip_currency(value))
    if number is None or not math.isfinite(number):
        return value
    return f"${math.floor(number):,}"


def format_percentage(value: Optional[str]) -> str:
    """Convert a decimal fraction to a percentage: ``"0.6142"`` -> ``"61.4%"``."""
    if _is_blank(value):
        return PLACEHOLDER
    number = _leading_float(value)
    if number is None:
        return value
    return f"{number * 100:.1f}%"


def format_roi(value: Optional[str]) -> str:
    """Render a return multiple with two decimals and an ``x`` suffix."""
    if _is_blank(value):
        return PLACEHOLDER
    number = _leading_float(value.replace("x", "", 1).replace("X", "", 1))
    if number is None:
        return value
    return f"{number:.2f}x"


def format_tokens_roi(value: Optional[str]) -> str:
    if _is_blank(value):
        return PLACEHOLDER
    number = _leading_float(re.sub(r"x$", "", value, flags=re.IGNORECASE))
    if number is None:
        return value
    return f"{number:.2f}x"


def format_price(value: Optional[str]) -> str:
    """Token prices keep three decimals (``$1.034``)."""
    if _is_blank(value):
        return PLACEHOLDER
    number = _leading_float(_strip_currency(value))
    if number is None:
        return value
    return f"${number:.3f}"


def format_unlock_column(value: Optional[str], kind: str) -> str:
    """Format the unlock columns; ``kind`` is ``days``, ``days-full`` or ``currency``."""
    if _is_blank(value) or value == "/":
        return PLACEHOLDER

    lowered = value.lower()
    if "finished" in lowered or "exit" in lowered or "tge" in lowered:
        return value

    if kind == "currency":
        number = _leading_float(re.sub(r"[$,]", "", value))
        if number is None or not math.isfinite(number):
            return value
        if number < 1:
            return PLACEHOLDER
        return f"${math.floor(number):,}"
    if kind in ("days", "days-full"):
        number = _leading_float(value)
        if number is None or not math.isfinite(number):
            return value
        return f"{_round_half_up(number)} days"
    return value


def format_outstanding_distribution(value: Optional[str], currency: str) -> str:
    """Outstanding distributions: USDC to the cent, ETH/SOL up to six decimals."""
    if value is None or value == "" or value == "/":
        return "/"
    number = _leading_float(re.sub(r"[,\s]", "", str(value)))
    if number is None:
        return str(value)
    if currency == "USDC":
        rendered = f"{number:,.2f}"
    else:
        rendered = _trim_fraction(f"{number:,.6f}")
    return f"{rendered} {currency}"


def format_cell(value: Optional[str]) -> str:
    """Generic table cell: plain decimals get separators, everything else passes through."""
    if not value:
        return ""
    if re.search(r"[%$]|\dx$", value, re.IGNORECASE):
        return value
    if _DECIMAL.match(value):
        return _trim_fraction(f"{float(value):,.2f}")
    return value


def format_month(value: str) -> str:
    """``"2025-10"`` -> ``"Oct 2025"``."""
    try:
        year, month = value.split("-")[:2]
        return date(int(year), int(month), 1).strftime("%b %Y")
    except (ValueError, AttributeError):
        return value


def parse_number_like(value: object) -> float:
    """Tolerant numeric parse used for sorting.

    Anything that is not a number becomes ``-inf`` so that it sorts last in
    descending order.  Understands ``$``, thousands separators, ``x`` and
    ``%`` suffixes, and accounting-style ``(500)`` negatives.
    """
    if value is None or isinstance(value, bool):
        return -math.inf
    if isinstance(value, (int, float)):
        return -math.inf if math.isnan(value) else float(value)

    stripped = str(value).strip()
    if not stripped or _TEXT_ONLY.match(stripped):
        return -math.inf

    text = re.sub(r"[$,]", "", re.sub(r"\s", "", stripped))
    if _MULTIPLE.match(text):
        return float(text[:-1])
    if _PERCENT.match(text):
        return float(text[:-1])
    if _PARENTHESIZED.match(text):
        number = _strict_float(text.replace("(", "").replace(")", ""))
        return -math.inf if number is None else -number
    number = _strict_float(text)
    return -math.inf if number is None else number


def parse_amount(value: object) -> float:
    """Lenient dollar-amount parse for rankings and chart scaling; missing means 0."""
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return 0.0 if math.isnan(value) else float(value)
    number = _leading_float(_AMOUNT_NOISE.sub("", str(value)) or "0")
    if number is None or not math.isfinite(number):
        return 0.0
    return number


def roi_color(value: Optional[str]) -> str:
    if not value or value == "0x":
        return NEUTRAL_COLOR
    number = _leading_float(value.replace("x", "", 1))
    if number is None:
        return NEUTRAL_COLOR
    if number > 1:
        return POSITIVE_COLOR
    if number < 1:
        return NEGATIVE_COLOR
    return NEUTRAL_COLOR


def pnl_color(formatted: str) -> str:
    """Colour for a rendered P&L cell: losses red, gains green."""
    if formatted == PLACEHOLDER:
        return DEFAULT_COLOR
    if "-" in formatted or "(" in formatted:
        return NEGATIVE_COLOR
    number = _leading_float(re.sub(r"[^0-9.-]", "", formatted))
    if number is not None and number > 0:
        return POSITIVE_COLOR
    return DEFAULT_COLOR
