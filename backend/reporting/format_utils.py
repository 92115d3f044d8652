"""Formatting for valuation report values: lookups, dates, rupee amounts and Indian number words."""
from __future__ import annotations

import math
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

NOT_AVAILABLE = "NA"
RUPEE = "₹"

IMAGE_URL_KEYS = ("url", "preview", "data", "src", "secure_url")
IMAGE_URL_SCHEMES = ("data:", "blob:", "http://", "https://")

# Legacy shape: {"agreementForSale": {"agreementForSaleExecutedName": "..."}}
_LEGACY_UNWRAP = {"agreementForSale": "agreementForSaleExecutedName"}

_NO_AMOUNT = {"", "na", "n/a", "nil", "none", "null", "undefined", "-"}

_ONES = (
    "", "One", "Two", "Three", "Four", "Five", "Six", "Seven", "Eight", "Nine",
    "Ten", "Eleven", "Twelve", "Thirteen", "Fourteen", "Fifteen", "Sixteen",
    "Seventeen", "Eighteen", "Nineteen",
)
_TENS = ("", "", "Twenty", "Thirty", "Forty", "Fifty", "Sixty", "Seventy", "Eighty", "Ninety")


class _Missing:
    """Marker for a path segment that does not exist."""

    _instance: "_Missing | None" = None

    def __new__(cls) -> "_Missing":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING = _Missing()


def get_path(record: Any, path: str) -> Any:
    """Walk a dotted path through nested mappings (and list indices). Returns MISSING on any gap."""
    current = record
    for part in path.split("."):
        if isinstance(current, Mapping):
            if part not in current:
                return MISSING
            current = current[part]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)) and part.isdigit():
            idx = int(part)
            if idx >= len(current):
                return MISSING
            current = current[idx]
        else:
            return MISSING
    return current


def is_blank(value: Any) -> bool:
    return value is MISSING or value is None or (isinstance(value, str) and not value.strip())


def yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def lookup(record: Any, path: str, fallback: Any = NOT_AVAILABLE) -> Any:
    value = get_path(record, path)
    if is_blank(value):
        return fallback
    if isinstance(value, bool):
        return yes_no(value)
    if isinstance(value, Mapping):
        sub_key = _LEGACY_UNWRAP.get(path.rsplit(".", 1)[-1])
        if sub_key:
            return lookup(value, sub_key, fallback)
        return fallback
    return value


def round_half_up(value: float, places: int = 0) -> float | int:
    try:
        quantum = Decimal(1).scaleb(-places)
        rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError):
        return 0
    return int(rounded) if places <= 0 else float(rounded)


def _first_number(text: str) -> float | None:
    m = re.search(r"-?\d+(?:\.\d+)?", re.sub(r"[,\s]", "", text))
    return float(m.group(0)) if m else None


def parse_amount(value: Any) -> float | None:
    """Lenient numeric parse: ignores currency symbols, grouping commas and trailing '/-'."""
    if value is None or value is MISSING or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(value) or math.isinf(value) else float(value)
    text = str(value).strip()
    if text.lower() in _NO_AMOUNT:
        return None
    return _first_number(text)


def format_inr(value: Any, precision: int = 0) -> str:
    """Indian digit grouping: 1500000 -> 15,00,000."""
    num = parse_amount(value)
    if num is None:
        return NOT_AVAILABLE
    rounded = round_half_up(num, precision)
    negative = rounded < 0
    whole = int(abs(rounded))
    digits = str(whole)
    if len(digits) > 3:
        head, tail = digits[:-3], digits[-3:]
        head = re.sub(r"\B(?=(\d{2})+(?!\d))", ",", head)
        digits = f"{head},{tail}"
    if precision > 0:
        frac = f"{abs(rounded):.{precision}f}".split(".")[1]
        digits = f"{digits}.{frac}"
    return f"-{digits}" if negative else digits


def format_date(value: Any) -> str:
    """d/m/yyyy from the literal date components; unparseable text comes back unchanged."""
    if value is None or value is MISSING or value == "" or value is False:
        return NOT_AVAILABLE
    if isinstance(value, (date, datetime)):
        return f"{value.day}/{value.month}/{value.year}"
    text = str(value).strip()
    if not text:
        return NOT_AVAILABLE
    for candidate in (text, text[:10]):
        for fmt in ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y", "%Y/%m/%d", "%d %B %Y", "%d %b %Y", "%B %d, %Y"):
            try:
                parsed = datetime.strptime(candidate, fmt).date()
            except ValueError:
                continue
            return f"{parsed.day}/{parsed.month}/{parsed.year}"
    return str(value)


def _below_hundred(n: int) -> str:
    if n < 20:
        return _ONES[n]
    tens, ones = divmod(n, 10)
    return f"{_TENS[tens]} {_ONES[ones]}".strip()


def _below_thousand(n: int) -> str:
    hundreds, rest = divmod(n, 100)
    parts = []
    if hundreds:
        parts.append(f"{_ONES[hundreds]} Hundred")
    if rest:
        parts.append(_below_hundred(rest))
    return " ".join(parts)


def _indian_words(n: int) -> str:
    crore, rest = divmod(n, 10_000_000)
    lac, rest = divmod(rest, 100_000)
    thousand, rest = divmod(rest, 1000)
    parts = []
    if crore:
        parts.append(f"{_indian_words(crore)} Crore")
    if lac:
        parts.append(f"{_below_hundred(lac)} Lac")
    if thousand:
        parts.append(f"{_below_hundred(thousand)} Thousand")
    if rest:
        parts.append(_below_thousand(rest))
    return " ".join(parts)


def number_to_words(amount: Any) -> str:
    """
    Indian-convention words (thousand, lac, crore), uppercase.

    Returns "" for zero, absent or unparseable input; use money_words when an
    explicit zero must read as "Zero".
    """
    num = parse_amount(amount)
    if num is None:
        return ""
    n = abs(int(round_half_up(num)))
    if n == 0:
        return ""
    return _indian_words(n).upper()


def money_words(amount: Any) -> str:
    num = parse_amount(amount)
    if num is None:
        return ""
    if int(round_half_up(num)) == 0:
        return "Zero"
    return number_to_words(num)


def calculate_percentage(base: Any, percent: float) -> int:
    num = parse_amount(base)
    if num is None:
        return 0
    return int(round_half_up(num * percent / 100))


def format_currency_words(amount: Any, percent: float = 100) -> str:
    if is_blank(amount) or parse_amount(amount) is None:
        return NOT_AVAILABLE
    scaled = calculate_percentage(amount, percent)
    return f"{RUPEE} {format_inr(scaled)}/- ({money_words(scaled).upper()})"


def round_to_nearest_1000(value: Any) -> Any:
    if is_blank(value) or value is False:
        return NOT_AVAILABLE
    if isinstance(value, (int, float)) and value == 0:
        return NOT_AVAILABLE
    num = _first_number(str(value))
    if num is None:
        return value
    return int(round_half_up(num / 1000)) * 1000


def extract_address(value: Any) -> str:
    if isinstance(value, Mapping):
        full = value.get("fullAddress")
        return full if isinstance(full, str) else ""
    if isinstance(value, str):
        return value
    return ""


def extract_image_url(candidate: Any) -> str:
    """Resolve an image reference to a usable URL; "" unless it is data:, blob:, http:// or https://."""
    url: Any = ""
    if isinstance(candidate, str):
        url = candidate
    elif isinstance(candidate, Mapping):
        for key in IMAGE_URL_KEYS:
            v = candidate.get(key)
            if isinstance(v, str) and v.strip():
                url = v
                break
    if not isinstance(url, str):
        return ""
    url = url.strip()
    if url.lower().startswith(IMAGE_URL_SCHEMES):
        return url
    return ""


def display(value: Any, fallback: str = NOT_AVAILABLE) -> str:
    """Render a resolved value as row text."""
    if is_blank(value):
        return fallback
    if isinstance(value, bool):
        return yes_no(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (list, tuple)):
        items = [display(v, "") for v in value]
        return ", ".join(i for i in items if i) or fallback
    if isinstance(value, Mapping):
        return fallback
    return str(value)
