import math
import re
from datetime import date, datetime
from typing import Mapping, Sequence

BOM = "\ufeff"

_MISSING = {"", "n/a"}

# Formats accepted verbatim before falling back to the day/month heuristic.
# Slash and dash dates are month-first here, matching common US exports.
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d",
    "%Y.%m.%d",
    "%m/%d/%Y",
    "%m-%d-%Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%b %d %Y",
    "%B %d %Y",
    "%d %b %Y",
    "%d %B %Y",
)

_DATE_SEPARATORS = re.compile(r"[.\-]")
_MONEY_NOISE = re.compile(r"[\s,$€£¥₹%]")
_WHITESPACE = re.compile(r"\s+")

HARDWARE_KEYWORDS: frozenset[str] = frozenset(
    {
        "server",
        "dell",
        "hp",
        "lenovo",
        "laptop",
        "desktop",
        "router",
        "switch",
        "firewall",
        "ap",
        "access point",
    }
)

# Canonical field -> accepted headers, in priority order.
FIELD_SYNONYMS: dict[str, tuple[str, ...]] = {
    "product_name": ("products", "product", "product name"),
    "vendor_name": ("account name", "vendor", "vendor name"),
    "purchase_date": ("purchase date", "purchase"),
    "start_date": ("start date", "start"),
    "end_date": ("end date", "end"),
    "income": ("income",),
    "cost": ("cogs", "cost"),
    "profit": ("profit",),
    "margin_percent": ("margin %", "margin"),
    "serial_number": ("serial number", "serial"),
    "notes": ("notes (hardware maintenance)", "notes"),
}


def clean_value(raw: str | None) -> str | None:
    """Trimmed text, or None for blanks and N/A."""
    if raw is None or raw.strip().lower() in _MISSING:
        return None
    return raw.strip()


def normalize_header(raw: str) -> str:
    return _WHITESPACE.sub(" ", raw.replace(BOM, "")).strip().lower()


def pick_field(row: Mapping[str, str], synonyms: Sequence[str]) -> str | None:
    """Return the first non-blank value among the synonym columns, trimmed."""
    for header in synonyms:
        value = row.get(header)
        if value is not None and value.strip():
            return value.strip()
    return None


def normalize_date(raw: str | None) -> str | None:
    """
    Normalize a loosely formatted date to ISO ``YYYY-MM-DD``.

    ISO 8601 input (offsets, a trailing ``Z`` and fractional seconds included)
    and the known formats are tried first. Otherwise the value is split into three
    numeric parts ``a/b/c``: a two-digit ``c`` is taken as 20xx, and an ``a``
    above 12 cannot be a month so ``a`` and ``b`` are swapped. Ambiguous
    values such as ``03/04/2024`` stay month-first.
    """
    text = clean_value(raw)
    if text is None:
        return None

    try:
        return datetime.fromisoformat(text).date().isoformat()
    except ValueError:
        pass

    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date().isoformat()
        except ValueError:
            continue

    parts = _DATE_SEPARATORS.sub("/", text).split("/")
    if len(parts) != 3 or not all(p.strip().isdigit() for p in parts):
        return None

    first, second, year = (p.strip() for p in parts)
    if len(year) == 2:
        year = "20" + year
    if int(first) > 12:
        first, second = second, first

    try:
        return date(int(year), int(first), int(second)).isoformat()
    except ValueError:
        return None


def parse_money(raw: str | None) -> float | None:
    """Parse ``$1,299.99`` / ``18.75%`` style values; ``None`` when unusable."""
    text = clean_value(raw)
    if text is None:
        return None

    cleaned = _MONEY_NOISE.sub("", text)
    try:
        value = float(cleaned)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def is_hardware(product_name: str) -> bool:
    lowered = product_name.lower()
    return any(keyword in lowered for keyword in HARDWARE_KEYWORDS)
