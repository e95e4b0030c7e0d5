"""
Field validation and cleaning for raw ICN export values.

The export marks missing data with a handful of sentinel strings rather
than leaving fields empty, so every raw value passes through here before
it is trusted.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

INVALID_SENTINELS = frozenset({"#N/A", "N/A", "0", "NULL", "UNDEFINED"})

# Placeholders substituted for invalid values
ADDRESS_PLACEHOLDER = "Address Not Available"
CITY_PLACEHOLDER = "City Not Available"
SECTOR_PLACEHOLDER = "General"
ITEM_PLACEHOLDER = "Service"
DEFAULT_PLACEHOLDER = "Not Available"

CITY_CORRECTIONS = {
    "melb": "Melbourne",
    "syd": "Sydney",
    "bris": "Brisbane",
    "adel": "Adelaide",
    "pert": "Perth",
    "darwn": "Darwin",
    "hobar": "Hobart",
    "canbera": "Canberra",
}

ICN_DATE_FORMAT = "%d/%m/%Y"


def is_invalid(value: Any) -> bool:
    """
    Return True for missing, blank, or sentinel values.

    Sentinels are matched case-insensitively after trimming. Non-string
    values (the export occasionally carries bare numbers) are judged by
    their string form.
    """
    if value is None:
        return True
    if isinstance(value, float) and value != value:  # NaN
        return True
    text = value if isinstance(value, str) else str(value)
    cleaned = text.strip().upper()
    return cleaned == "" or cleaned in INVALID_SENTINELS


def clean(value: Any, placeholder: str = DEFAULT_PLACEHOLDER) -> str:
    """Return the trimmed value, or ``placeholder`` if it is invalid."""
    if is_invalid(value):
        return placeholder
    return str(value).strip()


def auto_correct_city(city: str) -> str:
    """Expand known city abbreviations and typos."""
    if not city:
        return city
    return CITY_CORRECTIONS.get(city.strip().lower(), city)


def parse_validation_date(raw: Any) -> Optional[str]:
    """
    Convert an ICN validation date (d/M/yyyy) to ISO yyyy-MM-dd.

    Returns None when the value is invalid or not a real calendar date,
    which downstream means the company is unverified.
    """
    if is_invalid(raw):
        return None
    try:
        parsed = datetime.strptime(str(raw).strip(), ICN_DATE_FORMAT)
    except ValueError:
        return None
    return parsed.strftime("%Y-%m-%d")
