"""
Normalization utilities for extracted rate confirmation fields.

Handles:
- Dates (any common format -> YYYY-MM-DD)
- Money and mileage (-> non-negative float)
- Equipment shorthand (-> V / R / F / VR)
- City/state pairs (-> Location)

Every function here is total: bad input degrades to an empty/zero value
instead of raising, so a cosmetic formatting mismatch never fails a load.
"""

import logging
import math
import re
from datetime import date, datetime
from typing import Any

from dateutil import parser as date_parser
from price_parser import Price

from ...models import EquipmentCode, Location

logger = logging.getLogger(__name__)

CANONICAL_DATE_FORMAT = "%Y-%m-%d"

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_US_DATE = re.compile(r"^(\d{1,2})[/-](\d{1,2})[/-](\d{2}|\d{4})$")
_TRAILING_POSTAL_CODE = re.compile(r"[\s,]*\d{5}(?:-\d{4})?$")
_EQUIPMENT_LENGTH = re.compile(r"\d+\s*(?:'|FT\b|FOOT\b)?")

# Fill-in values for dateutil; a parse that differs between them was incomplete
_DATE_DEFAULTS = (datetime(2000, 1, 1), datetime(2011, 12, 31))

US_STATE_CODES = {
    "alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
    "california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
    "district of columbia": "DC", "florida": "FL", "georgia": "GA", "hawaii": "HI",
    "idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
    "kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME",
    "maryland": "MD", "massachusetts": "MA", "michigan": "MI", "minnesota": "MN",
    "mississippi": "MS", "missouri": "MO", "montana": "MT", "nebraska": "NE",
    "nevada": "NV", "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM",
    "new york": "NY", "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
    "oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI",
    "south carolina": "SC", "south dakota": "SD", "tennessee": "TN", "texas": "TX",
    "utah": "UT", "vermont": "VT", "virginia": "VA", "washington": "WA",
    "west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
}

# Longest names first so "west virginia" wins over "virginia"
_STATE_NAMES_BY_LENGTH = sorted(US_STATE_CODES, key=len, reverse=True)

_VAN_TOKENS = {"V", "VAN", "VANS", "DRY", "DV", "DRYVAN"}
_REEFER_TOKENS = {"R", "RF", "REEF", "REEFER", "REEFERS", "REFRIGERATED"}
_FLATBED_TOKENS = {"F", "FB", "FLAT", "FLATBED", "FLATBEDS"}
_EQUIPMENT_FILLER = {"OR", "AND", "W", "TRAILER", "TRAILERS", "ONLY"}


def normalize_text(value: Any) -> str:
    """
    Convert any extracted value to a stripped string.

    Lists (a common model quirk) are joined with spaces; whole floats
    such as ``12345.0`` lose their trailing ``.0``.
    """
    if value is None:
        return ""
    if isinstance(value, list):
        return " ".join(normalize_text(v) for v in value if v is not None).strip()
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return " ".join(str(value).split())


def normalize_email(value: Any) -> str:
    """Strip, drop a ``mailto:`` prefix and lowercase an email address."""
    text = normalize_text(value)
    if text.lower().startswith("mailto:"):
        text = text[7:]
    return text.strip().lower()


def normalize_date(value: Any) -> str:
    """
    Parse various date formats to YYYY-MM-DD.

    Accepts ISO dates, US M/D/YYYY and M/D/YY (slash or dash separated)
    and written forms ("Nov 21, 2025"). A date already in canonical form is
    returned unchanged. Text missing a year, month or day ("Monday", "12")
    is not a date.

    Returns "" if parsing fails.
    """
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.strftime(CANONICAL_DATE_FORMAT)
    if isinstance(value, date):
        return value.strftime(CANONICAL_DATE_FORMAT)

    text = normalize_text(value)
    if not text:
        return ""

    if _ISO_DATE.match(text):
        try:
            datetime.strptime(text, CANONICAL_DATE_FORMAT)
        except ValueError:
            return ""
        return text

    match = _US_DATE.match(text)
    if match:
        month, day, year = match.groups()
        year_num = int(year)
        if len(year) == 2:
            year_num += 2000
        try:
            return date(year_num, int(month), int(day)).strftime(CANONICAL_DATE_FORMAT)
        except ValueError:
            return ""

    try:
        parsed = {date_parser.parse(text, default=default).date() for default in _DATE_DEFAULTS}
    except (ValueError, OverflowError):
        logger.debug("Unparseable date value: %r", text)
        return ""
    if len(parsed) != 1:
        logger.debug("Incomplete date value: %r", text)
        return ""
    return parsed.pop().strftime(CANONICAL_DATE_FORMAT)


def _as_number(value: Any) -> float | None:
    """Return a float for numeric input (possibly non-finite), else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            return float(value)
        except OverflowError:
            return math.inf if value > 0 else -math.inf
    return None


def _parse_quantity(value: Any) -> float:
    """
    Shared number reading for money, mileage and weight.

    Text goes through price-parser so "1,250", "1.250" and "2 000" read the
    same way everywhere. Negative, non-finite or missing -> 0.0.
    """
    number = _as_number(value)
    if number is None:
        text = normalize_text(value)
        if not text or text.startswith("-"):
            return 0.0
        number = Price.fromstring(text).amount_float
        if number is None:
            return 0.0
    if not math.isfinite(number):
        return 0.0
    return max(number, 0.0)


def normalize_money(value: Any) -> float:
    """
    Parse a money amount to a non-negative float rounded to cents.

    Handles "$1,250.00", "1250", "USD 2,000" via price-parser.
    Non-numeric, absent or negative input -> 0.0.
    """
    return round(_parse_quantity(value), 2)


def normalize_miles(value: Any) -> float:
    """
    Parse a distance to a non-negative float.

    "800", "800 mi", "1,024.5 miles" -> float. Anything else -> 0.0.
    """
    return _parse_quantity(value)


def normalize_weight(value: Any) -> float:
    """Weights follow the same rules as mileage ("42,000 lbs" -> 42000.0)."""
    return normalize_miles(value)


def normalize_equipment(value: Any) -> str:
    """
    Map equipment free text to an EquipmentCode value.

    "Dry Van" -> "V", "Reefer" -> "R", "Flatbed" -> "F",
    "Van or Reefer" / "V/R" -> "VR". Text that does not map cleanly
    (e.g. "Step Deck") passes through verbatim.
    """
    text = normalize_text(value)
    if not text:
        return ""

    upper = _EQUIPMENT_LENGTH.sub(" ", text.upper())
    tokens = re.sub(r"[^A-Z]+", " ", upper).split()
    if not tokens:
        return text

    kinds: set[EquipmentCode] = set()
    for token in tokens:
        if token == "VR":
            kinds.update((EquipmentCode.VAN, EquipmentCode.REEFER))
        elif token in _VAN_TOKENS:
            kinds.add(EquipmentCode.VAN)
        elif token in _REEFER_TOKENS:
            kinds.add(EquipmentCode.REEFER)
        elif token in _FLATBED_TOKENS:
            kinds.add(EquipmentCode.FLATBED)
        elif token not in _EQUIPMENT_FILLER:
            return text

    if kinds == {EquipmentCode.VAN, EquipmentCode.REEFER}:
        return EquipmentCode.VAN_OR_REEFER.value
    if len(kinds) == 1:
        return kinds.pop().value
    return text


def _region_code(text: str) -> str | None:
    """Return the two-letter code for a region token or full state name."""
    text = text.strip().strip(".")
    if len(text) == 2 and text.isalpha():
        return text.upper()
    return US_STATE_CODES.get(text.lower())


def _split_trailing_region(text: str) -> tuple[str, str]:
    """Split "Salt Lake City UT" or "Albany New York" into (city, region)."""
    lowered = text.lower()
    for name in _STATE_NAMES_BY_LENGTH:
        if lowered == name:
            return "", US_STATE_CODES[name]
        if lowered.endswith(" " + name):
            return text[: -len(name)].strip(), US_STATE_CODES[name]

    head, _, last = text.rpartition(" ")
    if head and len(last) == 2 and last.isalpha():
        return head.strip(), last.upper()
    return text, ""


def normalize_location(value: Any) -> Location:
    """
    Split location free text into city and two-letter region code.

    "Johnston SC", "Johnston, SC", "Dallas, TX 75201" and
    "123 Main St, Dallas, Texas" all resolve to a city plus region.
    A bare state name ("West Virginia") is a region with no city.
    When no region can be recognized the whole text is kept as the city.
    """
    text = normalize_text(value)
    text = _TRAILING_POSTAL_CODE.sub("", text).strip(" ,.")
    if not text:
        return Location()

    parts = [p.strip() for p in text.split(",") if p.strip()]
    if len(parts) >= 2:
        code = _region_code(parts[-1])
        if code:
            return Location(city=parts[-2], state=code)

    if len(parts) == 1 and len(parts[0]) == 2 and parts[0].isalpha():
        return Location(state=parts[0].upper())

    city, state = _split_trailing_region(parts[-1])
    return Location(city=city, state=state)
