"""Typed value encoding and semantic equality.

Raw cell text becomes the datavalue payload the knowledge base stores for a
given property datatype. ``values_equal`` answers whether a stored value and
a raw candidate denote the same thing, normalizing decimal separators, sign
prefixes and time resolution so re-runs never duplicate statements.

Pure functions only.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from enum import IntEnum
from typing import Any

from edukb.utils import MalformedValueError
from edukb.wikibase.models import Datatype

GREGORIAN_CALENDAR = "http://www.wikidata.org/entity/Q1985727"
EARTH_GLOBE = "http://www.wikidata.org/entity/Q2"
COORDINATE_PRECISION = 0.0001
QUANTITY_UNIT = "1"


class Precision(IntEnum):
    """Wikibase time precision codes used by the loader."""
    YEAR = 9
    MONTH = 10


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------

def _parse_decimal(text: str) -> Decimal:
    normalized = text.strip().replace(",", ".")
    try:
        amount = Decimal(normalized)
    except InvalidOperation:
        raise MalformedValueError(f"Not a number: {text!r}") from None
    if not amount.is_finite():
        raise MalformedValueError(f"Not a finite number: {text!r}")
    return amount


def _parse_time(text: str, precision: Precision) -> tuple[str, ...]:
    """Year (and month at MONTH precision) of compact or ISO time text."""
    text = text.strip()
    if text[:1] in ("+", "-"):
        parts = text[1:].split("T", 1)[0].split("-")
        year = parts[0]
        month = parts[1] if len(parts) > 1 else ""
    else:
        required = 6 if precision >= Precision.MONTH else 4
        if len(text) < required:
            raise MalformedValueError(f"Time value too short: {text!r}")
        year, month = text[:4], text[4:6]

    if len(year) != 4 or not year.isdigit():
        raise MalformedValueError(f"Bad year in time value: {text!r}")
    if precision == Precision.YEAR:
        return (year,)
    if len(month) != 2 or not month.isdigit() or not 1 <= int(month) <= 12:
        raise MalformedValueError(f"Bad month in time value: {text!r}")
    return (year, month)


def _parse_coordinate(text: str) -> tuple[float, float]:
    parts = text.split(";")
    if len(parts) != 2:
        raise MalformedValueError(f"Coordinate must be 'lat;lon': {text!r}")
    try:
        latitude, longitude = (float(p.strip().replace(",", ".")) for p in parts)
    except ValueError:
        raise MalformedValueError(f"Coordinate parts must be numeric: {text!r}") from None
    return latitude, longitude


def _parse_item(text: str) -> int:
    code = text.strip()
    if code[:1].isalpha():
        code = code[1:]
    if not code.isdigit():
        raise MalformedValueError(f"Not an item reference: {text!r}")
    return int(code)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def encode(raw: str, datatype: Datatype, precision: Precision = Precision.MONTH) -> Any:
    """Encode raw cell text as a datavalue payload for *datatype*.

    Raises:
        MalformedValueError: if *raw* cannot represent the datatype.
    """
    if datatype == Datatype.string:
        return raw.strip()

    if datatype == Datatype.quantity:
        amount = _parse_decimal(raw)
        sign = "-" if amount.is_signed() else "+"
        return {"amount": f"{sign}{abs(amount):f}", "unit": QUANTITY_UNIT}

    if datatype == Datatype.time:
        parts = _parse_time(raw, precision)
        year = parts[0]
        month = parts[1] if precision >= Precision.MONTH else "01"
        return {
            "time": f"+{year}-{month}-01T00:00:00Z",
            "timezone": 0,
            "before": 0,
            "after": 0,
            "precision": int(precision),
            "calendarmodel": GREGORIAN_CALENDAR,
        }

    if datatype == Datatype.coordinate:
        latitude, longitude = _parse_coordinate(raw)
        return {
            "latitude": latitude,
            "longitude": longitude,
            "precision": COORDINATE_PRECISION,
            "globe": EARTH_GLOBE,
        }

    if datatype == Datatype.item:
        numeric_id = _parse_item(raw)
        return {"entity-type": "item", "numeric-id": numeric_id, "id": f"Q{numeric_id}"}

    raise MalformedValueError(f"Unsupported datatype: {datatype!r}")


def decode(value: Any, datatype: Datatype) -> str:
    """Plain-text rendering of a stored datavalue payload."""
    if value is None:
        return ""
    if not isinstance(value, dict):
        return str(value).strip()

    if datatype == Datatype.quantity:
        return str(value.get("amount", ""))
    if datatype == Datatype.time:
        return str(value.get("time", ""))
    if datatype == Datatype.coordinate:
        return f"{value.get('latitude')};{value.get('longitude')}"
    if datatype == Datatype.item:
        if value.get("id"):
            return str(value["id"])
        return f"Q{value.get('numeric-id', '')}"
    return str(value)


def _semantic_key(text: str, datatype: Datatype, precision: Precision) -> Any:
    if datatype == Datatype.quantity:
        return _parse_decimal(text)
    if datatype == Datatype.time:
        return _parse_time(text, precision)
    if datatype == Datatype.coordinate:
        return _parse_coordinate(text)
    if datatype == Datatype.item:
        return _parse_item(text)
    return text.strip()


def values_equal(
    existing: Any,
    candidate_raw: str,
    datatype: Datatype,
    precision: Precision = Precision.MONTH,
) -> bool:
    """True when *existing* and *candidate_raw* denote the same value.

    *existing* may be a stored payload or its plain-text form. Values that
    cannot be parsed on either side compare unequal.
    """
    try:
        candidate = _semantic_key(candidate_raw, datatype, precision)
        stored = _semantic_key(decode(existing, datatype), datatype, precision)
    except MalformedValueError:
        return False
    return stored == candidate
