"""
Row Normalizer - turn one raw CSV row into a typed property record.

Every cell arrives as text. Coercion never fails: a malformed numeric or
boolean value becomes None rather than aborting the row.
"""

import math
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Tuple

# Upload header vocabulary (case-sensitive, order-insensitive)
ADDRESS_COLUMN = "PROPERTYADDRESS"
EXPECTED_COLUMNS = [
    "PROPERTYADDRESS", "CITY", "STATE", "ZIP", "COUNTY", "YEARBUILT",
    "LATITUDE", "LONGITUDE", "OCCUPANCYRATE", "PARKINGSPACES",
    "HASEVCHARGING", "REDEVELOPMENTOPPORTUNITIES",
]

# Storage integer columns are 32-bit
INT_MIN = -(2 ** 31)
INT_MAX = 2 ** 31 - 1


@dataclass
class PropertyRecord:
    """Prepared property data. `id` is set only when storage already has the address."""
    property_address: Optional[str]
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    county: Optional[str] = None
    year_built: Optional[int] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    occupancy_rate: Optional[float] = None
    parking_spaces: Optional[int] = None
    has_ev_charging: Optional[bool] = None
    redevelopment_opportunities: Optional[str] = None
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    id: Optional[int] = None

    def to_values(self) -> dict:
        """Column values for a write, without the identifier."""
        values = asdict(self)
        values.pop("id")
        values["address_key"] = normalize_address(self.property_address)
        return values


def normalize_address(address: Any) -> str:
    """Matching key for an address: trimmed and lowercased."""
    if address is None:
        return ""
    return str(address).strip().lower()


def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value).strip()
    return text or None


def parse_float(value: Any) -> Optional[float]:
    text = clean_text(value)
    if text is None:
        return None
    try:
        number = float(text)
    except (ValueError, TypeError):
        return None
    if not math.isfinite(number):
        return None
    return number


def parse_int(value: Any) -> Optional[int]:
    """Integer within the storage column range, else None."""
    text = clean_text(value)
    if text is None:
        return None
    try:
        number = int(text)
    except (ValueError, TypeError):
        # Spreadsheet exports often write whole numbers as "1999.0"
        parsed = parse_float(text)
        if parsed is None or not parsed.is_integer():
            return None
        number = int(parsed)
    if not INT_MIN <= number <= INT_MAX:
        return None
    return number


def parse_bool(value: Any) -> Optional[bool]:
    """Tri-state: "true" (any case) -> True, other text -> False, empty -> None."""
    text = clean_text(value)
    if text is None:
        return None
    return text.lower() == "true"


def normalize_row(
    row: Mapping[str, Any],
    updated_at: Optional[datetime] = None
) -> Tuple[str, PropertyRecord]:
    """
    Parse one raw CSV row.

    Args:
        row: Column name -> cell value, using the upload header vocabulary
        updated_at: Timestamp to stamp on the record (defaults to now, UTC)

    Returns:
        Tuple of (normalized address key, PropertyRecord without id)
    """
    try:
        get = row.get
    except AttributeError:
        get = lambda _column: None  # noqa: E731

    raw_address = get(ADDRESS_COLUMN)
    record = PropertyRecord(
        property_address=clean_text(raw_address),
        city=clean_text(get("CITY")),
        state=clean_text(get("STATE")),
        zip=clean_text(get("ZIP")),
        county=clean_text(get("COUNTY")),
        year_built=parse_int(get("YEARBUILT")),
        latitude=parse_float(get("LATITUDE")),
        longitude=parse_float(get("LONGITUDE")),
        occupancy_rate=parse_float(get("OCCUPANCYRATE")),
        parking_spaces=parse_int(get("PARKINGSPACES")),
        has_ev_charging=parse_bool(get("HASEVCHARGING")),
        redevelopment_opportunities=clean_text(get("REDEVELOPMENTOPPORTUNITIES")),
        updated_at=updated_at or datetime.now(timezone.utc),
    )
    return normalize_address(record.property_address), record
