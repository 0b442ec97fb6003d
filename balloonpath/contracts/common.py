"""Base classes and shared types for balloonpath contracts.

Unit conventions (all contracts):
- **Altitudes**: meters above mean sea level, signed
- **Speeds**: meters per second (m/s)
- **Distances**: kilometers (km) — suffix ``_km``
- **Durations**: seconds — suffix ``_s``
- **Temperatures**: degrees Celsius in weather records
- **Pressures**: hectopascals (hPa) in weather records
- **Directions**: degrees, meteorological convention (wind FROM)
- **Datetimes**: always UTC, ISO 8601 in serialized form
- **Coordinates**: WGS84 decimal degrees

Internal services may work in SI units (Pa, K) but convert before
building a contract.
"""

from datetime import datetime, timezone
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware UTC datetime (naive means UTC)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class ContractModel(BaseModel):
    """Base model with the JSON shape consumed by external layers.

    - Field names serialize as camelCase (``launchTime``, ``burstAltitude``).
    - Enums serialize as string values.
    - ``to_json()`` produces a JSON-safe dict (datetimes as ISO 8601).
    - ``from_json()`` hydrates from the same dict shape.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    def to_json(self) -> dict[str, Any]:
        """Dump to a JSON-compatible dict."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> Self:
        """Create model instance from a JSON dict."""
        return cls.model_validate(data)


class FrozenContract(ContractModel):
    """Immutable contract, produced once per prediction run."""

    model_config = ConfigDict(frozen=True)


class Coordinates(FrozenContract):
    """WGS84 geographic coordinate with optional altitude."""

    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    altitude: float | None = Field(default=None, description="Meters AMSL, signed")
