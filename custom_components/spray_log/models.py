"""Treatment record value objects.

Python attributes are snake_case; ``as_dict``/``from_dict`` use the camelCase
keys of the persisted and exported form so stored collections stay
interchangeable with earlier exports.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from homeassistant.util import dt as dt_util

from .calculations import rate_amount_label, rate_unit_label
from .const import (
    AREA_UNIT,
    DEFAULT_APPLICATION_RATE,
    DEFAULT_ROTATION_ALERT_THRESHOLD,
    SOLUTION_VOLUME_UNIT,
)


def ensure_aware(value: datetime) -> datetime:
    """Interpret a naive datetime in the configured local time zone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt_util.get_default_time_zone())
    return value


def parse_timestamp(value: Any) -> datetime:
    """Parse a stored or user-supplied timestamp."""
    if isinstance(value, datetime):
        return ensure_aware(value)
    parsed = dt_util.parse_datetime(str(value))
    if parsed is None:
        raise ValueError(f"Invalid datetime: {value!r}")
    return ensure_aware(parsed)


def _optional_timestamp(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    return parse_timestamp(value)


def _optional_float(value: Any) -> float | None:
    if value in (None, ""):
        return None
    return float(value)


@dataclass(slots=True)
class WeatherReading:
    """Conditions at the time of application. Any reading may be absent."""

    temperature: float | None = None
    humidity: float | None = None
    wind_speed: float | None = None
    conditions: str | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.temperature is None
            and self.humidity is None
            and self.wind_speed is None
            and not self.conditions
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "humidity": self.humidity,
            "windSpeed": self.wind_speed,
            "conditions": self.conditions,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> WeatherReading:
        if not data:
            return cls()
        return cls(
            temperature=_optional_float(data.get("temperature")),
            humidity=_optional_float(data.get("humidity")),
            wind_speed=_optional_float(data.get("windSpeed")),
            conditions=data.get("conditions") or None,
        )


@dataclass(slots=True, frozen=True)
class ChemicalProduct:
    """A reference product that can be added to a treatment."""

    id: int
    name: str
    type: str
    moa_group: str
    default_rate: float
    rate_unit: str

    @property
    def rate_label(self) -> str:
        return f"{self.default_rate:g} {self.rate_unit}/acre"

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "moaGroup": self.moa_group,
            "defaultRateValue": self.default_rate,
            "rateUnit": self.rate_unit,
            "defaultRate": self.rate_label,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ChemicalProduct:
        # Older records only carry the combined label, e.g. "2 lb/acre"
        label = data.get("defaultRate", "")
        unit = data.get("rateUnit") or rate_unit_label(label)
        rate = data.get("defaultRateValue")
        return cls(
            id=int(data["id"]),
            name=data["name"],
            type=data.get("type", ""),
            moa_group=str(data.get("moaGroup", "")),
            default_rate=float(rate) if rate is not None else rate_amount_label(label),
            rate_unit=unit,
        )


@dataclass(slots=True)
class ChemicalApplication:
    """One chemical within a treatment, at the rate actually applied per acre."""

    chemical_id: int
    name: str
    type: str
    moa_group: str
    rate: float
    unit: str

    @classmethod
    def from_product(
        cls, product: ChemicalProduct, rate: float | None = None
    ) -> ChemicalApplication:
        return cls(
            chemical_id=product.id,
            name=product.name,
            type=product.type,
            moa_group=product.moa_group,
            rate=product.default_rate if rate is None else float(rate),
            unit=product.rate_unit,
        )

    def as_dict(self) -> dict[str, Any]:
        return {
            "id": self.chemical_id,
            "name": self.name,
            "type": self.type,
            "moaGroup": self.moa_group,
            "rate": self.rate,
            "unit": self.unit,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ChemicalApplication:
        return cls(
            chemical_id=int(data["id"]),
            name=data["name"],
            type=data.get("type", ""),
            moa_group=str(data.get("moaGroup", "")),
            rate=float(data["rate"]),
            unit=data.get("unit", ""),
        )


@dataclass(slots=True)
class Treatment:
    """One recorded spray application.

    ``solution_volume`` is a snapshot taken when the treatment was built and
    is never recomputed on read. ``id``, ``created_at`` and ``updated_at``
    belong to the store.
    """

    applied_at: datetime
    chemicals: list[ChemicalApplication]
    area: float
    solution_volume: float
    weather: WeatherReading = field(default_factory=WeatherReading)
    area_unit: str = AREA_UNIT
    solution_volume_unit: str = SOLUTION_VOLUME_UNIT
    retreatment_interval: int | None = None
    notes: str | None = None
    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def chemical_names(self) -> list[str]:
        return [chemical.name for chemical in self.chemicals]

    def as_dict(self) -> dict[str, Any]:
        data = {
            "id": self.id,
            "datetime": self.applied_at.isoformat(),
            "weather": self.weather.as_dict(),
            "chemicals": [chemical.as_dict() for chemical in self.chemicals],
            "area": self.area,
            "areaUnit": self.area_unit,
            "solutionVolume": self.solution_volume,
            "solutionVolumeUnit": self.solution_volume_unit,
            "retreatmentInterval": self.retreatment_interval,
            "notes": self.notes,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }
        if self.updated_at is not None:
            data["updatedAt"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Treatment:
        interval = data.get("retreatmentInterval")
        return cls(
            id=data.get("id"),
            applied_at=parse_timestamp(data["datetime"]),
            weather=WeatherReading.from_dict(data.get("weather")),
            chemicals=[ChemicalApplication.from_dict(c) for c in data["chemicals"]],
            area=float(data["area"]),
            area_unit=data.get("areaUnit", AREA_UNIT),
            solution_volume=float(data["solutionVolume"]),
            solution_volume_unit=data.get("solutionVolumeUnit", SOLUTION_VOLUME_UNIT),
            retreatment_interval=int(interval) if interval else None,
            notes=data.get("notes") or None,
            created_at=_optional_timestamp(data.get("createdAt")),
            updated_at=_optional_timestamp(data.get("updatedAt")),
        )


@dataclass(slots=True)
class Settings:
    """User settings, stored as a single record per entry."""

    weather_api_key: str = ""
    default_application_rate: float = DEFAULT_APPLICATION_RATE
    rotation_alert_threshold: int = DEFAULT_ROTATION_ALERT_THRESHOLD

    def as_dict(self) -> dict[str, Any]:
        return {
            "weatherApiKey": self.weather_api_key,
            "defaultApplicationRate": self.default_application_rate,
            "rotationAlertThreshold": self.rotation_alert_threshold,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Settings:
        defaults = cls()
        return cls(
            weather_api_key=str(data.get("weatherApiKey", defaults.weather_api_key)),
            default_application_rate=float(
                data.get("defaultApplicationRate", defaults.default_application_rate)
            ),
            rotation_alert_threshold=int(
                data.get("rotationAlertThreshold", defaults.rotation_alert_threshold)
            ),
        )
