"""Pure derivations over treatment data: spray volumes, product amounts and retreatment timing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
import math
import re
from typing import TYPE_CHECKING

from homeassistant.util import dt as dt_util

from .const import DEFAULT_APPLICATION_RATE, SQFT_PER_ACRE

if TYPE_CHECKING:
    from .models import Treatment

_RATE_DIGITS = re.compile(r"[0-9.]")
_RATE_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def calculate_solution_volume(
    area: float, gallons_per_1000: float = DEFAULT_APPLICATION_RATE
) -> float:
    """Gallons of finished spray solution needed to cover ``area`` sq ft."""
    return (area / 1000) * gallons_per_1000


def square_feet_to_acres(area: float) -> float:
    return area / SQFT_PER_ACRE


def calculate_applied_amount(rate: float, area: float) -> float:
    """Amount of product for ``area`` sq ft at ``rate`` units per acre."""
    return rate * square_feet_to_acres(area)


def rate_unit_label(rate_label: str) -> str:
    """Extract the product unit from a combined rate label ("2 lb/acre" -> "lb")."""
    return _RATE_DIGITS.sub("", rate_label.split("/")[0]).strip()


def rate_amount_label(rate_label: str) -> float:
    """Extract the amount from a combined rate label ("2 lb/acre" -> 2.0)."""
    match = _RATE_NUMBER.search(rate_label.split("/")[0])
    if match is None:
        raise ValueError(f"No rate in {rate_label!r}")
    return float(match.group())


@dataclass(slots=True, frozen=True)
class RetreatmentStatus:
    """Whether a follow-up application is overdue, and by how many days."""

    overdue: bool
    days: int

    def __str__(self) -> str:
        if self.overdue:
            return f"overdue by {self.days} days"
        return f"upcoming in {self.days} days"

    def as_dict(self) -> dict:
        return {"overdue": self.overdue, "days": self.days, "description": str(self)}


def days_since(applied_at: datetime, now: datetime) -> int:
    return math.floor((now - applied_at) / timedelta(days=1))


def retreatment_status(
    treatment: Treatment, now: datetime | None = None
) -> RetreatmentStatus | None:
    """Retreatment status of a treatment, or None when it has no interval."""
    interval = treatment.retreatment_interval
    if not interval:
        return None
    if now is None:
        now = dt_util.utcnow()
    elapsed = days_since(treatment.applied_at, now)
    if elapsed >= interval:
        return RetreatmentStatus(overdue=True, days=elapsed - interval)
    return RetreatmentStatus(overdue=False, days=interval - elapsed)
