"""Search, ordering and summaries over treatment collections."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import datetime

from homeassistant.util import dt as dt_util

from .calculations import RetreatmentStatus, retreatment_status
from .const import MIN_CHEMICAL_QUERY_LENGTH
from .models import ChemicalProduct, Treatment

NEVER = "Never"


def format_local_date(value: datetime) -> str:
    """Render a date the way a US-locale browser does, e.g. 6/5/2026."""
    local = dt_util.as_local(value)
    return f"{local.month}/{local.day}/{local.year}"


def format_local_datetime(value: datetime) -> str:
    """Render a timestamp as e.g. 6/5/2026, 2:30:00 PM."""
    local = dt_util.as_local(value)
    hour = local.hour % 12 or 12
    meridiem = "AM" if local.hour < 12 else "PM"
    return (
        f"{format_local_date(local)}, "
        f"{hour}:{local.minute:02d}:{local.second:02d} {meridiem}"
    )


def search_treatments(
    treatments: Sequence[Treatment], query: str | None
) -> Sequence[Treatment]:
    """Case-insensitive match on chemical names, local date and notes.

    An empty query returns ``treatments`` unchanged.
    """
    if not query:
        return treatments

    needle = query.lower()
    matches = []
    for treatment in treatments:
        chemical_names = " ".join(treatment.chemical_names).lower()
        date_str = format_local_date(treatment.applied_at)
        notes = (treatment.notes or "").lower()
        if needle in chemical_names or needle in date_str or needle in notes:
            matches.append(treatment)
    return matches


def sorted_by_date_descending(treatments: Iterable[Treatment]) -> list[Treatment]:
    """Newest first; treatments at the same time keep their order."""
    return sorted(treatments, key=lambda t: t.applied_at, reverse=True)


@dataclass(slots=True, frozen=True)
class TreatmentStats:
    count: int
    last_treatment_date: str


def treatment_stats(treatments: Sequence[Treatment]) -> TreatmentStats:
    if not treatments:
        return TreatmentStats(count=0, last_treatment_date=NEVER)
    newest = max(treatments, key=lambda t: t.applied_at)
    return TreatmentStats(
        count=len(treatments),
        last_treatment_date=format_local_date(newest.applied_at),
    )


def retreatments_due(
    treatments: Iterable[Treatment], now: datetime | None = None
) -> list[tuple[Treatment, RetreatmentStatus]]:
    """Every treatment with a retreatment interval, most overdue first."""
    if now is None:
        now = dt_util.utcnow()
    due = []
    for treatment in treatments:
        status = retreatment_status(treatment, now)
        if status is not None:
            due.append((treatment, status))
    due.sort(key=lambda pair: _urgency(pair[1]))
    return due


def _urgency(status: RetreatmentStatus) -> int:
    # Overdue sorts before upcoming, larger overdue first
    return -status.days - 1 if status.overdue else status.days


def find_chemicals(
    catalog: Mapping[int, ChemicalProduct], query: str | None
) -> list[ChemicalProduct]:
    """Reference products whose name or type contains ``query``."""
    needle = (query or "").strip().lower()
    if len(needle) < MIN_CHEMICAL_QUERY_LENGTH:
        return []
    return [
        product
        for product in catalog.values()
        if needle in product.name.lower() or needle in product.type.lower()
    ]
