"""CSV and JSON renderings of the treatment history."""

from __future__ import annotations

from collections.abc import Iterable
import csv
import io
import json

from .const import CSV_HEADER
from .models import Treatment
from .query import format_local_datetime


def _number(value: float | None) -> int | float | None:
    # 2000.0 renders as 2000, matching how the readings were entered
    if value is None:
        return None
    return int(value) if float(value).is_integer() else value


def treatments_to_csv(treatments: Iterable[Treatment]) -> str:
    """One quoted-text row per treatment under the fixed column header."""
    buffer = io.StringIO()
    buffer.write(CSV_HEADER + "\n")
    writer = csv.writer(buffer, quoting=csv.QUOTE_STRINGS, lineterminator="\n")
    for treatment in treatments:
        writer.writerow(
            [
                format_local_datetime(treatment.applied_at),
                "; ".join(treatment.chemical_names),
                _number(treatment.area),
                _number(treatment.weather.temperature),
                _number(treatment.weather.humidity),
                _number(treatment.weather.wind_speed),
                (treatment.notes or "").replace(",", ";"),
            ]
        )
    return buffer.getvalue()


def treatments_to_json(treatments: Iterable[Treatment]) -> str:
    """The persisted form of ``treatments``, pretty-printed."""
    return json.dumps([t.as_dict() for t in treatments], indent=2, ensure_ascii=False)
