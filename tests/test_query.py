"""Tests for treatment search, ordering, stats and chemical lookup."""

from datetime import datetime, timedelta, timezone

import pytest

from custom_components.spray_log.const import CHEMICALS
from custom_components.spray_log.models import ChemicalProduct
from custom_components.spray_log.query import (
    NEVER,
    find_chemicals,
    format_local_date,
    format_local_datetime,
    retreatments_due,
    search_treatments,
    sorted_by_date_descending,
    treatment_stats,
)

pytestmark = pytest.mark.usefixtures("utc_time_zone")

JUNE_5 = datetime(2026, 6, 5, 12, 0, tzinfo=timezone.utc)
JUNE_20 = datetime(2026, 6, 20, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def history(make_treatment):
    return [
        make_treatment(JUNE_5, chemical_ids=(1, 2), notes="Powdery mildew pressure"),
        make_treatment(JUNE_20, chemical_ids=(5,), notes="Leafhoppers on east rows"),
    ]


class TestSearch:
    def test_empty_query_returns_input(self, history):
        assert search_treatments(history, "") is history
        assert search_treatments(history, None) is history

    def test_chemical_name_case_insensitive(self, history):
        assert search_treatments(history, "MANCOZEB") == [history[0]]
        assert search_treatments(history, "sevin") == [history[1]]

    def test_local_date(self, history):
        assert search_treatments(history, "6/20/2026") == [history[1]]

    def test_notes(self, history):
        assert search_treatments(history, "mildew") == [history[0]]

    def test_no_match(self, history):
        assert search_treatments(history, "captan") == []


class TestOrdering:
    def test_newest_first(self, history):
        assert sorted_by_date_descending(history) == [history[1], history[0]]

    def test_stable_and_idempotent(self, make_treatment):
        first = make_treatment(JUNE_5, notes="first")
        second = make_treatment(JUNE_5, notes="second")
        newer = make_treatment(JUNE_20)

        once = sorted_by_date_descending([first, second, newer])
        assert once == [newer, first, second]
        assert sorted_by_date_descending(once) == once


class TestStats:
    def test_empty(self):
        stats = treatment_stats([])
        assert stats.count == 0
        assert stats.last_treatment_date == NEVER

    def test_newest_date(self, history):
        stats = treatment_stats(list(reversed(history)))
        assert stats.count == 2
        assert stats.last_treatment_date == "6/20/2026"


def test_retreatments_most_overdue_first(make_treatment):
    now = JUNE_20
    upcoming = make_treatment(now - timedelta(days=2), retreatment_interval=7)
    slightly = make_treatment(now - timedelta(days=8), retreatment_interval=7)
    badly = make_treatment(now - timedelta(days=20), retreatment_interval=7)
    no_interval = make_treatment(now - timedelta(days=30))

    due = retreatments_due([upcoming, slightly, no_interval, badly], now)

    assert [treatment for treatment, _ in due] == [badly, slightly, upcoming]
    assert [status.days for _, status in due] == [13, 1, 5]


class TestFindChemicals:
    @pytest.fixture()
    def catalog(self):
        return {
            chem_id: ChemicalProduct(id=chem_id, **data)
            for chem_id, data in CHEMICALS.items()
        }

    def test_short_query(self, catalog):
        assert find_chemicals(catalog, "m") == []
        assert find_chemicals(catalog, None) == []

    def test_by_type(self, catalog):
        assert len(find_chemicals(catalog, "fung")) == 4

    def test_by_name(self, catalog):
        assert [c.name for c in find_chemicals(catalog, "SEVIN")] == ["Sevin XLR Plus"]


class TestFormatting:
    def test_date(self):
        assert format_local_date(JUNE_5) == "6/5/2026"

    def test_afternoon(self):
        value = datetime(2026, 6, 5, 14, 30, 5, tzinfo=timezone.utc)
        assert format_local_datetime(value) == "6/5/2026, 2:30:05 PM"

    def test_midnight(self):
        value = datetime(2026, 12, 31, 0, 0, tzinfo=timezone.utc)
        assert format_local_datetime(value) == "12/31/2026, 12:00:00 AM"
