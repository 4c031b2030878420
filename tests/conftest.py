"""
Shared test fixtures for the Spray Log test suite.

Provides:
- A loaded Spray Log config entry (services registered, entities added)
- A record store bound to the mocked Home Assistant storage
- A treatment factory with fixed, timezone-aware timestamps
- A UTC default time zone for the pure formatting tests

Usage:
    async def test_example(hass, config_entry):
        await hass.services.async_call(DOMAIN, "log_treatment", {...}, blocking=True)
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging

import pytest
from pytest_homeassistant_custom_component.common import MockConfigEntry

from homeassistant.util import dt as dt_util

from custom_components.spray_log.const import (
    CONF_NAME,
    CONF_WEATHER_ENTITY,
    DOMAIN,
)
from custom_components.spray_log.models import (
    ChemicalApplication,
    Treatment,
    WeatherReading,
)
from custom_components.spray_log.store import SprayLogStore

from .common import ENTRY_ID, product

# ---------------------------------------------------------------------------
# Logging: keep test output clean
# ---------------------------------------------------------------------------
logging.getLogger("custom_components.spray_log").setLevel(logging.WARNING)


# ========================== Time Fixtures ==================================


@pytest.fixture()
def utc_time_zone():
    """Render local dates in UTC for the duration of a test."""
    original = dt_util.get_default_time_zone()
    dt_util.set_default_time_zone(dt_util.UTC)
    yield
    dt_util.set_default_time_zone(original)


# ========================== Record Fixtures ================================


@pytest.fixture()
def make_treatment():
    """Factory for unsaved treatments.

    Timestamps default to midday UTC so the local date is the same in UTC
    and in the test instance's US/Pacific zone.
    """

    def _make(
        applied_at: datetime | None = None,
        chemical_ids: tuple[int, ...] = (1,),
        area: float = 2000.0,
        notes: str | None = None,
        retreatment_interval: int | None = None,
        weather: WeatherReading | None = None,
    ) -> Treatment:
        return Treatment(
            applied_at=applied_at or datetime(2026, 6, 5, 12, 0, tzinfo=timezone.utc),
            chemicals=[
                ChemicalApplication.from_product(product(chemical_id))
                for chemical_id in chemical_ids
            ],
            area=area,
            solution_volume=area / 1000 * 20,
            weather=weather or WeatherReading(),
            retreatment_interval=retreatment_interval,
            notes=notes,
        )

    return _make


# ========================== Home Assistant Fixtures ========================


@pytest.fixture()
def store(hass) -> SprayLogStore:
    """Record store for one entry, backed by the mocked ``hass_storage``."""
    return SprayLogStore.for_entry(hass, ENTRY_ID)


@pytest.fixture()
async def config_entry(hass, enable_custom_integrations) -> MockConfigEntry:
    """A set-up Spray Log entry named "North Block"."""
    entry = MockConfigEntry(
        domain=DOMAIN,
        title="North Block",
        data={CONF_NAME: "North Block", CONF_WEATHER_ENTITY: None},
        unique_id="north block",
    )
    entry.add_to_hass(hass)
    assert await hass.config_entries.async_setup(entry.entry_id)
    await hass.async_block_till_done()
    return entry
