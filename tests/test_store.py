"""Tests for the per-entry record store on top of Home Assistant storage."""

from dataclasses import replace
from unittest.mock import patch

import pytest

from homeassistant.util.file import WriteError

from custom_components.spray_log.const import (
    COLLECTION_CHEMICALS,
    COLLECTION_SETTINGS,
    COLLECTION_TREATMENTS,
    get_storage_key,
)
from custom_components.spray_log.exceptions import TreatmentStoreError
from custom_components.spray_log.models import ChemicalProduct, Settings

from .common import ENTRY_ID

TREATMENTS_KEY = get_storage_key(ENTRY_ID, COLLECTION_TREATMENTS)
CHEMICALS_KEY = get_storage_key(ENTRY_ID, COLLECTION_CHEMICALS)
SETTINGS_KEY = get_storage_key(ENTRY_ID, COLLECTION_SETTINGS)


def _raw(data, key=TREATMENTS_KEY):
    return {"version": 1, "minor_version": 1, "key": key, "data": data}


class TestTreatments:
    async def test_save_assigns_id_and_created_at(self, store, make_treatment):
        candidate = make_treatment(notes="first pass")

        saved = await store.async_save_treatment(candidate)

        assert saved.id
        assert saved.created_at is not None
        assert saved.updated_at is None
        assert saved.notes == candidate.notes
        assert saved.chemicals == candidate.chemicals
        assert await store.async_get_treatment(saved.id) == saved

    async def test_list_keeps_insertion_order(self, store, make_treatment):
        ids = [
            (await store.async_save_treatment(make_treatment(notes=str(n)))).id
            for n in range(3)
        ]

        listed = await store.async_list_treatments()

        assert [t.id for t in listed] == ids
        assert len(set(ids)) == 3
        assert [int(i) for i in ids] == sorted(int(i) for i in ids)

    async def test_persisted_form(self, store, hass_storage, make_treatment):
        saved = await store.async_save_treatment(make_treatment())

        record = hass_storage[TREATMENTS_KEY]["data"][0]
        assert record["id"] == saved.id
        assert record["areaUnit"] == "sq ft"
        assert record["solutionVolumeUnit"] == "gal"
        assert record["chemicals"][0]["moaGroup"] == "M3"
        assert "updatedAt" not in record

    async def test_get_unknown(self, store):
        assert await store.async_get_treatment("missing") is None

    async def test_update_merges_and_stamps(self, store, make_treatment):
        saved = await store.async_save_treatment(make_treatment())

        updated = await store.async_update_treatment(
            saved.id, {"notes": "Rain at 3pm", "id": "other", "created_at": None}
        )

        assert updated.id == saved.id
        assert updated.created_at == saved.created_at
        assert updated.updated_at is not None
        assert updated.notes == "Rain at 3pm"
        assert updated.chemicals == saved.chemicals
        assert await store.async_get_treatment(saved.id) == updated

    async def test_update_unknown_writes_nothing(self, store, hass_storage, make_treatment):
        await store.async_save_treatment(make_treatment())
        before = hass_storage[TREATMENTS_KEY]["data"]

        assert await store.async_update_treatment("missing", {"notes": "x"}) is None
        assert hass_storage[TREATMENTS_KEY]["data"] == before

    async def test_delete_is_idempotent(self, store, make_treatment):
        saved = await store.async_save_treatment(make_treatment())

        assert await store.async_delete_treatment(saved.id) is True
        assert await store.async_delete_treatment(saved.id) is True
        assert await store.async_get_treatment(saved.id) is None
        assert await store.async_list_treatments() == []

    async def test_corrupt_blob_reads_empty(self, store, hass_storage, make_treatment):
        hass_storage[TREATMENTS_KEY] = _raw({"not": "a list"})

        assert await store.async_list_treatments() == []

        await store.async_save_treatment(make_treatment())
        assert len(await store.async_list_treatments()) == 1

    async def test_corrupt_record_reads_empty(self, store, hass_storage):
        hass_storage[TREATMENTS_KEY] = _raw([{"id": "1", "datetime": "yesterday"}])
        assert await store.async_list_treatments() == []

    async def test_encode_failure_leaves_collection(self, store, make_treatment):
        await store.async_save_treatment(make_treatment())
        bad = make_treatment(notes=object())

        with pytest.raises(TreatmentStoreError):
            await store.async_save_treatment(bad)

        assert len(await store.async_list_treatments()) == 1

    @pytest.mark.parametrize(
        "record",
        [
            "garbage",
            {"datetime": "2026-06-05T12:00:00+00:00", "chemicals": [], "area": 1,
             "solutionVolume": 0.02, "weather": "sunny"},
            {"datetime": "2026-06-05T12:00:00+00:00", "chemicals": ["Mancozeb"],
             "area": 1, "solutionVolume": 0.02},
        ],
    )
    async def test_malformed_record_reads_empty(self, store, hass_storage, record):
        hass_storage[TREATMENTS_KEY] = _raw([record])
        assert await store.async_list_treatments() == []

    async def test_ids_stay_past_stored_ids(self, store, hass_storage, make_treatment):
        future_id = "99999999999999"
        stored = replace(make_treatment(), id=future_id)
        hass_storage[TREATMENTS_KEY] = _raw([stored.as_dict()])

        saved = await store.async_save_treatment(make_treatment())

        assert int(saved.id) > int(future_id)

    async def test_write_failure_raises(self, store, make_treatment):
        await store.async_save_treatment(make_treatment(notes="kept"))

        with (
            patch(
                "homeassistant.helpers.storage.Store._async_write_data",
                side_effect=WriteError("disk full"),
            ),
            pytest.raises(TreatmentStoreError, match="disk full"),
        ):
            await store.async_save_treatment(make_treatment(notes="lost"))

        assert [t.notes for t in await store.async_list_treatments()] == ["kept"]

    async def test_settings_write_failure_raises(self, store):
        with (
            patch(
                "homeassistant.helpers.storage.Store._async_write_data",
                side_effect=WriteError("read-only file system"),
            ),
            pytest.raises(TreatmentStoreError),
        ):
            await store.async_save_settings(Settings(weather_api_key="abc"))


class TestSettings:
    async def test_defaults(self, store):
        settings = await store.async_get_settings()
        assert settings == Settings(
            weather_api_key="", default_application_rate=20.0, rotation_alert_threshold=3
        )

    async def test_save_overwrites(self, store, hass_storage):
        await store.async_save_settings(Settings(default_application_rate=12.5))

        assert (await store.async_get_settings()).default_application_rate == 12.5
        assert hass_storage[SETTINGS_KEY]["data"] == {
            "weatherApiKey": "",
            "defaultApplicationRate": 12.5,
            "rotationAlertThreshold": 3,
        }

    async def test_partial_record_merges_defaults(self, store, hass_storage):
        hass_storage[SETTINGS_KEY] = {
            "version": 1,
            "minor_version": 1,
            "key": SETTINGS_KEY,
            "data": {"rotationAlertThreshold": 5},
        }
        settings = await store.async_get_settings()
        assert settings.rotation_alert_threshold == 5
        assert settings.default_application_rate == 20.0


class TestChemicals:
    async def test_reference_collection_empty(self, store):
        assert await store.async_list_chemicals() == []

    @pytest.mark.parametrize("record", ["Mancozeb", {"id": 7, "name": "Sulfur"}])
    async def test_malformed_reference_reads_empty(self, store, hass_storage, record):
        hass_storage[CHEMICALS_KEY] = _raw([record], key=CHEMICALS_KEY)

        assert await store.async_list_chemicals() == []
        assert sorted(await store.async_get_chemical_catalog()) == [1, 2, 3, 4, 5]

    async def test_catalog_merges_stored_products(self, store):
        sulfur = ChemicalProduct(
            id=6, name="Microthiol Disperss", type="Fungicide", moa_group="M2",
            default_rate=5.0, rate_unit="lb",
        )
        await store.async_save_chemicals([sulfur])

        catalog = await store.async_get_chemical_catalog()

        assert sorted(catalog) == [1, 2, 3, 4, 5, 6]
        assert catalog[6] == sulfur
        assert catalog[1].name == "Mancozeb 75DF"


async def test_clear_removes_everything(store, hass_storage, make_treatment):
    await store.async_save_treatment(make_treatment())
    await store.async_list_treatments()
    await store.async_save_settings(Settings(weather_api_key="abc"))

    await store.async_clear()

    assert TREATMENTS_KEY not in hass_storage
    assert SETTINGS_KEY not in hass_storage
    assert await store.async_list_treatments() == []
    assert await store.async_get_settings() == Settings()
