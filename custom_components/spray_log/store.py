"""Persistence of treatments, chemical references and settings.

Each collection is one Home Assistant ``Store`` blob holding the whole
collection. Every call loads the blob, changes it in memory and writes it
back in full, so a collection is either in its prior state or fully updated.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
import logging
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers.json import json_dumps
from homeassistant.helpers.storage import Store
from homeassistant.util import dt as dt_util
from homeassistant.util.file import WriteError
from homeassistant.util.json import SerializationError

from .const import (
    CHEMICALS,
    COLLECTION_CHEMICALS,
    COLLECTION_SETTINGS,
    COLLECTION_TREATMENTS,
    STORAGE_VERSION,
    get_storage_key,
)
from .exceptions import TreatmentStoreError
from .models import ChemicalProduct, Settings, Treatment

_LOGGER = logging.getLogger(__name__)

# Store-assigned fields a caller may not overwrite
_PROTECTED_FIELDS = frozenset({"id", "created_at", "updated_at"})

# Raised by from_dict on a malformed record
_DECODE_ERRORS = (AttributeError, KeyError, TypeError, ValueError)


class CollectionStore(Store):
    """Store whose failed writes reach the caller instead of only the log."""

    async def _async_write_data(self, data: dict) -> None:
        try:
            await super()._async_write_data(data)
        except (SerializationError, WriteError) as err:
            raise TreatmentStoreError(f"Cannot write {self.key}: {err}") from err


class SprayLogStore:
    """Record store for one config entry."""

    def __init__(self, treatments: Store, chemicals: Store, settings: Store):
        self._treatments = treatments
        self._chemicals = chemicals
        self._settings = settings
        self._last_id = 0

    @classmethod
    def for_entry(cls, hass: HomeAssistant, entry_id: str) -> SprayLogStore:
        return cls(
            CollectionStore(
                hass, STORAGE_VERSION, get_storage_key(entry_id, COLLECTION_TREATMENTS)
            ),
            CollectionStore(
                hass, STORAGE_VERSION, get_storage_key(entry_id, COLLECTION_CHEMICALS)
            ),
            CollectionStore(
                hass, STORAGE_VERSION, get_storage_key(entry_id, COLLECTION_SETTINGS)
            ),
        )

    async def _async_load_list(self, store: Store) -> list[Any]:
        try:
            data = await store.async_load()
        except HomeAssistantError as err:
            _LOGGER.error("Error reading %s: %s", store.key, err)
            return []
        if data is None:
            return []
        if not isinstance(data, list):
            _LOGGER.error("Ignoring corrupt data in %s: expected a list", store.key)
            return []
        return data

    async def _async_write(self, store: Store, data: Any) -> None:
        # Encode the whole collection up front so a bad record never reaches disk
        try:
            json_dumps(data)
        except (TypeError, ValueError) as err:
            raise TreatmentStoreError(f"Cannot encode {store.key}: {err}") from err
        await store.async_save(data)

    async def async_list_treatments(self) -> list[Treatment]:
        """Return all treatments in insertion order; corrupt data reads as empty."""
        records = await self._async_load_list(self._treatments)
        try:
            return [Treatment.from_dict(record) for record in records]
        except _DECODE_ERRORS as err:
            _LOGGER.error("Ignoring corrupt treatment data: %s", err)
            return []

    async def _async_write_treatments(self, treatments: list[Treatment]) -> None:
        await self._async_write(self._treatments, [t.as_dict() for t in treatments])

    def _next_id(self, treatments: list[Treatment]) -> str:
        # Always past every stored id, even if the clock went backwards
        stored = [int(t.id) for t in treatments if t.id and t.id.isdigit()]
        candidate = max(
            int(dt_util.utcnow().timestamp() * 1000),
            self._last_id + 1,
            max(stored, default=0) + 1,
        )
        self._last_id = candidate
        return str(candidate)

    async def async_save_treatment(self, candidate: Treatment) -> Treatment:
        """Store a new treatment and return it with its id and creation time."""
        treatments = await self.async_list_treatments()
        treatment = replace(
            candidate,
            id=self._next_id(treatments),
            created_at=dt_util.utcnow(),
            updated_at=None,
        )
        await self._async_write_treatments([*treatments, treatment])
        _LOGGER.info(
            "Treatment %s saved: %s", treatment.id, ", ".join(treatment.chemical_names)
        )
        return treatment

    async def async_get_treatment(self, treatment_id: str) -> Treatment | None:
        for treatment in await self.async_list_treatments():
            if treatment.id == treatment_id:
                return treatment
        return None

    async def async_update_treatment(
        self, treatment_id: str, changes: Mapping[str, Any]
    ) -> Treatment | None:
        """Merge ``changes`` onto a stored treatment. None when the id is unknown."""
        treatments = await self.async_list_treatments()
        for index, existing in enumerate(treatments):
            if existing.id == treatment_id:
                break
        else:
            _LOGGER.warning("Treatment %s not found, nothing updated", treatment_id)
            return None

        ignored = _PROTECTED_FIELDS.intersection(changes)
        if ignored:
            _LOGGER.warning("Ignoring store-assigned fields on update: %s", sorted(ignored))
        fields = {k: v for k, v in changes.items() if k not in _PROTECTED_FIELDS}
        updated = replace(existing, **fields, updated_at=dt_util.utcnow())
        treatments[index] = updated
        await self._async_write_treatments(treatments)
        _LOGGER.info("Treatment %s updated: %s", treatment_id, sorted(fields))
        return updated

    async def async_delete_treatment(self, treatment_id: str) -> bool:
        """Remove a treatment. Succeeds whether or not the id existed."""
        treatments = await self.async_list_treatments()
        remaining = [t for t in treatments if t.id != treatment_id]
        await self._async_write_treatments(remaining)
        if len(remaining) < len(treatments):
            _LOGGER.info("Treatment %s deleted", treatment_id)
        return True

    async def async_get_settings(self) -> Settings:
        """Return stored settings, or the defaults when none are saved."""
        try:
            data = await self._settings.async_load()
        except HomeAssistantError as err:
            _LOGGER.error("Error reading settings: %s", err)
            return Settings()
        if not isinstance(data, Mapping):
            if data is not None:
                _LOGGER.error("Ignoring corrupt settings data")
            return Settings()
        try:
            return Settings.from_dict(data)
        except (TypeError, ValueError) as err:
            _LOGGER.error("Ignoring corrupt settings data: %s", err)
            return Settings()

    async def async_save_settings(self, settings: Settings) -> None:
        await self._async_write(self._settings, settings.as_dict())
        _LOGGER.info("Settings saved")

    async def async_list_chemicals(self) -> list[ChemicalProduct]:
        """Return the stored chemical reference collection (empty unless populated)."""
        records = await self._async_load_list(self._chemicals)
        try:
            return [ChemicalProduct.from_dict(record) for record in records]
        except _DECODE_ERRORS as err:
            _LOGGER.error("Ignoring corrupt chemical reference data: %s", err)
            return []

    async def async_save_chemicals(self, chemicals: list[ChemicalProduct]) -> None:
        await self._async_write(self._chemicals, [c.as_dict() for c in chemicals])

    async def async_get_chemical_catalog(self) -> dict[int, ChemicalProduct]:
        """Built-in reference products plus any stored ones, keyed by id."""
        catalog = {
            chem_id: ChemicalProduct(id=chem_id, **chem_data)
            for chem_id, chem_data in CHEMICALS.items()
        }
        for product in await self.async_list_chemicals():
            catalog[product.id] = product
        return catalog

    async def async_clear(self) -> None:
        """Empty and remove every collection of this entry. Cannot be undone."""
        # Write empty collections first so no cached copy outlives the removal
        await self._async_write(self._treatments, [])
        await self._async_write(self._chemicals, [])
        await self._async_write(self._settings, Settings().as_dict())
        for store in (self._treatments, self._chemicals, self._settings):
            await store.async_remove()
        _LOGGER.info("All spray log data removed")
