import logging

from homeassistant.components.sensor import SensorEntity
from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
from homeassistant.helpers.dispatcher import async_dispatcher_connect

from .const import CONF_NAME, DEFAULT_NAME, DOMAIN, get_update_signal
from .query import NEVER, format_local_date, retreatments_due, treatment_stats

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry, async_add_entities):
    """Set up Spray Log sensors from a config entry."""
    store = hass.data[DOMAIN][entry.entry_id]
    name = entry.data.get(CONF_NAME, DEFAULT_NAME)

    entities = [
        TotalTreatmentsSensor(entry.entry_id, name, store),
        LastTreatmentSensor(entry.entry_id, name, store),
        RetreatmentsOverdueSensor(entry.entry_id, name, store),
    ]
    _LOGGER.debug("Adding %d sensors for %s", len(entities), name)
    async_add_entities(entities, update_before_add=True)


class SprayLogSensor(SensorEntity):
    """Base for sensors that reload from the entry's store on every change."""

    _key = None

    def __init__(self, entry_id, block_name, store):
        self._entry_id = entry_id
        self._block_name = block_name
        self._store = store
        self._unsub_dispatcher = None

    async def async_added_to_hass(self):
        self._unsub_dispatcher = async_dispatcher_connect(
            self.hass, get_update_signal(self._entry_id), self._handle_update_signal
        )

    async def async_will_remove_from_hass(self):
        if self._unsub_dispatcher:
            self._unsub_dispatcher()
            self._unsub_dispatcher = None

    async def _handle_update_signal(self):
        await self.async_update()
        self.async_write_ha_state()

    @property
    def unique_id(self):
        return f"spray_log_{self._entry_id}_{self._key}"

    @property
    def device_info(self):
        return {
            "identifiers": {(DOMAIN, self._entry_id)},
            "name": f"Spray Log {self._block_name}",
            "manufacturer": "Custom Integration",
        }


class TotalTreatmentsSensor(SprayLogSensor):
    _key = "total_treatments"

    def __init__(self, entry_id, block_name, store):
        super().__init__(entry_id, block_name, store)
        self._count = 0

    async def async_update(self):
        stats = treatment_stats(await self._store.async_list_treatments())
        self._count = stats.count

    @property
    def name(self):
        return f"{self._block_name} Total Treatments"

    @property
    def native_value(self):
        return self._count

    @property
    def native_unit_of_measurement(self):
        return "treatments"

    @property
    def icon(self):
        return "mdi:spray"


class LastTreatmentSensor(SprayLogSensor):
    _key = "last_treatment"

    def __init__(self, entry_id, block_name, store):
        super().__init__(entry_id, block_name, store)
        self._last_date = NEVER

    async def async_update(self):
        stats = treatment_stats(await self._store.async_list_treatments())
        self._last_date = stats.last_treatment_date

    @property
    def name(self):
        return f"{self._block_name} Last Treatment"

    @property
    def native_value(self):
        return self._last_date

    @property
    def icon(self):
        return "mdi:calendar-check"


class RetreatmentsOverdueSensor(SprayLogSensor):
    """Number of treatments whose retreatment interval has passed."""

    _key = "retreatments_overdue"

    def __init__(self, entry_id, block_name, store):
        super().__init__(entry_id, block_name, store)
        self._due = []

    async def async_update(self):
        self._due = retreatments_due(await self._store.async_list_treatments())

    @property
    def name(self):
        return f"{self._block_name} Retreatments Overdue"

    @property
    def native_value(self):
        return sum(1 for _, status in self._due if status.overdue)

    @property
    def icon(self):
        return "mdi:calendar-alert"

    @property
    def extra_state_attributes(self):
        return {
            "retreatments": [
                {
                    "treatment_id": treatment.id,
                    "applied": format_local_date(treatment.applied_at),
                    "chemicals": treatment.chemical_names,
                    "interval_days": treatment.retreatment_interval,
                    "overdue": status.overdue,
                    "days": status.days,
                    "status": f"Retreatment {status}",
                }
                for treatment, status in self._due
            ]
        }
