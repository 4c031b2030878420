from homeassistant.components.binary_sensor import BinarySensorDeviceClass, BinarySensorEntity
from homeassistant.helpers.dispatcher import async_dispatcher_connect
import logging

from .const import CONF_NAME, DEFAULT_NAME, DOMAIN, get_update_signal
from .query import retreatments_due

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass, entry, async_add_entities):
    """Set up Spray Log binary sensor from config entry."""
    store = hass.data[DOMAIN][entry.entry_id]
    name = entry.data.get(CONF_NAME, DEFAULT_NAME)

    sensor = RetreatmentDueBinarySensor(entry, name, store)
    _LOGGER.debug("Adding retreatment binary sensor for %s", name)
    async_add_entities([sensor], update_before_add=True)


class RetreatmentDueBinarySensor(BinarySensorEntity):
    _attr_device_class = BinarySensorDeviceClass.PROBLEM  # shows as red in UI

    def __init__(self, entry, name, store):
        self._entry = entry
        self._block_name = name
        self._attr_name = f"{name} Retreatment Due"
        self._attr_unique_id = f"spray_log_{entry.entry_id}_retreatment_due"
        self._store = store
        self._overdue = []
        self._unsub_dispatcher = None

    async def async_added_to_hass(self):
        self._unsub_dispatcher = async_dispatcher_connect(
            self.hass, get_update_signal(self._entry.entry_id), self._handle_update_signal
        )

    async def async_will_remove_from_hass(self):
        if self._unsub_dispatcher:
            self._unsub_dispatcher()
            self._unsub_dispatcher = None

    async def _handle_update_signal(self):
        await self.async_update()
        self.async_write_ha_state()

    async def async_update(self):
        """Reload data from storage."""
        treatments = await self._store.async_list_treatments()
        self._overdue = [
            (treatment, status)
            for treatment, status in retreatments_due(treatments)
            if status.overdue
        ]

    @property
    def is_on(self):
        """Return True if any treatment is due for a follow-up application."""
        return bool(self._overdue)

    @property
    def extra_state_attributes(self):
        if not self._overdue:
            return {}
        return {
            "overdue_chemicals": sorted(
                {name for treatment, _ in self._overdue for name in treatment.chemical_names}
            ),
            "most_overdue_days": self._overdue[0][1].days,
        }

    @property
    def device_info(self):
        return {
            "identifiers": {(DOMAIN, self._entry.entry_id)},
            "name": f"Spray Log {self._block_name}",
            "manufacturer": "Custom Integration",
        }
