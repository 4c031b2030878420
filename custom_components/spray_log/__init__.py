from homeassistant.config_entries import ConfigEntry
from homeassistant.core import HomeAssistant
import logging

from .const import DOMAIN, PLATFORMS
from .services import async_register_services, async_unregister_services
from .store import SprayLogStore

_LOGGER = logging.getLogger(__name__)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Set up Spray Log from a config entry."""
    _LOGGER.info("Setting up Spray Log entry: %s", entry.title)

    # One store handle per entry, shared by services and entities
    store = SprayLogStore.for_entry(hass, entry.entry_id)
    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = store

    await async_register_services(hass)

    try:
        await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    except Exception as err:
        _LOGGER.error("Failed to set up platforms for %s: %s", entry.title, err)
        hass.data[DOMAIN].pop(entry.entry_id, None)
        raise

    _LOGGER.info("Spray Log setup complete for %s", entry.title)
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    """Unload a config entry."""
    _LOGGER.info("Unloading Spray Log entry: %s", entry.title)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)

    if unload_ok:
        hass.data[DOMAIN].pop(entry.entry_id, None)
        if not hass.data[DOMAIN]:
            async_unregister_services(hass)
        _LOGGER.info("Unloaded Spray Log entry: %s", entry.title)
    else:
        _LOGGER.error("Failed to unload Spray Log entry: %s", entry.title)

    return unload_ok


async def async_remove_entry(hass: HomeAssistant, entry: ConfigEntry) -> None:
    """Handle removal of a config entry by purging its stored data."""
    await SprayLogStore.for_entry(hass, entry.entry_id).async_clear()
    _LOGGER.info("Config entry %s removed - all treatment records deleted", entry.title)
