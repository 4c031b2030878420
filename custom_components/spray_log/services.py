import logging

import voluptuous as vol

from homeassistant.core import HomeAssistant, ServiceCall, ServiceResponse, SupportsResponse
from homeassistant.exceptions import ServiceValidationError
import homeassistant.helpers.config_validation as cv
from homeassistant.helpers.dispatcher import async_dispatcher_send
from homeassistant.util import dt as dt_util

from .calculations import retreatment_status
from .const import (
    ATTR_AREA,
    ATTR_CHEMICAL_ID,
    ATTR_CHEMICALS,
    ATTR_CONDITIONS,
    ATTR_CONFIG_ENTRY_ID,
    ATTR_DATETIME,
    ATTR_DEFAULT_APPLICATION_RATE,
    ATTR_FORMAT,
    ATTR_HUMIDITY,
    ATTR_NOTES,
    ATTR_QUERY,
    ATTR_RATE,
    ATTR_RETREATMENT_INTERVAL,
    ATTR_ROTATION_ALERT_THRESHOLD,
    ATTR_TEMPERATURE,
    ATTR_TREATMENT_ID,
    ATTR_WEATHER_API_KEY,
    ATTR_WIND_SPEED,
    CONF_WEATHER_ENTITY,
    DEFAULT_APPLICATION_RATE,
    DEFAULT_ROTATION_ALERT_THRESHOLD,
    DOMAIN,
    EXPORT_FILENAME,
    EXPORT_FORMATS,
    SERVICE_CALCULATE_TREATMENT,
    SERVICE_CLEAR_DATA,
    SERVICE_DELETE_TREATMENT,
    SERVICE_EXPORT_TREATMENTS,
    SERVICE_FIND_CHEMICALS,
    SERVICE_GET_SETTINGS,
    SERVICE_LOG_TREATMENT,
    SERVICE_SAVE_SETTINGS,
    SERVICE_SEARCH_TREATMENTS,
    SERVICE_UPDATE_TREATMENT,
    get_update_signal,
)
from .draft import TreatmentDraft
from .exceptions import InvalidTreatmentError
from .export import treatments_to_csv, treatments_to_json
from .models import Settings, WeatherReading, ensure_aware
from .query import find_chemicals, search_treatments, sorted_by_date_descending
from .store import SprayLogStore
from .weather_helper import WeatherHelper

_LOGGER = logging.getLogger(__name__)

CHEMICAL_SCHEMA = vol.Schema(
    {
        vol.Required(ATTR_CHEMICAL_ID): vol.Coerce(int),
        vol.Optional(ATTR_RATE): vol.Coerce(float),
    }
)

ENTRY_SCHEMA = vol.Schema({vol.Optional(ATTR_CONFIG_ENTRY_ID): cv.string})

DRAFT_SCHEMA = ENTRY_SCHEMA.extend(
    {
        vol.Required(ATTR_CHEMICALS): vol.All(cv.ensure_list, [CHEMICAL_SCHEMA]),
        vol.Required(ATTR_AREA): vol.Coerce(float),
    }
)

LOG_TREATMENT_SCHEMA = DRAFT_SCHEMA.extend(
    {
        vol.Optional(ATTR_DATETIME): cv.datetime,
        vol.Optional(ATTR_TEMPERATURE): vol.Coerce(float),
        vol.Optional(ATTR_HUMIDITY): vol.Coerce(float),
        vol.Optional(ATTR_WIND_SPEED): vol.Coerce(float),
        vol.Optional(ATTR_CONDITIONS): cv.string,
        vol.Optional(ATTR_RETREATMENT_INTERVAL): vol.Coerce(int),
        vol.Optional(ATTR_NOTES): cv.string,
    }
)

UPDATE_TREATMENT_SCHEMA = ENTRY_SCHEMA.extend(
    {
        vol.Required(ATTR_TREATMENT_ID): cv.string,
        vol.Optional(ATTR_DATETIME): cv.datetime,
        vol.Optional(ATTR_RETREATMENT_INTERVAL): vol.Any(None, vol.Coerce(int)),
        vol.Optional(ATTR_NOTES): vol.Any(None, cv.string),
    }
)

DELETE_TREATMENT_SCHEMA = ENTRY_SCHEMA.extend(
    {vol.Required(ATTR_TREATMENT_ID): cv.string}
)

SEARCH_TREATMENTS_SCHEMA = ENTRY_SCHEMA.extend(
    {vol.Optional(ATTR_QUERY, default=""): cv.string}
)

EXPORT_TREATMENTS_SCHEMA = ENTRY_SCHEMA.extend(
    {vol.Optional(ATTR_FORMAT, default="csv"): vol.In(EXPORT_FORMATS)}
)

FIND_CHEMICALS_SCHEMA = ENTRY_SCHEMA.extend(
    {vol.Required(ATTR_QUERY): cv.string}
)

SAVE_SETTINGS_SCHEMA = ENTRY_SCHEMA.extend(
    {
        vol.Optional(ATTR_WEATHER_API_KEY, default=""): cv.string,
        vol.Optional(
            ATTR_DEFAULT_APPLICATION_RATE, default=DEFAULT_APPLICATION_RATE
        ): vol.All(vol.Coerce(float), vol.Range(min=0.1)),
        vol.Optional(
            ATTR_ROTATION_ALERT_THRESHOLD, default=DEFAULT_ROTATION_ALERT_THRESHOLD
        ): vol.All(vol.Coerce(int), vol.Range(min=1)),
    }
)

EXPORT_MIME_TYPES = {"csv": "text/csv", "json": "application/json"}


def _resolve_store(hass: HomeAssistant, call: ServiceCall) -> tuple[str, SprayLogStore]:
    """Find the store the call is aimed at."""
    stores = hass.data.get(DOMAIN, {})
    entry_id = call.data.get(ATTR_CONFIG_ENTRY_ID)
    if entry_id:
        if entry_id not in stores:
            raise ServiceValidationError(f"Spray Log entry {entry_id} is not loaded")
        return entry_id, stores[entry_id]
    if len(stores) == 1:
        return next(iter(stores.items()))
    if not stores:
        raise ServiceValidationError("Spray Log is not set up")
    raise ServiceValidationError(
        f"Several Spray Log entries are loaded; pass {ATTR_CONFIG_ENTRY_ID}"
    )


async def _async_build_draft(store: SprayLogStore, call: ServiceCall) -> TreatmentDraft:
    catalog = await store.async_get_chemical_catalog()
    draft = TreatmentDraft(area=call.data[ATTR_AREA])
    for item in call.data[ATTR_CHEMICALS]:
        product = catalog.get(item[ATTR_CHEMICAL_ID])
        if product is None:
            raise ServiceValidationError(f"Unknown chemical id: {item[ATTR_CHEMICAL_ID]}")
        draft.add_chemical(product, item.get(ATTR_RATE))
    return draft


def _weather_from_call(hass: HomeAssistant, entry_id: str, call: ServiceCall) -> WeatherReading:
    weather = WeatherReading(
        temperature=call.data.get(ATTR_TEMPERATURE),
        humidity=call.data.get(ATTR_HUMIDITY),
        wind_speed=call.data.get(ATTR_WIND_SPEED),
        conditions=call.data.get(ATTR_CONDITIONS),
    )
    if not weather.is_empty:
        return weather

    entry = hass.config_entries.async_get_entry(entry_id)
    weather_entity = entry.data.get(CONF_WEATHER_ENTITY) if entry else None
    if weather_entity:
        reading = WeatherHelper(hass, weather_entity).current_reading()
        if reading is not None:
            _LOGGER.info("Using current conditions from %s", weather_entity)
            return reading
    return weather


async def async_register_services(hass: HomeAssistant) -> None:
    """Register Spray Log services."""

    async def handle_log_treatment(call: ServiceCall) -> ServiceResponse:
        """Validate and store a new treatment."""
        entry_id, store = _resolve_store(hass, call)
        draft = await _async_build_draft(store, call)
        settings = await store.async_get_settings()
        treatment = draft.build(
            applied_at=call.data.get(ATTR_DATETIME) or dt_util.now(),
            settings=settings,
            weather=_weather_from_call(hass, entry_id, call),
            retreatment_interval=call.data.get(ATTR_RETREATMENT_INTERVAL),
            notes=call.data.get(ATTR_NOTES),
        )
        saved = await store.async_save_treatment(treatment)
        async_dispatcher_send(hass, get_update_signal(entry_id))
        return {"treatment": saved.as_dict()}

    async def handle_update_treatment(call: ServiceCall) -> ServiceResponse:
        """Change the date, interval or notes of a stored treatment."""
        entry_id, store = _resolve_store(hass, call)
        changes = {}
        if ATTR_DATETIME in call.data:
            changes["applied_at"] = ensure_aware(call.data[ATTR_DATETIME])
        if ATTR_RETREATMENT_INTERVAL in call.data:
            interval = call.data[ATTR_RETREATMENT_INTERVAL]
            if interval is not None and interval <= 0:
                raise InvalidTreatmentError(
                    "Retreatment interval must be a positive number of days"
                )
            changes["retreatment_interval"] = interval
        if ATTR_NOTES in call.data:
            changes["notes"] = call.data[ATTR_NOTES] or None

        updated = await store.async_update_treatment(call.data[ATTR_TREATMENT_ID], changes)
        if updated is not None:
            async_dispatcher_send(hass, get_update_signal(entry_id))
        return {"treatment": updated.as_dict() if updated else None}

    async def handle_delete_treatment(call: ServiceCall) -> ServiceResponse:
        entry_id, store = _resolve_store(hass, call)
        deleted = await store.async_delete_treatment(call.data[ATTR_TREATMENT_ID])
        async_dispatcher_send(hass, get_update_signal(entry_id))
        return {"deleted": deleted}

    async def handle_search_treatments(call: ServiceCall) -> ServiceResponse:
        """Search the history; without a query, list it newest first."""
        _, store = _resolve_store(hass, call)
        treatments = await store.async_list_treatments()
        query = call.data[ATTR_QUERY]
        if query:
            results = search_treatments(treatments, query)
        else:
            results = sorted_by_date_descending(treatments)

        now = dt_util.utcnow()
        items = []
        for treatment in results:
            item = treatment.as_dict()
            status = retreatment_status(treatment, now)
            item["retreatment"] = status.as_dict() if status else None
            items.append(item)
        return {"treatments": items, "count": len(items)}

    async def handle_export_treatments(call: ServiceCall) -> ServiceResponse:
        _, store = _resolve_store(hass, call)
        treatments = sorted_by_date_descending(await store.async_list_treatments())
        if not treatments:
            raise ServiceValidationError("No treatments to export")

        export_format = call.data[ATTR_FORMAT]
        if export_format == "json":
            content = treatments_to_json(treatments)
        else:
            content = treatments_to_csv(treatments)
        _LOGGER.info("Exported %d treatments as %s", len(treatments), export_format)
        return {
            "filename": f"{EXPORT_FILENAME}.{export_format}",
            "mime_type": EXPORT_MIME_TYPES[export_format],
            "content": content,
        }

    async def handle_calculate_treatment(call: ServiceCall) -> ServiceResponse:
        """Preview solution volume and product amounts without saving."""
        _, store = _resolve_store(hass, call)
        draft = await _async_build_draft(store, call)
        draft.validate()
        settings = await store.async_get_settings()
        return draft.summary(settings)

    async def handle_find_chemicals(call: ServiceCall) -> ServiceResponse:
        _, store = _resolve_store(hass, call)
        catalog = await store.async_get_chemical_catalog()
        products = find_chemicals(catalog, call.data[ATTR_QUERY])
        return {"chemicals": [product.as_dict() for product in products]}

    async def handle_get_settings(call: ServiceCall) -> ServiceResponse:
        _, store = _resolve_store(hass, call)
        settings = await store.async_get_settings()
        return settings.as_dict()

    async def handle_save_settings(call: ServiceCall) -> None:
        _, store = _resolve_store(hass, call)
        settings = Settings(
            weather_api_key=call.data[ATTR_WEATHER_API_KEY],
            default_application_rate=call.data[ATTR_DEFAULT_APPLICATION_RATE],
            rotation_alert_threshold=call.data[ATTR_ROTATION_ALERT_THRESHOLD],
        )
        await store.async_save_settings(settings)

    async def handle_clear_data(call: ServiceCall) -> None:
        """Delete all treatments, references and settings of an entry."""
        entry_id, store = _resolve_store(hass, call)
        await store.async_clear()
        async_dispatcher_send(hass, get_update_signal(entry_id))

    if hass.services.has_service(DOMAIN, SERVICE_LOG_TREATMENT):
        return

    hass.services.async_register(
        DOMAIN, SERVICE_LOG_TREATMENT, handle_log_treatment,
        schema=LOG_TREATMENT_SCHEMA, supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_UPDATE_TREATMENT, handle_update_treatment,
        schema=UPDATE_TREATMENT_SCHEMA, supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_DELETE_TREATMENT, handle_delete_treatment,
        schema=DELETE_TREATMENT_SCHEMA, supports_response=SupportsResponse.OPTIONAL,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_SEARCH_TREATMENTS, handle_search_treatments,
        schema=SEARCH_TREATMENTS_SCHEMA, supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_EXPORT_TREATMENTS, handle_export_treatments,
        schema=EXPORT_TREATMENTS_SCHEMA, supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_CALCULATE_TREATMENT, handle_calculate_treatment,
        schema=DRAFT_SCHEMA, supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_FIND_CHEMICALS, handle_find_chemicals,
        schema=FIND_CHEMICALS_SCHEMA, supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_GET_SETTINGS, handle_get_settings,
        schema=ENTRY_SCHEMA, supports_response=SupportsResponse.ONLY,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_SAVE_SETTINGS, handle_save_settings, schema=SAVE_SETTINGS_SCHEMA,
    )
    hass.services.async_register(
        DOMAIN, SERVICE_CLEAR_DATA, handle_clear_data, schema=ENTRY_SCHEMA,
    )
    _LOGGER.info("Spray Log services registered")


def async_unregister_services(hass: HomeAssistant) -> None:
    for service in (
        SERVICE_LOG_TREATMENT,
        SERVICE_UPDATE_TREATMENT,
        SERVICE_DELETE_TREATMENT,
        SERVICE_SEARCH_TREATMENTS,
        SERVICE_EXPORT_TREATMENTS,
        SERVICE_CALCULATE_TREATMENT,
        SERVICE_FIND_CHEMICALS,
        SERVICE_GET_SETTINGS,
        SERVICE_SAVE_SETTINGS,
        SERVICE_CLEAR_DATA,
    ):
        hass.services.async_remove(DOMAIN, service)
