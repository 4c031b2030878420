DOMAIN = "spray_log"

PLATFORMS = ["sensor", "binary_sensor"]

CONF_NAME = "name"
CONF_WEATHER_ENTITY = "weather_entity"

DEFAULT_NAME = "Vineyard"

STORAGE_VERSION = 1

# Each config entry owns three independently keyed blobs
COLLECTION_TREATMENTS = "treatments"
COLLECTION_CHEMICALS = "chemicals"
COLLECTION_SETTINGS = "settings"


def get_storage_key(entry_id: str, collection: str) -> str:
    """Get the entry-specific storage key for one collection."""
    return f"spray_log_{collection}_{entry_id}"


def get_update_signal(entry_id: str) -> str:
    """Dispatcher signal sent after the entry's records change."""
    return f"spray_log_update_{entry_id}"


AREA_UNIT = "sq ft"
SOLUTION_VOLUME_UNIT = "gal"
SQFT_PER_ACRE = 43560

DEFAULT_APPLICATION_RATE = 20.0  # gallons of finished solution per 1,000 sq ft
DEFAULT_ROTATION_ALERT_THRESHOLD = 3  # consecutive uses before alert

MIN_CHEMICAL_QUERY_LENGTH = 2

CSV_HEADER = "Date,Chemicals,Area (sq ft),Temperature (F),Humidity (%),Wind (mph),Notes"
EXPORT_FILENAME = "vine-treatments"

# Service names
SERVICE_LOG_TREATMENT = "log_treatment"
SERVICE_UPDATE_TREATMENT = "update_treatment"
SERVICE_DELETE_TREATMENT = "delete_treatment"
SERVICE_SEARCH_TREATMENTS = "search_treatments"
SERVICE_EXPORT_TREATMENTS = "export_treatments"
SERVICE_CALCULATE_TREATMENT = "calculate_treatment"
SERVICE_GET_SETTINGS = "get_settings"
SERVICE_SAVE_SETTINGS = "save_settings"
SERVICE_CLEAR_DATA = "clear_data"
SERVICE_FIND_CHEMICALS = "find_chemicals"

# Service fields
ATTR_CONFIG_ENTRY_ID = "config_entry_id"
ATTR_TREATMENT_ID = "treatment_id"
ATTR_DATETIME = "datetime"
ATTR_CHEMICALS = "chemicals"
ATTR_CHEMICAL_ID = "id"
ATTR_RATE = "rate"
ATTR_AREA = "area"
ATTR_TEMPERATURE = "temperature"
ATTR_HUMIDITY = "humidity"
ATTR_WIND_SPEED = "wind_speed"
ATTR_CONDITIONS = "conditions"
ATTR_RETREATMENT_INTERVAL = "retreatment_interval"
ATTR_NOTES = "notes"
ATTR_QUERY = "query"
ATTR_FORMAT = "format"
ATTR_WEATHER_API_KEY = "weather_api_key"
ATTR_DEFAULT_APPLICATION_RATE = "default_application_rate"
ATTR_ROTATION_ALERT_THRESHOLD = "rotation_alert_threshold"

EXPORT_FORMATS = ["csv", "json"]

# Built-in reference products, keyed by reference id.
# default_rate is product per acre, expressed in rate_unit.
CHEMICALS = {
    1: {
        "name": "Mancozeb 75DF",
        "type": "Fungicide",
        "moa_group": "M3",
        "default_rate": 2.0,
        "rate_unit": "lb",
    },
    2: {
        "name": "Rally 40WSP",
        "type": "Fungicide",
        "moa_group": "3",
        "default_rate": 5.0,
        "rate_unit": "oz",
    },
    3: {
        "name": "Captan 50WP",
        "type": "Fungicide",
        "moa_group": "M4",
        "default_rate": 3.0,
        "rate_unit": "lb",
    },
    4: {
        "name": "Luna Experience",
        "type": "Fungicide",
        "moa_group": "7+11",
        "default_rate": 6.0,
        "rate_unit": "oz",
    },
    5: {
        "name": "Sevin XLR Plus",
        "type": "Insecticide",
        "moa_group": "1A",
        "default_rate": 1.0,
        "rate_unit": "qt",
    },
}
