import logging

from homeassistant.const import UnitOfSpeed, UnitOfTemperature
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.util.unit_conversion import SpeedConverter, TemperatureConverter

from .models import WeatherReading

_LOGGER = logging.getLogger(__name__)


class WeatherHelper:
    def __init__(self, hass: HomeAssistant, weather_entity_id: str):
        self.hass = hass
        self.weather_entity_id = weather_entity_id

    def current_reading(self) -> WeatherReading | None:
        """Read current conditions from the weather entity, in °F and mph."""
        if not self.weather_entity_id:
            return None

        state = self.hass.states.get(self.weather_entity_id)
        if not state or state.state in ("unknown", "unavailable"):
            _LOGGER.warning("Weather entity %s has no current state", self.weather_entity_id)
            return None

        attrs = state.attributes
        return WeatherReading(
            temperature=self._convert(
                attrs.get("temperature"),
                attrs.get("temperature_unit", UnitOfTemperature.FAHRENHEIT),
                TemperatureConverter,
                UnitOfTemperature.FAHRENHEIT,
            ),
            humidity=self._to_float(attrs.get("humidity")),
            wind_speed=self._convert(
                attrs.get("wind_speed"),
                attrs.get("wind_speed_unit", UnitOfSpeed.MILES_PER_HOUR),
                SpeedConverter,
                UnitOfSpeed.MILES_PER_HOUR,
            ),
            conditions=state.state,
        )

    @staticmethod
    def _to_float(value):
        try:
            return float(value) if value is not None else None
        except (TypeError, ValueError):
            return None

    def _convert(self, value, from_unit, converter, to_unit):
        number = self._to_float(value)
        if number is None or from_unit == to_unit:
            return number
        try:
            return round(converter.convert(number, from_unit, to_unit), 1)
        except HomeAssistantError as err:
            _LOGGER.warning("Cannot convert %s %s to %s: %s", number, from_unit, to_unit, err)
            return None
