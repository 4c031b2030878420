from homeassistant import config_entries
import voluptuous as vol
from homeassistant.data_entry_flow import FlowResult

from .const import CONF_NAME, CONF_WEATHER_ENTITY, DEFAULT_NAME, DOMAIN


class ConfigFlow(config_entries.ConfigFlow, domain=DOMAIN):
    """One entry per sprayed block."""

    VERSION = 1

    async def async_step_user(self, user_input=None) -> FlowResult:
        errors = {}

        if user_input is not None:
            name = user_input[CONF_NAME].strip()
            if not name:
                errors[CONF_NAME] = "name_required"
            else:
                await self.async_set_unique_id(name.lower())
                self._abort_if_unique_id_configured()
                return self.async_create_entry(
                    title=name,
                    data={
                        CONF_NAME: name,
                        CONF_WEATHER_ENTITY: user_input.get(CONF_WEATHER_ENTITY) or None,
                    },
                )

        # Offer the weather entities that exist right now
        weather_entities = []
        for entity_id in self.hass.states.async_entity_ids("weather"):
            state = self.hass.states.get(entity_id)
            if state:
                friendly_name = state.attributes.get("friendly_name", entity_id)
                weather_entities.append((entity_id, friendly_name))

        schema_dict = {
            vol.Required(CONF_NAME, default=DEFAULT_NAME): str,
        }
        if weather_entities:
            weather_options = [("", "None")] + weather_entities
            schema_dict[vol.Optional(CONF_WEATHER_ENTITY, default="")] = vol.In(
                {k: v for k, v in weather_options}
            )

        return self.async_show_form(
            step_id="user",
            data_schema=vol.Schema(schema_dict),
            errors=errors,
        )
