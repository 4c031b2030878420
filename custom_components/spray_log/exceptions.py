"""Errors raised by the Spray Log integration."""

from homeassistant.exceptions import HomeAssistantError, ServiceValidationError


class SprayLogError(HomeAssistantError):
    """Base error for Spray Log."""


class TreatmentStoreError(SprayLogError):
    """A collection could not be encoded or written."""


class InvalidTreatmentError(ServiceValidationError):
    """A treatment failed validation before reaching the store."""


class DuplicateChemicalError(InvalidTreatmentError):
    """The chemical is already part of the pending treatment."""
