"""The in-progress treatment a caller builds up before saving it."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import logging
from typing import Any

from .calculations import calculate_applied_amount, calculate_solution_volume
from .const import SOLUTION_VOLUME_UNIT
from .exceptions import DuplicateChemicalError, InvalidTreatmentError
from .models import (
    ChemicalApplication,
    ChemicalProduct,
    Settings,
    Treatment,
    WeatherReading,
    ensure_aware,
)

_LOGGER = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class AppliedAmount:
    name: str
    amount: float
    unit: str


class TreatmentDraft:
    """Chemical selection and area for a treatment that has not been saved yet.

    The draft belongs to whoever is collecting the treatment (a service call,
    a form); nothing here is shared between callers.
    """

    def __init__(self, area: float = 0.0):
        self.area = area
        self.chemicals: list[ChemicalApplication] = []

    def has_chemical(self, chemical_id: int) -> bool:
        return any(c.chemical_id == chemical_id for c in self.chemicals)

    def add_chemical(
        self, product: ChemicalProduct, rate: float | None = None
    ) -> ChemicalApplication:
        """Add a product at its default rate, or at ``rate`` when given."""
        if self.has_chemical(product.id):
            raise DuplicateChemicalError(f"{product.name} is already added")
        application = ChemicalApplication.from_product(product, rate)
        self.chemicals.append(application)
        return application

    def remove_chemical(self, chemical_id: int) -> None:
        self.chemicals = [c for c in self.chemicals if c.chemical_id != chemical_id]

    def set_rate(self, chemical_id: int, rate: float) -> bool:
        for chemical in self.chemicals:
            if chemical.chemical_id == chemical_id:
                chemical.rate = rate
                return True
        return False

    def solution_volume(self, settings: Settings) -> float:
        return calculate_solution_volume(self.area, settings.default_application_rate)

    def applied_amounts(self) -> list[AppliedAmount]:
        return [
            AppliedAmount(c.name, calculate_applied_amount(c.rate, self.area), c.unit)
            for c in self.chemicals
        ]

    def summary(self, settings: Settings) -> dict[str, Any]:
        """Preview figures rounded for display."""
        return {
            "solution_volume": round(self.solution_volume(settings), 2),
            "solution_volume_unit": SOLUTION_VOLUME_UNIT,
            "chemical_amounts": [
                {"name": a.name, "amount": round(a.amount, 2), "unit": a.unit}
                for a in self.applied_amounts()
            ],
        }

    def validate(self, retreatment_interval: int | None = None) -> None:
        if not self.chemicals:
            raise InvalidTreatmentError("Please select at least one chemical")
        if not self.area or self.area <= 0:
            raise InvalidTreatmentError("Please enter treatment area")
        for chemical in self.chemicals:
            if chemical.rate <= 0:
                raise InvalidTreatmentError(f"Rate for {chemical.name} must be positive")
        if retreatment_interval is not None and retreatment_interval <= 0:
            raise InvalidTreatmentError("Retreatment interval must be a positive number of days")

    def build(
        self,
        applied_at: datetime,
        settings: Settings,
        weather: WeatherReading | None = None,
        retreatment_interval: int | None = None,
        notes: str | None = None,
    ) -> Treatment:
        """Validate the draft and turn it into an unsaved Treatment."""
        self.validate(retreatment_interval)
        treatment = Treatment(
            applied_at=ensure_aware(applied_at),
            chemicals=[
                ChemicalApplication(
                    c.chemical_id, c.name, c.type, c.moa_group, c.rate, c.unit
                )
                for c in self.chemicals
            ],
            area=float(self.area),
            solution_volume=self.solution_volume(settings),
            weather=weather or WeatherReading(),
            retreatment_interval=retreatment_interval,
            notes=notes or None,
        )
        _LOGGER.debug(
            "Built treatment with %d chemicals over %s sq ft",
            len(treatment.chemicals),
            treatment.area,
        )
        return treatment
