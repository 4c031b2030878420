"""Helpers shared by the Spray Log tests."""

from custom_components.spray_log.const import CHEMICALS
from custom_components.spray_log.models import ChemicalProduct

ENTRY_ID = "north_block_entry"


def product(chemical_id: int) -> ChemicalProduct:
    """Built-in reference product by id."""
    return ChemicalProduct(id=chemical_id, **CHEMICALS[chemical_id])
