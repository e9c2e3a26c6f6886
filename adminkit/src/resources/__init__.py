"""
Entity descriptors shipped with adminkit.

Use default_registry() to get a registry holding every shipped entity.
"""

from adminkit.src.entities import EntityRegistry
from adminkit.src.resources.billings import BILLINGS
from adminkit.src.resources.restaurants import RESTAURANTS

__all__ = ["BILLINGS", "RESTAURANTS", "default_registry"]


def default_registry() -> EntityRegistry:
    """Create a registry with all shipped entities."""
    return EntityRegistry([BILLINGS, RESTAURANTS])
