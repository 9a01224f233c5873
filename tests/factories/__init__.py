"""
Test factories for generating realistic test data.

Uses factory_boy for declarative test data generation.
"""

from .structure import (
    RatingComponentFactory,
    FlatFactory,
    FloorFactory,
    StructuralIdentityFactory,
    StructureDocumentFactory,
    build_groups,
    rated_flat,
    location_descriptor,
)

__all__ = [
    "RatingComponentFactory",
    "FlatFactory",
    "FloorFactory",
    "StructuralIdentityFactory",
    "StructureDocumentFactory",
    "build_groups",
    "rated_flat",
    "location_descriptor",
]
