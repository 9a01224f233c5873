from app.models.structure import Structure
from app.models.location_sequence import LocationSequence

__all__ = [
    "Structure",
    "LocationSequence",
]
