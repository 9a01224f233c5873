"""Structure intake progress view."""

from pydantic import BaseModel


class ProgressView(BaseModel):
    location: bool = False
    administrative: bool = False
    geometric_details: bool = False
    floors_added: bool = False
    flats_added: bool = False
    flat_ratings_completed: bool = False
    overall_percentage: int = 0

    @property
    def is_complete(self) -> bool:
        return self.overall_percentage == 100

    def missing(self) -> list[str]:
        """Names of milestones that are not yet satisfied."""
        return [name for name, done in self.flags().items() if not done]

    def flags(self) -> dict[str, bool]:
        return {
            "location": self.location,
            "administrative": self.administrative,
            "geometric_details": self.geometric_details,
            "floors_added": self.floors_added,
            "flats_added": self.flats_added,
            "flat_ratings_completed": self.flat_ratings_completed,
        }
