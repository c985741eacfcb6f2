"""GeoLocation schema - canonical definition."""

from pydantic import BaseModel, Field


class GeoLocation(BaseModel):
    """Geographic location resolved from a source IP."""
    city: str = Field(..., description="City name")
    country: str = Field(..., min_length=1, description="Country name or code")
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "example": {
                "city": "Lagos",
                "country": "Nigeria",
                "latitude": 6.5244,
                "longitude": 3.3792,
            }
        },
    }

    def same_country(self, other: "GeoLocation") -> bool:
        return _norm(self.country) == _norm(other.country)

    def same_city(self, other: "GeoLocation") -> bool:
        return self.same_country(other) and _norm(self.city) == _norm(other.city)

    @property
    def display(self) -> str:
        return f"{self.city}, {self.country}"


def _norm(value: str) -> str:
    return value.strip().casefold()
