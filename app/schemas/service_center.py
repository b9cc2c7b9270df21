from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from typing import Any, List


class CenterRecord(BaseModel):
    """Directory view of a service center, from the centers store or the remote directory."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field("", validation_alias=AliasChoices("centerId", "id"))
    name: str = ""
    location: str = ""
    capacity: int = 0
    is_active: bool = Field(True, validation_alias=AliasChoices("is_active", "isActive"))
    bookings: List[Any] = Field(default_factory=list)

    @field_validator("id", "name", "location", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return "" if v is None else str(v)

    @field_validator("bookings", mode="before")
    @classmethod
    def none_as_no_bookings(cls, v):
        return [] if v is None else v

    @property
    def load(self) -> int:
        return len(self.bookings)

    @property
    def free_capacity(self) -> int:
        return self.capacity - self.load

    @classmethod
    def from_model(cls, center) -> "CenterRecord":
        return cls(
            id=center.center_id,
            name=center.name,
            location=center.location,
            capacity=center.capacity,
            is_active=center.is_active,
            bookings=list(center.bookings or []),
        )
