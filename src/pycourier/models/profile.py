"""Driver profile model."""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator

from pycourier.ingestion.normalize import safe_str
from pycourier.models._base import CourierBaseModel


class DriverProfile(CourierBaseModel):
    """Profile returned by ``GET /deliveryme``.

    Only the fields the core reads are typed; everything else remains
    available via ``raw``.
    """

    id: str | None = Field(default=None, validation_alias=AliasChoices("_id", "id"))
    name: str | None = None
    phone_number: str | None = Field(default=None, validation_alias=AliasChoices("phone_number", "phone", "mobile"))
    email: str | None = None
    profile_pic: str | None = None
    is_live: bool | None = None

    @field_validator("id", "name", "phone_number", "email", "profile_pic", mode="before")
    @classmethod
    def _coerce_str(cls, value: object) -> str | None:
        return safe_str(value)
