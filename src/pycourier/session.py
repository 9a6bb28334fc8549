"""Session state for authenticated API calls."""

from __future__ import annotations

import enum

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pycourier.models.profile import DriverProfile


class DriverRole(enum.StrEnum):
    """Role stored alongside the session.

    Only ``delivery`` sessions publish location telemetry. Any other
    role string resolves to ``OTHER``.
    """

    DELIVERY = "delivery"
    OTHER = "other"

    @classmethod
    def _missing_(cls, value: object) -> DriverRole:
        if isinstance(value, str) and value.strip().lower() == cls.DELIVERY.value:
            return cls.DELIVERY
        return cls.OTHER


class Session(BaseModel):
    """Authenticated driver session.

    Parameters
    ----------
    driver_id : str
        Driver id returned by login; also the realtime channel identity.
    bearer_token : str
        Token sent as ``Authorization: Bearer <token>``.
    role : DriverRole
        Session role.
    profile : DriverProfile or None
        Cached driver profile, if fetched.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        validate_default=True,
        str_strip_whitespace=True,
    )

    driver_id: str = Field(min_length=1)
    bearer_token: str = Field(min_length=1)
    role: DriverRole = DriverRole.DELIVERY
    profile: DriverProfile | None = None

    @field_validator("driver_id", mode="before")
    @classmethod
    def _coerce_driver_id(cls, value: object) -> object:
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def is_delivery(self) -> bool:
        return self.role == DriverRole.DELIVERY

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.bearer_token}"}

    def with_profile(self, profile: DriverProfile | None) -> Session:
        return self.model_copy(update={"profile": profile})
