"""Login response model."""

from __future__ import annotations

from pydantic import AliasChoices, Field, field_validator

from pycourier.models._base import CourierBaseModel


class LoginResult(CourierBaseModel):
    """Response of ``POST /delivery/users``.

    Parameters
    ----------
    id : str
        Driver id; also the realtime channel identity.
    token : str
        Bearer token for subsequent REST calls.
    message : str
        Human-readable server message.
    is_new_user : bool
        Whether the phone number was registered by this call.
    """

    id: str = Field(validation_alias=AliasChoices("id", "_id", "delivery_id"))
    token: str
    message: str = ""
    is_new_user: bool = Field(default=False, validation_alias=AliasChoices("new", "is_new_user"))

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: object) -> object:
        # The backend sends numeric ids on some deployments.
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("message", mode="before")
    @classmethod
    def _coerce_message(cls, value: object) -> str:
        return "" if value is None else str(value)
