"""Location telemetry models."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field


class TelemetrySample(BaseModel):
    """A single device position sample.

    Transient: forwarded to the backend and discarded.
    """

    model_config = ConfigDict(frozen=True)

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)
    captured_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def to_payload(self, status: str | None = None) -> dict[str, float | str]:
        """Request body for the location-update endpoint."""
        payload: dict[str, float | str] = {"latitude": self.latitude, "longitude": self.longitude}
        if status is not None:
            payload["status"] = status
        return payload
