"""Base model for dispatch backend payloads.

Every response model inherits from :class:`CourierBaseModel` which
provides:

* ``extra="ignore"`` so new backend fields never break parsing.
* ``populate_by_name`` so models can be built from field names in tests
  and from aliases (``_id``, ``new``) off the wire.
* A ``raw`` dict that captures the original payload.
* A ``_from_payload`` hook subclasses override to derive fields from the
  raw payload before field validation.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator


class CourierBaseModel(BaseModel):
    """Base for backend response models."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        populate_by_name=True,
    )

    raw: dict[str, Any] = Field(default_factory=dict)
    """Original API response dict."""

    @classmethod
    def _from_payload(cls, payload: dict[str, Any]) -> dict[str, Any]:
        """Map a raw payload onto field values. Default: pass through."""
        return dict(payload)

    @model_validator(mode="before")
    @classmethod
    def _stash_raw(cls, values: Any) -> Any:
        """Derive fields and stash the raw payload."""
        if not isinstance(values, dict):
            return values
        # Only auto-stash raw when not explicitly provided (i.e. model_validate
        # from an API dict). When constructing with kwargs that include raw=,
        # keep the caller's value.
        if "raw" in values:
            return values
        derived = cls._from_payload(values)
        derived["raw"] = dict(values)
        return derived
