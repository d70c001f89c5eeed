"""Pydantic bases for API payloads: unknown fields are rejected, not ignored."""

from pydantic import BaseModel, ConfigDict


class StrictModel(BaseModel):
    """Response payloads."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class StrictRequestModel(StrictModel):
    """Request bodies; surrounding whitespace in strings is dropped."""

    model_config = ConfigDict(extra="forbid", validate_assignment=True, str_strip_whitespace=True)
