from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class TabData(BaseModel):
    """Tablature document as sent by the editor.

    Only the fields the server relies on are declared; anything else the
    editor sends is stored untouched.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    name: str = Field(..., description="Display name of the tablature")
    string_count: int = Field(..., alias="stringCount", ge=1, description="Number of strings")
    measures: list[Any] = Field(default_factory=list, description="Measures grid (opaque)")
    timestamp: str = Field("", description="Client-side ISO-8601 timestamp")


class TabSummary(BaseModel):
    """Entry of the saved tablature listing."""

    model_config = ConfigDict(populate_by_name=True)

    filename: str = Field(..., description="Stored file name without the .json suffix")
    name: str | None = None
    string_count: int | None = Field(None, alias="stringCount")
    timestamp: str | None = None


class SaveTabResponse(BaseModel):
    success: bool = True
    filename: str


class DeleteTabResponse(BaseModel):
    success: bool = True


class TierStatus(BaseModel):
    remaining: int = Field(..., ge=0, description="Requests left in the current window")
    reset_time: int = Field(
        ..., alias="resetTime", ge=0, description="Whole seconds until the window resets"
    )

    model_config = ConfigDict(populate_by_name=True)


class RateLimitStatusResponse(BaseModel):
    general: TierStatus
    save: TierStatus
    delete: TierStatus
