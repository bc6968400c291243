"""Per-call chat completion options."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ChatOptions(BaseModel):
    """Options for one chat completion call. ``model=None`` means the configured model."""

    model: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1000, gt=0)
    stream: bool = False
