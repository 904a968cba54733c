"""Pydantic schemas for the insights domain."""
from typing import Any, Literal

from pydantic import BaseModel


class RegionalInsightsResponse(BaseModel):
    """Summarizer output, or the reason there is none."""
    status: Literal["ok", "insufficient_data", "error"]
    description: str
    insights: dict[str, Any] | None = None
    error: str | None = None
