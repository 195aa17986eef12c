"""Wire envelope shared by every message exchanged with the live server."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageEnvelope(BaseModel):
    """Uniform ``{type, data, timestamp}`` wrapper; ``data`` is opaque."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str = Field(min_length=1)
    data: Any = None
    timestamp: Optional[str] = None
