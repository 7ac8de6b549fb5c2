"""
Response Models

Shapes handed back to the chat layer and to health/status callers.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class SearchOption(BaseModel):
    """One selectable option in a chat external-select field"""
    label: str = Field(..., description="Human readable text, truncated")
    value: str = Field(..., description="Upstream record identity")

    def to_slack(self) -> dict:
        return {"text": {"type": "plain_text", "text": self.label}, "value": self.value}


class CacheStatus(BaseModel):
    """Snapshot of one source cache"""
    source: str
    loading: bool
    loaded: bool
    record_count: int
    last_loaded_at: Optional[datetime] = None
    last_error: Optional[str] = None
