from typing import Any
from pydantic import BaseModel, Field

class RealtimeEvent(BaseModel):
    """One frame on the realtime channel, in either direction."""
    type: str = Field(..., min_length=1)
    data: Any = None
