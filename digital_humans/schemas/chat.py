from datetime import datetime
from typing import Any, List, Literal, Optional
from pydantic import AliasChoices, Field
from .base import BaseSchema, TimestampMixin

class SendMessageRequest(BaseSchema):
    message: str = ""
    digital_human_id: str = Field(
        ..., validation_alias=AliasChoices("digitalHumanId", "botId", "digital_human_id")
    )
    # Advisory copy of the client's history; server-held history is authoritative
    chat_history: Optional[List[Any]] = Field(
        default=None, validation_alias=AliasChoices("chatHistory", "history", "chat_history")
    )

class ChatMessageResponse(BaseSchema):
    id: int
    chat_session_id: str
    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime
    digital_human_id: Optional[str] = None

class ChatSessionResponse(BaseSchema, TimestampMixin):
    id: str
    user_id: str
    digital_human_id: str
