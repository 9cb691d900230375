import json
import logging
from typing import Any, Awaitable, Callable, Optional
from digital_humans.schemas.user import UserResponse
from digital_humans.utils.ids import new_id
from digital_humans.utils.response import to_payload

logger = logging.getLogger("realtime.connection")

class ConnectionContext:
    """Per-connection state handed to every gateway dispatch.

    ``send`` is any coroutine taking a text frame (``WebSocket.send_text`` in
    production, a recorder in tests). The bound ``user`` is the only
    per-connection state; everything else lives in the services.
    """

    def __init__(self, send: Callable[[str], Awaitable[None]], connection_id: Optional[str] = None):
        self.id = connection_id or new_id("conn")
        self.user: Optional[UserResponse] = None
        self.token: Optional[str] = None
        self.closed = False
        self._send = send

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    def bind(self, user: UserResponse, token: Optional[str] = None) -> None:
        # Re-authentication simply rebinds
        self.user = user
        self.token = token

    async def emit(self, event: str, data: Any = None) -> bool:
        if self.closed:
            logger.debug("Dropping %s for closed connection %s", event, self.id)
            return False
        frame = json.dumps({"type": event, "data": to_payload(data)}, default=str)
        try:
            await self._send(frame)
        except Exception as e:
            logger.warning(f"Send failed on connection {self.id}, closing: {e}")
            self.closed = True
            return False
        return True

    def close(self) -> None:
        self.closed = True
        self.user = None
        self.token = None
