import logging
from typing import Any, Dict, List, Optional
from .connection import ConnectionContext

logger = logging.getLogger("realtime.manager")

class ConnectionManager:
    def __init__(self):
        self.connections: Dict[str, ConnectionContext] = {}

    def register(self, ctx: ConnectionContext) -> None:
        self.connections[ctx.id] = ctx
        logger.info("Client connected: %s (%d live)", ctx.id, len(self.connections))

    def unregister(self, ctx: ConnectionContext) -> None:
        self.connections.pop(ctx.id, None)
        logger.info("Client disconnected: %s (%d live)", ctx.id, len(self.connections))

    def active(self) -> List[ConnectionContext]:
        return [ctx for ctx in self.connections.values() if not ctx.closed]

    async def broadcast(self, event: str, data: Any = None, exclude: Optional[ConnectionContext] = None) -> int:
        """Emit to every live connection except ``exclude``; returns how many got it."""
        delivered = 0
        for ctx in self.active():
            if exclude is not None and ctx.id == exclude.id:
                continue
            if await ctx.emit(event, data):
                delivered += 1
        return delivered

connection_manager = ConnectionManager()
