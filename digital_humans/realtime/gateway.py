import logging
from datetime import datetime
from typing import Any, Awaitable, Callable, Dict, NamedTuple, Optional
from pydantic import ValidationError as SchemaError
from sqlalchemy.orm import Session
from digital_humans.core.database import SessionLocal
from digital_humans.core.exceptions import (
    AppError,
    AuthRequired,
    BotNotFound,
    InvalidCredentials,
    ValidationError,
)
from digital_humans.schemas.chat import SendMessageRequest
from digital_humans.schemas.digital_human import (
    DigitalHumanCreate,
    DigitalHumanUpdate,
    GeneratePromptRequest,
)
from digital_humans.services.auth_service import AuthService, auth_service
from digital_humans.services.chat_service import ChatService, chat_service
from digital_humans.services.dashboard_service import DashboardService, dashboard_service
from digital_humans.services.digital_human_service import DigitalHumanService, digital_human_service
from .connection import ConnectionContext
from .manager import ConnectionManager, connection_manager

logger = logging.getLogger("realtime.gateway")

# Errors that keep their own code whatever the event's fallback code is
KEEP_CODE = (AuthRequired, ValidationError, BotNotFound)

Handler = Callable[[ConnectionContext, Session, Any], Awaitable[None]]

class Route(NamedTuple):
    handler: Handler
    requires_auth: bool
    error_code: Optional[str] = None

def _bot_id(data: Any) -> str:
    """Bot id from a bare string or from ``{id | digitalHumanId | botId}``."""
    if isinstance(data, dict):
        data = data.get("digitalHumanId") or data.get("botId") or data.get("id")
    if not isinstance(data, str) or not data.strip():
        raise ValidationError("Digital human id is required")
    return data.strip()

class RealtimeGateway:
    """Maps inbound events to service calls and emits the outcome.

    Every dispatch gets its own database session. Errors never leave
    ``dispatch``: they become an ``error`` event with a message and a code.
    """

    def __init__(
        self,
        manager: Optional[ConnectionManager] = None,
        auth: Optional[AuthService] = None,
        registry: Optional[DigitalHumanService] = None,
        chat: Optional[ChatService] = None,
        dashboard: Optional[DashboardService] = None,
        session_factory: Callable[[], Session] = SessionLocal,
    ):
        self.manager = manager or connection_manager
        self.auth = auth or auth_service
        self.registry = registry or digital_human_service
        self.chat = chat or chat_service
        self.dashboard = dashboard or dashboard_service
        self.session_factory = session_factory

        self.routes: Dict[str, Route] = {
            "ping": Route(self.on_ping, False),
            "authenticate": Route(self.on_authenticate, False, "AUTH_ERROR"),
            "guest-login": Route(self.on_guest_login, False, "AUTH_ERROR"),
            "get-public-digital-humans": Route(self.on_get_public, True, "FETCH_ERROR"),
            "get-dashboard-data": Route(self.on_get_dashboard, True, "DASHBOARD_ERROR"),
            "generate-prompt": Route(self.on_generate_prompt, True, "GENERATION_ERROR"),
            "save-digital-human": Route(self.on_save, True),
            "update-digital-human": Route(self.on_update, True),
            "delete-digital-human": Route(self.on_delete, True, "DELETE_ERROR"),
            "get-user-bots": Route(self.on_get_user_bots, True, "FETCH_ERROR"),
            "load-digital-humans": Route(self.on_load_digital_humans, True, "FETCH_ERROR"),
            "search-digital-humans": Route(self.on_search, True, "FETCH_ERROR"),
            "send-message": Route(self.on_send_message, True, "MESSAGE_ERROR"),
            "join-chat": Route(self.on_join_chat, True),
            "clear-history": Route(self.on_clear_history, True),
        }

    async def dispatch(self, ctx: ConnectionContext, event: str, data: Any = None) -> None:
        route = self.routes.get(event)
        if route is None:
            await ctx.emit("error", {"message": f"Unknown event: {event}", "code": "UNKNOWN_EVENT"})
            return

        db = self.session_factory()
        try:
            if route.requires_auth and not ctx.is_authenticated:
                raise AuthRequired()
            await route.handler(ctx, db, data)
        except AppError as e:
            logger.info("%s failed for %s: %s (%s)", event, ctx.id, e.message, e.code)
            code = e.code if isinstance(e, KEEP_CODE) or not route.error_code else route.error_code
            await ctx.emit("error", {"message": e.message, "code": code})
        except SchemaError as e:
            first = e.errors()[0] if e.errors() else {}
            field = ".".join(str(part) for part in first.get("loc", ()))
            message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request payload")
            await ctx.emit("error", {"message": message, "code": ValidationError.code})
        except Exception as e:
            logger.exception("Unhandled error in %s for %s: %s", event, ctx.id, e)
            await ctx.emit("error", {
                "message": AppError.default_message,
                "code": route.error_code or AppError.code,
            })
        finally:
            db.close()

    async def _broadcast(self, ctx: ConnectionContext, event: str, data: Any) -> None:
        delivered = await self.manager.broadcast(event, data, exclude=ctx)
        logger.debug("Broadcast %s to %d connections", event, delivered)

    async def on_ping(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        await ctx.emit("pong", {"message": "Pong from server!", "timestamp": datetime.utcnow().isoformat()})

    async def _bind(self, ctx: ConnectionContext, user, token: str) -> None:
        ctx.bind(user, token)
        logger.info("User authenticated: %s on %s", user.username, ctx.id)
        await ctx.emit("authenticated", {"success": True, "user": user, "token": token})
        await self.dispatch(ctx, "get-dashboard-data")

    async def on_authenticate(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        """Accepts a bare token, ``{token}`` or ``{email, password}``."""
        if isinstance(data, dict) and data.get("token"):
            data = data["token"]
        if isinstance(data, str):
            user = self.auth.verify_token(db, data)
            await self._bind(ctx, user, data)
        elif isinstance(data, dict) and data.get("email") and data.get("password"):
            result = self.auth.login(db, data["email"], data["password"])
            await self._bind(ctx, result.user, result.token)
        else:
            raise InvalidCredentials("Token or credentials required")

    async def on_guest_login(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        result = self.auth.authenticate_guest(db)
        await self._bind(ctx, result.user, result.token)

    async def on_get_dashboard(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        await ctx.emit("dashboard-data", self.dashboard.get_dashboard(db, ctx.user))

    async def on_get_public(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        limit = data.get("limit") if isinstance(data, dict) else None
        if limit is not None and (isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0):
            raise ValidationError("limit must be a positive integer")
        await ctx.emit("public-digital-humans", self.registry.list_public(db, limit))

    async def on_generate_prompt(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        request = GeneratePromptRequest.model_validate(data)
        bot = await self.registry.generate(db, ctx.user.id, request)
        await ctx.emit("prompt-generated", bot)
        if bot.is_public:
            await self._broadcast(ctx, "prompt-generated", bot)

    async def on_save(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        definition = DigitalHumanCreate.model_validate(data)
        previous = self.registry.get_by_id(db, definition.id) if definition.id else None
        bot = self.registry.save(db, ctx.user.id, definition)
        await ctx.emit("digital-human-saved", bot)
        if bot.is_public or (previous is not None and previous.is_public):
            await self._broadcast(ctx, "digital-human-saved", bot)

    async def on_update(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        if isinstance(data, dict) and isinstance(data.get("digitalHuman"), dict):
            data = data["digitalHuman"]
        patch = DigitalHumanUpdate.model_validate(data)
        previous = self.registry.get_by_id(db, patch.id)
        bot = self.registry.update(db, patch.id, ctx.user.id, patch)
        await ctx.emit("digital-human-updated", bot)
        if bot.is_public or (previous is not None and previous.is_public):
            await self._broadcast(ctx, "digital-human-updated", bot)

    async def on_delete(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        bot_id = _bot_id(data)
        previous = self.registry.get_by_id(db, bot_id)
        self.registry.delete(db, bot_id, ctx.user.id)
        self.chat.evict_bot(bot_id)
        await ctx.emit("digital-human-deleted", bot_id)
        if previous is not None and previous.is_public:
            await self._broadcast(ctx, "digital-human-deleted", bot_id)

    async def on_get_user_bots(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        await ctx.emit("user-bots", self.registry.list_for_user(db, ctx.user.id))

    async def on_load_digital_humans(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        await ctx.emit("digital-humans-loaded", self.registry.list_visible(db, ctx.user.id))

    async def on_search(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        query = data.get("query") if isinstance(data, dict) else data
        if not isinstance(query, str):
            raise ValidationError("query must be a string")
        results = self.registry.search(db, query, ctx.user.id)
        await ctx.emit("search-results", {"query": query, "results": results})

    async def on_send_message(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        request = SendMessageRequest.model_validate(data)
        reply = await self.chat.post_user_message(db, ctx.user.id, request.digital_human_id, request.message)
        await ctx.emit("message-received", reply)

    async def on_join_chat(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        bot_id = _bot_id(data)
        if self.registry.get_by_id(db, bot_id) is None:
            raise BotNotFound()
        history = self.chat.get_history(db, ctx.user.id, bot_id)
        for message in history:
            await ctx.emit("message-received", message)
        logger.info("Sent %d historical messages to %s", len(history), ctx.user.username)

    async def on_clear_history(self, ctx: ConnectionContext, db: Session, data: Any) -> None:
        bot_id = _bot_id(data)
        deleted = self.chat.clear_history(db, ctx.user.id, bot_id)
        await ctx.emit("history-cleared", {"digitalHumanId": bot_id, "deleted": deleted})

realtime_gateway = RealtimeGateway()
