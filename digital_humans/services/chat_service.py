import logging
from typing import Dict, List, Optional, Tuple
from sqlalchemy.orm import Session
from digital_humans.core.config import settings
from digital_humans.core.exceptions import BotNotFound, ValidationError
from digital_humans.models.chat import ChatMessage, ChatSession
from digital_humans.repositories.chat_repository import chat_repository
from digital_humans.schemas.chat import ChatMessageResponse, ChatSessionResponse
from digital_humans.services.character_generator import CharacterGenerator
from digital_humans.services.digital_human_service import DigitalHumanService, digital_human_service

logger = logging.getLogger("chat_service")

FALLBACK_REPLY = "Sorry, I encountered an error while processing your message. Please try again."

class ChatService:
    """Per-user-per-bot conversations.

    ``history_cache`` maps a session id to its most recent messages (at most
    ``chat_history_limit``), oldest first. It is written through on every
    append and filled from the store on first read, so it can be dropped at
    any time; the full history always stays in the store.
    """

    def __init__(
        self,
        registry: Optional[DigitalHumanService] = None,
        generator: Optional[CharacterGenerator] = None,
    ):
        self.registry = registry or digital_human_service
        self.generator = generator or self.registry.generator
        self.history_limit = settings.chat_history_limit
        self.context_window = settings.chat_context_window
        self.history_cache: Dict[str, List[ChatMessageResponse]] = {}
        self.session_index: Dict[Tuple[str, str], str] = {}

    def _to_response(self, message: ChatMessage, digital_human_id: str) -> ChatMessageResponse:
        response = ChatMessageResponse.model_validate(message)
        response.digital_human_id = digital_human_id
        return response

    def get_or_create_session(self, db: Session, user_id: str, bot_id: str) -> ChatSession:
        session = chat_repository.get_or_create_session(db, user_id, bot_id)
        self.session_index[(user_id, bot_id)] = session.id
        return session

    def _load_history(self, db: Session, session: ChatSession) -> List[ChatMessageResponse]:
        cached = self.history_cache.get(session.id)
        if cached is None:
            rows = chat_repository.get_messages(db, session.id, limit=self.history_limit)
            cached = [self._to_response(row, session.digital_human_id) for row in rows]
            self.history_cache[session.id] = cached
        return cached

    def append_message(self, db: Session, session: ChatSession, role: str, content: str) -> ChatMessageResponse:
        if role not in ("user", "assistant"):
            raise ValidationError(f"Unknown message role: {role}")
        history = self._load_history(db, session)
        row = chat_repository.create_message(db, session.id, role, content)
        message = self._to_response(row, session.digital_human_id)
        history.append(message)
        if len(history) > self.history_limit:
            # Display/context trim only; the store keeps everything
            self.history_cache[session.id] = history[-self.history_limit:]
        return message

    async def post_user_message(self, db: Session, user_id: str, bot_id: str, text: str) -> ChatMessageResponse:
        """Store the user's turn and return the assistant's reply.

        A failing generator never leaves the user turn unanswered: the
        fixed FALLBACK_REPLY is stored and returned instead.
        """
        text = (text or "").strip()
        if not text:
            raise ValidationError("Message cannot be empty")

        bot = self.registry.get_by_id(db, bot_id)
        if bot is None:
            raise BotNotFound()

        session = self.get_or_create_session(db, user_id, bot_id)
        self.append_message(db, session, "user", text)
        # Most recent turns, ending with the message just stored
        context = [
            {"role": m.role, "content": m.content}
            for m in self._load_history(db, session)[-self.context_window:]
        ]

        try:
            reply = await self.generator.respond(bot, text, context)
            if not reply or not reply.strip():
                raise ValueError("empty reply")
        except Exception as e:
            logger.error(f"Error generating reply for {bot.name} ({bot.id}): {e}")
            reply = FALLBACK_REPLY

        return self.append_message(db, session, "assistant", reply)

    def get_history(self, db: Session, user_id: str, bot_id: str) -> List[ChatMessageResponse]:
        session = self.get_or_create_session(db, user_id, bot_id)
        return list(self._load_history(db, session))

    def clear_history(self, db: Session, user_id: str, bot_id: str) -> int:
        session = chat_repository.get_session(db, user_id, bot_id)
        if session is None:
            return 0
        self.history_cache.pop(session.id, None)
        deleted = chat_repository.delete_messages(db, session.id)
        logger.info("Cleared %d messages from session %s", deleted, session.id)
        return deleted

    def list_sessions(self, db: Session, user_id: str) -> List[ChatSessionResponse]:
        return [ChatSessionResponse.model_validate(s) for s in chat_repository.list_sessions_for_user(db, user_id)]

    def evict_bot(self, bot_id: str) -> None:
        """Forget cached sessions of a deleted bot."""
        for key in [k for k in self.session_index if k[1] == bot_id]:
            session_id = self.session_index.pop(key)
            self.history_cache.pop(session_id, None)

    def cached_session_count(self) -> int:
        return len(self.history_cache)

chat_service = ChatService()
