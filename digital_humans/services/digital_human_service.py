import logging
from typing import Dict, List, Optional
from sqlalchemy.orm import Session
from digital_humans.core.config import settings
from digital_humans.core.exceptions import GenerationError, NotFound, PermissionDenied
from digital_humans.models.digital_human import DigitalHuman
from digital_humans.repositories.digital_human_repository import digital_human_repository
from digital_humans.schemas.digital_human import (
    DigitalHumanCreate,
    DigitalHumanResponse,
    DigitalHumanUpdate,
    GeneratePromptRequest,
)
from digital_humans.services.character_generator import CharacterGenerator, character_generator
from digital_humans.utils.ids import new_id

logger = logging.getLogger("digital_human_service")

class DigitalHumanService:
    """Bot registry.

    The store is authoritative; ``cache`` holds detached copies keyed by bot id.
    Reads go through the cache (filling it on a miss), every write goes to the
    store first and then overwrites the cached copy. Entries are never evicted
    except when their bot is deleted.
    """

    def __init__(self, generator: Optional[CharacterGenerator] = None):
        self.generator = generator or character_generator
        self.cache: Dict[str, DigitalHumanResponse] = {}

    def _remember(self, db_obj: DigitalHuman) -> DigitalHumanResponse:
        bot = DigitalHumanResponse.model_validate(db_obj)
        self.cache[bot.id] = bot
        return bot

    def load_all(self, db: Session) -> int:
        """Warm the cache with every stored bot."""
        rows = digital_human_repository.list_all(db)
        for row in rows:
            self._remember(row)
        logger.info("Loaded %d digital humans into memory", len(rows))
        return len(rows)

    def cache_size(self) -> int:
        return len(self.cache)

    async def generate(self, db: Session, user_id: str, request: GeneratePromptRequest) -> DigitalHumanResponse:
        try:
            character = await self.generator.generate(request.description, request.hints())
        except GenerationError:
            raise
        except Exception as e:
            logger.exception("Character generator failed: %s", e)
            raise GenerationError()

        db_obj = digital_human_repository.create(db, {
            "id": new_id("dh"),
            "user_id": user_id,
            "name": character.name,
            "prompt": character.prompt,
            "rules": list(character.rules),
            "personality": character.personality,
            "temperature": settings.default_temperature if request.temperature is None else request.temperature,
            "max_tokens": request.max_tokens or settings.default_max_tokens,
            "is_public": request.is_public,
        })
        bot = self._remember(db_obj)
        logger.info("Digital human generated: %s (%s) for user %s", bot.name, bot.id, user_id)
        return bot

    def create(self, db: Session, user_id: str, data: DigitalHumanCreate) -> DigitalHumanResponse:
        values = data.model_dump(exclude={"id"})
        values["id"] = data.id or new_id("dh")
        values["user_id"] = user_id
        bot = self._remember(digital_human_repository.create(db, values))
        logger.info("Digital human created: %s (%s) for user %s", bot.name, bot.id, user_id)
        return bot

    def save(self, db: Session, user_id: str, data: DigitalHumanCreate) -> DigitalHumanResponse:
        """Explicit save: update when the id already exists (owner only), create otherwise."""
        if data.id and self.get_by_id(db, data.id) is not None:
            patch = DigitalHumanUpdate.model_validate(data.model_dump())
            return self.update(db, data.id, user_id, patch)
        return self.create(db, user_id, data)

    def _raise_for_missing_write(self, db: Session, bot_id: str) -> None:
        # The conditional write touched nothing: tell "absent" from "not yours"
        existing = digital_human_repository.get_by_id(db, bot_id)
        if existing is None:
            self.cache.pop(bot_id, None)
            raise NotFound()
        raise PermissionDenied()

    def update(self, db: Session, bot_id: str, user_id: str, patch: DigitalHumanUpdate) -> DigitalHumanResponse:
        changes = patch.changes()
        changed = digital_human_repository.update_owned(db, bot_id, user_id, changes)
        if not changed:
            self._raise_for_missing_write(db, bot_id)

        db.expire_all()
        bot = self._remember(digital_human_repository.get_by_id(db, bot_id))
        logger.info("Digital human updated: %s (%s) by user %s", bot.name, bot.id, user_id)
        return bot

    def delete(self, db: Session, bot_id: str, user_id: str) -> bool:
        deleted = digital_human_repository.delete_owned(db, bot_id, user_id)
        if not deleted:
            self._raise_for_missing_write(db, bot_id)
        self.cache.pop(bot_id, None)
        logger.info("Digital human deleted: %s by user %s", bot_id, user_id)
        return True

    def get_by_id(self, db: Session, bot_id: str) -> Optional[DigitalHumanResponse]:
        cached = self.cache.get(bot_id)
        if cached is not None:
            return cached
        db_obj = digital_human_repository.get_by_id(db, bot_id)
        if db_obj is None:
            return None
        return self._remember(db_obj)

    def list_for_user(self, db: Session, user_id: str) -> List[DigitalHumanResponse]:
        return [self._remember(row) for row in digital_human_repository.list_for_user(db, user_id)]

    def list_public(self, db: Session, limit: int = None) -> List[DigitalHumanResponse]:
        if limit is None:
            limit = settings.public_bots_limit
        return [self._remember(row) for row in digital_human_repository.list_public(db, limit)]

    def list_visible(self, db: Session, user_id: str) -> List[DigitalHumanResponse]:
        return [self._remember(row) for row in digital_human_repository.list_visible(db, user_id)]

    def search(self, db: Session, query: str, user_id: Optional[str] = None) -> List[DigitalHumanResponse]:
        query = (query or "").strip()
        if not query:
            return []
        return [self._remember(row) for row in digital_human_repository.search(db, query, user_id)]

digital_human_service = DigitalHumanService()
