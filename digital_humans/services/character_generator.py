import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from digital_humans.core.config import settings
from digital_humans.schemas.digital_human import DigitalHumanResponse, GeneratedCharacter

logger = logging.getLogger("character_generator")

class CharacterGenerator(ABC):
    """The external collaborator that invents personas and speaks as them.

    ``generate`` turns a free-text description (plus optional hints such as
    personality, domain and special instructions) into a persona definition.
    ``respond`` produces the persona's next reply given the new user message
    and the most recent turns of the session, each ``{"role", "content"}``.
    The window normally ends with the new user message itself.
    """

    @abstractmethod
    async def generate(self, description: str, hints: Optional[Dict[str, Any]] = None) -> GeneratedCharacter:
        ...

    @abstractmethod
    async def respond(
        self,
        character: DigitalHumanResponse,
        message: str,
        context: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        ...

    @staticmethod
    def prior_turns(message: str, context: Optional[List[Dict[str, str]]]) -> List[Dict[str, str]]:
        """The context without its trailing copy of ``message``."""
        turns = list(context or [])
        if turns and turns[-1].get("role") == "user" and turns[-1].get("content") == message:
            turns.pop()
        return turns

def build_character_generator() -> CharacterGenerator:
    """Pick the backend configured in settings."""
    from digital_humans.services.openai_service import OpenAIGenerator
    from digital_humans.services.template_service import TemplateGenerator

    if settings.generator_backend == "openai":
        if settings.openai_api_key:
            return OpenAIGenerator()
        logger.warning("OPENAI_API_KEY not set, falling back to the template generator")
    elif settings.generator_backend != "template":
        logger.warning("Unknown GENERATOR_BACKEND %r, using the template generator", settings.generator_backend)
    return TemplateGenerator()

character_generator = build_character_generator()
