import openai
from typing import List, Dict, Any, Optional
from pydantic import ValidationError as SchemaError
from digital_humans.core.config import settings
from digital_humans.core.exceptions import GenerationError, MessageError
from digital_humans.schemas.digital_human import DigitalHumanResponse, GeneratedCharacter
from digital_humans.services.character_generator import CharacterGenerator
import json
import logging

logger = logging.getLogger("openai_service")

GENERATION_SYSTEM_PROMPT = """
You design chatbot personas ("digital humans").

Given a description and optional hints, reply with ONE JSON object and nothing else:
{
  "name": "<short display name>",
  "prompt": "<system prompt written in second person, telling the persona who it is and how to behave>",
  "rules": ["<behavioural rule>", "..."],
  "personality": "<comma-separated personality summary>"
}

Guidelines:
- 3 to 6 rules, each one sentence.
- The prompt must stay consistent with the hints.
- Never mention that the persona was generated.
"""

class OpenAIGenerator(CharacterGenerator):
    def __init__(self, client: Optional[openai.AsyncOpenAI] = None):
        if client is None:
            if not settings.openai_api_key:
                raise ValueError("OPENAI_API_KEY not found in environment variables")
            if not settings.openai_model:
                raise ValueError("OPENAI_MODEL not found in environment variables")
            client = openai.AsyncOpenAI(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url or None,
            )

        self.client = client
        self.model = settings.openai_model

    def _build_generation_request(self, description: str, hints: Optional[Dict[str, Any]]) -> str:
        parts = [f"Description: {description}"]
        hints = hints or {}
        if hints.get("personality"):
            parts.append(f"Personality: {hints['personality']}")
        if hints.get("domain"):
            parts.append(f"Domain of expertise: {hints['domain']}")
        if hints.get("special_instructions"):
            parts.append(f"Special instructions: {hints['special_instructions']}")
        return "\n".join(parts)

    async def generate(self, description: str, hints: Optional[Dict[str, Any]] = None) -> GeneratedCharacter:
        """Ask the model for a persona definition and validate its JSON."""
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": GENERATION_SYSTEM_PROMPT},
                    {"role": "user", "content": self._build_generation_request(description, hints)},
                ],
                response_format={"type": "json_object"},
                temperature=0.8,
                max_tokens=800,
            )
            content = response.choices[0].message.content or ""
        except openai.OpenAIError as e:
            logger.error(f"OpenAI API Error during generation: {e}")
            raise GenerationError()

        try:
            return GeneratedCharacter.model_validate(json.loads(content))
        except (json.JSONDecodeError, SchemaError) as e:
            logger.error(f"Unusable persona returned by model: {e}")
            raise GenerationError("Generated digital human was malformed")

    def _build_system_prompt(self, character: DigitalHumanResponse) -> str:
        prompt_parts = [character.prompt.strip()]
        if character.personality:
            prompt_parts.append(f"\nPersonality: {character.personality}")
        if character.rules:
            prompt_parts.append("\nRules:")
            for rule in character.rules:
                prompt_parts.append(f"- {rule}")
        return "\n".join(prompt_parts)

    async def respond(
        self,
        character: DigitalHumanResponse,
        message: str,
        context: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        messages = [{"role": "system", "content": self._build_system_prompt(character)}]
        for msg in self.prior_turns(message, context):
            if msg.get("role") in ("user", "assistant") and msg.get("content"):
                messages.append({"role": msg["role"], "content": msg["content"]})
        messages.append({"role": "user", "content": message})

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=character.max_tokens,
                temperature=character.temperature,
            )
        except openai.OpenAIError as e:
            logger.error(f"OpenAI API Error: {e}")
            raise MessageError()

        reply = (response.choices[0].message.content or "").strip()
        if not reply:
            raise MessageError("Empty response from model")
        return reply
