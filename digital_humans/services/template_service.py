from typing import List, Dict, Any, Optional
from rapidfuzz import fuzz
from digital_humans.schemas.digital_human import DigitalHumanResponse, GeneratedCharacter
from digital_humans.services.character_generator import CharacterGenerator
import logging

logger = logging.getLogger("template_service")

# Fuzzy keyword match threshold (rapidfuzz partial_ratio, 0-100)
MATCH_THRESHOLD = 80

TEMPLATES = [
    {
        "key": "helper",
        "name": "Alex the Helper",
        "keywords": ["help", "assistant", "support", "friendly", "tutor", "teacher", "cheerful"],
        "prompt": (
            "You are Alex, a warm and helpful AI assistant. You're patient, encouraging, and always "
            "ready to help users with their questions and tasks. You have a positive attitude and "
            "enjoy making complex topics easy to understand."
        ),
        "personality": "Friendly, patient, encouraging",
        "rules": [
            "Be warm, clear and supportive.",
            "Break complex topics into small, understandable steps.",
            "Ask a clarifying question when the request is ambiguous.",
        ],
    },
    {
        "key": "mentor",
        "name": "Sophia the Wise",
        "keywords": ["wise", "mentor", "philosophy", "philosopher", "advice", "coach", "thoughtful"],
        "prompt": (
            "You are Sophia, a wise and thoughtful AI mentor. You provide deep insights, ask "
            "thought-provoking questions, and help users explore complex topics with nuance and wisdom."
        ),
        "personality": "Wise, thoughtful, philosophical",
        "rules": [
            "Answer with nuance and consider several perspectives.",
            "Ask thought-provoking follow-up questions.",
            "Share insight rather than just facts.",
        ],
    },
    {
        "key": "creative",
        "name": "Maya the Creative",
        "keywords": ["creative", "art", "artist", "design", "music", "writer", "story", "imaginative"],
        "prompt": (
            "You are Maya, a creative and imaginative AI artist. You're full of innovative ideas, "
            "love to explore artistic concepts, and help users tap into their creative potential."
        ),
        "personality": "Creative, imaginative, inspiring",
        "rules": [
            "Offer several original ideas instead of one.",
            "Use vivid, energetic language.",
            "Encourage the user to experiment.",
        ],
    },
]

GREETING_KEYWORDS = ["hello", "hi", "hey", "good morning", "good evening", "greetings"]

class TemplateGenerator(CharacterGenerator):
    """Offline generator: keyword-matched persona templates and canned replies."""

    def select_template(self, description: str) -> Dict[str, Any]:
        text = description.lower()
        scores = {}
        for index, template in enumerate(TEMPLATES):
            score = sum(1 for keyword in template["keywords"] if fuzz.partial_ratio(keyword, text) >= MATCH_THRESHOLD)
            if score > 0:
                scores[index] = score
        if not scores:
            return TEMPLATES[0]
        best = sorted(scores.items(), key=lambda x: (-x[1], x[0]))[0][0]
        return TEMPLATES[best]

    async def generate(self, description: str, hints: Optional[Dict[str, Any]] = None) -> GeneratedCharacter:
        hints = hints or {}
        template = self.select_template(description)
        logger.info("Template %s selected for description %r", template["key"], description[:60])

        name = template["name"]
        if len(description) > 50:
            first_name, rest = name.split(" ", 1)
            name = f"{first_name} (Custom) {rest}"

        rules = list(template["rules"])
        if hints.get("domain"):
            rules.append(f"Focus your answers on {hints['domain']}.")
        if hints.get("special_instructions"):
            rules.append(hints["special_instructions"].strip())

        prompt = f"{template['prompt']} You were created to be: {description.strip()}"
        return GeneratedCharacter(
            name=name,
            prompt=prompt,
            rules=rules,
            personality=hints.get("personality") or template["personality"],
        )

    async def respond(
        self,
        character: DigitalHumanResponse,
        message: str,
        context: Optional[List[Dict[str, str]]] = None,
    ) -> str:
        text = message.strip()
        lowered = text.lower()
        first_name = character.name.split(" ")[0]

        if any(lowered.startswith(greeting) for greeting in GREETING_KEYWORDS):
            if self.prior_turns(message, context):
                return f"Hello again! {first_name} here. What would you like to talk about next?"
            return f"Hello! I'm {character.name}. I'm {character.personality.lower() or 'happy to help'}. How can I help you today?"

        if text.endswith("?"):
            return f"That's a great question. As {first_name}, here is how I see it: let's think about \"{text}\" step by step."

        return f"I hear you. Tell me more about \"{text[:100]}\" and I'll do my best to help."
