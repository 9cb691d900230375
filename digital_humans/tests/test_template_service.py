import asyncio

import pytest

from digital_humans.schemas.digital_human import DigitalHumanResponse
from digital_humans.services.template_service import TemplateGenerator

generator = TemplateGenerator()


def test_keyword_matching_picks_template():
    assert generator.select_template("a wise philosophy mentor")["key"] == "mentor"
    assert generator.select_template("a creative music writer")["key"] == "creative"
    assert generator.select_template("zzz")["key"] == "helper"


def test_generate_folds_hints_into_rules():
    description = "a creative music writer who composes songs about the sea and the stars"
    character = asyncio.run(generator.generate(description, {
        "personality": "Dreamy",
        "domain": "songwriting",
        "special_instructions": "Always end with a rhyme.",
    }))

    assert character.name == "Maya (Custom) the Creative"
    assert character.personality == "Dreamy"
    assert character.rules[-2:] == ["Focus your answers on songwriting.", "Always end with a rhyme."]
    assert character.prompt.endswith(f"You were created to be: {description}")


def test_canned_replies():
    bot = DigitalHumanResponse(
        id="dh_1", user_id="user_1", name="Alex the Helper", prompt="p",
        personality="Friendly", temperature=0.7, max_tokens=1000, is_public=False,
    )

    assert asyncio.run(generator.respond(bot, "hello")).startswith("Hello! I'm Alex the Helper")
    assert asyncio.run(generator.respond(bot, "hi", [{"role": "user", "content": "x"}])).startswith("Hello again!")
    first_turn = [{"role": "user", "content": "hello"}]
    assert asyncio.run(generator.respond(bot, "hello", first_turn)).startswith("Hello! I'm Alex the Helper")
    assert "great question" in asyncio.run(generator.respond(bot, "why is the sky blue?"))


def test_backend_must_implement_both_operations():
    from digital_humans.services.character_generator import CharacterGenerator

    class GenerateOnly(CharacterGenerator):
        async def generate(self, description, hints=None):
            return None

    with pytest.raises(TypeError):
        GenerateOnly()
