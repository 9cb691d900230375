import asyncio

import pytest

from digital_humans.core.exceptions import GenerationError, NotFound, PermissionDenied
from digital_humans.repositories.chat_repository import chat_repository
from digital_humans.schemas.digital_human import DigitalHumanCreate, DigitalHumanUpdate, GeneratePromptRequest
from digital_humans.services.digital_human_service import DigitalHumanService, digital_human_service
from digital_humans.services.template_service import TemplateGenerator


class BrokenGenerator(TemplateGenerator):
    async def generate(self, description, hints=None):
        raise RuntimeError("upstream unavailable")


def generate(db, user, description="a cheerful tutor", **extra):
    request = GeneratePromptRequest(description=description, **extra)
    return asyncio.run(digital_human_service.generate(db, user.id, request))


def test_generate_uses_defaults(db, alice):
    bot = generate(db, alice)

    assert bot.name
    assert bot.prompt
    assert bot.rules
    assert bot.user_id == alice.id
    assert bot.temperature == 0.7
    assert bot.max_tokens == 1000
    assert not bot.is_public
    assert bot.id.startswith("dh_")


def test_generate_overrides_and_hints(db, alice):
    bot = generate(db, alice, description="a wise philosophy mentor", domain="ethics", temperature=0.2, max_tokens=300)

    assert bot.name == "Sophia the Wise"
    assert bot.temperature == 0.2
    assert bot.max_tokens == 300
    assert any("ethics" in rule for rule in bot.rules)


def test_generation_failure_is_reported(db, alice):
    service = DigitalHumanService(generator=BrokenGenerator())
    with pytest.raises(GenerationError):
        asyncio.run(service.generate(db, alice.id, GeneratePromptRequest(description="anything")))
    assert digital_human_service.list_for_user(db, alice.id) == []


def test_only_owner_can_delete(db, alice, bob):
    bot = generate(db, alice)

    with pytest.raises(PermissionDenied):
        digital_human_service.delete(db, bot.id, bob.id)

    assert [b.id for b in digital_human_service.list_for_user(db, alice.id)] == [bot.id]
    assert digital_human_service.delete(db, bot.id, alice.id) is True
    assert digital_human_service.get_by_id(db, bot.id) is None

    with pytest.raises(NotFound):
        digital_human_service.delete(db, bot.id, alice.id)


def test_only_owner_can_update(db, alice, bob):
    bot = generate(db, alice)

    with pytest.raises(PermissionDenied):
        digital_human_service.update(db, bot.id, bob.id, DigitalHumanUpdate(id=bot.id, name="Hijacked"))

    digital_human_service.cache.clear()
    assert digital_human_service.get_by_id(db, bot.id).name == bot.name

    with pytest.raises(NotFound):
        digital_human_service.update(db, "dh_missing", alice.id, DigitalHumanUpdate(id="dh_missing", name="x"))


def test_update_is_idempotent(db, alice):
    bot = generate(db, alice)
    patch = DigitalHumanUpdate(id=bot.id, rules=["Be brief."], temperature=0.3)

    first = digital_human_service.update(db, bot.id, alice.id, patch)
    second = digital_human_service.update(db, bot.id, alice.id, patch)

    assert first.rules == second.rules == ["Be brief."]
    assert first.temperature == second.temperature == 0.3
    assert second.name == bot.name


def test_public_flag_makes_bot_visible_to_everyone(db, alice, bob):
    bot = generate(db, alice)
    assert digital_human_service.list_public(db) == []

    digital_human_service.update(db, bot.id, alice.id, DigitalHumanUpdate(id=bot.id, is_public=True))

    assert [b.id for b in digital_human_service.list_public(db)] == [bot.id]
    assert [b.id for b in digital_human_service.list_visible(db, bob.id)] == [bot.id]


def test_get_by_id_reads_through(db, alice):
    bot = generate(db, alice)
    digital_human_service.cache.clear()

    loaded = digital_human_service.get_by_id(db, bot.id)
    assert loaded.id == bot.id
    assert bot.id in digital_human_service.cache
    assert digital_human_service.get_by_id(db, "dh_missing") is None


def test_load_all_warms_cache(db, alice, bob):
    generate(db, alice)
    generate(db, bob, description="a creative music writer")
    digital_human_service.cache.clear()

    assert digital_human_service.load_all(db) == 2
    assert digital_human_service.cache_size() == 2


def test_save_creates_then_updates(db, alice, bob):
    created = digital_human_service.save(db, alice.id, DigitalHumanCreate(name="Rex", prompt="You are Rex."))
    assert created.temperature == 0.7

    updated = digital_human_service.save(
        db, alice.id, DigitalHumanCreate(id=created.id, name="Rex II", prompt="You are Rex.", is_public=True)
    )
    assert updated.id == created.id
    assert updated.name == "Rex II"
    assert updated.is_public

    with pytest.raises(PermissionDenied):
        digital_human_service.save(db, bob.id, DigitalHumanCreate(id=created.id, name="Mine", prompt="p"))


def test_search_respects_visibility(db, alice, bob):
    private = generate(db, alice, description="a creative music writer")
    public = generate(db, bob, description="a creative art designer", is_public=True)

    assert {b.id for b in digital_human_service.search(db, "maya", alice.id)} == {private.id, public.id}
    assert [b.id for b in digital_human_service.search(db, "maya", bob.id)] == [public.id]
    assert digital_human_service.search(db, "   ", alice.id) == []


def test_delete_cascades_to_sessions_and_messages(db, alice):
    bot = generate(db, alice)
    session = chat_repository.get_or_create_session(db, alice.id, bot.id)
    chat_repository.create_message(db, session.id, "user", "hello")
    session_id = session.id

    digital_human_service.delete(db, bot.id, alice.id)
    db.expire_all()

    assert chat_repository.get_session(db, alice.id, bot.id) is None
    assert chat_repository.get_messages(db, session_id) == []
