"""Tests for the studio generation engines using stub providers."""

from __future__ import annotations

import pytest

from gerertales_providers import ProviderNotConfiguredError, ProviderResponseError
from gerertales_providers.routing import Provider
from gerertales_schemas import Chapter, ImageKind, Message, Story, StoryConfig, StoryFormat

from services.studio.app.artwork.engine import (
    create_safe_image_prompt,
    generate_chapter_banner,
    generate_cover_image,
)
from services.studio.app.blueprint.engine import generate_story_architecture
from services.studio.app.concept.engine import analyze_story_concept
from services.studio.app.narration.engine import narrate_chapter
from services.studio.app.prose.engine import build_prose_prompt, generate_advice, generate_prose
from services.studio.app.prose.prompts import ADVICE_INSTRUCTION
from tests.utils.providers import StubProvider, install_stub, make_config


pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture
def anyio_backend():
    return "asyncio"


def _story_config(**overrides) -> StoryConfig:
    values = {"spark": "A lighthouse keeper hears the sea speak", "title": "The Lantern Keeper", "chapter_count": 3}
    values.update(overrides)
    return StoryConfig(**values)


async def test_concept_analysis_parses_fenced_json(monkeypatch) -> None:
    stub = StubProvider(
        ['```json\n{"title": "Salt Choir", "tone": "Eerie", "recommendedChapters": 7, "recommendedFormat": "Screenplay"}\n```'],
        cost=0.42,
    )
    install_stub(monkeypatch, stub)

    result = await analyze_story_concept("A lighthouse keeper hears the sea speak", make_config())

    assert result.analysis.title == "Salt Choir"
    assert result.analysis.recommended_format is StoryFormat.SCREENPLAY
    assert result.cost == 0.42
    request = stub.requests[0]
    assert request.json_mode is True
    assert "A lighthouse keeper hears the sea speak" in request.prompt


async def test_concept_analysis_rejects_incomplete_payload(monkeypatch) -> None:
    install_stub(monkeypatch, StubProvider([{"tone": "Eerie"}]))
    with pytest.raises(ProviderResponseError):
        await analyze_story_concept("spark", make_config())


async def test_blueprint_renumbers_chapters_and_clears_content(monkeypatch) -> None:
    payload = {
        "characters": [{"name": "Mara", "role": "Keeper", "trait": "Stubborn"}],
        "locations": [{"name": "The Rock", "description": "A lonely lighthouse"}],
        "toc": [
            {"chapter": 4, "title": "First Light", "summary": "Mara hears a voice", "content": "leaked"},
            {"chapter": 4, "title": "Low Tide", "summary": "The sea answers"},
        ],
    }
    stub = StubProvider([payload])
    install_stub(monkeypatch, stub)

    result = await generate_story_architecture(_story_config(format=StoryFormat.NOVEL), make_config())

    assert [chapter.chapter for chapter in result.blueprint.toc] == [1, 2]
    assert all(chapter.content == "" for chapter in result.blueprint.toc)
    assert result.blueprint.characters[0].name == "Mara"
    assert result.cost == 1.5
    assert "3" in stub.requests[0].prompt


async def test_blueprint_without_chapters_is_rejected(monkeypatch) -> None:
    install_stub(monkeypatch, StubProvider([{"characters": [], "toc": []}]))
    with pytest.raises(ProviderResponseError):
        await generate_story_architecture(_story_config(), make_config())


def test_prose_prompt_uses_format_instruction() -> None:
    chapter = Chapter(chapter=1, title="Cold Open", summary="A body on the beach", content="EXT. BEACH - NIGHT")
    prompt = build_prose_prompt(chapter, StoryFormat.SCREENPLAY, "write the discovery")
    assert "Current Chapter: Cold Open" in prompt
    assert "Write in standard Screenplay format." in prompt
    assert "Instruction: write the discovery" in prompt
    assert "Write standard prose." in build_prose_prompt(chapter, StoryFormat.NOVEL, "go")


async def test_prose_forwards_history(monkeypatch) -> None:
    stub = StubProvider(["The tide rolled in."])
    install_stub(monkeypatch, stub)
    chapter = Chapter(chapter=1, title="Tide")
    history = [Message.from_model("Shall we start?"), Message.from_user("write the opening")]

    result = await generate_prose(history, chapter, StoryFormat.NOVEL, "write the opening", make_config())

    assert result.text == "The tide rolled in."
    assert [(turn.role, turn.text) for turn in stub.requests[0].history] == [
        ("model", "Shall we start?"),
        ("user", "write the opening"),
    ]


async def test_advice_uses_advice_instruction(monkeypatch) -> None:
    stub = StubProvider(["Try opening with the storm."])
    install_stub(monkeypatch, stub)
    chapter = Chapter(chapter=1, title="Tide", content="x" * 80)

    result = await generate_advice([], chapter, StoryFormat.NOVEL, make_config())

    assert result.text == "Try opening with the storm."
    assert ADVICE_INSTRUCTION in stub.requests[0].prompt


async def test_art_director_falls_back_when_unavailable() -> None:
    description = await create_safe_image_prompt("context", ImageKind.COVER, "Wistful", make_config())
    assert description == "Atmospheric Wistful art, abstract style"


async def test_art_director_empty_reply(monkeypatch) -> None:
    from gerertales_providers import factory

    monkeypatch.setitem(factory.PROVIDER_MAP, Provider.XAI, lambda config, model: StubProvider(["   "]))
    description = await create_safe_image_prompt("context", ImageKind.SCENE, "Dark", make_config())
    assert description == "Atmospheric abstract art"


async def test_cover_and_banner_use_mock_images() -> None:
    story = Story(title="Lantern", spark="spark", tone="Wistful", toc=[Chapter(chapter=1, title="One")])
    config = make_config()

    cover = await generate_cover_image(story, config)
    banner = await generate_chapter_banner(story, story.toc[0], config)

    assert cover.ok and cover.cost == 20.0
    assert banner.ok and banner.url.startswith("data:image/")


async def test_narration_skips_empty_chapters() -> None:
    result = await narrate_chapter(Chapter(chapter=1, title="Blank"), make_config())
    assert not result.ok
    assert result.cost == 0


async def test_narration_with_mock_voice() -> None:
    result = await narrate_chapter(Chapter(chapter=1, title="Said", content="Hello there."), make_config())
    assert result.ok
    assert result.mime_type == "audio/wav"
    assert result.cost == 0.12


async def test_generation_requires_configured_provider() -> None:
    config = make_config(text_model="gemini-1.5-pro")
    with pytest.raises(ProviderNotConfiguredError):
        await analyze_story_concept("spark", config)
