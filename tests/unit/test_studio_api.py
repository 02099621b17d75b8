"""HTTP tests for the studio API using local storage and stub providers."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from google.genai import errors as genai_errors

from gerertales_providers import ProviderUnavailableError
from gerertales_schemas import UserProfile
from gerertales_storage import LocalJSONStore, PostgresStore

from services.studio.app import main
from tests.utils.postgres import FakePool
from tests.utils.providers import StubProvider, install_stub, make_config

BLUEPRINT_PAYLOAD = {
    "characters": [{"name": "Mara", "role": "Keeper", "trait": "Stubborn"}],
    "locations": [{"name": "The Rock", "description": "A lonely lighthouse"}],
    "toc": [
        {"title": "First Light", "summary": "Mara hears a voice"},
        {"title": "Low Tide", "summary": "The sea answers"},
    ],
}

STORY_CONFIG = {
    "spark": "A lighthouse keeper hears the sea speak",
    "title": "The Lantern Keeper",
    "tone": "Wistful",
    "format": "Novel",
    "chapterCount": 2,
}


@pytest.fixture
def repository(tmp_path) -> LocalJSONStore:
    return LocalJSONStore(tmp_path)


@pytest.fixture
def client(repository):
    main.app.dependency_overrides[main.get_repository] = lambda: repository
    main.app.dependency_overrides[main.get_provider_config] = lambda: make_config()
    with TestClient(main.app) as test_client:
        yield test_client
    main.app.dependency_overrides.clear()


def _create_story(client: TestClient) -> dict:
    blueprint = client.post("/blueprints", json={"config": STORY_CONFIG})
    assert blueprint.status_code == 200
    created = client.post(
        "/stories",
        json={"config": STORY_CONFIG, "blueprint": blueprint.json()["blueprint"]},
    )
    assert created.status_code == 201
    return created.json()


def test_health_and_costs(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok", "storage": "local"}
    costs = client.get("/costs").json()["costs"]
    assert costs["image_cover"] == 25
    assert costs["writing_chat"] == 1


def test_concept_analysis_debits_guest_profile(client: TestClient) -> None:
    response = client.post("/concepts", json={"spark": "A lighthouse keeper hears the sea speak"})
    assert response.status_code == 200
    body = response.json()
    assert body["analysis"]["title"] == "The Lantern Keeper"
    assert body["analysis"]["recommendedChapters"] == 5
    assert body["credits"] == pytest.approx(50 - body["cost"])
    assert client.get("/profile").json()["profile"]["credits"] == body["credits"]


def test_spark_word_limit(client: TestClient) -> None:
    response = client.post("/concepts", json={"spark": "word " * 501})
    assert response.status_code == 422


def test_story_workflow(client: TestClient, monkeypatch) -> None:
    install_stub(monkeypatch, StubProvider([BLUEPRINT_PAYLOAD, "The lamp woke."], cost=1.5))

    session = _create_story(client)
    story = session["story"]
    assert [chapter["chapter"] for chapter in story["toc"]] == [1, 2]
    assert story["coverImage"].startswith("data:image/")
    assert session["messages"][0]["role"] == "model"
    assert session["credits"] == 28.5

    summaries = client.get("/stories").json()
    assert summaries[0]["id"] == story["id"]
    assert summaries[0]["chapter_count"] == 2

    chat = client.post(f"/stories/{story['id']}/messages", json={"text": "write the opening"})
    assert chat.status_code == 200
    assert chat.json()["story"]["toc"][0]["content"] == "The lamp woke."
    assert chat.json()["messages"][-1]["text"] == "I've added that to the draft. How does it feel?"

    narration = client.post(f"/stories/{story['id']}/narration", json={})
    assert narration.status_code == 200
    assert narration.headers["content-type"] == "audio/wav"
    assert narration.headers["x-credits-cost"] == "0.14"

    selected = client.post(f"/stories/{story['id']}/chapters/select", json={"index": 1})
    assert selected.json()["story"]["activeChapterIndex"] == 1

    published = client.post(f"/stories/{story['id']}/publish", json={"is_public": True})
    assert published.json()["story"]["isPublic"] is True

    deleted = client.delete(f"/stories/{story['id']}")
    assert deleted.status_code == 204
    assert client.get(f"/stories/{story['id']}").status_code == 404


def test_exports_and_import(client: TestClient, monkeypatch) -> None:
    install_stub(monkeypatch, StubProvider([BLUEPRINT_PAYLOAD]))
    story = _create_story(client)["story"]
    client.put(
        f"/stories/{story['id']}/chapters/content",
        json={"content": "The lamp woke at dusk.", "chapter_index": 0},
    )

    text = client.get(f"/stories/{story['id']}/export/txt")
    assert text.headers["content-disposition"] == 'attachment; filename="The_Lantern_Keeper.txt"'
    assert text.text.startswith("Chapter 1: First Light\n\nThe lamp woke at dusk.")

    chapter = client.get(f"/stories/{story['id']}/chapters/0/export/md")
    assert chapter.text == "# Chapter 1: First Light\n\nThe lamp woke at dusk."

    assert client.get(f"/stories/{story['id']}/export/pdf").content.startswith(b"%PDF")
    assert client.get(f"/stories/{story['id']}/export/docx").status_code == 400
    assert client.get(f"/stories/{story['id']}/chapters/9/export/txt").status_code == 404

    backup = client.get(f"/stories/{story['id']}/export/gtale")
    imported = client.post("/stories/import", content=backup.content)
    assert imported.status_code == 201
    assert imported.json()["title"] == "The Lantern Keeper (Imported)"
    assert imported.json()["id"] != story["id"]
    assert len(client.get("/stories").json()) == 2


def test_invalid_backup_is_rejected(client: TestClient) -> None:
    response = client.post("/stories/import", content=b"not a tale")
    assert response.status_code == 400
    assert "Failed to parse the tale file" in response.json()["detail"]


def test_empty_balance_returns_payment_required(client: TestClient, repository: LocalJSONStore) -> None:
    profile = repository.get_profile()
    repository.save_profile(profile.model_copy(update={"credits": 0}))

    response = client.post("/concepts", json={"spark": "A spark"})
    assert response.status_code == 402


def test_unconfigured_provider_returns_service_unavailable(client: TestClient) -> None:
    main.app.dependency_overrides[main.get_provider_config] = lambda: make_config(text_model="gemini-1.5-pro")
    response = client.post("/concepts", json={"spark": "A spark"})
    assert response.status_code == 503
    assert response.json()["detail"] == "Gemini provider not configured"


def test_busy_session_returns_conflict(client: TestClient, monkeypatch) -> None:
    install_stub(monkeypatch, StubProvider([BLUEPRINT_PAYLOAD]))
    story = _create_story(client)["story"]
    main.SESSIONS.state_for(story["id"]).is_ai_processing = True
    try:
        response = client.post(f"/stories/{story['id']}/messages", json={"text": "write"})
    finally:
        main.SESSIONS.discard(story["id"])
    assert response.status_code == 409


def test_settings_round_trip(client: TestClient) -> None:
    saved = client.put("/settings", json={"settings": {"textModel": "gemini-1.5-pro", "theme": "midnight"}})
    assert saved.status_code == 200
    settings = client.get("/settings").json()["settings"]
    assert settings["textModel"] == "gemini-1.5-pro"
    assert settings["theme"] == "midnight"


def test_profile_update(client: TestClient) -> None:
    updated = client.put("/profile", json={"name": "Ines", "bio": "Writes by the sea"})
    assert updated.json()["profile"]["name"] == "Ines"
    assert client.get("/profile").json()["profile"]["bio"] == "Writes by the sea"


@pytest.mark.parametrize(
    "error",
    [
        ProviderUnavailableError("gemini", "overloaded", 503),
        genai_errors.ServerError(503, {"error": {"code": 503, "message": "overloaded", "status": "UNAVAILABLE"}}),
    ],
)
def test_provider_outage_returns_bad_gateway(client: TestClient, monkeypatch, error) -> None:
    install_stub(monkeypatch, StubProvider([error]))
    response = client.post("/concepts", json={"spark": "A spark"})
    assert response.status_code == 502
    assert client.get("/profile").json()["profile"]["credits"] == 50


def test_other_profiles_cannot_reach_a_story(client: TestClient, monkeypatch) -> None:
    install_stub(monkeypatch, StubProvider([BLUEPRINT_PAYLOAD]))
    main.app.dependency_overrides[main.get_profile] = lambda: UserProfile(id="writer-1")
    story = _create_story(client)["story"]

    main.app.dependency_overrides[main.get_profile] = lambda: UserProfile(id="writer-2")
    assert client.get(f"/stories/{story['id']}").status_code == 404
    assert client.put(
        f"/stories/{story['id']}/chapters/content", json={"content": "defaced"}
    ).status_code == 404
    assert client.get(f"/stories/{story['id']}/export/gtale").status_code == 404
    assert client.get(f"/stories/{story['id']}/chapters/0/export/txt").status_code == 404

    main.app.dependency_overrides[main.get_profile] = lambda: UserProfile(id="writer-1")
    opened = client.get(f"/stories/{story['id']}").json()["story"]
    assert opened["toc"][0]["content"] == ""


def test_shared_settings_require_admin(client: TestClient) -> None:
    pool = FakePool()
    main.app.dependency_overrides[main.get_repository] = lambda: PostgresStore(pool)
    payload = {"settings": {"textModel": "gemini-1.5-pro"}}

    main.app.dependency_overrides[main.get_profile] = lambda: UserProfile(id="writer-2")
    assert client.put("/settings", json=payload).status_code == 403
    assert client.get("/settings").status_code == 403
    assert pool.conn.executed == []

    main.app.dependency_overrides[main.get_profile] = lambda: UserProfile(id="admin-1", is_admin=True)
    saved = client.put("/settings", json=payload)
    assert saved.status_code == 200
    assert saved.json()["settings"]["textModel"] == "gemini-1.5-pro"
    assert pool.conn.executed[0][0].startswith("INSERT INTO system_config")


def test_only_missing_chapters_map_to_not_found(client: TestClient, monkeypatch) -> None:
    assert IndexError not in main.ERROR_STATUS
    install_stub(monkeypatch, StubProvider([BLUEPRINT_PAYLOAD]))
    story = _create_story(client)["story"]

    response = client.post(f"/stories/{story['id']}/chapters/7/banner")
    assert response.status_code == 404
    assert response.json()["detail"] == "Chapter index 7 is out of range"
