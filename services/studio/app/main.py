"""HTTP API for the GererTales writing studio."""
from __future__ import annotations

import logging
import os
from functools import lru_cache
from typing import AsyncIterator, Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from google.genai import errors as genai_errors
from openai import OpenAIError
from psycopg_pool import ConnectionPool

from gerertales_billing import (
    CreditLedger,
    InsufficientCreditsError,
    LocalLedger,
    PostgresLedger,
    ProfileNotFoundError,
)
from gerertales_observability import log_context, setup_fastapi_metrics, setup_logging
from gerertales_providers import FEATURE_COSTS, ResolvedConfig
from gerertales_providers.exceptions import (
    LocalEngineError,
    ModelNotFoundError,
    ProviderNotConfiguredError,
    ProviderResponseError,
    ProviderUnavailableError,
)
from gerertales_schemas import ChapterNotFoundError, Story, UserProfile
from gerertales_storage import (
    BackupFormatError,
    ExportError,
    LocalJSONStore,
    PostgresStore,
    StoryNotFoundError,
    StoryRepository,
    backup_filename,
    chapter_filename,
    chapter_to_markdown,
    chapter_to_text,
    export_backup,
    import_backup,
    story_filename,
    story_to_markdown,
    story_to_pdf,
    story_to_text,
)

from .models import (
    BlueprintRequest,
    BlueprintResponse,
    ChapterContentUpdate,
    ConceptRequest,
    ConceptResponse,
    CreateStoryRequest,
    FeatureCostsResponse,
    ImageResponse,
    MessageRequest,
    NarrationRequest,
    ProfileResponse,
    ProfileUpdate,
    PublishRequest,
    SelectChapterRequest,
    SessionResponse,
    SettingsPayload,
    StorySummary,
)
from .providers import resolve_for_profile
from .session import (
    CoWriterSession,
    NoActiveStoryError,
    SessionBusyError,
    SessionRegistry,
    ensure_story_owner,
)

STORAGE_BACKEND = os.getenv("GERERTALES_STORAGE", "local").strip().lower()
DATABASE_URL = os.getenv("DATABASE_URL")
if STORAGE_BACKEND == "postgres" and not DATABASE_URL:
    raise RuntimeError("DATABASE_URL environment variable is required when GERERTALES_STORAGE=postgres")

ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("GERERTALES_ALLOWED_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

PROFILE_HEADER = "X-Profile-Id"

SERVICE_NAME = "studio"
setup_logging(SERVICE_NAME)
logger = logging.getLogger(__name__)

app = FastAPI(title="GererTales Studio", version="0.1.0")
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_fastapi_metrics(app, SERVICE_NAME)

SESSIONS = SessionRegistry(max_stories=int(os.getenv("GERERTALES_MAX_SESSIONS", "256")))

ERROR_STATUS: dict[type[Exception], int] = {
    InsufficientCreditsError: status.HTTP_402_PAYMENT_REQUIRED,
    ProviderNotConfiguredError: status.HTTP_503_SERVICE_UNAVAILABLE,
    LocalEngineError: status.HTTP_503_SERVICE_UNAVAILABLE,
    ProviderResponseError: status.HTTP_502_BAD_GATEWAY,
    ModelNotFoundError: status.HTTP_502_BAD_GATEWAY,
    ProviderUnavailableError: status.HTTP_502_BAD_GATEWAY,
    OpenAIError: status.HTTP_502_BAD_GATEWAY,
    genai_errors.APIError: status.HTTP_502_BAD_GATEWAY,
    StoryNotFoundError: status.HTTP_404_NOT_FOUND,
    ProfileNotFoundError: status.HTTP_404_NOT_FOUND,
    BackupFormatError: status.HTTP_400_BAD_REQUEST,
    ExportError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    SessionBusyError: status.HTTP_409_CONFLICT,
    NoActiveStoryError: status.HTTP_409_CONFLICT,
    ChapterNotFoundError: status.HTTP_404_NOT_FOUND,
}


def _register_error_handler(error_type: type[Exception], status_code: int) -> None:
    async def _handler(request: Request, exc: Exception) -> JSONResponse:
        if status_code >= 500:
            logger.error("Request failed", extra={"route": request.url.path, "error": str(exc)})
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    app.add_exception_handler(error_type, _handler)


for _error_type, _status_code in ERROR_STATUS.items():
    _register_error_handler(_error_type, _status_code)


@lru_cache(maxsize=1)
def get_pool() -> ConnectionPool:
    # psycopg connection URLs do not use SQLAlchemy's driver suffix.
    conninfo = (DATABASE_URL or "").replace("+psycopg", "")
    return ConnectionPool(conninfo, min_size=1, max_size=10, open=True)


@lru_cache(maxsize=1)
def get_repository() -> StoryRepository:
    if STORAGE_BACKEND == "postgres":
        store = PostgresStore(get_pool())
        store.ensure_schema()
        return store
    return LocalJSONStore()


async def get_profile(
    repository: StoryRepository = Depends(get_repository),
    profile_id: Optional[str] = Header(None, alias=PROFILE_HEADER),
) -> UserProfile:
    if isinstance(repository, PostgresStore):
        if not profile_id:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
        profile = await run_in_threadpool(repository.get_profile, profile_id)
        if profile is None:
            profile = await run_in_threadpool(repository.save_profile, UserProfile(id=profile_id))
            logger.info("Profile created", extra={"profile_id": profile_id})
        return profile
    return await run_in_threadpool(repository.get_profile)


async def get_ledger(
    profile: UserProfile = Depends(get_profile),
    repository: StoryRepository = Depends(get_repository),
) -> CreditLedger:
    if isinstance(repository, PostgresStore):
        return PostgresLedger(get_pool(), profile.id)
    return LocalLedger(profile, persist=repository.save_profile)


async def get_provider_config(
    profile: UserProfile = Depends(get_profile),
    repository: StoryRepository = Depends(get_repository),
) -> AsyncIterator[ResolvedConfig]:
    settings = await run_in_threadpool(repository.get_settings)
    config = resolve_for_profile(profile, settings)
    try:
        yield config
    finally:
        await config.aclose()


async def get_session(
    repository: StoryRepository = Depends(get_repository),
    ledger: CreditLedger = Depends(get_ledger),
    config: ResolvedConfig = Depends(get_provider_config),
    profile: UserProfile = Depends(get_profile),
) -> CoWriterSession:
    return CoWriterSession(
        repository=repository,
        ledger=ledger,
        config=config,
        profile=profile,
        registry=SESSIONS,
    )


async def _session_response(session: CoWriterSession) -> SessionResponse:
    return SessionResponse(story=session.story, messages=session.messages, credits=await session.balance())


async def _image_response(session: CoWriterSession, result) -> ImageResponse:
    return ImageResponse(url=result.url, cost=result.cost, credits=await session.balance())


def _attachment(content: bytes | str, filename: str, media_type: str) -> Response:
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "storage": STORAGE_BACKEND}


@app.get("/costs", response_model=FeatureCostsResponse)
async def feature_costs() -> FeatureCostsResponse:
    return FeatureCostsResponse(costs=dict(FEATURE_COSTS))


@app.get("/profile", response_model=ProfileResponse)
async def read_profile(profile: UserProfile = Depends(get_profile)) -> ProfileResponse:
    return ProfileResponse(profile=profile)


@app.put("/profile", response_model=ProfileResponse)
async def update_profile(
    payload: ProfileUpdate,
    profile: UserProfile = Depends(get_profile),
    repository: StoryRepository = Depends(get_repository),
) -> ProfileResponse:
    updated = profile.model_copy(update=payload.model_dump(exclude_unset=True, exclude_none=True))
    await run_in_threadpool(repository.save_profile, updated)
    return ProfileResponse(profile=updated)


async def require_settings_access(
    profile: UserProfile = Depends(get_profile),
    repository: StoryRepository = Depends(get_repository),
) -> UserProfile:
    # Shared deployments keep one settings row holding provider keys; only admins touch it.
    if isinstance(repository, PostgresStore) and not profile.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return profile


@app.get("/settings", response_model=SettingsPayload)
async def read_settings(
    repository: StoryRepository = Depends(get_repository),
    _: UserProfile = Depends(require_settings_access),
) -> SettingsPayload:
    return SettingsPayload(settings=await run_in_threadpool(repository.get_settings))


@app.put("/settings", response_model=SettingsPayload)
async def save_settings(
    payload: SettingsPayload,
    repository: StoryRepository = Depends(get_repository),
    _: UserProfile = Depends(require_settings_access),
) -> SettingsPayload:
    saved = await run_in_threadpool(repository.save_settings, payload.settings)
    logger.info("Settings saved", extra={"model": saved.text_model})
    return SettingsPayload(settings=saved)


@app.post("/concepts", response_model=ConceptResponse)
async def analyze_concept(
    payload: ConceptRequest,
    session: CoWriterSession = Depends(get_session),
) -> ConceptResponse:
    analysis, cost = await session.analyze_concept(payload.spark)
    return ConceptResponse(analysis=analysis, cost=cost, credits=await session.balance())


@app.post("/blueprints", response_model=BlueprintResponse)
async def create_blueprint(
    payload: BlueprintRequest,
    session: CoWriterSession = Depends(get_session),
) -> BlueprintResponse:
    blueprint, cost = await session.generate_blueprint(payload.config)
    return BlueprintResponse(blueprint=blueprint, cost=cost, credits=await session.balance())


@app.get("/stories", response_model=list[StorySummary])
async def list_stories(
    profile: UserProfile = Depends(get_profile),
    repository: StoryRepository = Depends(get_repository),
) -> list[StorySummary]:
    owner_id = profile.id if isinstance(repository, PostgresStore) else None
    stories = await run_in_threadpool(repository.list_stories, owner_id)
    return [StorySummary.from_story(story) for story in stories]


@app.post("/stories", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def create_story(
    payload: CreateStoryRequest,
    session: CoWriterSession = Depends(get_session),
) -> SessionResponse:
    await session.create_story(payload.config, payload.blueprint)
    return await _session_response(session)


@app.post("/stories/import", response_model=StorySummary, status_code=status.HTTP_201_CREATED)
async def import_story(
    request: Request,
    profile: UserProfile = Depends(get_profile),
    repository: StoryRepository = Depends(get_repository),
) -> StorySummary:
    body = await request.body()
    owner = profile if isinstance(repository, PostgresStore) else None
    story = import_backup(body, owner)
    await run_in_threadpool(repository.save_story, story)
    return StorySummary.from_story(story)


@app.get("/stories/{story_id}", response_model=SessionResponse)
async def open_story(story_id: str, session: CoWriterSession = Depends(get_session)) -> SessionResponse:
    await session.open_story(story_id)
    return await _session_response(session)


@app.delete("/stories/{story_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_story(story_id: str, session: CoWriterSession = Depends(get_session)) -> Response:
    await session.delete_story(story_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@app.post("/stories/{story_id}/messages", response_model=SessionResponse)
async def send_message(
    story_id: str,
    payload: MessageRequest,
    session: CoWriterSession = Depends(get_session),
) -> SessionResponse:
    await session.open_story(story_id)
    with log_context(story_id=story_id):
        await session.send_message(payload.text)
    return await _session_response(session)


@app.put("/stories/{story_id}/chapters/content", response_model=SessionResponse)
async def update_chapter_content(
    story_id: str,
    payload: ChapterContentUpdate,
    session: CoWriterSession = Depends(get_session),
) -> SessionResponse:
    await session.open_story(story_id)
    await session.update_chapter_content(payload.content, payload.chapter_index)
    return await _session_response(session)


@app.post("/stories/{story_id}/chapters/select", response_model=SessionResponse)
async def select_chapter(
    story_id: str,
    payload: SelectChapterRequest,
    session: CoWriterSession = Depends(get_session),
) -> SessionResponse:
    await session.open_story(story_id)
    await session.select_chapter(payload.index)
    return await _session_response(session)


@app.post("/stories/{story_id}/publish", response_model=SessionResponse)
async def publish_story(
    story_id: str,
    payload: PublishRequest,
    session: CoWriterSession = Depends(get_session),
) -> SessionResponse:
    await session.open_story(story_id)
    await session.set_published(payload.is_public)
    return await _session_response(session)


@app.post("/stories/{story_id}/cover", response_model=ImageResponse)
async def regenerate_cover(story_id: str, session: CoWriterSession = Depends(get_session)) -> ImageResponse:
    await session.open_story(story_id)
    result = await session.regenerate_cover()
    return await _image_response(session, result)


@app.post("/stories/{story_id}/chapters/{chapter_index}/banner", response_model=ImageResponse)
async def generate_banner(
    story_id: str,
    chapter_index: int,
    session: CoWriterSession = Depends(get_session),
) -> ImageResponse:
    await session.open_story(story_id)
    result = await session.generate_banner(chapter_index)
    return await _image_response(session, result)


@app.post("/stories/{story_id}/narration")
async def narrate(
    story_id: str,
    payload: NarrationRequest,
    session: CoWriterSession = Depends(get_session),
) -> Response:
    await session.open_story(story_id)
    result = await session.narrate_chapter(payload.chapter_index, payload.voice_name)
    if not result.ok:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="No audio was generated")
    return Response(
        content=result.audio,
        media_type=result.mime_type,
        headers={"X-Credits-Cost": f"{result.cost:.2f}"},
    )


async def _owned_story(repository: StoryRepository, story_id: str, profile: UserProfile) -> Story:
    story = await run_in_threadpool(repository.get_story, story_id)
    return ensure_story_owner(story, profile)


@app.get("/stories/{story_id}/export/{export_format}")
async def export_story(
    story_id: str,
    export_format: str,
    repository: StoryRepository = Depends(get_repository),
    profile: UserProfile = Depends(get_profile),
) -> Response:
    story = await _owned_story(repository, story_id, profile)
    if export_format == "txt":
        return _attachment(story_to_text(story), story_filename(story, "txt"), "text/plain")
    if export_format == "md":
        return _attachment(story_to_markdown(story), story_filename(story, "md"), "text/markdown")
    if export_format == "pdf":
        content = await run_in_threadpool(story_to_pdf, story)
        return _attachment(content, story_filename(story, "pdf"), "application/pdf")
    if export_format == "gtale":
        return _attachment(export_backup(story), backup_filename(story), "application/json")
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported export format: {export_format}")


@app.get("/stories/{story_id}/chapters/{chapter_index}/export/{export_format}")
async def export_chapter(
    story_id: str,
    chapter_index: int,
    export_format: str,
    repository: StoryRepository = Depends(get_repository),
    profile: UserProfile = Depends(get_profile),
) -> Response:
    story = await _owned_story(repository, story_id, profile)
    chapter = story.chapter_at(chapter_index)
    if export_format == "txt":
        return _attachment(chapter_to_text(chapter), chapter_filename(chapter, "txt"), "text/plain")
    if export_format == "md":
        return _attachment(chapter_to_markdown(chapter), chapter_filename(chapter, "md"), "text/markdown")
    raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Unsupported export format: {export_format}")
