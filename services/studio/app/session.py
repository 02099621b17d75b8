"""Co-writing session: story lifecycle, chat turns and credit gating.

Every paid operation follows the same order: check the balance is positive,
call the provider, debit the ledger with the actual cost, and only then
apply the result to the story. A failed debit leaves the story untouched.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import List, Optional

from fastapi.concurrency import run_in_threadpool

from gerertales_billing import CreditLedger, InsufficientCreditsError
from gerertales_observability import log_context
from gerertales_providers import ImageResult, ResolvedConfig, SpeechResult
from gerertales_schemas import (
    ConceptAnalysis,
    Message,
    Story,
    StoryBlueprint,
    StoryConfig,
    UserProfile,
)
from gerertales_storage import StoryNotFoundError, StoryRepository

from .artwork.engine import generate_chapter_banner, generate_cover_image
from .blueprint.engine import generate_story_architecture
from .concept.engine import analyze_story_concept
from .narration.engine import narrate_chapter
from .prose.engine import generate_advice, generate_prose
from .providers import PROVIDER_CALL_ERRORS

logger = logging.getLogger(__name__)

PROSE_TRIGGER = "write"
SHORT_DRAFT_CHARS = 50
DEFAULT_MAX_SESSIONS = 256

PROSE_REPLY = "I've added that to the draft. How does it feel?"
MUSE_ERROR_REPLY = "I'm having trouble connecting to the muse right now."
OUT_OF_CREDITS_REPLY = "You have run out of credits. Please add more in Settings to continue."

FEATURE_IDEA_ANALYSIS = "Idea Analysis"
FEATURE_BLUEPRINT = "Blueprint Generation"
FEATURE_COVER = "Cover Image"
FEATURE_COVER_REGENERATION = "Cover Regeneration"
FEATURE_PROSE = "Prose Generation"
FEATURE_CHAT = "Chat"
FEATURE_BANNER = "Chapter Banner"
FEATURE_NARRATION = "Narration"


class SessionBusyError(RuntimeError):
    """Raised when a chat turn arrives while another is still running."""


class NoActiveStoryError(RuntimeError):
    """Raised when a story operation runs before a story is opened."""


@dataclass
class SessionState:
    """Transient per-story chat state."""

    messages: List[Message] = field(default_factory=list)
    is_ai_processing: bool = False


class SessionRegistry:
    """In-process chat state keyed by story id.

    Holds at most ``max_stories`` conversations; the least recently used idle
    one is dropped first. A state with a turn in flight is never evicted.
    """

    def __init__(self, max_stories: int = DEFAULT_MAX_SESSIONS) -> None:
        if max_stories < 1:
            raise ValueError("max_stories must be at least 1")
        self.max_stories = max_stories
        self._states: "OrderedDict[str, SessionState]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, story_id: object) -> bool:
        return story_id in self._states

    def state_for(self, story_id: str) -> SessionState:
        state = self._states.get(story_id)
        if state is None:
            return self._store(story_id, SessionState())
        self._states.move_to_end(story_id)
        return state

    def reset(self, story_id: str) -> SessionState:
        return self._store(story_id, SessionState())

    def _store(self, story_id: str, state: SessionState) -> SessionState:
        self._states[story_id] = state
        self._states.move_to_end(story_id)
        self._evict(keep=story_id)
        return state

    def _evict(self, keep: str) -> None:
        idle = [
            key for key, state in self._states.items() if key != keep and not state.is_ai_processing
        ]
        for key in idle[: max(len(self._states) - self.max_stories, 0)]:
            del self._states[key]
            logger.debug("Chat state evicted", extra={"story_id": key})

    def discard(self, story_id: str) -> None:
        self._states.pop(story_id, None)


def is_prose_request(text: str, chapter_content: str) -> bool:
    """Whether a chat turn should write into the draft rather than advise."""

    return PROSE_TRIGGER in text.lower() or len(chapter_content) < SHORT_DRAFT_CHARS


def append_prose(existing: str, prose: str) -> str:
    return f"{existing}\n\n{prose}" if existing else prose


def ensure_story_owner(story: Story, profile: UserProfile) -> Story:
    """Hide stories owned by another profile behind :class:`StoryNotFoundError`.

    The local guest profile has no id and owns every story in its store.
    """

    if profile.id and story.owner_id and story.owner_id != profile.id:
        raise StoryNotFoundError(story.id)
    return story


class CoWriterSession:
    """One writer working on at most one active story."""

    def __init__(
        self,
        *,
        repository: StoryRepository,
        ledger: CreditLedger,
        config: ResolvedConfig,
        profile: UserProfile,
        registry: SessionRegistry | None = None,
    ) -> None:
        self._repository = repository
        self._ledger = ledger
        self._config = config
        self._profile = profile
        self._registry = registry or SessionRegistry()
        self._story: Optional[Story] = None
        self._state = SessionState()

    @property
    def story(self) -> Optional[Story]:
        return self._story

    @property
    def messages(self) -> List[Message]:
        return self._state.messages

    @property
    def is_ai_processing(self) -> bool:
        return self._state.is_ai_processing

    @property
    def profile(self) -> UserProfile:
        return self._profile

    def _require_story(self) -> Story:
        if self._story is None:
            raise NoActiveStoryError("No story is open in this session")
        return self._story

    async def balance(self) -> float:
        return await run_in_threadpool(self._ledger.balance)

    async def _ensure_credits(self) -> None:
        await run_in_threadpool(self._ledger.ensure_available)

    async def _debit(self, amount: float, feature: str) -> float:
        return await run_in_threadpool(self._ledger.debit, amount, feature)

    async def _save(self, story: Story) -> Story:
        return await run_in_threadpool(self._repository.save_story, story)

    # Planning -------------------------------------------------------------

    async def analyze_concept(self, spark: str) -> tuple[ConceptAnalysis, float]:
        await self._ensure_credits()
        with log_context(feature=FEATURE_IDEA_ANALYSIS, profile_id=self._profile.id):
            result = await analyze_story_concept(spark, self._config)
            await self._debit(result.cost, FEATURE_IDEA_ANALYSIS)
        return result.analysis, result.cost

    async def generate_blueprint(self, story_config: StoryConfig) -> tuple[StoryBlueprint, float]:
        await self._ensure_credits()
        with log_context(feature=FEATURE_BLUEPRINT, profile_id=self._profile.id):
            result = await generate_story_architecture(story_config, self._config)
            await self._debit(result.cost, FEATURE_BLUEPRINT)
        return result.blueprint, result.cost

    # Story lifecycle ------------------------------------------------------

    async def create_story(self, story_config: StoryConfig, blueprint: StoryBlueprint) -> Story:
        """Persist a new story from a confirmed blueprint, then paint its cover."""

        story = Story(
            owner_id=self._profile.id,
            owner_name=self._profile.name,
            title=story_config.title,
            spark=story_config.spark,
            tone=story_config.tone,
            format=story_config.format,
            active_chapter_index=0,
            characters=[character.model_copy() for character in blueprint.characters],
            locations=[location.model_copy() for location in blueprint.locations],
            toc=[chapter.model_copy() for chapter in blueprint.toc],
        )
        await self._save(story)
        self._story = story
        self._state = self._registry.reset(story.id)
        self._state.messages.append(
            Message.from_model(
                f'I\'ve initialized the {story_config.format.value} blueprint for "{story_config.title}". '
                "Shall we start?"
            )
        )
        logger.info("Story created", extra={"story_id": story.id, "chapter_count": len(story.toc)})

        with log_context(story_id=story.id, feature=FEATURE_COVER):
            await self._apply_cover(story, FEATURE_COVER)
        return story

    async def _apply_cover(self, story: Story, feature: str) -> ImageResult:
        result = await generate_cover_image(story, self._config)
        if not result.ok:
            return result
        try:
            await self._debit(result.cost, feature)
        except InsufficientCreditsError:
            logger.warning("Cover discarded, balance could not cover it", extra={"story_id": story.id})
            return ImageResult(url=None, cost=0.0)
        story.cover_image = result.url
        story.touch()
        await self._save(story)
        return result

    async def open_story(self, story_id: str) -> Story:
        story = await run_in_threadpool(self._repository.get_story, story_id)
        ensure_story_owner(story, self._profile)
        self._story = story
        self._state = self._registry.state_for(story.id)
        if not self._state.messages:
            self._state.messages.append(
                Message.from_model(
                    f'Welcome back to "{story.title}". '
                    f"We are currently at Chapter {story.active_chapter_index + 1}."
                )
            )
        return story

    async def delete_story(self, story_id: Optional[str] = None) -> None:
        target = story_id or self._require_story().id
        await run_in_threadpool(self._repository.delete_story, target, self._profile.id)
        self._registry.discard(target)
        if self._story is not None and self._story.id == target:
            self._story = None
            self._state = SessionState()

    async def select_chapter(self, index: int) -> Story:
        story = self._require_story()
        story.select_chapter(index)
        await self._save(story)
        return story

    async def update_chapter_content(self, content: str, chapter_index: Optional[int] = None) -> Story:
        story = self._require_story()
        index = story.active_chapter_index if chapter_index is None else chapter_index
        story.set_chapter_content(index, content)
        await self._save(story)
        return story

    async def set_published(self, is_public: bool) -> Story:
        story = self._require_story()
        story.is_public = is_public
        story.touch()
        if is_public:
            story.published_at = story.last_modified
        await self._save(story)
        return story

    # Chat -----------------------------------------------------------------

    async def send_message(self, text: str) -> Message:
        """Handle one chat turn and return the co-writer's reply.

        Raises:
            SessionBusyError: If another turn is still in flight.
            InsufficientCreditsError: If the balance is exhausted.
        """

        story = self._require_story()
        if self._state.is_ai_processing:
            raise SessionBusyError("The co-writer is still working on the previous message")

        self._state.messages.append(Message.from_user(text))
        self._state.is_ai_processing = True
        try:
            try:
                await self._ensure_credits()
            except InsufficientCreditsError:
                self._state.messages.append(Message.from_model(OUT_OF_CREDITS_REPLY))
                raise
            with log_context(story_id=story.id, chapter_index=story.active_chapter_index):
                reply = await self._respond(story, text)
        finally:
            self._state.is_ai_processing = False
        self._state.messages.append(reply)
        return reply

    async def _respond(self, story: Story, text: str) -> Message:
        chapter = story.active_chapter
        if chapter is None:
            raise NoActiveStoryError("The story has no chapters to write into")
        history = list(self._state.messages)

        try:
            if is_prose_request(text, chapter.content):
                result = await generate_prose(history, chapter, story.format, text, self._config)
                await self._debit(result.cost, FEATURE_PROSE)
                story.set_chapter_content(story.active_chapter_index, append_prose(chapter.content, result.text))
                await self._save(story)
                return Message.from_model(PROSE_REPLY)

            result = await generate_advice(history, chapter, story.format, self._config)
            await self._debit(result.cost, FEATURE_CHAT)
            return Message.from_model(result.text)
        except PROVIDER_CALL_ERRORS as exc:
            logger.warning("Co-writer provider call failed", extra={"error": str(exc)})
            return Message.from_model(MUSE_ERROR_REPLY)

    # Artwork and narration -----------------------------------------------

    async def regenerate_cover(self) -> ImageResult:
        story = self._require_story()
        await self._ensure_credits()
        with log_context(story_id=story.id, feature=FEATURE_COVER_REGENERATION):
            return await self._apply_cover(story, FEATURE_COVER_REGENERATION)

    async def generate_banner(self, chapter_index: int) -> ImageResult:
        story = self._require_story()
        chapter = story.chapter_at(chapter_index)
        await self._ensure_credits()
        with log_context(story_id=story.id, chapter_index=chapter_index, feature=FEATURE_BANNER):
            result = await generate_chapter_banner(story, chapter, self._config)
            if not result.ok:
                return result
            await self._debit(result.cost, FEATURE_BANNER)
            chapter.banner_image = result.url
            story.touch()
            await self._save(story)
        return result

    async def narrate_chapter(
        self,
        chapter_index: Optional[int] = None,
        voice_name: Optional[str] = None,
    ) -> SpeechResult:
        story = self._require_story()
        index = story.active_chapter_index if chapter_index is None else chapter_index
        chapter = story.chapter_at(index)
        await self._ensure_credits()
        with log_context(story_id=story.id, chapter_index=index, feature=FEATURE_NARRATION):
            result = await narrate_chapter(chapter, self._config, voice_name)
            if result.ok:
                await self._debit(result.cost, FEATURE_NARRATION)
        return result
