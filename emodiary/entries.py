import logging
from datetime import datetime
from typing import Callable, List

from emodiary.errors import (
    DiaryError,
    DuplicateEntry,
    ExternalServiceFailure,
    Forbidden,
    InternalError,
    InvalidInput,
    NotFound,
)
from emodiary.models import AnalysisResult, EntryDraft, JournalEntry
from emodiary.storage import EntryStore
from emodiary.utils.dates import day_window, local_now

logger = logging.getLogger(__name__)


class EntryOrchestrator:
    """
    Owns the entry lifecycle: one analysed entry per user per calendar day,
    created here and later edited here.
    """

    def __init__(self, store: EntryStore, analysis_client, clock: Callable[[], datetime] = local_now):
        self.store = store
        self.analysis_client = analysis_client
        self.clock = clock

    async def _analyze(self, content: str) -> AnalysisResult:
        # The caller waits here until Gemini answers or the client gives up
        result = await self.analysis_client.analyze(content)
        if result is None or not result.emotion:
            raise ExternalServiceFailure("Sentiment analysis returned no emotion.", reason="incomplete_schema")
        return result

    @staticmethod
    def _check_content(draft: EntryDraft):
        if not draft.content or not draft.content.strip():
            raise InvalidInput("Diary content cannot be empty.")

    async def create(self, user_id: int, draft: EntryDraft) -> JournalEntry:
        logger.info(f"Creating entry for user {user_id}")

        now = self.clock()
        start_of_day, end_of_day = day_window(now)

        # 1. One entry per day
        if self.store.list_by_user_in_range(user_id, start_of_day, end_of_day):
            logger.warning(f"Second check-in of the day refused for user {user_id}")
            raise DuplicateEntry("Only one diary entry is allowed per day.")

        # 2. Content
        self._check_content(draft)

        try:
            # 3. Analysis, nothing is stored if it fails
            analysis = await self._analyze(draft.content)

            # 4. Build and persist
            entry = JournalEntry(
                user_id=user_id,
                content=draft.content,
                created_at=now,
                mood_rating=draft.mood_rating,
                stress_level=draft.stress_level,
                sleep_hours=draft.sleep_hours,
                main_worry=draft.main_worry,
                detected_emotion=analysis.emotion,
                intensity=analysis.intensity,
                summary=analysis.summary,
                keywords=analysis.keywords,
            )
            entry_id = self.store.insert(entry)
            saved = entry.model_copy(update={"id": entry_id})
        except DiaryError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error creating entry for user {user_id}: {e}", exc_info=True)
            raise InternalError(f"Internal error while processing the entry: {e}") from e

        logger.info(f"Entry saved - ID: {saved.id}, User: {user_id}, Emotion: {saved.detected_emotion}")
        return saved

    async def update(self, user_id: int, entry_id: int, draft: EntryDraft) -> JournalEntry:
        logger.info(f"Updating entry {entry_id} for user {user_id}")

        existing = self.store.get_by_id(entry_id)
        if existing is None:
            logger.warning(f"Entry {entry_id} not found")
            raise NotFound("Diary entry not found.")

        if existing.user_id != user_id:
            logger.warning(f"User {user_id} tried to edit entry {entry_id} owned by someone else")
            raise Forbidden("You are not allowed to edit this entry.")

        self._check_content(draft)

        # User-reported fields are always replaced; created_at and user_id never are
        changes = {
            "content": draft.content,
            "stress_level": draft.stress_level,
            "mood_rating": draft.mood_rating,
            "sleep_hours": draft.sleep_hours,
            "main_worry": draft.main_worry,
        }

        try:
            if existing.content != draft.content:
                logger.info("Content changed, re-analysing with Gemini...")
                analysis = await self._analyze(draft.content)
                changes.update(
                    detected_emotion=analysis.emotion,
                    intensity=analysis.intensity,
                    summary=analysis.summary,
                    keywords=analysis.keywords,
                )

            updated = existing.model_copy(update=changes)
            self.store.update(updated)
        except DiaryError:
            raise
        except Exception as e:
            logger.error(f"Unexpected error updating entry {entry_id} for user {user_id}: {e}", exc_info=True)
            raise InternalError(f"Internal error while updating the entry: {e}") from e

        logger.info(f"Entry updated - ID: {entry_id}, User: {user_id}")
        return updated

    def get_entry(self, user_id: int, entry_id: int) -> JournalEntry:
        """An entry of this user. Someone else's entry looks the same as a missing one."""
        entry = self.store.get_by_id(entry_id)
        if entry is None or entry.user_id != user_id:
            raise NotFound("Diary entry not found or not owned by the user.")
        return entry

    def list_entries(self, user_id: int) -> List[JournalEntry]:
        """All entries of the user, newest first."""
        logger.info(f"Listing entries for user {user_id}")
        return self.store.list_by_user(user_id)
