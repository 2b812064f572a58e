import logging
import uuid
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, List

from emodiary.errors import ExternalServiceFailure
from emodiary.models import DEFAULT_PRIORITY, PRIORITIES, JournalEntry, RecommendationItem
from emodiary.storage import EntryStore
from emodiary.utils.dates import local_date, local_midnight, local_now

logger = logging.getLogger(__name__)

GENERIC_CONTEXT = (
    "The user has no recent entries. Suggest general recommendations to improve mental wellbeing."
)

# Mid-scale guesses used only in the prose sent to the model
DEFAULT_MOOD = 3.0
DEFAULT_STRESS = 5.0
NO_SPECIFIC_WORRY = "no specific worry"


def _mean_or(values, default: float) -> float:
    present = [v for v in values if v is not None]
    return sum(present) / len(present) if present else default


def build_context(entries: List[JournalEntry]) -> str:
    """Natural-language digest of the user's week for the recommendation prompt."""
    if not entries:
        return GENERIC_CONTEXT

    avg_mood = _mean_or((e.mood_rating for e in entries), DEFAULT_MOOD)
    avg_stress = _mean_or((e.stress_level for e in entries), DEFAULT_STRESS)

    worries = Counter(e.main_worry for e in entries if e.main_worry and e.main_worry.strip())
    main_worry = worries.most_common(1)[0][0] if worries else NO_SPECIFIC_WORRY

    lines = [
        "Based on your recent entries (last 7 days):",
        f"- Your average mood has been {avg_mood:.1f}/10.",
        f"- Your average stress level has been {avg_stress:.1f}/10.",
        f"- Your main worry has been: {main_worry}.",
    ]

    summaries = "; ".join(
        f"({local_date(e.created_at).isoformat()}): {e.summary}"
        for e in entries
        if e.summary and e.summary.strip()
    )
    if summaries:
        lines.append(f"- AI summaries of your entries: {summaries}")

    return "\n".join(lines)


def _priority(value) -> str:
    if not value:
        return DEFAULT_PRIORITY
    value = str(value).strip().lower()
    return value if value in PRIORITIES else DEFAULT_PRIORITY


class RecommendationEngine:
    def __init__(self, store: EntryStore, analysis_client, clock: Callable[[], datetime] = local_now):
        self.store = store
        self.analysis_client = analysis_client
        self.clock = clock

    async def recommendations(self, user_id: int) -> List[RecommendationItem]:
        """
        Three suggestions based on the last week of entries.
        Provider failures give an empty list instead of an error.
        """
        today = local_date(self.clock())
        start = local_midnight(today - timedelta(days=7))
        end = local_midnight(today + timedelta(days=1))

        entries = self.store.list_by_user_in_range(user_id, start, end)
        context = build_context(entries)

        try:
            suggestions = await self.analysis_client.recommend(context)
        except ExternalServiceFailure as e:
            logger.warning(f"Recommendations unavailable for user {user_id} ({e.reason}): {e}")
            return []
        except Exception as e:
            logger.error(f"Recommendations failed for user {user_id}: {e}")
            return []

        if not suggestions:
            return []

        return [
            RecommendationItem(
                id=str(uuid.uuid4()),
                title=s.title,
                description=s.description,
                category=s.category,
                priority=_priority(s.priority),
            )
            for s in suggestions
        ]
