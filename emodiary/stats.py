import logging
from collections import Counter, defaultdict
from datetime import date, datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional

from emodiary.models import (
    JournalEntry,
    SleepStressDataItem,
    StressHistoryItem,
    WeeklyStats,
    WorryDistributionItem,
)
from emodiary.storage import EntryStore
from emodiary.utils.dates import last_n_days, local_date, local_now

logger = logging.getLogger(__name__)

# Label users pick when nothing worries them; never ranked as the main worry
NO_WORRY_SENTINEL = "Ninguna"
NO_DOMINANT_WORRY = "No dominant worry"

# Neutral zero for charts when there is no data
EMPTY_AVERAGE = 0.0


def _mean(values: Iterable[Optional[int]]) -> float:
    present = [v for v in values if v is not None]
    if not present:
        return EMPTY_AVERAGE
    return sum(present) / len(present)


class StatsAggregator:
    def __init__(self, store: EntryStore, clock: Callable[[], datetime] = local_now):
        self.store = store
        self.clock = clock

    def _main_worry(self, user_id: int) -> str:
        # All-time ranking, not limited to the 14-day window
        worries = self.store.top_frequent_values(user_id, "main_worry", exclude=[NO_WORRY_SENTINEL], limit=1)
        return worries[0] if worries else NO_DOMINANT_WORRY

    @staticmethod
    def _by_day(entries: List[JournalEntry]) -> Dict[date, List[JournalEntry]]:
        days = defaultdict(list)
        for entry in entries:
            days[local_date(entry.created_at)].append(entry)
        return days

    @staticmethod
    def _worries_distribution(entries: List[JournalEntry]) -> List[WorryDistributionItem]:
        # The sentinel is counted here like any other label
        counts = Counter(
            e.main_worry for e in entries
            if e.main_worry is not None and e.main_worry.strip()
        )
        # sorted() is stable: ties keep first-seen order
        ranked = sorted(counts.items(), key=lambda item: item[1], reverse=True)
        return [WorryDistributionItem(category=label, count=count) for label, count in ranked]

    def weekly_stats(self, user_id: int) -> WeeklyStats:
        now = self.clock()
        fourteen_days_ago = now - timedelta(days=14)
        seven_days_ago = now - timedelta(days=7)

        # The range query is half-open; nudge the end so entries stamped exactly "now" count
        recent = self.store.list_by_user_in_range(user_id, fourteen_days_ago, now + timedelta(microseconds=1))

        current_week = [e for e in recent if e.created_at >= seven_days_ago]
        previous_week = [e for e in recent if e.created_at < seven_days_ago]

        per_day = self._by_day(current_week)
        stress_history = []
        sleep_stress_data = []
        for day in last_n_days(local_date(now), 7):
            day_entries = per_day.get(day, [])
            day_stress = _mean(e.stress_level for e in day_entries)
            day_sleep = _mean(e.sleep_hours for e in day_entries)
            stress_history.append(StressHistoryItem(date=day, value=day_stress))
            sleep_stress_data.append(SleepStressDataItem(date=day, sleep=day_sleep, stress=day_stress))

        stats = WeeklyStats(
            average_stress=_mean(e.stress_level for e in current_week),
            previous_week_stress=_mean(e.stress_level for e in previous_week),
            average_sleep=_mean(e.sleep_hours for e in current_week),
            main_worry=self._main_worry(user_id),
            stress_history=stress_history,
            sleep_stress_data=sleep_stress_data,
            worries_distribution=self._worries_distribution(current_week),
        )
        logger.info(f"Weekly stats for user {user_id}: {len(current_week)} entries this week, {len(previous_week)} the week before")
        return stats
