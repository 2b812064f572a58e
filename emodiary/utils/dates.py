from datetime import date, datetime, time, timedelta, timezone
from typing import List, Tuple


def local_now() -> datetime:
    """Current instant as an aware datetime in the system timezone."""
    return datetime.now().astimezone()


def local_date(moment: datetime) -> date:
    """Calendar date of an instant, seen from the system timezone."""
    return moment.astimezone().date()


def local_midnight(day: date) -> datetime:
    # Naive midnight interpreted as local time, so DST days keep their real length
    return datetime.combine(day, time.min).astimezone()


def day_window(moment: datetime) -> Tuple[datetime, datetime]:
    """[local midnight, next local midnight) around `moment`."""
    day = local_date(moment)
    return local_midnight(day), local_midnight(day + timedelta(days=1))


def last_n_days(today: date, n: int = 7) -> List[date]:
    """The n calendar days ending at `today`, oldest first."""
    return [today - timedelta(days=offset) for offset in range(n - 1, -1, -1)]


def to_db_timestamp(moment: datetime) -> str:
    """Fixed-width UTC ISO string, so stored timestamps order correctly as text."""
    return moment.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%f+00:00")


def from_db_timestamp(value: str) -> datetime:
    return datetime.fromisoformat(value).astimezone()
