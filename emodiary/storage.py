import json
import logging
import os
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, List, Optional

from emodiary.config import settings
from emodiary.errors import DuplicateEntry, NotFound
from emodiary.models import JournalEntry
from emodiary.utils.dates import from_db_timestamp, local_date, to_db_timestamp

logger = logging.getLogger(__name__)

# Text columns that may be ranked by frequency
RANKABLE_FIELDS = {"main_worry"}

ENTRY_COLUMNS = (
    "id, user_id, content, created_at, mood_rating, stress_level, sleep_hours, "
    "main_worry, detected_emotion, intensity, summary, keywords"
)


class EntryStore(ABC):
    """Persistence the diary core relies on."""

    @abstractmethod
    def insert(self, entry: JournalEntry) -> int:
        ...

    @abstractmethod
    def update(self, entry: JournalEntry) -> None:
        ...

    @abstractmethod
    def get_by_id(self, entry_id: int) -> Optional[JournalEntry]:
        ...

    @abstractmethod
    def list_by_user(self, user_id: int) -> List[JournalEntry]:
        """All entries of a user, newest first."""

    @abstractmethod
    def list_by_user_in_range(self, user_id: int, start: datetime, end: datetime) -> List[JournalEntry]:
        """Entries with start <= created_at < end, oldest first."""

    @abstractmethod
    def top_frequent_values(self, user_id: int, field: str, exclude: Iterable[str] = (), limit: int = 1) -> List[str]:
        """Distinct non-blank values of `field`, most frequent first."""


class SQLiteEntryStore(EntryStore):
    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or settings.db_path
        self._init_db()

    @contextmanager
    def _get_db(self):
        if os.path.dirname(self.db_path):
            os.makedirs(os.path.dirname(self.db_path), exist_ok=True)

        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
        finally:
            conn.close()

    def _init_db(self):
        """Initialize the database schema."""
        with self._get_db() as conn:
            cursor = conn.cursor()

            cursor.execute('PRAGMA journal_mode=WAL;')
            cursor.execute('PRAGMA synchronous = NORMAL;')

            cursor.execute('''
                CREATE TABLE IF NOT EXISTS entries (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id INTEGER NOT NULL,
                    content TEXT NOT NULL,
                    created_at TEXT NOT NULL,   -- UTC, fixed width
                    entry_day TEXT NOT NULL,    -- YYYY-MM-DD, local calendar day
                    mood_rating INTEGER,        -- 1-10
                    stress_level INTEGER,       -- 1-10
                    sleep_hours INTEGER,        -- 1-16
                    main_worry TEXT,
                    detected_emotion TEXT,
                    intensity INTEGER,          -- 1-10
                    summary TEXT,
                    keywords TEXT               -- JSON list
                )
            ''')

            # One entry per user per calendar day
            cursor.execute('CREATE UNIQUE INDEX IF NOT EXISTS idx_entries_user_day ON entries(user_id, entry_day)')
            cursor.execute('CREATE INDEX IF NOT EXISTS idx_entries_user_time ON entries(user_id, created_at)')

            conn.commit()

    @staticmethod
    def _row_to_entry(row) -> JournalEntry:
        return JournalEntry(
            id=row[0],
            user_id=row[1],
            content=row[2],
            created_at=from_db_timestamp(row[3]),
            mood_rating=row[4],
            stress_level=row[5],
            sleep_hours=row[6],
            main_worry=row[7],
            detected_emotion=row[8],
            intensity=row[9],
            summary=row[10],
            keywords=json.loads(row[11]) if row[11] else [],
        )

    def insert(self, entry: JournalEntry) -> int:
        with self._get_db() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute('''
                    INSERT INTO entries (user_id, content, created_at, entry_day, mood_rating, stress_level,
                                         sleep_hours, main_worry, detected_emotion, intensity, summary, keywords)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ''', (
                    entry.user_id,
                    entry.content,
                    to_db_timestamp(entry.created_at),
                    local_date(entry.created_at).isoformat(),
                    entry.mood_rating,
                    entry.stress_level,
                    entry.sleep_hours,
                    entry.main_worry,
                    entry.detected_emotion,
                    entry.intensity,
                    entry.summary,
                    json.dumps(entry.keywords),
                ))
            except sqlite3.IntegrityError as e:
                if "entries.entry_day" not in str(e):
                    raise
                logger.warning(f"Unique day index rejected entry for user {entry.user_id}: {e}")
                raise DuplicateEntry("Only one diary entry is allowed per day.") from e

            entry_id = cursor.lastrowid
            conn.commit()
            return entry_id

    def update(self, entry: JournalEntry) -> None:
        """Overwrite the mutable columns. created_at, entry_day and user_id are never touched."""
        with self._get_db() as conn:
            cursor = conn.cursor()
            cursor.execute('''
                UPDATE entries
                SET content = ?, mood_rating = ?, stress_level = ?, sleep_hours = ?, main_worry = ?,
                    detected_emotion = ?, intensity = ?, summary = ?, keywords = ?
                WHERE id = ?
            ''', (
                entry.content,
                entry.mood_rating,
                entry.stress_level,
                entry.sleep_hours,
                entry.main_worry,
                entry.detected_emotion,
                entry.intensity,
                entry.summary,
                json.dumps(entry.keywords),
                entry.id,
            ))
            if cursor.rowcount == 0:
                raise NotFound(f"Entry {entry.id} does not exist.")
            conn.commit()

    def get_by_id(self, entry_id: int) -> Optional[JournalEntry]:
        with self._get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'SELECT {ENTRY_COLUMNS} FROM entries WHERE id = ?', (entry_id,))
            row = cursor.fetchone()
            if row:
                return self._row_to_entry(row)
        return None

    def list_by_user(self, user_id: int) -> List[JournalEntry]:
        with self._get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(f'''
                SELECT {ENTRY_COLUMNS} FROM entries
                WHERE user_id = ?
                ORDER BY created_at DESC, id DESC
            ''', (user_id,))
            return [self._row_to_entry(row) for row in cursor.fetchall()]

    def list_by_user_in_range(self, user_id: int, start: datetime, end: datetime) -> List[JournalEntry]:
        with self._get_db() as conn:
            cursor = conn.cursor()
            # Fixed-width UTC strings compare in time order
            cursor.execute(f'''
                SELECT {ENTRY_COLUMNS} FROM entries
                WHERE user_id = ? AND created_at >= ? AND created_at < ?
                ORDER BY created_at ASC, id ASC
            ''', (user_id, to_db_timestamp(start), to_db_timestamp(end)))
            return [self._row_to_entry(row) for row in cursor.fetchall()]

    def top_frequent_values(self, user_id: int, field: str, exclude: Iterable[str] = (), limit: int = 1) -> List[str]:
        if field not in RANKABLE_FIELDS:
            raise ValueError(f"Field '{field}' cannot be ranked")

        excluded = list(exclude)
        sql = f'''
            SELECT {field} FROM entries
            WHERE user_id = ? AND {field} IS NOT NULL AND TRIM({field}) <> ''
        '''
        params = [user_id]
        if excluded:
            placeholders = ','.join(['?'] * len(excluded))
            sql += f" AND {field} NOT IN ({placeholders})"
            params.extend(excluded)

        # Ties resolve alphabetically so the ranking is stable between calls
        sql += f" GROUP BY {field} ORDER BY COUNT(*) DESC, {field} ASC LIMIT ?"
        params.append(limit)

        with self._get_db() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            return [row[0] for row in cursor.fetchall()]
