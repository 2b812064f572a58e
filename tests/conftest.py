from datetime import datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from google.genai import types

from emodiary.models import AnalysisResult, EntryDraft, JournalEntry
from emodiary.storage import SQLiteEntryStore


class Clock:
    """Settable stand-in for local_now()."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def local(*args) -> datetime:
    # Naive wall-clock time read as system local time
    return datetime(*args).astimezone()


def make_draft(content: str = "Today I went running in the park and felt a lot calmer afterwards.", **overrides) -> EntryDraft:
    fields = {
        "content": content,
        "mood_rating": 5,
        "stress_level": 7,
        "sleep_hours": 6,
        "main_worry": "Work deadlines",
    }
    fields.update(overrides)
    return EntryDraft(**fields)


def make_entry(user_id: int, created_at: datetime, **overrides) -> JournalEntry:
    fields = {
        "user_id": user_id,
        "content": "A long enough diary entry about the day and how it went overall.",
        "created_at": created_at,
        "mood_rating": 5,
        "stress_level": 5,
        "sleep_hours": 7,
        "main_worry": "Work deadlines",
        "detected_emotion": "calm",
        "intensity": 4,
        "summary": "You seem calm.",
        "keywords": ["work", "calm"],
    }
    fields.update(overrides)
    return JournalEntry(**fields)


def gemini_response(text=None, candidates=True) -> types.GenerateContentResponse:
    if not candidates:
        return types.GenerateContentResponse(candidates=[])
    return types.GenerateContentResponse(
        candidates=[
            types.Candidate(
                content=types.Content(role="model", parts=[types.Part(text=text)]),
                finish_reason=types.FinishReason.STOP,
            )
        ]
    )


def fake_genai_client(response=None, error=None) -> MagicMock:
    client = MagicMock()
    if error is not None:
        client.aio.models.generate_content = AsyncMock(side_effect=error)
    else:
        client.aio.models.generate_content = AsyncMock(return_value=response)
    return client


@pytest.fixture
def store(tmp_path):
    return SQLiteEntryStore(str(tmp_path / "diary.db"))


@pytest.fixture
def clock():
    return Clock(local(2025, 1, 10, 8, 0))


@pytest.fixture
def analysis():
    return AnalysisResult(emotion="anxiety", intensity=6, summary="Your worry makes sense.", keywords=["work", "sleep"])


@pytest.fixture
def analysis_client(analysis):
    client = MagicMock()
    client.analyze = AsyncMock(return_value=analysis)
    client.recommend = AsyncMock(return_value=[])
    return client
