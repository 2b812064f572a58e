import asyncio
import uuid
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from emodiary.ai import GeminiAnalysisClient
from emodiary.errors import ExternalServiceFailure
from emodiary.models import RecommendationSuggestion
from emodiary.recommendations import GENERIC_CONTEXT, RecommendationEngine, build_context
from emodiary.utils.dates import local_date
from conftest import make_entry


@pytest.fixture
def engine(store, analysis_client, clock):
    return RecommendationEngine(store, analysis_client, clock=clock)


def suggestions():
    return [
        RecommendationSuggestion(title="Walk", description="Take a 20 minute walk.", category="Physical Activity", priority="high"),
        RecommendationSuggestion(title="Call a friend", description="Talk to someone you trust.", category="Relationships"),
        RecommendationSuggestion(title="Wind down", description="No screens an hour before bed.", category="Wellbeing", priority="LOW"),
    ]


def test_no_entries_uses_generic_context(engine, analysis_client):
    analysis_client.recommend.return_value = suggestions()

    items = asyncio.run(engine.recommendations(1))

    analysis_client.recommend.assert_awaited_once_with(GENERIC_CONTEXT)
    assert len(items) == 3


def test_items_get_ids_and_default_priority(engine, analysis_client):
    analysis_client.recommend.return_value = suggestions()

    items = asyncio.run(engine.recommendations(1))

    assert [i.priority for i in items] == ["high", "medium", "low"]
    ids = {i.id for i in items}
    assert len(ids) == 3
    for item_id in ids:
        uuid.UUID(item_id)
    assert items[0].title == "Walk"
    assert items[1].category == "Relationships"


def test_provider_failure_gives_empty_list(engine, analysis_client):
    analysis_client.recommend.side_effect = ExternalServiceFailure("down", reason="no_candidates")

    assert asyncio.run(engine.recommendations(1)) == []


def test_unexpected_error_gives_empty_list(engine, analysis_client):
    analysis_client.recommend.side_effect = RuntimeError("boom")

    assert asyncio.run(engine.recommendations(1)) == []


def test_client_construction_error_gives_empty_list(store, clock, monkeypatch):
    client = GeminiAnalysisClient()
    monkeypatch.setattr(client, "get_client", MagicMock(side_effect=ValueError("bad http options")))
    engine = RecommendationEngine(store, client, clock=clock)

    assert asyncio.run(engine.recommendations(1)) == []


def test_empty_result_gives_empty_list(engine, analysis_client):
    analysis_client.recommend.return_value = []
    assert asyncio.run(engine.recommendations(1)) == []

    analysis_client.recommend.return_value = None
    assert asyncio.run(engine.recommendations(1)) == []


def test_context_uses_last_week_only(engine, store, analysis_client, clock):
    store.insert(make_entry(1, clock.now - timedelta(days=2), summary="Recent summary."))
    store.insert(make_entry(1, clock.now - timedelta(days=12), summary="Old summary."))
    analysis_client.recommend.return_value = suggestions()

    asyncio.run(engine.recommendations(1))

    context = analysis_client.recommend.await_args.args[0]
    assert "Recent summary." in context
    assert "Old summary." not in context


def test_build_context_figures(clock):
    day_one = clock.now - timedelta(days=1)
    day_two = clock.now - timedelta(days=2)
    day_three = clock.now - timedelta(days=3)
    entries = [
        make_entry(1, day_three, mood_rating=4, stress_level=8, main_worry="Exams", summary="Stressful day."),
        make_entry(1, day_two, mood_rating=6, stress_level=6, main_worry="Exams", summary="  "),
        make_entry(1, day_one, mood_rating=8, stress_level=4, main_worry="Money", summary="Better today."),
    ]

    context = build_context(entries)

    assert "6.0/10" in context  # mood and stress both average 6
    assert "Your main worry has been: Exams." in context
    assert f"({local_date(day_three).isoformat()}): Stressful day." in context
    assert f"({local_date(day_one).isoformat()}): Better today." in context
    assert local_date(day_two).isoformat() not in context


def test_build_context_defaults_when_metrics_missing(clock):
    entries = [make_entry(1, clock.now, mood_rating=None, stress_level=None, main_worry=None, summary=None)]

    context = build_context(entries)

    assert "average mood has been 3.0/10" in context
    assert "average stress level has been 5.0/10" in context
    assert "no specific worry" in context
    assert "AI summaries" not in context


def test_build_context_empty_is_generic():
    assert build_context([]) == GENERIC_CONTEXT
