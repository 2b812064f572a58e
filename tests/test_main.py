import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock

from emodiary.config import Settings
from emodiary.main import build_services, configure_logging
from emodiary.models import AnalysisResult
from conftest import make_draft


def test_build_services_shares_store_and_client(tmp_path):
    client = MagicMock()
    client.analyze = AsyncMock(return_value=AnalysisResult(emotion="hope", intensity=5, keywords=["a", "b"]))

    services = build_services(str(tmp_path / "diary.db"), analysis_client=client)

    assert services.entries.store is services.store
    assert services.stats.store is services.store
    assert services.recommendations.analysis_client is client

    entry = asyncio.run(services.entries.create(7, make_draft()))
    assert services.stats.weekly_stats(7).average_stress == entry.stress_level


def test_configure_logging_writes_rotating_file(tmp_path, monkeypatch):
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.setenv("LOG_LEVEL", "debug")

    logger = configure_logging(Settings())
    logging.getLogger("emodiary.entries").info("hello")
    for handler in logger.handlers:
        handler.flush()

    assert logger.level == logging.DEBUG
    assert "hello" in (tmp_path / "logs" / "emodiary.log").read_text()
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)
