import logging
import os
from dataclasses import dataclass
from logging.handlers import RotatingFileHandler
from typing import Optional

from emodiary.ai import GeminiAnalysisClient
from emodiary.config import Settings, settings
from emodiary.entries import EntryOrchestrator
from emodiary.recommendations import RecommendationEngine
from emodiary.stats import StatsAggregator
from emodiary.storage import EntryStore, SQLiteEntryStore

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def configure_logging(config: Optional[Settings] = None) -> logging.Logger:
    """Rotating file log plus console output on the `emodiary` logger."""
    config = config or settings
    os.makedirs(config.log_dir, exist_ok=True)
    log_formatter = logging.Formatter(LOG_FORMAT)

    # 5MB per file, keep 3 backup files
    rotating_handler = RotatingFileHandler(
        os.path.join(config.log_dir, 'emodiary.log'), maxBytes=5 * 1024 * 1024, backupCount=3
    )
    rotating_handler.setFormatter(log_formatter)

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(log_formatter)

    logger = logging.getLogger("emodiary")
    logger.setLevel(config.log_level)
    logger.handlers.clear()
    logger.addHandler(rotating_handler)
    logger.addHandler(console_handler)
    return logger


@dataclass
class DiaryServices:
    store: EntryStore
    analysis_client: GeminiAnalysisClient
    entries: EntryOrchestrator
    stats: StatsAggregator
    recommendations: RecommendationEngine


def build_services(db_path: Optional[str] = None, analysis_client=None) -> DiaryServices:
    """Wire the store, the Gemini client and the three services together."""
    store = SQLiteEntryStore(db_path or settings.db_path)
    client = analysis_client or GeminiAnalysisClient()
    return DiaryServices(
        store=store,
        analysis_client=client,
        entries=EntryOrchestrator(store, client),
        stats=StatsAggregator(store),
        recommendations=RecommendationEngine(store, client),
    )
