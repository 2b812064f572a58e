import os
import random
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

# Force load .env from the project root
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_DB_PATH = "/tmp/emodiary.db"


class Settings:
    """Runtime settings read from the environment."""

    def __init__(self):
        self.db_path: str = os.getenv("DB_PATH", DEFAULT_DB_PATH)
        self.gemini_model: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
        self.gemini_api_version: str = os.getenv("GEMINI_API_VERSION", "v1")
        self.gemini_timeout_ms: int = int(os.getenv("GEMINI_TIMEOUT_MS", "30000"))
        self.log_dir: str = os.getenv("LOG_DIR", "logs")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()


class KeyManager:
    """
    Pool of Gemini API keys.
    Reads GEMINI_API_KEY and then GEMINI_API_KEY_2, _3, ... until one is missing.
    """

    def __init__(self, keys: Optional[List[str]] = None):
        self.keys: List[str] = list(keys) if keys is not None else self._load_keys()

    @staticmethod
    def _load_keys() -> List[str]:
        keys = []
        primary = os.getenv("GEMINI_API_KEY")
        if primary:
            keys.append(primary)

        i = 2
        while os.getenv(f"GEMINI_API_KEY_{i}"):
            keys.append(os.getenv(f"GEMINI_API_KEY_{i}"))
            i += 1
        return keys

    def get_next_key(self) -> Optional[str]:
        if not self.keys:
            return None
        # Random pick spreads load across the pool
        return random.choice(self.keys)

    def get_key_count(self) -> int:
        return len(self.keys)


settings = Settings()
key_manager = KeyManager()
