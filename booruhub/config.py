import json
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

DEFAULTS = {
    "app_name": "BooruHub",
    "host": "0.0.0.0",
    "port": 8000,
    "user_agent": "BooruHub/1.0 (Booru Viewer)",
    "request_timeout": 15,
    "posts_per_page": 40,
    "multi_source_limit": 20,
    "memory_cache_count_limit": 100,
    "memory_cache_cost_limit": 50 * 1024 * 1024,
    "disk_cache_limit": 200 * 1024 * 1024,
    "disk_cache_target_ratio": 0.8,
    "disk_cache_max_age_days": 7,
    "jpeg_quality": 85,
}

class Settings:
    def __init__(self, data_dir: Optional[Path] = None):
        self.BASE_DIR = Path(__file__).resolve().parent.parent
        env_data_dir = os.getenv("BOORUHUB_DATA_DIR")
        if data_dir is not None:
            self.DATA_DIR = Path(data_dir)
        elif env_data_dir:
            self.DATA_DIR = Path(env_data_dir)
        else:
            self.DATA_DIR = self.BASE_DIR / "data"
        self.SETTINGS_FILE = self.DATA_DIR / "settings.json"

        env_cache_dir = os.getenv("BOORUHUB_CACHE_DIR")
        self.CACHE_DIR = Path(env_cache_dir) if env_cache_dir else self.DATA_DIR / "image_cache"

        # Load settings
        self.settings = self.load_settings()

    def load_settings(self) -> dict:
        settings = dict(DEFAULTS)
        if self.SETTINGS_FILE.exists():
            with open(self.SETTINGS_FILE, 'r') as f:
                settings.update(json.load(f))
        return settings

    def save_settings(self, settings: dict):
        self.settings.update(settings)
        self.DATA_DIR.mkdir(parents=True, exist_ok=True)
        with open(self.SETTINGS_FILE, 'w') as f:
            json.dump(self.settings, f, indent=2)

    @property
    def DATABASE_URL(self) -> str:
        env_url = os.getenv("BOORUHUB_DATABASE_URL")
        if env_url:
            return env_url
        if "database_url" in self.settings:
            return self.settings["database_url"]
        return f"sqlite:///{self.DATA_DIR / 'booruhub.db'}"

    @property
    def DEBUG(self) -> bool:
        return os.getenv("BOORUHUB_DEBUG", "false").lower() == "true"

    @property
    def APP_NAME(self) -> str:
        return self.settings["app_name"]

    @property
    def HOST(self) -> str:
        return os.getenv("BOORUHUB_HOST") or self.settings["host"]

    @property
    def PORT(self) -> int:
        return int(os.getenv("BOORUHUB_PORT") or self.settings["port"])

    @property
    def USER_AGENT(self) -> str:
        return self.settings["user_agent"]

    @property
    def REQUEST_TIMEOUT(self) -> float:
        return float(self.settings["request_timeout"])

    @property
    def POSTS_PER_PAGE(self) -> int:
        return int(self.settings["posts_per_page"])

    @property
    def MULTI_SOURCE_LIMIT(self) -> int:
        return int(self.settings["multi_source_limit"])

    @property
    def MEMORY_CACHE_COUNT_LIMIT(self) -> int:
        return int(self.settings["memory_cache_count_limit"])

    @property
    def MEMORY_CACHE_COST_LIMIT(self) -> int:
        return int(self.settings["memory_cache_cost_limit"])

    @property
    def DISK_CACHE_LIMIT(self) -> int:
        return int(self.settings["disk_cache_limit"])

    @property
    def DISK_CACHE_TARGET_RATIO(self) -> float:
        return float(self.settings["disk_cache_target_ratio"])

    @property
    def DISK_CACHE_MAX_AGE_DAYS(self) -> float:
        return float(self.settings["disk_cache_max_age_days"])

    @property
    def JPEG_QUALITY(self) -> int:
        return int(self.settings["jpeg_quality"])

settings = Settings()
