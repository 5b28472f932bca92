import json
import os
from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings

SETTINGS_FILE_DEFAULT = Path.home() / ".notesync" / "settings.json"


class Settings(BaseSettings):
    connection_url: str = ""
    vault_path: Path = Path(".")
    active_file: Optional[str] = None  # vault-relative; None = most recently modified note
    connect_timeout_seconds: int = 10
    sync_interval_minutes: int = 0  # 0 disables the periodic job
    telegram_bot_token: str = ""
    telegram_chat_id: Optional[int] = None

    class Config:
        env_prefix = "NOTESYNC_"
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


def load_settings(path: Optional[Path] = None) -> Settings:
    """Load persisted settings, filling keys absent from the file with defaults.

    A missing file is treated as empty, so a fresh install starts from the
    defaults and older files pick up any keys added since they were written.
    """
    path = path or SETTINGS_FILE_DEFAULT
    stored = {}
    if path.exists():
        stored = json.loads(path.read_text(encoding="utf-8") or "{}")
    return Settings(**stored)


def save_settings(settings: Settings, path: Optional[Path] = None) -> None:
    path = path or SETTINGS_FILE_DEFAULT
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(settings.model_dump(mode="json"), indent=2),
        encoding="utf-8",
    )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        override = os.environ.get("NOTESYNC_SETTINGS_FILE")
        _settings = load_settings(Path(override) if override else None)
    return _settings
