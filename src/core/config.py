"""
Application Configuration Module
"""
import sys
import json
from pathlib import Path
from typing import Dict, Any, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from loguru import logger

from src.Modules.CallRecordings_module.recording_models import SyncSettings

# Determine BASE_DIR in a packaging-aware way (works for dev and PyInstaller 'frozen' exe)
if getattr(sys, "frozen", False):
    # Running as a bundled executable (PyInstaller)
    _BASE_DIR = Path(sys.executable).parent
else:
    # Running from source (DEV)
    _BASE_DIR = Path(__file__).resolve().parent.parent.parent


class AppConfig(BaseSettings):
    """Application configuration settings"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application Info
    APP_NAME: str = "PRO-Ka-Po Call Recordings Sync"
    APP_VERSION: str = "1.0.0"
    APP_AUTHOR: str = "PRO-Ka-Po Team"

    # Paths
    BASE_DIR: Path = _BASE_DIR
    DATA_DIR: Path = _BASE_DIR / "data"
    LOGS_DIR: Path = _BASE_DIR / "logs"
    SETTINGS_FILE: Path = _BASE_DIR / "user_settings.json"

    # Local sync state (SQLite)
    SYNC_STATE_DB: Path = Field(
        default=_BASE_DIR / "data" / "recordings_sync.db",
        description="SQLite file with synced keys and last sync timestamps"
    )

    # API
    API_BASE_URL: str = Field(
        default="http://127.0.0.1:8000",
        description="API base URL for server communication"
    )
    UPLOAD_ENDPOINT: str = "/upload-recording.php"
    ADMIN_API_ENDPOINT: str = "/admin_api.php"
    HTTP_TIMEOUT: int = Field(default=30, description="HTTP timeout in seconds")

    # Sync
    USER_ID: Optional[str] = Field(default=None, description="Logged-in user ID")
    RECORDINGS_DIR: Optional[Path] = Field(default=None, description="Call recordings folder")
    UPLOAD_BATCH_SIZE: int = 10
    CALL_LOG_FETCH_LIMIT: int = 200
    SYNC_INTERVAL: int = Field(default=300, description="Auto-sync interval in seconds")
    AUTO_SYNC_ENABLED: bool = False
    AUTO_REFRESH_ENABLED: bool = True

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>"
    LOG_ROTATION: str = "10 MB"
    LOG_RETENTION: str = "1 month"


# Global configuration instance
config = AppConfig()


def get_config() -> AppConfig:
    """Get application configuration instance"""
    return config


def ensure_directories() -> None:
    """Create necessary directories if they don't exist"""
    directories = [
        config.DATA_DIR,
        config.LOGS_DIR,
        config.SYNC_STATE_DB.parent,
    ]

    for directory in directories:
        directory.mkdir(parents=True, exist_ok=True)


# Keys persisted in user_settings.json
SETTINGS_KEYS = ('recordings_path', 'api_url', 'user_id', 'auto_refresh', 'auto_sync')


def save_settings(settings_dict: dict, settings_file: Optional[Path] = None) -> bool:
    """
    Save settings to configuration file

    Args:
        settings_dict: Dictionary with settings to save
        settings_file: Target file (default: config.SETTINGS_FILE)

    Returns:
        True if saved successfully
    """
    settings_file = settings_file or config.SETTINGS_FILE
    try:
        # Load existing settings or create new
        existing_settings = {}
        if settings_file.exists():
            with open(settings_file, 'r', encoding='utf-8') as f:
                existing_settings = json.load(f)

        existing_settings.update(
            {key: value for key, value in settings_dict.items() if key in SETTINGS_KEYS}
        )

        with open(settings_file, 'w', encoding='utf-8') as f:
            json.dump(existing_settings, f, indent=4, ensure_ascii=False)

        logger.info(f"Settings saved successfully to {settings_file}")
        return True
    except (OSError, ValueError, TypeError) as e:
        logger.error(f"Error saving settings: {e}")
        return False


def load_settings(settings_file: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load settings from configuration file

    Returns:
        Dictionary with current settings (defaults from AppConfig)
    """
    settings_file = settings_file or config.SETTINGS_FILE
    settings = {
        'recordings_path': str(config.RECORDINGS_DIR) if config.RECORDINGS_DIR else None,
        'api_url': config.API_BASE_URL,
        'user_id': config.USER_ID,
        'auto_refresh': config.AUTO_REFRESH_ENABLED,
        'auto_sync': config.AUTO_SYNC_ENABLED,
    }

    try:
        if settings_file.exists():
            with open(settings_file, 'r', encoding='utf-8') as f:
                saved = json.load(f)
            settings.update({key: saved[key] for key in SETTINGS_KEYS if key in saved})
    except (OSError, ValueError) as e:
        logger.error(f"Error loading settings: {e}")

    return settings


def build_sync_settings(settings: Optional[Dict[str, Any]] = None) -> SyncSettings:
    """Combine AppConfig with saved user settings into explicit SyncSettings"""
    settings = settings if settings is not None else load_settings()
    user_id = settings.get('user_id')

    return SyncSettings(
        user_id=str(user_id) if user_id else None,
        upload_batch_size=config.UPLOAD_BATCH_SIZE,
        call_log_fetch_limit=config.CALL_LOG_FETCH_LIMIT,
        auto_sync_enabled=bool(settings.get('auto_sync')),
        auto_refresh_enabled=bool(settings.get('auto_refresh')),
        sync_interval_seconds=config.SYNC_INTERVAL,
    )
