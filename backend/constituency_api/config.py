"""
Application configuration.
Reads settings from environment variables (and a local .env file).
"""

import os
from typing import Dict, Any
from dataclasses import dataclass, asdict

from dotenv import load_dotenv

load_dotenv()


@dataclass
class AppConfig:
    """Runtime settings for the constituency office service."""
    mongo_url: str = "mongodb://localhost:27017"
    mongo_db: str = "constituency_office"
    postgres_url: str = ""
    sqlite_path: str = ""
    cloudinary_url: str = "https://api.cloudinary.com/v1_1/djisnlxc4/upload"
    cloudinary_upload_preset: str = "Cong-App"
    upload_timeout_seconds: int = 60
    dashboard_cache_seconds: int = 3600
    log_level: str = "INFO"


# Global configuration instance
_config = AppConfig()


def get_config() -> AppConfig:
    """Get current configuration."""
    return _config


def update_config(**kwargs) -> AppConfig:
    """
    Update configuration settings.

    Args:
        **kwargs: Configuration fields to update. Unknown keys are ignored.

    Returns:
        Updated configuration
    """
    global _config

    for key, value in kwargs.items():
        if hasattr(_config, key):
            setattr(_config, key, value)

    return _config


def load_config_from_env():
    """Load configuration from environment variables."""
    config_updates = {}

    if os.getenv("MONGO_URL") is not None:
        config_updates["mongo_url"] = os.getenv("MONGO_URL")

    if os.getenv("MONGO_DB") is not None:
        config_updates["mongo_db"] = os.getenv("MONGO_DB")

    if os.getenv("POSTGRES_URL") is not None:
        config_updates["postgres_url"] = os.getenv("POSTGRES_URL")

    if os.getenv("SQLITE_PATH") is not None:
        config_updates["sqlite_path"] = os.getenv("SQLITE_PATH")

    if os.getenv("CLOUDINARY_URL") is not None:
        config_updates["cloudinary_url"] = os.getenv("CLOUDINARY_URL")

    if os.getenv("CLOUDINARY_UPLOAD_PRESET") is not None:
        config_updates["cloudinary_upload_preset"] = os.getenv("CLOUDINARY_UPLOAD_PRESET")

    if os.getenv("UPLOAD_TIMEOUT") is not None:
        try:
            config_updates["upload_timeout_seconds"] = int(os.getenv("UPLOAD_TIMEOUT", "60"))
        except ValueError:
            pass

    if os.getenv("DASHBOARD_CACHE_SECONDS") is not None:
        try:
            config_updates["dashboard_cache_seconds"] = int(os.getenv("DASHBOARD_CACHE_SECONDS", "3600"))
        except ValueError:
            pass

    if os.getenv("LOG_LEVEL") is not None:
        config_updates["log_level"] = os.getenv("LOG_LEVEL", "INFO").upper()

    if config_updates:
        update_config(**config_updates)


def get_config_dict() -> Dict[str, Any]:
    """Get configuration as dictionary."""
    return asdict(_config)


# Load configuration from environment on import
load_config_from_env()
