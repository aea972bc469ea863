"""
Centralized configuration loader for VidStream.

Loads settings from an optional YAML file and environment variables,
providing sensible defaults when configuration files are absent.

Provides:
    - Settings: Global application settings loaded from YAML + env vars
    - get_settings(): Singleton accessor for Settings
    - reset_settings(): Drop the cached singleton (tests, reloads)
    - validate_env(): Startup validation of the YouTube credential
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

from vidstream.exceptions import ConfigurationError, MissingYouTubeApiKeyError

# ---------------------------------------------------------------------------
# Load .env file (no-op if file does not exist)
# ---------------------------------------------------------------------------
load_dotenv()

# ---------------------------------------------------------------------------
# Project root directory (parent of vidstream/)
# ---------------------------------------------------------------------------
PROJECT_ROOT = Path(__file__).resolve().parent.parent

logger = logging.getLogger(__name__)

DEFAULT_CACHE_TTL_SECONDS = 60 * 5
YOUTUBE_API_BASE_URL = "https://www.googleapis.com/youtube/v3"


# ===========================================================================
# GLOBAL SETTINGS
# ===========================================================================


@dataclass
class Settings:
    """
    Global application settings.

    Loaded from ``config/settings.yaml`` when available, falling back to
    defaults. Environment variables override YAML values for secrets and
    deployment-specific configuration.
    """

    # Upstream
    youtube_api_key: str = ""
    youtube_base_url: str = YOUTUBE_API_BASE_URL
    region_code: str = "US"
    relevance_language: str = "en"
    request_timeout_seconds: float = 30.0

    # Cache
    cache_ttl_seconds: float = DEFAULT_CACHE_TTL_SECONDS

    # Logging
    log_level: str = "INFO"

    # Defaults for the service layer
    default_category: str = "technology"
    idea_count: int = 3

    @property
    def has_api_key(self) -> bool:
        return bool(self.youtube_api_key)

    @classmethod
    def from_yaml(cls, path: Optional[Path] = None) -> "Settings":
        """
        Load settings from a YAML file.

        If the file does not exist, returns an instance with all defaults.
        Environment variables override YAML values for specific keys.

        Args:
            path: Path to the YAML file. Defaults to
                ``<PROJECT_ROOT>/config/settings.yaml``.

        Returns:
            Populated Settings instance.

        Raises:
            ConfigurationError: If the YAML file exists but cannot be parsed,
                or an override holds a value of the wrong type.
        """
        path = path or PROJECT_ROOT / "config" / "settings.yaml"

        data: Dict[str, Any] = {}
        if path.exists():
            try:
                with open(path, "r", encoding="utf-8") as fh:
                    data = yaml.safe_load(fh) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(
                    f"Failed to parse settings YAML at {path}: {exc}"
                ) from exc
            if not isinstance(data, dict):
                raise ConfigurationError(
                    f"Settings YAML at {path} must contain a mapping"
                )

        youtube = data.get("youtube", {}) or {}
        cache = data.get("cache", {}) or {}

        values: Dict[str, Any] = {
            "youtube_api_key": youtube.get("api_key", ""),
            "youtube_base_url": youtube.get("base_url", YOUTUBE_API_BASE_URL),
            "region_code": youtube.get("region_code", "US"),
            "relevance_language": youtube.get("relevance_language", "en"),
            "request_timeout_seconds": youtube.get("request_timeout_seconds", 30.0),
            "cache_ttl_seconds": cache.get("ttl_seconds", DEFAULT_CACHE_TTL_SECONDS),
            "log_level": data.get("log_level", "INFO"),
            "default_category": data.get("default_category", "technology"),
            "idea_count": data.get("idea_count", 3),
        }

        # -----------------------------------------------------------------
        # Environment variable overrides
        # -----------------------------------------------------------------
        env_overrides = {
            "YOUTUBE_API_KEY": ("youtube_api_key", str),
            "VIDSTREAM_CACHE_TTL_SECONDS": ("cache_ttl_seconds", float),
            "VIDSTREAM_REQUEST_TIMEOUT_SECONDS": ("request_timeout_seconds", float),
            "VIDSTREAM_REGION_CODE": ("region_code", str),
            "VIDSTREAM_LOG_LEVEL": ("log_level", str),
        }
        for env_key, (attr_name, cast_fn) in env_overrides.items():
            env_val = os.environ.get(env_key)
            if env_val is None:
                continue
            try:
                values[attr_name] = cast_fn(env_val)
            except (ValueError, TypeError) as exc:
                raise ConfigurationError(
                    f"Invalid value for env var {env_key}='{env_val}': {exc}"
                ) from exc

        if float(values["cache_ttl_seconds"]) < 0:
            raise ConfigurationError("cache_ttl_seconds must be non-negative")

        return cls(**values)


# ===========================================================================
# SINGLETON SETTINGS ACCESSOR
# ===========================================================================

_settings_instance: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get the global Settings singleton.

    On first call, loads from ``config/settings.yaml`` (or defaults).
    Subsequent calls return the cached instance.
    """
    global _settings_instance
    if _settings_instance is None:
        _settings_instance = Settings.from_yaml()
    return _settings_instance


def reset_settings() -> None:
    """Reset the cached Settings singleton."""
    global _settings_instance
    _settings_instance = None


# ===========================================================================
# ENVIRONMENT VARIABLE VALIDATION
# ===========================================================================

REQUIRED_ENV_VARS: List[str] = [
    "YOUTUBE_API_KEY",
]

OPTIONAL_ENV_VARS: List[str] = [
    "VIDSTREAM_CACHE_TTL_SECONDS",
    "VIDSTREAM_REQUEST_TIMEOUT_SECONDS",
    "VIDSTREAM_REGION_CODE",
    "VIDSTREAM_LOG_LEVEL",
]


def validate_env(strict: bool = True) -> Dict[str, bool]:
    """
    Validate that required environment variables are set.

    Args:
        strict: If ``True``, raise when the API key is missing. If
            ``False``, return the status dict without raising.

    Returns:
        Dict mapping variable name to presence status (``True`` if set).

    Raises:
        MissingYouTubeApiKeyError: If ``strict=True`` and the key is missing.
    """
    status: Dict[str, bool] = {}
    missing: List[str] = []

    for var in REQUIRED_ENV_VARS:
        present = bool(os.environ.get(var))
        status[var] = present
        if not present:
            missing.append(var)

    for var in OPTIONAL_ENV_VARS:
        status[var] = bool(os.environ.get(var))

    if missing:
        logger.warning(
            "Missing environment variables %s; live YouTube data is unavailable",
            missing,
        )
        if strict:
            raise MissingYouTubeApiKeyError(
                f"Missing required environment variables: {missing}. "
                f"Copy .env.example to .env and fill in the values."
            )

    return status
