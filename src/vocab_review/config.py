"""
Configuration dataclasses for the vocabulary review client.

This module defines the configuration structures used throughout the client
(remote API, known-word cache, pagination, session persistence and logging)
and the loaders that build them from a JSON file and from the environment.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_API_URL = "http://localhost:8080"
DEFAULT_SESSION_FILE = Path.home() / ".vocab_review" / "session.json"
DEFAULT_CONFIG_FILE = Path.home() / ".vocab_review" / "config.json"
DEFAULT_SESSION_SECRET = "default-secret-change-me"

PAGE_SIZE_OPTIONS = (12, 24, 36, 48, 60)


@dataclass
class ApiConfig:
    """Remote vocabulary and auth API settings."""

    base_url: str = DEFAULT_API_URL
    timeout_seconds: float = 10.0


@dataclass
class KnownWordsConfig:
    """Known-word cache refresh settings."""

    throttle_seconds: float = 5.0


@dataclass
class PaginationConfig:
    """Word list pagination settings."""

    default_page_size: int = 12
    page_size_options: tuple[int, ...] = PAGE_SIZE_OPTIONS


@dataclass
class PersistenceConfig:
    """Session persistence configuration."""

    session_file_path: Path = DEFAULT_SESSION_FILE
    hmac_secret: str = DEFAULT_SESSION_SECRET


@dataclass
class LoggingConfig:
    """Logging configuration."""

    level: str = "info"
    output_format: str = "text"  # 'json', 'text', 'both'
    enabled: bool = False


@dataclass
class ClientConfig:
    """Main client configuration combining all sub-configurations."""

    api: ApiConfig = field(default_factory=ApiConfig)
    known_words: KnownWordsConfig = field(default_factory=KnownWordsConfig)
    pagination: PaginationConfig = field(default_factory=PaginationConfig)
    persistence: PersistenceConfig = field(default_factory=PersistenceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def _float_env(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except ValueError:
        return default


def apply_env_overrides(config: ClientConfig, dotenv_path: Optional[Path] = None) -> ClientConfig:
    """
    Apply VOCAB_* environment variables on top of a configuration.

    Values from a ``.env`` file are loaded first; variables already set in
    the process environment win.

    Args:
        config: Configuration to update in place
        dotenv_path: Optional explicit path to a .env file

    Returns:
        The same configuration object, for chaining
    """
    load_dotenv(dotenv_path=dotenv_path)

    base_url = os.getenv("VOCAB_API_URL", "").strip()
    if base_url:
        config.api.base_url = base_url
    config.api.timeout_seconds = _float_env("VOCAB_HTTP_TIMEOUT", config.api.timeout_seconds)

    session_file = os.getenv("VOCAB_SESSION_FILE", "").strip()
    if session_file:
        config.persistence.session_file_path = Path(session_file).expanduser()
    secret = os.getenv("VOCAB_SESSION_SECRET", "").strip()
    if secret:
        config.persistence.hmac_secret = secret

    level = os.getenv("VOCAB_LOG_LEVEL", "").strip().lower()
    if level:
        config.logging.level = level
        config.logging.enabled = True
    log_format = os.getenv("VOCAB_LOG_FORMAT", "").strip().lower()
    if log_format:
        config.logging.output_format = log_format

    return config


def load_config_from_file(config_path: Path) -> Optional[ClientConfig]:
    """
    Load configuration from a JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        ClientConfig if successful, None otherwise
    """
    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = json.load(f)

        api_data = data.get("api", {})
        api = ApiConfig(
            base_url=api_data.get("base_url", DEFAULT_API_URL),
            timeout_seconds=float(api_data.get("timeout_seconds", 10.0)),
        )

        known_words_data = data.get("known_words", {})
        known_words = KnownWordsConfig(
            throttle_seconds=float(known_words_data.get("throttle_seconds", 5.0)),
        )

        pagination_data = data.get("pagination", {})
        default_page_size = int(pagination_data.get("default_page_size", 12))
        if default_page_size not in PAGE_SIZE_OPTIONS:
            raise ValueError(f"Unsupported default_page_size: {default_page_size}")
        pagination = PaginationConfig(default_page_size=default_page_size)

        persistence_data = data.get("persistence", {})
        session_file_path = persistence_data.get("session_file_path")
        persistence = PersistenceConfig(
            session_file_path=Path(session_file_path) if session_file_path else DEFAULT_SESSION_FILE,
            hmac_secret=persistence_data.get("hmac_secret", DEFAULT_SESSION_SECRET),
        )

        logging_data = data.get("logging", {})
        logging_config = LoggingConfig(
            level=logging_data.get("level", "info"),
            output_format=logging_data.get("output_format", "text"),
            enabled=logging_data.get("enabled", False),
        )

        return ClientConfig(
            api=api,
            known_words=known_words,
            pagination=pagination,
            persistence=persistence,
            logging=logging_config,
        )

    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return None
    except FileNotFoundError:
        return None


def save_config_to_file(config: ClientConfig, config_path: Path) -> bool:
    """
    Save configuration to a JSON file.

    Args:
        config: ClientConfig to save
        config_path: Path to save the configuration

    Returns:
        True if successful, False otherwise
    """
    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            "api": {
                "base_url": config.api.base_url,
                "timeout_seconds": config.api.timeout_seconds,
            },
            "known_words": {
                "throttle_seconds": config.known_words.throttle_seconds,
            },
            "pagination": {
                "default_page_size": config.pagination.default_page_size,
            },
            "persistence": {
                "session_file_path": str(config.persistence.session_file_path),
                "hmac_secret": config.persistence.hmac_secret,
            },
            "logging": {
                "level": config.logging.level,
                "output_format": config.logging.output_format,
                "enabled": config.logging.enabled,
            },
        }

        with open(config_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        return True

    except (OSError, TypeError) as e:
        print(f"Error saving config: {e}", file=sys.stderr)
        return False
