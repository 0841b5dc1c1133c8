"""Configuration management for type inference runs."""

import os
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from dotenv import load_dotenv

from sqlinfer.errors import ConfigError
from sqlinfer.types.target import parse_opaque_type

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Run configuration with validation."""
    database_url: str
    package_path: str
    acronyms: Dict[str, str] = field(default_factory=dict)
    type_overrides: Dict[str, str] = field(default_factory=dict)
    concurrency: int = 1
    timeout_seconds: Optional[float] = None
    log_level: str = "INFO"

    def __post_init__(self):
        """Validate configuration after initialization."""
        errors = []

        if not self.database_url or not self.database_url.startswith(("postgres://", "postgresql://")):
            errors.append("DATABASE_URL must be a postgres:// or postgresql:// URL")

        if not self.package_path:
            errors.append("SQLINFER_PACKAGE_PATH is required")
        elif self.package_path.endswith("/") or " " in self.package_path:
            errors.append(f"SQLINFER_PACKAGE_PATH is not a valid Go package path: {self.package_path}")

        for pg_name, go_type in self.type_overrides.items():
            try:
                parse_opaque_type(go_type)
            except ValueError as e:
                errors.append(f"type override {pg_name}: {e}")

        if self.concurrency < 1:
            errors.append("SQLINFER_CONCURRENCY must be at least 1")

        if self.timeout_seconds is not None and self.timeout_seconds <= 0:
            errors.append("SQLINFER_TIMEOUT_SECONDS must be positive")

        if errors:
            error_message = "Configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            raise ConfigError(error_message)


def parse_acronyms(entries: List[str]) -> Dict[str, str]:
    """
    Parse acronym entries like "id" or "oids=OIDs".

    A bare word is rendered in upper case.
    """
    acronyms = {}
    for entry in entries:
        entry = entry.strip()
        if not entry:
            continue
        word, sep, rendering = entry.partition("=")
        word = word.strip()
        rendering = rendering.strip() if sep else word.upper()
        if not word or not rendering:
            raise ConfigError(f"Invalid acronym: {entry!r}")
        acronyms[word.lower()] = rendering
    return acronyms


def parse_type_overrides(entries: List[str]) -> Dict[str, str]:
    """Parse override entries like "text=github.com/acme/types.String"."""
    overrides = {}
    for entry in entries:
        entry = entry.strip()
        if not entry:
            continue
        pg_name, sep, go_type = entry.partition("=")
        if not sep or not pg_name.strip() or not go_type.strip():
            raise ConfigError(f"Invalid type override, want <pg-type>=<go-type>: {entry!r}")
        overrides[pg_name.strip()] = go_type.strip()
    return overrides


def _split_env(name: str) -> List[str]:
    value = os.getenv(name, "")
    return [part for part in value.split(",") if part.strip()]


def load_config(**overrides) -> Config:
    """
    Load configuration from environment variables.

    Loads from .env file if present, then from environment variables.
    Keyword arguments that are not None (typically command-line flags)
    take precedence; acronyms and type_overrides are merged over the
    environment's entries.

    Returns:
        Config object with validated settings
    """
    load_dotenv()

    try:
        timeout = os.getenv("SQLINFER_TIMEOUT_SECONDS")
        settings = dict(
            database_url=os.getenv("DATABASE_URL", ""),
            package_path=os.getenv("SQLINFER_PACKAGE_PATH", ""),
            acronyms=parse_acronyms(_split_env("SQLINFER_ACRONYMS")),
            type_overrides=parse_type_overrides(_split_env("SQLINFER_TYPE_OVERRIDES")),
            concurrency=int(os.getenv("SQLINFER_CONCURRENCY", "1")),
            timeout_seconds=float(timeout) if timeout else None,
            log_level=os.getenv("LOG_LEVEL", "INFO")
        )
        for key, value in overrides.items():
            if value is None:
                continue
            if key in ("acronyms", "type_overrides"):
                settings[key] = {**settings[key], **value}
            else:
                settings[key] = value

        config = Config(**settings)
        logger.info("Configuration loaded successfully")
        return config
    except ValueError as error:
        logger.error(f"Failed to load configuration: {error}")
        raise


def setup_logging(log_level: str = "INFO"):
    """
    Setup logging configuration.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
