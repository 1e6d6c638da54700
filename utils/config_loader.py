"""Configuration loading: JSON settings file plus environment, via pydantic-settings."""

import json
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Literal, Optional, Set

from pydantic import Field
from pydantic import ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from utils.error_handling import ConfigurationError

DEFAULT_CONFIG_PATH = "config/settings.json"


class ScraperSettings(BaseSettings):
    """Every tunable of a crawl run.

    Environment variables use the ``SCRAPER_`` prefix, e.g.
    ``SCRAPER_ITEM_CONCURRENCY=10``.
    """

    model_config = SettingsConfigDict(
        env_prefix="SCRAPER_", env_file=".env", extra="ignore"
    )

    # Site
    base_url: str = "https://www.outland.no"
    listing_path: str = "/samlekort-og-kortspill/magic-the-gathering/singles"
    host_header: Optional[str] = "www.outland.no"
    total_pages: int = Field(default=185, ge=0)
    start_page: int = Field(default=1, ge=1)
    page_size: int = Field(default=100, ge=1)

    # Concurrency
    page_concurrency: int = Field(default=5, ge=1)
    item_concurrency: int = Field(default=15, ge=1)
    max_connections: int = Field(default=64, ge=1)

    # Retrieval
    max_retries: int = Field(default=3, ge=0)
    retry_delay: float = Field(default=1.0, ge=0.0)
    request_timeout: float = Field(default=30.0, gt=0.0)
    inventory_timeout: float = Field(default=10.0, gt=0.0)
    identity_strategy: Literal["pool", "cycle", "fake"] = "pool"
    identity_seed: Optional[int] = None

    # Extraction
    stock_location: str = "Oslo"
    set_attribute_id: str = "471"
    number_attribute_id: str = "479"
    surface_attribute_id: str = "473"

    # Output
    output_path: str = "out.csv"
    diagnostics_path: Optional[str] = "error.log"
    log_file: Optional[str] = "data/logs/scrape.log"
    log_level: str = "INFO"


class ConfigLoader:
    """Reads JSON settings files once and expands ``${VAR}`` placeholders.

    ``${VAR:-fallback}`` uses ``fallback`` when ``VAR`` is unset; a bare
    ``${VAR}`` that is unset becomes an empty string and is warned about once.
    """

    PLACEHOLDER = re.compile(r"\$\{(?P<name>[A-Z0-9_]+)(?::-(?P<fallback>[^}]*))?\}")

    def __init__(self):
        self.logger = logging.getLogger(__name__)
        self._cache: Dict[str, Dict[str, Any]] = {}
        self._warned: Set[str] = set()

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """Parsed and placeholder-expanded contents of ``config_path``.

        Raises:
            ConfigurationError: the file is missing, unreadable, not JSON, or
                its top level is not an object
        """
        cached = self._cache.get(config_path)
        if cached is not None:
            return cached

        path = Path(config_path)
        if not path.is_file():
            raise self._fail(f"Configuration file not found: {config_path}", config_path)
        try:
            raw = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise self._fail(
                f"Invalid JSON in {config_path} (line {exc.lineno}): {exc.msg}", config_path
            ) from exc
        except OSError as exc:
            raise self._fail(f"Cannot read {config_path}: {exc}", config_path) from exc

        if not isinstance(raw, dict):
            raise self._fail(f"Top level of {config_path} must be an object", config_path)

        config = self._expand(raw)
        self._cache[config_path] = config
        self.logger.debug("Loaded settings file %s (%s keys)", config_path, len(config))
        return config

    def load_section(self, config_path: str, section: str) -> Dict[str, Any]:
        """One top-level object of the file; a missing section is empty."""
        value = self.load_config(config_path).get(section, {})
        if not isinstance(value, dict):
            raise self._fail(f"Section '{section}' of {config_path} must be an object", config_path)
        return value

    def _fail(self, message: str, config_path: str) -> ConfigurationError:
        self.logger.error(message)
        return ConfigurationError(message, {"path": config_path})

    def _expand(self, value: Any) -> Any:
        if isinstance(value, dict):
            return {key: self._expand(item) for key, item in value.items()}
        if isinstance(value, list):
            return [self._expand(item) for item in value]
        if isinstance(value, str):
            return self.PLACEHOLDER.sub(self._lookup, value)
        return value

    def _lookup(self, match: "re.Match[str]") -> str:
        name, fallback = match.group("name"), match.group("fallback")
        resolved = os.environ.get(name)
        if resolved is not None:
            return resolved
        if fallback is not None:
            return fallback
        if name not in self._warned:
            self._warned.add(name)
            self.logger.warning("Environment variable %s is not set; using an empty value", name)
        return ""


# Shared loader, so repeated load_settings() calls read each file once
config_loader = ConfigLoader()


def load_settings(
    config_path: Optional[str] = None, **overrides: Any
) -> ScraperSettings:
    """Build settings from overrides, the environment and a JSON settings file.

    Precedence, highest first: ``overrides`` (``None`` values are ignored),
    ``SCRAPER_*`` environment variables and ``.env``, the ``scraper`` section
    of ``config_path``, field defaults.
    """
    values: Dict[str, Any] = {}
    if config_path:
        section = config_loader.load_section(str(config_path), "scraper")
        try:
            # fields_set holds exactly the keys the env and .env sources supplied
            from_env = ScraperSettings().model_fields_set
        except PydanticValidationError as exc:
            raise ConfigurationError(f"Invalid scraper settings in environment: {exc}") from exc
        values.update({key: value for key, value in section.items() if key not in from_env})

    values.update({key: value for key, value in overrides.items() if value is not None})

    try:
        return ScraperSettings(**values)
    except PydanticValidationError as exc:
        raise ConfigurationError(f"Invalid scraper settings: {exc}") from exc
