"""Loading of the scam keyword configuration file."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from scamwatch.config import settings
from scamwatch.core.exceptions import ConfigurationError
from scamwatch.schemas.keywords import KeywordsConfig

logger = logging.getLogger(__name__)


def load_keywords_config(path: str | Path) -> KeywordsConfig:
    """Read and validate a keywords JSON file."""
    config_path = Path(path)
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigurationError(str(config_path), str(exc)) from exc

    try:
        config = KeywordsConfig.model_validate(payload)
    except PydanticValidationError as exc:
        raise ConfigurationError(str(config_path), str(exc)) from exc

    logger.info(
        "Loaded scam keywords config",
        extra={"version": config.version, "path": str(config_path)},
    )
    return config


@lru_cache
def get_keywords_config() -> KeywordsConfig:
    """Process-wide keywords config, loaded once."""
    return load_keywords_config(settings.keywords_config_path)
