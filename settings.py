"""Process-wide StreamSettings used by pipelines when stages are appended."""

import logging
from typing import Any

from models import StreamSettings

logger = logging.getLogger("lazystream.settings")

_settings = StreamSettings()


def get_settings() -> StreamSettings:
    return _settings


def configure(**overrides: Any) -> StreamSettings:
    """Replace the active settings with a copy carrying ``overrides``; validated by pydantic."""
    global _settings
    _settings = StreamSettings(**{**_settings.model_dump(), **overrides})
    logger.debug("Stream settings updated: %s", _settings.model_dump())
    return _settings


def reset_settings() -> StreamSettings:
    global _settings
    _settings = StreamSettings()
    return _settings
