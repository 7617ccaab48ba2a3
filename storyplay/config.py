"""
Configuration - Environment settings read once at import.

Variables:
    STORYPLAY_ENV        development | production (default development)
    STORYPLAY_SAVE_DIR   directory for JSON save files; unset keeps saves in memory
    STORYPLAY_LOG_LEVEL  logging level name (default INFO)
    ALLOWED_ORIGINS      comma-separated CORS origins (default *)
"""

import logging
import os

STORYPLAY_ENV = os.getenv("STORYPLAY_ENV", "development")
STORYPLAY_SAVE_DIR = os.getenv("STORYPLAY_SAVE_DIR", None)
STORYPLAY_LOG_LEVEL = os.getenv("STORYPLAY_LOG_LEVEL", "INFO")
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "*").split(",")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None):
    """Configure root logging for CLI and server entry points."""
    level_name = (level or STORYPLAY_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )
