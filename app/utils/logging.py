"""Logging setup for the todo assistant.

Everything goes to stdout through the root logger. ``LOG_LEVEL`` sets the
level for the service's own modules; chatty client libraries are held at
``quiet_level`` so request traces don't drown the assistant loop logs.
"""

import logging
import os
import sys

from pydantic import BaseModel, Field

DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

QUIET_LOGGERS = ["openai", "httpx", "httpcore", "uvicorn.access"]


class LogConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    format: str = DEFAULT_FORMAT
    date_format: str = "%Y-%m-%d %H:%M:%S"
    quiet_loggers: list[str] = Field(default_factory=lambda: list(QUIET_LOGGERS))
    quiet_level: str = "WARNING"

    @classmethod
    def from_env(cls) -> "LogConfig":
        """Read LOG_LEVEL and LOG_FORMAT."""
        return cls(
            level=os.getenv("LOG_LEVEL", "INFO"),
            format=os.getenv("LOG_FORMAT", DEFAULT_FORMAT),
        )


def setup_logging(config: LogConfig | None = None) -> None:
    """Configure the root logger for the server process."""
    config = config or LogConfig.from_env()

    logging.basicConfig(
        level=config.level.upper(),
        format=config.format,
        datefmt=config.date_format,
        stream=sys.stdout,
        force=True,
    )

    for name in config.quiet_loggers:
        logging.getLogger(name).setLevel(config.quiet_level.upper())


def get_logger(name: str, level: str | None = None) -> logging.Logger:
    """Logger for one module, at `level` or LOG_LEVEL."""
    logger = logging.getLogger(name)
    logger.setLevel((level or os.getenv("LOG_LEVEL", "INFO")).upper())
    return logger
