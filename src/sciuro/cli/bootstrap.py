"""
Shared startup helpers for CLI commands: settings loading and logging setup.
"""

import logging

import typer
from pydantic import ValidationError

from sciuro.config import Settings

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def load_settings() -> Settings:
    """
    Load Settings from the environment, exiting with status 1 if invalid.
    """
    try:
        return Settings()
    except ValidationError as e:
        print("Error: invalid configuration")
        for err in e.errors():
            location = ".".join(str(part) for part in err["loc"]) or "settings"
            print(f"  {location}: {err['msg']}")
        raise typer.Exit(1)


def configure_logging(settings: Settings) -> None:
    """Configure root logging; dev mode forces DEBUG."""
    level = logging.DEBUG if settings.dev_mode else getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # kubernetes and httpx log every request at DEBUG/INFO
    logging.getLogger("kubernetes").setLevel(max(level, logging.WARNING))
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
