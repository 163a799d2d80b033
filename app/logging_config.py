# app/logging_config.py
import logging

from app.config import LOGGING_CONFIG


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        format=LOGGING_CONFIG["format"],
        datefmt=LOGGING_CONFIG["date_format"],
        level=getattr(logging, level or LOGGING_CONFIG["level"], logging.INFO),
        force=True,
    )
