"""Logging setup shared by the command-line scripts."""

from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path


def setup_logging(log_level: str = "INFO", *, log_dir: Path | None = None) -> None:
    """Configure the root logger with a console handler and optional rotating file."""
    root_logger = logging.getLogger()
    if root_logger.handlers:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)
    root_logger.setLevel(level)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        # 5MB per file, keep 3 backups
        file_handler = logging.handlers.RotatingFileHandler(
            log_dir / "vct_predictor.log",
            maxBytes=5 * 1024 * 1024,
            backupCount=3,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    logging.getLogger(__name__).debug("Logging initialized (level=%s)", log_level)


__all__ = ["setup_logging"]
