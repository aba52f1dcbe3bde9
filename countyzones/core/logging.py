"""
@file logging.py
@brief Process-wide log setup for the API and the editor library

@details
Log destinations come from core.config (LOG_OUTPUT = stdout | file | both).
The log file is logs/app.log under LOG_DIR, or under /app/logs inside the
container, or under the project root as a last resort. If no directory is
writable the file handler is dropped and stdout is used instead.

@author CountyZones Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import logging
import os
import sys
from typing import List, Optional

from countyzones.core import config

## @brief Format shared by every handler
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

## @brief Container volume tried before the project-local directory
CONTAINER_LOG_DIR = "/app/logs"

## @brief Third-party loggers that flood INFO during dataset reads
QUIET_LOGGERS = ("urllib3", "fiona", "pyogrio")


def _writable_dir(path: str) -> bool:
    try:
        os.makedirs(path, exist_ok=True)
    except OSError:
        return False
    return os.access(path, os.W_OK)


def resolve_log_dir() -> Optional[str]:
    """First writable directory among LOG_DIR, /app/logs and <project>/logs."""
    if config.LOG_DIR:
        return config.LOG_DIR if _writable_dir(config.LOG_DIR) else None
    project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    for candidate in (CONTAINER_LOG_DIR, os.path.join(project_root, "logs")):
        if _writable_dir(candidate):
            return candidate
    return None


def build_handlers(output: str, log_dir: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = []
    if output in ("stdout", "both"):
        handlers.append(logging.StreamHandler(sys.stdout))
    if output in ("file", "both") and log_dir:
        try:
            handlers.append(logging.FileHandler(os.path.join(log_dir, "app.log")))
        except OSError:
            pass
    if not handlers:
        handlers.append(logging.StreamHandler(sys.stdout))
    return handlers


def setup_logging() -> logging.Logger:
    """
    @brief Configure root logging once and return the package logger
    """
    log_dir = resolve_log_dir() if config.LOG_OUTPUT in ("file", "both") else None
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format=LOG_FORMAT,
        handlers=build_handlers(config.LOG_OUTPUT, log_dir),
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    return logging.getLogger("countyzones")
