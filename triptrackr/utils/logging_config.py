"""Logging setup shared by the API and its provider clients"""
import logging
from pathlib import Path
from typing import Optional

LOG_FORMAT = '%(asctime)s - %(levelname)s - %(message)s'


def configure_logging(level: str = "info", log_file: Optional[str] = None) -> None:
    """
    Configure root logging once for the process

    Args:
        level: Log level name (debug, info, warning, error)
        log_file: Optional path of a file that receives a copy of every record
    """
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(Path(log_file), mode='a'))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )

    # httpx logs every request at INFO; provider clients log their own summaries
    logging.getLogger("httpx").setLevel(logging.WARNING)
