from __future__ import annotations
import logging

from .config import get_settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

def configure_logging(level: str | None = None) -> None:
    lvl = (level or get_settings().log_level).upper()
    logging.basicConfig(level=lvl, format=_FORMAT)
    logging.getLogger("geocheckin").setLevel(lvl)
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
