from __future__ import annotations
import json
import logging
from typing import Sequence
from nats.aio.client import Client as NATS
from .config import get_settings

logger = logging.getLogger(__name__)

_settings = get_settings()
_nats = NATS()

async def nats_connect():
    if not _nats.is_connected:
        servers: Sequence[str] = [u.strip() for u in _settings.nats_urls.split(",") if u.strip()]
        await _nats.connect(servers=servers)

async def nats_close():
    try:
        if _nats.is_connected:
            await _nats.drain()
    except Exception:
        logger.warning("nats drain failed", exc_info=True)

async def _publish(subject: str, evt: dict):
    await nats_connect()
    await _nats.publish(subject, json.dumps(evt).encode("utf-8"))

async def publish_checkin(evt: dict):
    """
    evt = {
      "event_id": str,
      "user_id": str,
      "checkin_id": str,
      "checked_at": iso8601,
      "idempotency_key": "event_id:user_id"
    }
    """
    await _publish(_settings.nats_subject_checkin, evt)

async def publish_checkout(evt: dict):
    await _publish(_settings.nats_subject_checkout, evt)

async def publish_fix_request(evt: dict):
    """Ask the user's device for a single location reading: {"user_id", "requested_at"}."""
    await _publish(_settings.nats_subject_fix_request, evt)
