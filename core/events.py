"""
Real-time event bus.

Services receive a Notifier and call `publish` after a state change so that
connected UIs can refresh. The production implementation fans out over Redis
pub/sub; publishing is best-effort and never raises into the caller.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol

from redis.asyncio import Redis, from_url

from core.config import settings
from core.utils.datetime import now, to_iso

logger = logging.getLogger(__name__)

# Channels
PAIRS_GENERATED = "pairs-generated"
SLOTS_PROPOSED = "slots-proposed"
SLOTS_REJECTED = "slots-rejected"
PAIR_SCHEDULED = "pair-scheduled"
MEETING_LINK_SET = "meeting-link-set"
FEEDBACK_SUBMITTED = "feedback-submitted"
LEARNING_UPDATED = "learning-updated"


class Notifier(Protocol):
    """Publish capability handed to services."""

    async def publish(self, channel: str, payload: Dict[str, Any]) -> None: ...


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return to_iso(value)
    return str(value)


class RedisNotifier:
    """Publishes JSON messages to `{prefix}:{channel}` on Redis."""

    def __init__(self, redis_url: Optional[str] = None, prefix: Optional[str] = None):
        self.redis_url = redis_url or str(settings.redis_url)
        self.prefix = prefix or settings.realtime_channel_prefix
        self._redis: Optional[Redis] = None

    @property
    def redis(self) -> Redis:
        if self._redis is None:
            self._redis = from_url(self.redis_url, encoding="utf-8", decode_responses=True)
        return self._redis

    async def publish(self, channel: str, payload: Dict[str, Any]) -> None:
        message = json.dumps(
            {"event": channel, "at": to_iso(now()), "data": payload},
            default=_json_default,
        )
        try:
            await self.redis.publish(f"{self.prefix}:{channel}", message)
        except Exception as e:
            logger.warning(f"Realtime publish to {channel} failed: {e}")

    async def close(self) -> None:
        if self._redis is not None:
            await self._redis.close()
            self._redis = None


@dataclass
class InMemoryNotifier:
    """Records published events; used when realtime is disabled and in tests."""

    events: List[tuple[str, Dict[str, Any]]] = field(default_factory=list)

    async def publish(self, channel: str, payload: Dict[str, Any]) -> None:
        self.events.append((channel, payload))

    def channels(self) -> List[str]:
        return [channel for channel, _ in self.events]


def build_notifier() -> Notifier:
    """Select the bus implementation from settings."""
    if settings.realtime_enabled:
        return RedisNotifier()
    return InMemoryNotifier()
