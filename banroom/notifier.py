import logging
from typing import Optional

import redis

from shared.events import Event

logger = logging.getLogger(__name__)


class EventNotifier:
    """
    Publishes bracket and room events to Redis channels.

    Runs as a no-op when no Redis client is configured. Events are sent after
    the database commit, so a publishing failure is logged and swallowed
    rather than reported to the caller.
    """

    def __init__(self, redis_client: Optional[redis.Redis] = None):
        self.redis = redis_client

    @classmethod
    def from_url(cls, redis_url: str) -> "EventNotifier":
        if not redis_url:
            logger.info("EventNotifier running without Redis (events are not published)")
            return cls(None)
        client = redis.from_url(
            redis_url,
            decode_responses=True,
            socket_connect_timeout=5,
            socket_timeout=5
        )
        return cls(client)

    @property
    def enabled(self) -> bool:
        return self.redis is not None

    def publish(self, event: Event) -> bool:
        if not self.redis:
            logger.debug(f"Local mode: {event.type} on {event.channel} (not published)")
            return False
        try:
            self.redis.publish(event.channel, event.to_json())
            return True
        except redis.exceptions.RedisError as e:
            logger.error(f"Failed to publish {event.type} on {event.channel}: {e}")
            return False

    def ping(self) -> bool:
        if not self.redis:
            return False
        try:
            return bool(self.redis.ping())
        except redis.exceptions.RedisError:
            return False
