"""Visit counter kept in Redis."""
import logging
import time

import redis

logger = logging.getLogger(__name__)


class CounterUnavailableError(Exception):
    """Redis could not be reached within the configured retries."""


class HitCounter:
    """Increments a single Redis key; atomicity comes from Redis INCR."""

    def __init__(self, client: "redis.Redis", key: str = "hits",
                 retries: int = 5, retry_delay: float = 0.5):
        self.client = client
        self.key = key
        self.retries = retries
        self.retry_delay = retry_delay

    @classmethod
    def from_settings(cls, settings) -> "HitCounter":
        client = redis.Redis(host=settings.redis_host, port=settings.redis_port)
        return cls(
            client,
            key=settings.counter_key,
            retries=settings.counter_retries,
            retry_delay=settings.counter_retry_delay,
        )

    def increment(self) -> int:
        """Increment the counter, retrying while Redis is still starting up."""
        attempts_left = self.retries
        while True:
            try:
                return int(self.client.incr(self.key))
            except redis.exceptions.ConnectionError as e:
                attempts_left -= 1
                if attempts_left <= 0:
                    logger.error(f"Redis unavailable after {self.retries} attempts: {e}")
                    raise CounterUnavailableError(str(e)) from e
                logger.warning(f"Redis not ready, {attempts_left} attempts left: {e}")
                time.sleep(self.retry_delay)

    def ping(self) -> bool:
        return bool(self.client.ping())
