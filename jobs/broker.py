"""
Dramatiq broker for the payout workers.

Importing this module installs the Redis broker as the global dramatiq
broker; task modules import it before declaring actors.
"""

import dramatiq
from dramatiq.brokers.redis import RedisBroker
from dramatiq.middleware import CurrentMessage, Retries, ShutdownNotifications
from loguru import logger

from app.config.settings import settings

# Backoff for actors that allow retries (volume propagation). Payout job
# actors set max_retries=0 and recover through the next scheduled run.
RETRY_MIN_BACKOFF_MS = 1_000
RETRY_MAX_BACKOFF_MS = 60_000


def build_broker() -> RedisBroker:
    """Create the Redis broker with shutdown, message and retry middleware."""
    redis_broker = RedisBroker(
        host=settings.redis_host,
        port=settings.redis_port,
        password=settings.redis_password or None,
        db=settings.redis_db,
    )
    redis_broker.add_middleware(ShutdownNotifications())
    redis_broker.add_middleware(CurrentMessage())
    redis_broker.add_middleware(
        Retries(
            max_retries=3,
            min_backoff=RETRY_MIN_BACKOFF_MS,
            max_backoff=RETRY_MAX_BACKOFF_MS,
        )
    )
    return redis_broker


broker = build_broker()
dramatiq.set_broker(broker)

logger.info(
    f"Payout broker ready on redis://{settings.redis_host}:"
    f"{settings.redis_port}/{settings.redis_db}"
)
