"""Redis layer - Fan-out de eventos por pub/sub."""

from .connection import RedisConnection
from .publisher import RedisEventPublisher

__all__ = ["RedisConnection", "RedisEventPublisher"]
