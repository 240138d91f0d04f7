"""Notifier factory and initialization."""

from __future__ import annotations

import os
from typing import Optional

from ..config import NexusflowConfig, load_config
from .base import BaseNotifier, FanoutNotifier
from .inmemory import InMemoryNotifier, Subscription


def get_notifier(
    backend: Optional[str] = None, config: Optional[NexusflowConfig] = None
) -> BaseNotifier:
    """Factory function to get the configured notifier."""

    config = config or load_config()
    backend = (
        backend
        or os.getenv("NEXUSFLOW_NOTIFIER")
        or config.notifier.backend
    ).lower()

    if backend == "inmemory":
        return InMemoryNotifier()
    elif backend == "redis":
        from .redis import RedisNotifier

        redis_conf = config.notifier.redis
        return RedisNotifier(
            host=redis_conf.host,
            port=redis_conf.port,
            db=redis_conf.db,
            password=redis_conf.password,
            channel=redis_conf.channel,
        )
    else:
        raise ValueError(f"Unsupported notifier backend: {backend}")


__all__ = [
    "BaseNotifier",
    "FanoutNotifier",
    "InMemoryNotifier",
    "Subscription",
    "get_notifier",
]
