from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel


class RedisConfig(BaseModel):
    """Configuration for the Redis notifier."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    channel: str = "nexusflow:events"


class NotifierConfig(BaseModel):
    """Notification channel settings."""

    backend: Literal["inmemory", "redis"] = "inmemory"
    redis: RedisConfig = RedisConfig()


class AgentConfig(BaseModel):
    """Models used by the LLM-backed planner and step executor."""

    planner_model: str = "google-gla:gemini-2.5-pro"
    executor_model: str = "google-gla:gemini-2.5-flash"


class ExecutionConfig(BaseModel):
    """Execution engine settings.

    ``step_timeout`` bounds each step's executor call in seconds. ``None``
    waits indefinitely.
    """

    step_timeout: Optional[float] = None


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000


class NexusflowConfig(BaseModel):
    """Top-level configuration model."""

    database_url: Optional[str] = None
    notifier: NotifierConfig = NotifierConfig()
    agents: AgentConfig = AgentConfig()
    execution: ExecutionConfig = ExecutionConfig()
    server: ServerConfig = ServerConfig()
    log_level: str = "INFO"


def load_config(path: Optional[str] = None) -> NexusflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to NEXUSFLOW_CONFIG env
            variable or 'config.yaml' in the current directory.
    """

    config_path = path or os.getenv("NEXUSFLOW_CONFIG", "config.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = NexusflowConfig(**data)
    else:
        config = NexusflowConfig()

    env_db_url = os.getenv("NEXUSFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    env_notifier = os.getenv("NEXUSFLOW_NOTIFIER")
    if env_notifier:
        config.notifier.backend = env_notifier.lower()
    return config
