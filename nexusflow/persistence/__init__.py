"""Persistence layer for nexusflow workflows and executions."""

from __future__ import annotations

import os
from typing import Optional

from ..config import NexusflowConfig, load_config
from .inmemory import InMemoryWorkflowRepository
from .models import (
    AnalyticsOverview,
    Execution,
    ExecutionDetail,
    ExecutionStep,
    ExecutionSummary,
    StatusCount,
)
from .postgres import PostgresWorkflowRepository
from .repository import WorkflowRepository
from .sqlite import SQLiteWorkflowRepository

_repository_instance: WorkflowRepository | None = None


def _repository_for_url(database_url: str) -> WorkflowRepository:
    scheme = database_url.split("://", 1)[0].lower()
    if scheme == "sqlite":
        return SQLiteWorkflowRepository(database_url.split("://", 1)[1])
    if scheme in ("postgres", "postgresql"):
        return PostgresWorkflowRepository(database_url)
    raise ValueError(f"Unsupported database backend: {database_url}")


def get_repository(
    database_url: Optional[str] = None, config: Optional[NexusflowConfig] = None
) -> WorkflowRepository:
    """Return the process-wide workflow repository, creating it on first use.

    ``database_url`` wins over ``NEXUSFLOW_DATABASE_URL``, then
    ``DATABASE_URL``, then the ``database_url`` config key. ``sqlite://<path>``
    and ``postgres[ql]://`` URLs are supported; without any URL executions live
    in memory only. Passing either argument always builds a fresh repository.
    """

    global _repository_instance
    if _repository_instance is not None and database_url is None and config is None:
        return _repository_instance

    config = config or load_config()
    url = (
        database_url
        or os.getenv("NEXUSFLOW_DATABASE_URL")
        or os.getenv("DATABASE_URL")
        or config.database_url
    )
    _repository_instance = (
        _repository_for_url(url) if url else InMemoryWorkflowRepository()
    )
    return _repository_instance


__all__ = [
    "AnalyticsOverview",
    "Execution",
    "ExecutionDetail",
    "ExecutionStep",
    "ExecutionSummary",
    "StatusCount",
    "WorkflowRepository",
    "SQLiteWorkflowRepository",
    "PostgresWorkflowRepository",
    "InMemoryWorkflowRepository",
    "get_repository",
]
