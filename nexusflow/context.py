"""Accumulated step results for a single execution."""

from __future__ import annotations

import copy
from types import MappingProxyType
from typing import Any, Dict, Iterator, Mapping


class ExecutionContext:
    """Mapping of step name to that step's result, built as steps complete.

    Keys are step names, so a later step reusing a name shadows the earlier
    entry.
    """

    def __init__(self) -> None:
        self._results: Dict[str, Any] = {}

    def merge(self, name: str, result: Any) -> None:
        """Record ``result`` under ``name``, overwriting any previous entry."""
        self._results[name] = result

    def snapshot(self) -> Mapping[str, Any]:
        """Return a read-only copy that later merges cannot affect."""
        return MappingProxyType(copy.deepcopy(self._results))

    def __contains__(self, name: object) -> bool:
        return name in self._results

    def __iter__(self) -> Iterator[str]:
        return iter(self._results)

    def __len__(self) -> int:
        return len(self._results)
