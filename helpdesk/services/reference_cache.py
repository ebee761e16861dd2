"""Session cache for low-churn reference collections (categories, technicians).

One latch per kind: the first caller triggers the fetch, concurrent callers
await that same in-flight fetch, later callers are served from memory.
A failed fetch leaves the latch unset so the next call retries.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Mapping

from helpdesk.enums import ReferenceKind

logger = logging.getLogger(__name__)

Loader = Callable[[], Awaitable[list[Any]]]


class ReferenceDataCache:
    def __init__(self, loaders: Mapping[ReferenceKind, Loader]) -> None:
        self._loaders: dict[ReferenceKind, Loader] = dict(loaders)
        self._data: dict[ReferenceKind, list[Any]] = {}
        self._loaded: dict[ReferenceKind, bool] = {kind: False for kind in ReferenceKind}
        self._inflight: dict[ReferenceKind, asyncio.Task[list[Any]]] = {}
        # Bumped by refresh/invalidate so superseded fetches do not write
        self._generation: dict[ReferenceKind, int] = {kind: 0 for kind in ReferenceKind}

    def is_loaded(self, kind: ReferenceKind) -> bool:
        return self._loaded[ReferenceKind(kind)]

    def snapshot(self, kind: ReferenceKind) -> list[Any]:
        """Current contents (empty until the first successful load)."""
        return list(self._data.get(ReferenceKind(kind), []))

    async def ensure_loaded(self, kind: ReferenceKind) -> list[Any]:
        kind = ReferenceKind(kind)
        if self._loaded[kind]:
            return list(self._data[kind])
        task = self._inflight.get(kind)
        if task is None:
            task = self._start(kind)
        else:
            logger.debug("Joining in-flight %s fetch", kind.value)
        return list(await asyncio.shield(task))

    async def refresh(self, kind: ReferenceKind) -> list[Any]:
        """Fetch again regardless of the latch."""
        kind = ReferenceKind(kind)
        self._generation[kind] += 1
        task = self._start(kind)
        return list(await asyncio.shield(task))

    def invalidate(self, kind: ReferenceKind | None = None) -> None:
        kinds = list(ReferenceKind) if kind is None else [ReferenceKind(kind)]
        for item in kinds:
            self._generation[item] += 1
            self._loaded[item] = False
            self._data.pop(item, None)
            self._inflight.pop(item, None)

    def _start(self, kind: ReferenceKind) -> asyncio.Task[list[Any]]:
        if kind not in self._loaders:
            raise KeyError(f"No loader registered for {kind.value}")
        task = asyncio.ensure_future(self._fetch(kind, self._generation[kind]))
        self._inflight[kind] = task
        return task

    async def _fetch(self, kind: ReferenceKind, generation: int) -> list[Any]:
        try:
            items = list(await self._loaders[kind]())
        except Exception:
            logger.warning("Failed to load %s; will retry on next request", kind.value)
            raise
        finally:
            if self._inflight.get(kind) is asyncio.current_task():
                del self._inflight[kind]

        if generation == self._generation[kind]:
            self._data[kind] = items
            self._loaded[kind] = True
            logger.info("Loaded %d %s", len(items), kind.value)
        return items
