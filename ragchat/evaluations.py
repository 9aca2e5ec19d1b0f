"""Memoized, de-duplicated evaluation lookups keyed by query id."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional

from .logging_utils import get_logger
from .models import EvaluationResult

_LOG = get_logger("evaluations")

LOADING = "loading"
READY = "ready"
FAILED = "failed"


class EvidenceCache:
    """Share one in-flight fetch per query id; keep successes for the process lifetime.

    Failures are not cached, so a later lookup for the same id fetches again.
    """

    def __init__(self, fetch: Callable[[str], Awaitable[EvaluationResult]]) -> None:
        self._fetch = fetch
        self._results: dict[str, EvaluationResult] = {}
        self._pending: dict[str, asyncio.Future[EvaluationResult]] = {}

    def get(self, query_id: str) -> EvaluationResult | None:
        return self._results.get(query_id)

    def is_pending(self, query_id: str) -> bool:
        return query_id in self._pending

    async def lookup(self, query_id: str) -> EvaluationResult:
        cached = self._results.get(query_id)
        if cached is not None:
            return cached
        future = self._pending.get(query_id)
        if future is None:
            future = asyncio.ensure_future(self._fetch_and_store(query_id))
            self._pending[query_id] = future
        # One waiter being cancelled must not cancel the shared fetch.
        return await asyncio.shield(future)

    async def _fetch_and_store(self, query_id: str) -> EvaluationResult:
        try:
            result = await self._fetch(query_id)
        except Exception as exc:
            _LOG.warning("Evaluation lookup for {} failed: {}", query_id, exc)
            raise
        finally:
            self._pending.pop(query_id, None)
        self._results[query_id] = result
        return result


@dataclass(frozen=True)
class EvaluationView:
    query_id: str
    status: str = LOADING
    result: Optional[EvaluationResult] = None
    error: Optional[str] = None

    @property
    def loading(self) -> bool:
        return self.status == LOADING
