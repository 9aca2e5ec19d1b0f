"""Single-flight dispatch of questions to the question-answering service."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Awaitable, Protocol, Union

from .client import ServiceError
from .logging_utils import get_logger
from .models import QueryFilters, QueryResponse

_LOG = get_logger("dispatcher")


class QueryBackend(Protocol):
    def query(
        self, question: str, filters: QueryFilters | None = None
    ) -> Awaitable[QueryResponse]: ...


@dataclass(frozen=True, slots=True)
class DispatchFailure:
    message: str
    kind: str = "transport"


DispatchResult = Union[QueryResponse, DispatchFailure]


class DispatchBusyError(RuntimeError):
    """Raised when a second dispatch starts while one is outstanding."""


class QueryDispatcher:
    """Sends one question per call; never retries, queues or coalesces."""

    def __init__(self, backend: QueryBackend) -> None:
        self._backend = backend
        self._in_flight = False

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def dispatch(
        self, question: str, filters: QueryFilters | None = None
    ) -> DispatchResult:
        if not question.strip():
            raise ValueError("question must not be blank")
        if self._in_flight:
            raise DispatchBusyError("a dispatch is already in flight")
        self._in_flight = True
        started = time.perf_counter()
        try:
            response = await self._backend.query(question, filters)
        except ServiceError as exc:
            _LOG.warning("Dispatch failed ({}): {}", exc.kind, exc)
            return DispatchFailure(str(exc), exc.kind)
        except Exception as exc:
            _LOG.exception("Dispatch failed unexpectedly")
            return DispatchFailure(str(exc) or exc.__class__.__name__, "internal")
        finally:
            self._in_flight = False
        _LOG.debug(
            "Dispatch {} answered in {:.0f} ms",
            response.query_id,
            (time.perf_counter() - started) * 1000,
        )
        return response
