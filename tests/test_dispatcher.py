from __future__ import annotations

import asyncio

import pytest

from fakes import FakeBackend, query_response
from ragchat.client import PROTOCOL, ServiceError
from ragchat.dispatcher import DispatchBusyError, DispatchFailure, QueryDispatcher
from ragchat.models import QueryFilters


def test_dispatch_returns_payload_and_forwards_filters() -> None:
    backend = FakeBackend([query_response("q-9")])
    dispatcher = QueryDispatcher(backend)
    filters = QueryFilters(product_area="Finance & Billing")

    result = asyncio.run(dispatcher.dispatch("How does billing work?", filters))

    assert result.query_id == "q-9"
    assert backend.calls == [("How does billing work?", filters)]
    assert not dispatcher.in_flight


def test_dispatch_collapses_service_errors() -> None:
    backend = FakeBackend([ServiceError("API error: Bad Gateway", kind=PROTOCOL, status_code=502)])
    dispatcher = QueryDispatcher(backend)

    result = asyncio.run(dispatcher.dispatch("hello"))

    assert result == DispatchFailure("API error: Bad Gateway", PROTOCOL)
    assert len(backend.calls) == 1


def test_dispatch_collapses_unexpected_errors() -> None:
    dispatcher = QueryDispatcher(FakeBackend([ConnectionError("reset by peer")]))

    result = asyncio.run(dispatcher.dispatch("hello"))

    assert isinstance(result, DispatchFailure)
    assert "reset by peer" in result.message


def test_dispatch_rejects_blank_question() -> None:
    backend = FakeBackend()
    with pytest.raises(ValueError):
        asyncio.run(QueryDispatcher(backend).dispatch("   "))
    assert backend.calls == []


def test_dispatch_refuses_second_concurrent_call() -> None:
    async def scenario() -> None:
        backend = FakeBackend(gated=True)
        dispatcher = QueryDispatcher(backend)
        first = asyncio.create_task(dispatcher.dispatch("first"))
        await asyncio.sleep(0)
        assert dispatcher.in_flight
        with pytest.raises(DispatchBusyError):
            await dispatcher.dispatch("second")
        backend.gate.set()
        await first
        assert len(backend.calls) == 1
        assert not dispatcher.in_flight

    asyncio.run(scenario())
