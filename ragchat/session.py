"""Conversation session: message log, dispatch state, persistence and panel state.

The session is the only writer of the message log. Every log mutation is
followed synchronously by a write of the whole log to the session tier, so the
stored log always matches the last committed state. Store failures are logged
and the session carries on in memory.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import ValidationError

from .catalog import DEFAULT_GREETING, PRODUCT_AREAS, SECTIONS, resolve_option
from .dispatcher import DispatchFailure, DispatchResult, QueryDispatcher
from .evaluations import FAILED, READY, EvaluationView, EvidenceCache
from .logging_utils import get_logger
from .models import Message, QueryFilters, QueryResponse
from .prober import LivenessProber
from .store import StoreTiers

_LOG = get_logger("session")

MESSAGES_KEY = "chat_messages"
OPEN_KEY = "chat_open"
AUTO_OPENED_KEY = "chat_auto_opened"

LANDING_VIEW = "home"


class SessionState(str, Enum):
    IDLE = "idle"
    AWAITING = "awaiting"


@dataclass(frozen=True)
class SessionView:
    """Read-only snapshot consumed by presentation."""

    messages: tuple[Message, ...]
    pending: bool
    filters: QueryFilters
    is_open: bool
    ready: bool
    current_view: str
    evaluation: Optional[EvaluationView] = None

    @property
    def warming_up(self) -> bool:
        return not self.ready

    @property
    def input_enabled(self) -> bool:
        return not self.pending


def failure_text(failure: DispatchFailure) -> str:
    return f"Sorry, I encountered an error: {failure.message}. Please try again."


class ChatSession:
    def __init__(
        self,
        stores: StoreTiers,
        dispatcher: QueryDispatcher,
        *,
        evidence_cache: EvidenceCache | None = None,
        greeting: str = DEFAULT_GREETING,
        auto_open_delay_s: float = 3.0,
    ) -> None:
        self._stores = stores
        self._dispatcher = dispatcher
        self._evidence_cache = evidence_cache
        self._greeting = greeting
        self._auto_open_delay_s = auto_open_delay_s
        self._state = SessionState.IDLE
        self._filters = QueryFilters()
        self._ready = False
        self._current_view = LANDING_VIEW
        self._evaluation: EvaluationView | None = None
        self._dispatch_task: asyncio.Task[Message] | None = None
        self._auto_open_task: asyncio.Task[bool] | None = None
        self._prober: LivenessProber | None = None
        self._messages: list[Message] = []
        self.restore()
        self._open = self._stores.session.get(OPEN_KEY) is True

    # -- view model -----------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def pending(self) -> bool:
        return self._state is SessionState.AWAITING

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    @property
    def filters(self) -> QueryFilters:
        return self._filters

    @property
    def is_open(self) -> bool:
        return self._open

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def evaluation(self) -> EvaluationView | None:
        return self._evaluation

    def view(self) -> SessionView:
        return SessionView(
            messages=self.messages,
            pending=self.pending,
            filters=self._filters,
            is_open=self._open,
            ready=self._ready,
            current_view=self._current_view,
            evaluation=self._evaluation,
        )

    # -- persistence ----------------------------------------------------

    def restore(self) -> tuple[Message, ...]:
        """Reload the log from the session tier.

        An absent or unreadable log is replaced by the greeting, which is
        written back so the stored log matches the one in memory.
        """

        raw = self._stores.session.get(MESSAGES_KEY)
        if raw is None:
            return self._reseed()
        try:
            if not isinstance(raw, list) or not raw:
                raise ValueError("stored log is not a non-empty list")
            messages = [Message.model_validate(item) for item in raw]
            if len({message.id for message in messages}) != len(messages):
                raise ValueError("stored log has duplicate message ids")
        except (ValueError, ValidationError) as exc:
            _LOG.warning("Discarding unreadable stored chat log: {}", exc)
            return self._reseed()
        self._messages = messages
        return self.messages

    def _reseed(self) -> tuple[Message, ...]:
        self._messages = [self._greeting_message()]
        self.persist()
        return self.messages

    def persist(self) -> bool:
        payload = [message.model_dump(mode="json") for message in self._messages]
        ok = self._stores.session.set(MESSAGES_KEY, payload)
        if not ok:
            _LOG.warning("Chat log kept in memory only; session store rejected the write")
        return ok

    async def reset(self) -> None:
        """Drop the whole log and start over from the greeting.

        An outstanding dispatch is cancelled and awaited first, so the
        dispatcher is free again by the time this returns.
        """

        await self._cancel_dispatch()
        self._evaluation = None
        self._reseed()

    def _greeting_message(self) -> Message:
        return Message.assistant(self._greeting)

    def _append(self, message: Message) -> Message:
        self._messages.append(message)
        self.persist()
        return message

    # -- querying -------------------------------------------------------

    def set_filters(
        self, product_area: str | None = None, section: str | None = None
    ) -> QueryFilters:
        """Select scoping filters from the catalog; empty values mean "all"."""

        self._filters = QueryFilters(
            product_area=resolve_option(product_area, PRODUCT_AREAS),
            section=resolve_option(section, SECTIONS),
        )
        return self._filters

    def clear_filters(self) -> None:
        self._filters = QueryFilters()

    def submit(
        self, question: str, filters: QueryFilters | None = None
    ) -> asyncio.Task[Message] | None:
        """Append the user message and start the dispatch.

        Returns the task resolving to the assistant reply, or ``None`` when the
        question is blank or a reply is still pending.
        """

        if not question.strip():
            _LOG.debug("Ignoring blank question")
            return None
        if self.pending:
            _LOG.debug("Ignoring question while a reply is pending")
            return None
        loop = asyncio.get_running_loop()
        self._append(Message.user(question))
        self._state = SessionState.AWAITING
        scoped = self._filters if filters is None else filters
        task = loop.create_task(self._dispatch(question, scoped))
        self._dispatch_task = task
        return task

    async def ask(self, question: str, filters: QueryFilters | None = None) -> Message | None:
        task = self.submit(question, filters)
        if task is None:
            return None
        return await task

    async def _dispatch(self, question: str, filters: QueryFilters) -> Message:
        try:
            result = await self._dispatcher.dispatch(question, None if filters.empty else filters)
        except asyncio.CancelledError:
            if self._dispatch_task is asyncio.current_task():
                self._state = SessionState.IDLE
                self._dispatch_task = None
            raise
        except Exception as exc:
            _LOG.exception("Dispatch task failed")
            result = DispatchFailure(str(exc) or exc.__class__.__name__, "internal")
        return self.on_dispatch_result(result)

    def on_dispatch_result(self, result: DispatchResult) -> Message:
        if isinstance(result, QueryResponse):
            message = Message.assistant(result.answer, evidence=result)
        else:
            message = Message.assistant(failure_text(result))
        self._state = SessionState.IDLE
        self._dispatch_task = None
        return self._append(message)

    # -- evidence -------------------------------------------------------

    def find_message(self, message_id: str) -> Message | None:
        for message in self._messages:
            if message.id == message_id:
                return message
        return None

    def context_for(self, message_id: str) -> QueryResponse | None:
        message = self.find_message(message_id)
        if message is None or message.role != "assistant":
            return None
        return message.evidence

    async def request_evaluation(self, message_id: str) -> EvaluationView:
        """Open the evaluation view for an answered message and load its result."""

        evidence = self.context_for(message_id)
        if evidence is None or not evidence.query_id:
            raise LookupError(f"Message {message_id} has no evaluable answer")
        if self._evidence_cache is None:
            raise RuntimeError("No evaluation source configured")
        query_id = evidence.query_id
        view = EvaluationView(query_id=query_id)
        self._evaluation = view
        try:
            result = await self._evidence_cache.lookup(query_id)
        except Exception as exc:
            finished = EvaluationView(query_id=query_id, status=FAILED, error=str(exc))
        else:
            finished = EvaluationView(query_id=query_id, status=READY, result=result)
        # A view closed or replaced while loading stays closed or replaced.
        if self._evaluation is view:
            self._evaluation = finished
        return finished

    def close_evaluation(self) -> None:
        self._evaluation = None

    # -- liveness -------------------------------------------------------

    def attach_prober(self, prober: LivenessProber) -> None:
        self._prober = prober
        prober.add_listener(self._mark_ready)

    def _mark_ready(self) -> None:
        self._ready = True

    # -- panel ----------------------------------------------------------

    def _set_open(self, value: bool) -> None:
        self._open = value
        self._stores.session.set(OPEN_KEY, value)

    def toggle_open(self) -> bool:
        self._set_open(not self._open)
        if self._open:
            self.cancel_auto_open()
        return self._open

    def open(self) -> None:
        self.cancel_auto_open()
        self._set_open(True)

    def close(self) -> None:
        self._set_open(False)

    @property
    def auto_opened_ever(self) -> bool:
        return self._stores.durable.get(AUTO_OPENED_KEY) is True

    def _auto_open_allowed(self) -> bool:
        return (
            self._current_view == LANDING_VIEW
            and not self._open
            and not self.pending
            and not self.auto_opened_ever
        )

    def set_view(self, view: str) -> None:
        self._current_view = view
        if view != LANDING_VIEW:
            self.cancel_auto_open()

    def schedule_auto_open(self) -> asyncio.Task[bool] | None:
        """Open the panel after the configured delay, at most once ever.

        The returned task resolves to ``True`` if the panel was opened.
        """

        if self._auto_open_task is not None and not self._auto_open_task.done():
            return self._auto_open_task
        if not self._auto_open_allowed():
            return None
        self._auto_open_task = asyncio.get_running_loop().create_task(self._auto_open())
        return self._auto_open_task

    async def _auto_open(self) -> bool:
        await asyncio.sleep(self._auto_open_delay_s)
        if not self._auto_open_allowed():
            return False
        self._stores.durable.set(AUTO_OPENED_KEY, True)
        self._set_open(True)
        _LOG.info("Chat panel auto-opened")
        return True

    def cancel_auto_open(self) -> None:
        task = self._auto_open_task
        self._auto_open_task = None
        if task is not None and not task.done():
            task.cancel()

    # -- teardown -------------------------------------------------------

    async def aclose(self) -> None:
        self.cancel_auto_open()
        if self._prober is not None:
            self._prober.dispose()
        await self._cancel_dispatch()

    async def _cancel_dispatch(self) -> None:
        task = self._dispatch_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._dispatch_task = None
        self._state = SessionState.IDLE
