"""Health polling that runs until the remote service first reports ready."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from .logging_utils import get_logger

_LOG = get_logger("prober")

ReadyListener = Callable[[], None]


class LivenessProber:
    """Poll ``probe`` every ``interval_s`` seconds until it returns ``True``.

    The first attempt runs as soon as the poll task is scheduled. Probe
    failures count as "not ready". Ready is terminal: once observed, the task
    exits and listeners are notified exactly once.
    """

    def __init__(
        self,
        probe: Callable[[], Awaitable[bool]],
        *,
        interval_s: float = 3.0,
        autostart: bool = True,
    ) -> None:
        if interval_s <= 0:
            raise ValueError("interval_s must be > 0")
        self._probe = probe
        self._interval_s = interval_s
        self._ready = asyncio.Event()
        self._listeners: list[ReadyListener] = []
        self._attempts = 0
        self._task: asyncio.Task[None] | None = None
        if autostart:
            self.start()

    @property
    def ready(self) -> bool:
        return self._ready.is_set()

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: ReadyListener) -> None:
        if self.ready:
            listener()
            return
        self._listeners.append(listener)

    def start(self) -> None:
        if self.ready or self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def wait_ready(self, timeout_s: float | None = None) -> bool:
        try:
            await asyncio.wait_for(self._ready.wait(), timeout_s)
        except asyncio.TimeoutError:
            return False
        return True

    def dispose(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self) -> None:
        while True:
            self._attempts += 1
            try:
                ok = bool(await self._probe())
            except Exception as exc:
                _LOG.debug("Health probe attempt {} failed: {}", self._attempts, exc)
                ok = False
            if ok:
                self._mark_ready()
                return
            await asyncio.sleep(self._interval_s)

    def _mark_ready(self) -> None:
        _LOG.info("Service ready after {} probe(s)", self._attempts)
        self._ready.set()
        listeners, self._listeners = self._listeners, []
        for listener in listeners:
            try:
                listener()
            except Exception:
                _LOG.exception("Ready listener failed")
