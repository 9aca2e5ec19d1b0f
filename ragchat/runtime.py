"""Wiring of client, dispatcher, prober, cache and session from config."""

from __future__ import annotations

from typing import Callable

import httpx

from .client import ServiceClient
from .config import AppConfig
from .dispatcher import QueryDispatcher
from .evaluations import EvidenceCache
from .prober import LivenessProber
from .session import ChatSession
from .store import StoreTiers


class ChatRuntime:
    def __init__(
        self,
        config: AppConfig,
        *,
        stores: StoreTiers | None = None,
        session_name: str | None = None,
        http_client_factory: Callable[..., httpx.AsyncClient] | None = None,
    ) -> None:
        self.config = config
        self.stores = stores or StoreTiers.from_config(config.storage, session_name)
        self.client = ServiceClient(
            config.service.base_url,
            timeout_s=config.service.timeout_s,
            api_key=config.service.api_key,
            http_client_factory=http_client_factory,
        )
        self.evidence_cache = EvidenceCache(self.client.evaluate)
        self.session = ChatSession(
            self.stores,
            QueryDispatcher(self.client),
            evidence_cache=self.evidence_cache,
            greeting=config.session.greeting,
            auto_open_delay_s=config.session.auto_open_delay_s,
        )
        self.prober: LivenessProber | None = None

    def start(self) -> None:
        """Start health polling; must run inside the event loop."""

        if self.prober is not None or not self.config.prober.enabled:
            return
        self.prober = LivenessProber(self.client.health, interval_s=self.config.prober.interval_s)
        self.session.attach_prober(self.prober)

    async def aclose(self) -> None:
        await self.session.aclose()
        if self.prober is not None:
            self.prober.dispose()

    async def __aenter__(self) -> "ChatRuntime":
        self.start()
        return self

    async def __aexit__(self, *_exc) -> None:
        await self.aclose()
