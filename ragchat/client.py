"""HTTP client for the remote question-answering service."""

from __future__ import annotations

import time
from typing import Any, Callable
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from .logging_utils import get_logger
from .models import EvaluationResult, MetricsSnapshot, QueryFilters, QueryResponse

_LOG = get_logger("client")

TRANSPORT = "transport"
PROTOCOL = "protocol"
DECODE = "decode"


class ServiceError(RuntimeError):
    """A failed exchange with the remote service.

    ``kind`` is ``transport`` (unreachable, timeout), ``protocol`` (non-2xx)
    or ``decode`` (body is not the expected shape).
    """

    def __init__(self, message: str, *, kind: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


class ServiceClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout_s: float = 30.0,
        api_key: str | None = None,
        http_client_factory: Callable[..., httpx.AsyncClient] | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._api_key = api_key
        self._client_factory = http_client_factory

    @property
    def base_url(self) -> str:
        return self._base_url

    def _client(self) -> httpx.AsyncClient:
        if self._client_factory:
            return self._client_factory(timeout_s=self._timeout_s)
        return httpx.AsyncClient(timeout=self._timeout_s)

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def query(self, question: str, filters: QueryFilters | None = None) -> QueryResponse:
        payload: dict[str, Any] = {"question": question}
        scoped = filters.to_payload() if filters else None
        if scoped:
            payload["filters"] = scoped
        data = await self._request_json("POST", "/api/v1/query", json=payload)
        return _decode(QueryResponse, data)

    async def evaluate(self, query_id: str) -> EvaluationResult:
        path = f"/api/v1/query/evaluate/{quote(query_id, safe='')}"
        data = await self._request_json("GET", path)
        return _decode(EvaluationResult, data)

    async def metrics(self) -> MetricsSnapshot:
        data = await self._request_json("GET", "/api/v1/query/metrics")
        return _decode(MetricsSnapshot, data)

    async def health(self) -> bool:
        """Return ``True`` only when ``HEAD /health`` answers with a 2xx status."""

        try:
            async with self._client() as client:
                response = await client.head(f"{self._base_url}/health")
        except httpx.HTTPError as exc:
            _LOG.debug("Health probe failed: {}", exc)
            return False
        return response.is_success

    async def _request_json(self, method: str, path: str, *, json: Any = None) -> Any:
        url = f"{self._base_url}{path}"
        started = time.perf_counter()
        try:
            async with self._client() as client:
                response = await client.request(method, url, json=json, headers=self._headers())
        except httpx.HTTPError as exc:
            raise ServiceError(
                f"Network error: {exc.__class__.__name__}", kind=TRANSPORT
            ) from exc
        _LOG.debug(
            "{} {} -> {} in {:.0f} ms",
            method,
            path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        if not response.is_success:
            reason = response.reason_phrase or str(response.status_code)
            raise ServiceError(
                f"API error: {reason}", kind=PROTOCOL, status_code=response.status_code
            )
        try:
            return response.json()
        except ValueError as exc:
            raise ServiceError("Malformed response from server", kind=DECODE) from exc


def _decode(model: type[BaseModel], data: Any):
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise ServiceError(
            f"Unexpected response shape ({exc.error_count()} errors)", kind=DECODE
        ) from exc
