"""Pydantic models for the question-answering wire contract and the chat log."""

from __future__ import annotations

import datetime as dt
import itertools
import threading
import time
import uuid
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

RELIABLE_VERDICT = "RELIABLE"

Role = Literal["user", "assistant"]

_ID_LOCK = threading.Lock()
_ID_SEQ = itertools.count()


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def new_message_id() -> str:
    """Return a unique, time-ordered message identifier.

    Identifiers sort lexicographically in creation order: a fixed-width
    nanosecond timestamp, then a per-process sequence number, then a random
    suffix so two processes sharing a store never collide.
    """

    with _ID_LOCK:
        seq = next(_ID_SEQ)
    return f"{time.time_ns():016x}-{seq:06x}-{uuid.uuid4().hex[:8]}"


class QueryFilters(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    product_area: Optional[str] = None
    section: Optional[str] = None

    def to_payload(self) -> dict[str, str] | None:
        payload = {
            key: value
            for key, value in (("product_area", self.product_area), ("section", self.section))
            if value
        }
        return payload or None

    @property
    def empty(self) -> bool:
        return self.to_payload() is None


class ContextItem(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    content: str
    section: str
    section_id: str
    similarity_score: float = Field(ge=0.0, le=1.0)


class QueryResponse(BaseModel):
    """Answer plus the evidence it was generated from."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    answer: str
    context_used: list[ContextItem] = Field(default_factory=list)
    no_context_found: bool = False
    query_id: str
    sources: list[str] = Field(default_factory=list)


class EvaluationResult(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    query_id: str
    question: str
    answer: str
    verdict: str = Field(description="RELIABLE or any other server-defined tag")
    confidence: float = Field(ge=0.0, le=1.0)
    possible_hallucination: bool
    reasoning: str

    @property
    def is_reliable(self) -> bool:
        return self.verdict == RELIABLE_VERDICT


class Message(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str = Field(default_factory=new_message_id)
    role: Role
    text: str
    timestamp: dt.datetime = Field(default_factory=_utc_now)
    evidence: Optional[QueryResponse] = None

    @classmethod
    def user(cls, text: str) -> "Message":
        return cls(role="user", text=text)

    @classmethod
    def assistant(cls, text: str, evidence: QueryResponse | None = None) -> "Message":
        return cls(role="assistant", text=text, evidence=evidence)


class RecentQuery(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    timestamp: str
    latency_ms: float = Field(alias="latencyMs")
    total_tokens: int = 0
    tokens_prompt: int = 0
    tokens_completion: int = 0
    cost_usd: float = Field(0.0, alias="costUsd")
    embedding_cost_usd: float = Field(0.0, alias="embeddingCostUsd")
    llm_cost_usd: float = Field(0.0, alias="llmCostUsd")
    success: bool
    error: Optional[str] = None
    question_snippet: str = Field("", alias="questionSnippet")
    query_id: str = Field("", alias="queryId")


class MetricsSnapshot(BaseModel):
    """Aggregate counters reported by the service metrics endpoint."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    total_requests: int = Field(0, alias="totalRequests")
    successes: int = 0
    failures: int = 0
    error_rate: float = Field(0.0, alias="errorRate")
    avg_latency: float = Field(0.0, alias="avgLatency")
    p50_latency: float = Field(0.0, alias="p50Latency")
    p95_latency: float = Field(0.0, alias="p95Latency")
    throughput: float = 0.0
    total_tokens: int = Field(0, alias="totalTokens")
    total_prompt: int = Field(0, alias="totalPrompt")
    total_completion: int = Field(0, alias="totalCompletion")
    total_cost: float = Field(0.0, alias="totalCost")
    total_embedding_cost: float = Field(0.0, alias="totalEmbeddingCost")
    total_llm_cost: float = Field(0.0, alias="totalLlmCost")
    insights: list[str] = Field(default_factory=list)
    recent: list[RecentQuery] = Field(default_factory=list)
