"""Plain-text rendering for the terminal client."""

from __future__ import annotations

import html
import re
from typing import Iterable

from .evaluations import FAILED, EvaluationView
from .models import Message, MetricsSnapshot, QueryResponse

_BR_RE = re.compile(r"<br\s*/?>", re.IGNORECASE)
_LINK_RE = re.compile(
    r"<a\s+[^>]*href=[\"']([^\"']*)[\"'][^>]*>(.*?)</a>", re.IGNORECASE | re.DOTALL
)
_TAG_RE = re.compile(r"<[^>]+>")

WAKE_UP_BANNER = "Server is waking up. Please wait a minute or two while it starts."


def plain_text(markup: str) -> str:
    """Flatten the limited inline markup allowed in message text."""

    text = _BR_RE.sub("\n", markup)
    text = _LINK_RE.sub(lambda m: f"{m.group(2)} ({m.group(1)})", text)
    text = _TAG_RE.sub("", text)
    return html.unescape(text)


def format_message(message: Message, index: int | None = None) -> str:
    speaker = "you" if message.role == "user" else "bot"
    stamp = message.timestamp.astimezone().strftime("%H:%M")
    prefix = f"[{index}] " if index is not None else ""
    body = plain_text(message.text)
    lines = [f"{prefix}{speaker} {stamp}: {body}"]
    if message.evidence is not None:
        hint = "context available"
        if message.evidence.query_id:
            hint += f", query {message.evidence.query_id}"
        lines.append(f"    ({hint})")
    return "\n".join(lines)


def format_log(messages: Iterable[Message]) -> str:
    return "\n".join(format_message(message, idx) for idx, message in enumerate(messages))


def format_context(payload: QueryResponse) -> str:
    if payload.no_context_found:
        return "No context found for this query."
    lines = ["Context used:"]
    for item in payload.context_used:
        lines.append(
            f"- {item.section} [{item.section_id}] similarity {item.similarity_score * 100:.2f}%"
        )
        lines.append(f"  {item.content}")
    lines.append("Sources: " + (", ".join(payload.sources) or "none"))
    return "\n".join(lines)


def format_evaluation(view: EvaluationView) -> str:
    if view.loading:
        return "Evaluating query..."
    if view.status == FAILED or view.result is None:
        return "Failed to load evaluation data."
    result = view.result
    verdict = result.verdict if result.is_reliable else f"{result.verdict} (not reliable)"
    return "\n".join(
        [
            f"Query ID: {result.query_id}",
            f"Question: {result.question}",
            f"Answer: {result.answer}",
            f"Verdict: {verdict}",
            f"Confidence: {result.confidence * 100:.1f}%",
            f"Possible hallucination: {'Yes' if result.possible_hallucination else 'No'}",
            f"Reasoning: {result.reasoning}",
        ]
    )


def format_metrics(snapshot: MetricsSnapshot) -> str:
    lines = [
        f"Requests: {snapshot.total_requests} "
        f"(ok {snapshot.successes}, failed {snapshot.failures}, "
        f"error rate {snapshot.error_rate * 100:.1f}%)",
        f"Latency ms: avg {snapshot.avg_latency:.0f}, p50 {snapshot.p50_latency:.0f}, "
        f"p95 {snapshot.p95_latency:.0f}",
        f"Throughput: {snapshot.throughput:.2f}/min",
        f"Tokens: {snapshot.total_tokens} "
        f"(prompt {snapshot.total_prompt}, completion {snapshot.total_completion})",
        f"Cost: ${snapshot.total_cost:.4f} "
        f"(embedding ${snapshot.total_embedding_cost:.4f}, llm ${snapshot.total_llm_cost:.4f})",
    ]
    for insight in snapshot.insights:
        lines.append(f"* {insight}")
    if snapshot.recent:
        lines.append("Recent:")
        for item in snapshot.recent:
            status = "ok" if item.success else f"error: {item.error or 'unknown'}"
            lines.append(
                f"- {item.timestamp} {item.latency_ms:.0f} ms {status} {item.question_snippet}"
            )
    return "\n".join(lines)
