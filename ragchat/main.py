"""Terminal client and CLI entrypoint for ragchat."""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import TextIO

from loguru import logger

from .catalog import PRODUCT_AREAS, SECTIONS, SUGGESTED_QUESTIONS
from .client import ServiceError
from .config import AppConfig, default_config_path, load_config
from .evaluations import FAILED, READY, EvaluationView
from .logging_utils import configure_logging
from .models import QueryFilters
from .render import (
    WAKE_UP_BANNER,
    format_context,
    format_evaluation,
    format_log,
    format_message,
    format_metrics,
)
from .runtime import ChatRuntime
from .session import ChatSession

HELP_TEXT = """Commands:
  /filters            show active filters
  /area NAME          scope by product area (empty for all)
  /section NAME       scope by section (empty for all)
  /clear              clear filters
  /context N          show context behind message N
  /evaluate N         evaluate the answer in message N
  /suggest            list suggested questions
  /reset              start a new conversation
  /quit               leave"""


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(prog="ragchat")
    p.add_argument(
        "--config",
        default=str(default_config_path()),
        help="Path to config YAML (default: ragchat.yml or RAGCHAT_CONFIG).",
    )
    p.add_argument("--session", default=None, help="Keep the chat log in a named session store.")
    p.add_argument("--log-level", default=None, help="Override the configured log level.")
    sub = p.add_subparsers(dest="cmd", required=False)

    sub.add_parser("chat", help="Interactive chat (default).")
    ask = sub.add_parser("ask", help="Ask one question and print the answer.")
    ask.add_argument("question")
    ask.add_argument("--product-area", default=None, choices=PRODUCT_AREAS)
    ask.add_argument("--section", default=None, choices=SECTIONS)
    ask.add_argument("--context", action="store_true", help="Also print the supporting context.")
    evaluate = sub.add_parser("evaluate", help="Print the reliability evaluation of a query.")
    evaluate.add_argument("query_id")
    metrics = sub.add_parser("metrics", help="Print service metrics.")
    metrics.add_argument("--watch", type=float, default=None, metavar="SECONDS")
    sub.add_parser("health", help="Probe the service health endpoint once.")
    sub.add_parser("print-config", help="Load config and print resolved values.")
    return p.parse_args(argv)


def _message_at(runtime: ChatRuntime, raw: str):
    try:
        return runtime.session.messages[int(raw)]
    except (ValueError, IndexError):
        return None


async def _handle_command(runtime: ChatRuntime, line: str, out: TextIO) -> bool:
    """Run a slash command; return ``False`` when the user wants to leave."""

    session = runtime.session
    name, _, arg = line[1:].partition(" ")
    arg = arg.strip()
    if name in {"quit", "exit"}:
        return False
    if name == "help":
        print(HELP_TEXT, file=out)
    elif name == "filters":
        active = session.filters
        print(f"area={active.product_area or 'All'} section={active.section or 'All'}", file=out)
    elif name in {"area", "section"}:
        current = session.filters
        try:
            if name == "area":
                session.set_filters(arg, current.section)
            else:
                session.set_filters(current.product_area, arg)
        except ValueError:
            options = PRODUCT_AREAS if name == "area" else SECTIONS
            print("Choose one of: " + "; ".join(options), file=out)
    elif name == "clear":
        session.clear_filters()
    elif name == "suggest":
        for question in SUGGESTED_QUESTIONS:
            print(f"- {question}", file=out)
    elif name == "reset":
        await session.reset()
        print(format_log(session.messages), file=out)
    elif name in {"context", "evaluate"}:
        message = _message_at(runtime, arg)
        if message is None or message.evidence is None:
            print("No answer with context at that index.", file=out)
        elif name == "context":
            print(format_context(message.evidence), file=out)
        else:
            print(format_evaluation(EvaluationView(message.evidence.query_id)), file=out)
            view = await session.request_evaluation(message.id)
            print(format_evaluation(view), file=out)
            session.close_evaluation()
    else:
        print(HELP_TEXT, file=out)
    return True


async def _open_panel(session: ChatSession) -> bool:
    """Bring the chat up, auto-opening after the delay on the very first run.

    Returns ``True`` when the panel opened through the once-ever auto-open.
    """

    if session.is_open:
        return False
    auto = session.schedule_auto_open()
    if auto is not None and await auto:
        return True
    session.open()
    return False


async def _chat(runtime: ChatRuntime, out: TextIO) -> int:
    session = runtime.session
    await _open_panel(session)
    print(format_log(session.messages), file=out)
    print("Type /help for commands.", file=out)
    while True:
        if not session.ready and runtime.prober is not None:
            print(WAKE_UP_BANNER, file=out)
        try:
            line = (await asyncio.to_thread(input, "> ")).strip()
        except EOFError:
            break
        if not line:
            continue
        if line.startswith("/"):
            if not await _handle_command(runtime, line, out):
                break
            continue
        print("...", file=out)
        reply = await session.ask(line)
        if reply is not None:
            print(format_message(reply, len(session.messages) - 1), file=out)
    session.close()
    return 0


async def _ask(runtime: ChatRuntime, args: argparse.Namespace, out: TextIO) -> int:
    filters = QueryFilters(product_area=args.product_area, section=args.section)
    reply = await runtime.session.ask(args.question, filters)
    if reply is None:
        print("Nothing to ask.", file=out)
        return 2
    print(format_message(reply), file=out)
    if reply.evidence is None:
        return 1
    if args.context:
        print(format_context(reply.evidence), file=out)
    return 0


async def _evaluate(runtime: ChatRuntime, query_id: str, out: TextIO) -> int:
    try:
        result = await runtime.evidence_cache.lookup(query_id)
    except ServiceError as exc:
        logger.warning("Evaluation lookup failed: {}", exc)
        print(format_evaluation(EvaluationView(query_id, status=FAILED, error=str(exc))), file=out)
        return 1
    print(format_evaluation(EvaluationView(query_id, status=READY, result=result)), file=out)
    return 0


async def _metrics(runtime: ChatRuntime, watch_s: float | None, out: TextIO) -> int:
    while True:
        try:
            snapshot = await runtime.client.metrics()
        except ServiceError as exc:
            print(f"Failed to load metrics: {exc}", file=out)
            if watch_s is None:
                return 1
        else:
            print(format_metrics(snapshot), file=out)
        if watch_s is None:
            return 0
        await asyncio.sleep(watch_s)


async def _health(runtime: ChatRuntime, out: TextIO) -> int:
    ok = await runtime.client.health()
    print("ready" if ok else "not ready", file=out)
    return 0 if ok else 1


async def _run_async(config: AppConfig, args: argparse.Namespace, out: TextIO) -> int:
    cmd = args.cmd or "chat"
    runtime = ChatRuntime(config, session_name=args.session)
    if cmd == "chat":
        async with runtime:
            return await _chat(runtime, out)
    try:
        if cmd == "ask":
            return await _ask(runtime, args, out)
        if cmd == "evaluate":
            return await _evaluate(runtime, args.query_id, out)
        if cmd == "metrics":
            return await _metrics(runtime, args.watch, out)
        return await _health(runtime, out)
    finally:
        await runtime.aclose()


def main(argv: list[str] | None = None) -> None:
    argv = list(sys.argv[1:] if argv is None else argv)
    args = _parse_args(argv)
    config = load_config(args.config)
    configure_logging(config.logging.log_dir, args.log_level or config.logging.level)

    if args.cmd == "print-config":
        print(config.model_dump_json(indent=2))
        return

    try:
        raise SystemExit(asyncio.run(_run_async(config, args, sys.stdout)))
    except KeyboardInterrupt:
        logger.info("Shutting down")


if __name__ == "__main__":
    main()
