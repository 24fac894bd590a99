"""Command line interface for the agentbridge conversion utilities."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Sequence, TextIO

from .config import ClientConfig
from .core.adapters.normalize import MessageSchema, messages_to_wire
from .core.adapters.projector import ResponseProjector
from .core.errors import BridgeError, WireFormatError
from .core.message import GenerateChunk, GenerateResponse

LOGGER = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Convert messages and responses between the OpenAI and native agent schemas"
    )
    parser.add_argument(
        "--log-level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Override AGENTBRIDGE_LOG_LEVEL",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    normalize_parser = subparsers.add_parser(
        "normalize", help="convert a JSON list of messages into native transport payloads"
    )
    normalize_parser.add_argument("input", help="Path to a JSON file, or '-' for stdin")
    normalize_parser.add_argument(
        "--schema",
        choices=[schema.value for schema in MessageSchema],
        default=MessageSchema.AUTO.value,
        help="Schema of the input messages (auto classifies each message by role)",
    )
    normalize_parser.add_argument("-o", "--output", type=Path, help="Write to this path instead of stdout")

    project_parser = subparsers.add_parser(
        "project", help="render a native generate response as an OpenAI chat completion"
    )
    project_parser.add_argument("input", help="Path to a JSON file, or '-' for stdin")
    project_parser.add_argument("--model", help="Model label for the projected envelope")
    project_parser.add_argument(
        "--stream",
        action="store_true",
        help="Treat the input as JSON lines of stream chunks and emit chunk lines",
    )
    project_parser.add_argument("-o", "--output", type=Path, help="Write to this path instead of stdout")

    subparsers.add_parser("config", help="print the configuration resolved from the environment")

    return parser


def _read_input(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _load_json(text: str, *, source: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"{source}: invalid JSON ({exc.msg} at line {exc.lineno})"
        raise WireFormatError(msg) from exc


def _write_output(text: str, output: Path | None) -> None:
    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(text, encoding="utf-8")
        return
    sys.stdout.write(text)
    if not text.endswith("\n"):
        sys.stdout.write("\n")


def _handle_normalize(args: argparse.Namespace) -> int:
    payload = _load_json(_read_input(args.input), source=args.input)
    if not isinstance(payload, list):
        raise WireFormatError(f"{args.input}: expected a JSON list of messages")

    converted = messages_to_wire(payload, schema=args.schema)
    _write_output(json.dumps(converted, indent=2), args.output)
    return 0


def _handle_project(args: argparse.Namespace, config: ClientConfig) -> int:
    projector = ResponseProjector(config.projection_defaults())
    text = _read_input(args.input)

    if not args.stream:
        response = GenerateResponse.from_wire(_load_json(text, source=args.input))
        completion = projector.project_response(response, model=args.model)
        _write_output(json.dumps(completion.to_dict(), indent=2), args.output)
        return 0

    lines: list[str] = []
    for number, line in enumerate(text.splitlines(), start=1):
        if not line.strip():
            continue
        chunk = GenerateChunk.from_wire(_load_json(line, source=f"{args.input}:{number}"))
        lines.append(json.dumps(projector.project_chunk(chunk, model=args.model).to_dict()))
    LOGGER.info("projected %s chunk(s)", len(lines))
    _write_output("\n".join(lines), args.output)
    return 0


def _handle_config(config: ClientConfig, stream: TextIO) -> int:
    stream.write("agentbridge configuration:\n")
    for key, value in config.describe().items():
        stream.write(f"  {key}: {value}\n")
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = ClientConfig.from_env()
    except ValueError as exc:
        parser.error(str(exc))
    if args.log_level:
        config.log_level = args.log_level
    logging.basicConfig(level=config.log_level_number, format="%(levelname)s %(name)s: %(message)s")

    try:
        if args.command == "normalize":
            return _handle_normalize(args)
        if args.command == "project":
            return _handle_project(args, config)
        if args.command == "config":
            return _handle_config(config, sys.stdout)
    except (BridgeError, OSError) as exc:
        sys.stderr.write(f"error: {exc}\n")
        return 1
    parser.error("no command provided")
    return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
