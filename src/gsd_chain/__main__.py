"""CLI entrypoint for gsd-auto-chain."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from gsd_chain.controller import ChainController
from gsd_chain.extractor import extract_next_command
from gsd_chain.handoff import FileHandoffStore
from gsd_chain.policy import decide_for_project


def _load_dotenv() -> None:
    """Load .env from cwd or its parent so overrides are found regardless of cwd."""
    for dir_ in (Path.cwd(), Path.cwd().parent):
        env_file = dir_ / ".env"
        if env_file.is_file():
            load_dotenv(env_file)
            return
    load_dotenv()


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the command-line parser for all supported modes."""
    p = argparse.ArgumentParser(
        prog="gsd-auto-chain",
        description="Chain the next GSD workflow command after each step finishes.",
    )
    p.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose (DEBUG) logging.",
    )
    sub = p.add_subparsers(dest="command")

    hook_p = sub.add_parser("hook", help="Handle one host event read as JSON from stdin.")
    hook_p.add_argument("--project", type=str, default=".", help="Project directory (default: cwd).")
    hook_p.add_argument("--server", type=str, default="", help="Host server URL (default: $OPENCODE_SERVER_URL).")

    extract_p = sub.add_parser("extract", help="Print the next command found in assistant text.")
    extract_p.add_argument("file", nargs="?", default="", help="Text file to scan (default: stdin).")
    extract_p.add_argument(
        "--project",
        type=str,
        default="",
        help="Also apply the eligibility policy using this project's configuration.",
    )

    pending_p = sub.add_parser("pending", help="Show the pending handoff command.")
    pending_p.add_argument(
        "--consume",
        action="store_true",
        help="Claim (and remove) the pending command instead of just showing it.",
    )

    serve_p = sub.add_parser("serve", help="Receive host events over HTTP.")
    serve_p.add_argument("--port", type=int, default=4097, help="Port (default 4097)")
    serve_p.add_argument("--project", type=str, default=".", help="Project directory (default: cwd).")
    serve_p.add_argument("--server", type=str, default="", help="Host server URL (default: $OPENCODE_SERVER_URL).")
    return p


def _run_hook(args: argparse.Namespace) -> int:
    raw = sys.stdin.read()
    try:
        event = json.loads(raw) if raw.strip() else {}
    except ValueError as exc:
        print(f"Invalid event JSON: {exc}", file=sys.stderr)
        return 0
    if not isinstance(event, dict):
        print("Event must be a JSON object.", file=sys.stderr)
        return 0

    controller = ChainController.from_environment(
        Path(args.project).resolve(),
        server_url=args.server or None,
    )
    result = asyncio.run(controller.handle_event(event))
    if result is None:
        return 0
    if isinstance(result, str):
        print(json.dumps({"pending": result}))
    else:
        print(result.model_dump_json())
    return 0


def _run_extract(args: argparse.Namespace) -> int:
    if args.file:
        text = Path(args.file).read_text(encoding="utf-8")
    else:
        text = sys.stdin.read()
    command = extract_next_command(text)
    if not command:
        print("No next command found.", file=sys.stderr)
        return 1
    if not args.project:
        print(command)
        return 0
    decision = decide_for_project(command, text, Path(args.project).resolve())
    print(decision.model_dump_json())
    return 0 if decision.run else 1


def _run_pending(args: argparse.Namespace) -> int:
    store = FileHandoffStore()
    if args.consume:
        command = store.claim()
        if not command:
            print("No pending command.", file=sys.stderr)
            return 1
        print(command)
        return 0

    record = store.peek()
    if record is None:
        print("No pending command.", file=sys.stderr)
        return 1
    expired = record.is_expired(store.clock(), store.ttl_ms)
    print(f"{record.command}{' (expired)' if expired else ''}")
    return 0


def _run_serve(args: argparse.Namespace) -> int:
    from gsd_chain.server import main as serve_main

    controller = ChainController.from_environment(
        Path(args.project).resolve(),
        server_url=args.server or None,
    )
    serve_main(controller, port=args.port)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and dispatch to the appropriate mode."""
    _load_dotenv()
    parser = _build_parser()
    args = parser.parse_args(argv)
    level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
        datefmt="%H:%M:%S",
    )
    if args.command == "hook":
        return _run_hook(args)
    if args.command == "extract":
        return _run_extract(args)
    if args.command == "pending":
        return _run_pending(args)
    if args.command == "serve":
        return _run_serve(args)

    parser.print_help()
    print(
        "\nTip: pipe a host event into 'gsd-auto-chain hook',\n"
        "     or run 'gsd-auto-chain serve' to receive events over HTTP.",
        file=sys.stderr,
    )
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
