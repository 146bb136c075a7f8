"""Atelier CLI entrypoints."""

from __future__ import annotations

import argparse
import json
from pathlib import Path

from .chat.command_registry import MODES
from .chat.loop import ChatLoop
from .config import EngineConfig
from .engine import AtelierEngine
from .utils import load_dotenv, read_json


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="atelier", description="Atelier conversational assistant")
    sub = parser.add_subparsers(dest="command")

    chat = sub.add_parser("chat", help="Interactive chat loop")
    chat.add_argument("--out", required=True, help="Session output directory")
    chat.add_argument("--events", help="Path to events.jsonl")
    chat.add_argument("--mode", choices=MODES, help="Initial conversation mode")
    chat.add_argument("--dryrun", action="store_true", help="Use the offline provider for every call")
    chat.add_argument("--no-audio", dest="audio", action="store_false", default=None, help="Disable spoken replies")

    snapshot = sub.add_parser("snapshot", help="Print a saved session snapshot")
    snapshot.add_argument("--out", required=True, help="Session output directory")

    return parser


def _handle_chat(args: argparse.Namespace) -> int:
    run_dir = Path(args.out)
    events_path = Path(args.events) if args.events else run_dir / "events.jsonl"
    try:
        config = EngineConfig.from_env(dryrun=True if args.dryrun else None, mode=args.mode)
    except ValueError as exc:
        print(f"Configuration error: {exc}")
        return 2
    if args.audio is not None:
        config.audio_enabled = args.audio
    engine = AtelierEngine(run_dir, events_path, config)
    ChatLoop(engine).run()
    return 0


def _handle_snapshot(args: argparse.Namespace) -> int:
    path = Path(args.out) / "session.json"
    payload = read_json(path, None)
    if not isinstance(payload, dict):
        print(f"No session snapshot found at {path}")
        return 1
    print(f"{payload.get('title')} ({payload.get('mode')}, {len(payload.get('messages') or [])} messages)")
    print(json.dumps(payload, indent=2))
    return 0


def main() -> None:
    load_dotenv()
    parser = _build_parser()
    args = parser.parse_args()
    if args.command == "chat":
        raise SystemExit(_handle_chat(args))
    if args.command == "snapshot":
        raise SystemExit(_handle_snapshot(args))
    parser.print_help()
    raise SystemExit(1)


if __name__ == "__main__":
    main()
