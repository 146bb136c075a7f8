"""Interactive chat loop wrapper."""

from __future__ import annotations

import re
import shlex
from pathlib import Path
from typing import Any, Callable

from ..engine import AtelierEngine
from ..errors import ProviderError, user_message, user_title
from ..utils import getenv_flag
from .command_registry import SLASH_COMMAND_MAP, SLASH_COMMANDS, SlashCommand
from .messages import STREAMING_SUFFIX, LOADING_SUFFIX, Message

_SLASH_PATTERN = re.compile(r"^/(\w+)(?:\s+(.*))?$")


def parse_slash(line: str) -> tuple[SlashCommand, str] | None:
    match = _SLASH_PATTERN.match(line.strip())
    if not match:
        return None
    spec = SLASH_COMMAND_MAP.get(match.group(1).lower())
    if spec is None:
        return None
    arg = (match.group(2) or "").strip()
    if spec.arg_kind == "single_path" and arg:
        parts = shlex.split(arg)
        arg = parts[0] if parts else ""
    return spec, arg


def help_text() -> str:
    width = max(len(spec.command) for spec in SLASH_COMMANDS) + 1
    lines = ["Commands:"]
    lines.extend(f"  /{spec.command.ljust(width)} {spec.help}" for spec in SLASH_COMMANDS)
    return "\n".join(lines)


class ChatLoop:
    def __init__(
        self,
        engine: AtelierEngine,
        reader: Callable[[str], str] = input,
        printer: Callable[..., Any] = print,
    ) -> None:
        self.engine = engine
        self.reader = reader
        self.printer = printer
        self._streamed: dict[str, int] = {}
        engine.conversation.subscribe(self._render)
        engine.events.subscribe(self._render_event)
        self._handlers: dict[str, Callable[[str], None]] = {
            "select": lambda _arg: self.engine.send("select image"),
            "pick": self._pick,
            "set_mode": self._set_mode,
            "new_chat": lambda _arg: self.engine.new_chat(),
            "upload": self._upload,
            "record": lambda _arg: self._record(),
            "stop_recording": lambda _arg: self.engine.stop_recording(),
            "set_audio": self._set_audio,
            "snapshot": lambda _arg: self._snapshot(),
            "help": lambda _arg: self.printer(help_text()),
        }

    def run(self) -> None:
        self.printer("Atelier chat started. Type /help for commands.")
        for message in self.engine.conversation.messages:
            self._render("append", message)
        while True:
            try:
                line = self.reader("> ")
            except (EOFError, KeyboardInterrupt):
                break
            self.handle_line(line)
        self.engine.speech.stop_playback()
        self.engine.snapshot()

    def handle_line(self, line: str) -> None:
        if not line.strip():
            return
        slash = parse_slash(line)
        if slash is None:
            if line.strip().startswith("/"):
                self.printer(f"Unknown command: {line.split()[0]}. Type /help for commands.")
                return
            self.engine.send(line)
            return
        spec, arg = slash
        self._handlers[spec.action](arg)

    def _pick(self, arg: str) -> None:
        images = self.engine.conversation.images()
        if not images:
            self.printer("There are no images in this conversation yet.")
            return
        try:
            index = int(arg) - 1
        except ValueError:
            self.printer(f"/pick requires an image number between 1 and {len(images)}")
            return
        if not 0 <= index < len(images):
            self.printer(f"/pick requires an image number between 1 and {len(images)}")
            return
        if not self.engine.router.choose_image(images[index].message_id):
            self.printer("Type /select (or \"select image\") before picking an image.")

    def _set_mode(self, arg: str) -> None:
        try:
            self.engine.router.set_mode(arg.strip().lower())
        except ValueError as exc:
            self.printer(str(exc))
            return
        self.printer(f"Mode set to {self.engine.router.mode}")

    def _upload(self, arg: str) -> None:
        if not arg:
            self.printer("/upload requires a path")
            return
        path = Path(arg).expanduser()
        try:
            self.engine.router.upload_image(str(path))
        except ProviderError as exc:
            self.printer(f"Upload failed: {user_title(exc.category)}. {user_message(exc.category)}")
        except OSError as exc:
            self.printer(f"Upload failed: {exc}")

    def _record(self) -> None:
        self.engine.start_recording()
        self.printer("Recording... type /stop to send the transcript.")

    def _set_audio(self, arg: str) -> None:
        value = arg.strip().lower()
        if value not in {"on", "off"}:
            self.printer("/audio expects 'on' or 'off'")
            return
        self.engine.set_audio(value == "on")
        self.printer(f"Audio {value}")

    def _snapshot(self) -> None:
        payload = self.engine.snapshot()
        self.printer(f"Snapshot written to {self.engine.snapshot_path} ({len(payload['messages'])} messages)")

    def _render(self, action: str, message: Message | None) -> None:
        if message is None:
            self._streamed.clear()
            self.printer("--- new conversation ---")
            return
        if message.role != "assistant":
            return
        if message.message_id.endswith(STREAMING_SUFFIX):
            if action == "remove":
                self._streamed.pop(message.message_id, None)
                self.printer("")
                return
            shown = self._streamed.get(message.message_id, 0)
            self.printer(message.content[shown:], end="", flush=True)
            self._streamed[message.message_id] = len(message.content)
            return
        if action == "update":
            if self._streamed.pop(f"{message.message_id}{STREAMING_SUFFIX}", None) is not None:
                self.printer("")
            return
        if action == "append" and not message.message_id.endswith(LOADING_SUFFIX):
            self.printer(message.content)
            ref = getattr(message, "image_ref", None)
            if ref:
                self.printer(f"[image] {ref}")
        elif action == "append":
            self.printer(message.content.splitlines()[0])

    def _render_event(self, event: dict[str, Any]) -> None:
        if event.get("type") == "suggestions":
            for item in event.get("items") or []:
                self.printer(f"  💡 {item}")
        elif event.get("type") == "toast" and getenv_flag("ATELIER_SHOW_TOASTS", False):
            self.printer(f"[{event.get('title')}] {event.get('description')}")
