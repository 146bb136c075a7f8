"""Append-only session events stream."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from dataclasses import field
from pathlib import Path
from typing import Any, Callable

from ..utils import now_utc_iso, sanitize_payload

EventListener = Callable[[dict[str, Any]], None]


@dataclass
class EventWriter:
    path: Path | None
    session_id: str
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, init=False)
    _listeners: list[EventListener] = field(default_factory=list, repr=False, init=False)

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def emit(self, event_type: str, **payload: Any) -> dict[str, Any]:
        event = {
            "type": event_type,
            "session_id": self.session_id,
            "ts": now_utc_iso(),
        }
        event.update(sanitize_payload(payload))
        with self._lock:
            if self.path is not None:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                line = f"{json.dumps(event)}\n"
                with self.path.open("a", encoding="utf-8") as handle:
                    handle.write(line)
            listeners = list(self._listeners)
        for listener in listeners:
            listener(event)
        return event

    def toast(self, title: str, description: str, *, variant: str = "default") -> dict[str, Any]:
        return self.emit("toast", title=title, description=description, variant=variant)
