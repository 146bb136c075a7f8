"""Session snapshot persistence."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from ..chat.messages import Conversation
from ..utils import now_utc_iso, write_json


def write_snapshot(
    path: Path,
    conversation: Conversation,
    *,
    mode: str,
    model: str,
    extra: dict[str, Any] | None = None,
) -> dict[str, Any]:
    payload = conversation.snapshot(mode, model)
    payload["ts"] = now_utc_iso()
    if extra:
        payload.update(extra)
    write_json(path, payload)
    return payload
