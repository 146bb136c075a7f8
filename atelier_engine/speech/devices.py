"""Headless stand-ins for the audio devices used by the chat loop."""

from __future__ import annotations

from pathlib import Path
from typing import Callable

from ..media.artifacts import write_artifact


class FileAudioOutput:
    """Writes each synthesized clip to disk instead of a sound card."""

    def __init__(self, out_dir: Path, printer: Callable[[str], None] = print) -> None:
        self.out_dir = out_dir
        self.printer = printer
        self.current: Path | None = None
        self.played: list[Path] = []

    def play(self, audio: bytes, audio_format: str) -> None:
        self.current = write_artifact(str(self.out_dir), audio, audio_format, prefix="speech")
        self.played.append(self.current)
        self.printer(f"[audio] {self.current}")

    def stop(self) -> None:
        self.current = None


class ConsoleSynthesizer:
    def __init__(self, printer: Callable[[str], None] = print) -> None:
        self.printer = printer

    def speak(self, text: str, *, rate: float, pitch: float, volume: float) -> None:
        self.printer(f"[speaking rate={rate} pitch={pitch} volume={volume}] {text[:200]}")

    def cancel(self) -> None:
        return None


class ConsoleMicrophone:
    """Captures a typed transcript when the recording stops."""

    def __init__(self, reader: Callable[[str], str] = input) -> None:
        self.reader = reader
        self.active = False

    def start(self) -> None:
        self.active = True

    def stop(self) -> str:
        if not self.active:
            return ""
        self.active = False
        return self.reader("transcript> ")
