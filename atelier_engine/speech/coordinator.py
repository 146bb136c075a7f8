"""Arbitration between speech playback and microphone capture.

Playback and capture are mutually exclusive. Starting a capture cancels the
pending remote synthesis (never a text stream) and stops whatever is playing.
Remote synthesis is preferred; any remote failure falls back to the local
synthesizer, except a cancelled request, which neither falls back nor plays.
"""

from __future__ import annotations

import re
import threading
from dataclasses import dataclass
from typing import Protocol

from ..cancellation import CancelToken
from ..chat.messages import VoiceMessage
from ..errors import Cancelled, ProviderError
from ..providers.base import SpeechRequest, SpeechSynthesizer
from ..runs.events import EventWriter


class AudioOutput(Protocol):
    def play(self, audio: bytes, audio_format: str) -> None:
        ...

    def stop(self) -> None:
        ...


class LocalSynthesizer(Protocol):
    def speak(self, text: str, *, rate: float, pitch: float, volume: float) -> None:
        ...

    def cancel(self) -> None:
        ...


class Microphone(Protocol):
    def start(self) -> None:
        ...

    def stop(self) -> str:
        ...


@dataclass(frozen=True)
class SpeechSettings:
    voice: str = "af_sky"
    response_format: str = "mp3"
    speed: float = 1.0
    model: str = "tts-kokoro"
    local_rate: float = 0.9
    local_pitch: float = 1.0
    local_volume: float = 0.8


def normalize_transcript(transcript: str) -> str:
    text = re.sub(r"\s+", " ", transcript or "").strip()
    if text and text[-1] not in ".!?":
        text += "."
    return text


def voice_message(transcript: str, audio_ref: str | None = None) -> VoiceMessage:
    return VoiceMessage(role="user", content=normalize_transcript(transcript), audio_ref=audio_ref)


class SpeechCoordinator:
    def __init__(
        self,
        output: AudioOutput,
        *,
        remote: SpeechSynthesizer | None = None,
        local: LocalSynthesizer | None = None,
        microphone: Microphone | None = None,
        settings: SpeechSettings | None = None,
        enabled: bool = True,
        events: EventWriter | None = None,
    ) -> None:
        self.output = output
        self.remote = remote
        self.local = local
        self.microphone = microphone
        self.settings = settings or SpeechSettings()
        self.enabled = enabled
        self.events = events
        self._lock = threading.Lock()
        self._pending: CancelToken | None = None
        self._recording = False
        self._speaking = False

    @property
    def recording(self) -> bool:
        return self._recording

    @property
    def speaking(self) -> bool:
        return self._speaking

    def speak(self, text: str) -> str:
        """Speak `text`; returns `skipped`, `remote`, `local`, `cancelled` or `failed`."""
        if not self.enabled or not text or not text.strip() or self._recording:
            return "skipped"
        token = CancelToken()
        with self._lock:
            if self._pending is not None:
                self._pending.cancel()
            self._pending = token
        self.stop_playback()

        if self.remote is None:
            return self._speak_locally(text, token, reason="no remote synthesizer")
        request = SpeechRequest(
            text=text,
            voice=self.settings.voice,
            response_format=self.settings.response_format,
            speed=self.settings.speed,
            model=self.settings.model,
        )
        try:
            audio = self.remote.synthesize(request, token)
        except Cancelled:
            return self._cancelled()
        except (ProviderError, OSError) as exc:
            if token.cancelled:
                return self._cancelled()
            return self._speak_locally(text, token, reason=str(exc))
        finally:
            with self._lock:
                if self._pending is token:
                    self._pending = None

        if token.cancelled:
            return self._cancelled()
        if self._recording:
            return "skipped"
        try:
            self.output.play(audio, self.settings.response_format)
        except OSError as exc:
            return self._speak_locally(text, token, reason=f"playback failed: {exc}")
        self._speaking = True
        return "remote"

    def start_recording(self) -> None:
        with self._lock:
            pending = self._pending
            self._pending = None
            self._recording = True
        if pending is not None:
            pending.cancel()
        self.stop_playback()
        if self.microphone is not None:
            self.microphone.start()

    def stop_recording(self) -> str:
        transcript = ""
        if self.microphone is not None:
            transcript = self.microphone.stop()
        with self._lock:
            self._recording = False
        return normalize_transcript(transcript)

    def stop_playback(self) -> None:
        self.output.stop()
        if self.local is not None:
            self.local.cancel()
        self._speaking = False

    def _speak_locally(self, text: str, token: CancelToken, *, reason: str) -> str:
        if token.cancelled:
            return self._cancelled()
        if self.local is None or self._recording:
            return "failed"
        if self.events is not None:
            self.events.emit("speech_fallback", reason=reason)
        self.local.speak(
            text,
            rate=self.settings.local_rate,
            pitch=self.settings.local_pitch,
            volume=self.settings.local_volume,
        )
        self._speaking = True
        return "local"

    def _cancelled(self) -> str:
        if self.events is not None:
            self.events.emit("speech_cancelled")
        return "cancelled"
