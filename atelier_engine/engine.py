"""Core Atelier engine orchestration."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from .chat.context_window import ContextWindowManager
from .chat.messages import Conversation, Message
from .chat.router import GREETING, IntentRouter
from .chat.streaming import StreamingCoordinator
from .config import EngineConfig
from .media.pipeline import MediaPipeline
from .providers import default_registry
from .providers.base import ProviderRegistry
from .runs.events import EventWriter
from .runs.performance import PerformanceMonitor
from .runs.session import write_snapshot
from .speech.coordinator import AudioOutput, LocalSynthesizer, Microphone, SpeechCoordinator, voice_message
from .speech.devices import ConsoleMicrophone, ConsoleSynthesizer, FileAudioOutput
from .utils import now_utc_iso


class AtelierEngine:
    def __init__(
        self,
        run_dir: Path,
        events_path: Path,
        config: EngineConfig | None = None,
        provider_registry: ProviderRegistry | None = None,
        *,
        audio_output: AudioOutput | None = None,
        local_synthesizer: LocalSynthesizer | None = None,
        microphone: Microphone | None = None,
    ) -> None:
        self.run_dir = run_dir
        self.run_dir.mkdir(parents=True, exist_ok=True)
        self.config = config or EngineConfig()
        self.conversation = Conversation()
        self.events = EventWriter(events_path, self.conversation.session_id)
        self.conversation.subscribe(self._on_message)
        self.providers = provider_registry or default_registry()
        self.monitor = PerformanceMonitor(on_performance_mode=self._on_performance_mode)
        self.pipeline = MediaPipeline(
            self.providers,
            out_dir=str(run_dir),
            events=self.events,
            monitor=self.monitor,
            generators=self.config.generators,
            editor=self.config.editor,
            upscaler=self.config.upscaler,
            style=self.config.image_style,
        )
        self.text_provider = self.providers.require(self.config.text_provider, "stream")
        self.streaming = StreamingCoordinator(self.text_provider, events=self.events, monitor=self.monitor)
        remote = self.providers.get(self.config.speech_provider)
        self.speech = SpeechCoordinator(
            audio_output or FileAudioOutput(run_dir),
            remote=remote if callable(getattr(remote, "synthesize", None)) else None,
            local=local_synthesizer or ConsoleSynthesizer(),
            microphone=microphone or ConsoleMicrophone(),
            enabled=self.config.audio_enabled,
            events=self.events,
        )
        self.router = IntentRouter(
            self.conversation,
            self.pipeline,
            self.streaming,
            self.text_provider,
            mode=self.config.mode,
            model=self.config.text_model,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
            image_style=self.config.image_style,
            context_window=ContextWindowManager(token_budget=self.config.context_token_budget),
            speaker=self.speech.speak,
            events=self.events,
            monitor=self.monitor,
        )
        self.snapshot_path = run_dir / "session.json"
        self.started_at = now_utc_iso()
        self.conversation.reset(GREETING)
        self.events.emit(
            "session_started",
            out_dir=str(self.run_dir),
            mode=self.config.mode,
            dryrun=self.config.dryrun,
            providers=self.providers.list(),
        )

    def send(self, text: str) -> Any:
        return self.router.handle(text)

    def start_recording(self) -> None:
        self.speech.start_recording()
        self.events.emit("recording_started")

    def stop_recording(self, audio_ref: str | None = None) -> Any:
        transcript = self.speech.stop_recording()
        self.events.emit("recording_stopped", chars=len(transcript))
        if not transcript:
            return None
        return self.router.handle(transcript, message=voice_message(transcript, audio_ref))

    def set_audio(self, enabled: bool) -> None:
        self.speech.enabled = enabled
        if not enabled:
            self.speech.stop_playback()

    def new_chat(self) -> None:
        self.speech.stop_playback()
        self.router.new_chat()

    def snapshot(self) -> dict[str, Any]:
        payload = write_snapshot(
            self.snapshot_path,
            self.conversation,
            mode=self.router.mode,
            model=self.config.text_model,
            extra={
                "started_at": self.started_at,
                "performance_mode": self.monitor.performance_mode,
                "success_rate": round(self.monitor.success_rate(), 3),
            },
        )
        self.events.emit("session_snapshot", path=str(self.snapshot_path), messages=len(payload["messages"]))
        return payload

    def _on_message(self, action: str, message: Message | None) -> None:
        if action == "reset":
            self.events.session_id = self.conversation.session_id
            return
        if action == "update" or message is None:
            return
        self.events.emit(
            "message_appended" if action == "append" else "message_removed",
            message_id=message.message_id,
            role=message.role,
            kind=message.kind,
        )

    def _on_performance_mode(self, mean_latency_ms: float) -> None:
        self.events.emit(
            "performance_mode",
            mean_latency_ms=round(mean_latency_ms, 1),
            success_rate=round(self.monitor.success_rate(), 3),
        )
        self.events.toast(
            "Performance Mode Enabled",
            "Responses are slow, so shorter context and replies are being used.",
        )
