from __future__ import annotations

import json
from pathlib import Path

from atelier_engine.chat.loop import ChatLoop, help_text, parse_slash
from atelier_engine.chat.messages import ImageMessage, VoiceMessage
from atelier_engine.config import EngineConfig
from atelier_engine.engine import AtelierEngine


class FakeOutput:
    def __init__(self) -> None:
        self.played: list[bytes] = []

    def play(self, audio: bytes, audio_format: str) -> None:
        self.played.append(audio)

    def stop(self) -> None:
        return None


class FakeMicrophone:
    def __init__(self, transcript: str) -> None:
        self.transcript = transcript

    def start(self) -> None:
        return None

    def stop(self) -> str:
        return self.transcript


def _engine(tmp_path: Path, transcript: str = "") -> tuple[AtelierEngine, FakeOutput]:
    config = EngineConfig()
    config.use_dryrun()
    output = FakeOutput()
    run_dir = tmp_path / "run"
    engine = AtelierEngine(
        run_dir,
        run_dir / "events.jsonl",
        config,
        audio_output=output,
        microphone=FakeMicrophone(transcript),
    )
    return engine, output


def _event_types(engine: AtelierEngine) -> list[str]:
    path = engine.run_dir / "events.jsonl"
    return [json.loads(line)["type"] for line in path.read_text(encoding="utf-8").splitlines()]


def test_engine_chat_round_trip(tmp_path: Path) -> None:
    engine, output = _engine(tmp_path)

    engine.send("hello there")

    reply = engine.conversation.messages[-1]
    assert reply.role == "assistant"
    assert reply.content.startswith("[dryrun] hello there")
    assert output.played and output.played[-1].startswith(b"dryrun-audio:af_sky:")
    types = _event_types(engine)
    assert types.index("session_started") < types.index("intent_classified")
    assert "message_appended" in types


def test_engine_voice_input_becomes_voice_message(tmp_path: Path) -> None:
    engine, _ = _engine(tmp_path, transcript="  tell me a joke ")
    engine.start_recording()
    assert engine.speech.recording

    engine.stop_recording("/tmp/clip.wav")

    voice = [message for message in engine.conversation.messages if isinstance(message, VoiceMessage)]
    assert len(voice) == 1
    assert voice[0].content == "tell me a joke."
    assert voice[0].audio_ref == "/tmp/clip.wav"
    assert engine.conversation.messages[-1].role == "assistant"


def test_engine_snapshot(tmp_path: Path) -> None:
    engine, _ = _engine(tmp_path)
    engine.send("draw me something")

    payload = engine.snapshot()

    saved = json.loads(engine.snapshot_path.read_text(encoding="utf-8"))
    assert saved["session_id"] == engine.conversation.session_id
    assert saved["title"] == "draw me something"
    assert len(saved["messages"]) == len(payload["messages"]) == len(engine.conversation)
    assert saved["success_rate"] == 1.0
    assert "session_snapshot" in _event_types(engine)


def test_parse_slash_commands() -> None:
    parsed = parse_slash("/upload '/tmp/my photo.png' extra")
    assert parsed is not None
    spec, arg = parsed
    assert spec.action == "upload"
    assert arg == "/tmp/my photo.png"
    assert parse_slash("/unknown") is None
    assert parse_slash("not a command") is None
    assert "/pick" in help_text()


def test_chat_loop_select_and_enhance_generated_image(tmp_path: Path) -> None:
    engine, _ = _engine(tmp_path)
    lines = iter(["/mode photo", "a lighthouse", "/select", "/pick 1", "enhance the lighting", "yes"])
    printed: list[str] = []

    def reader(_prompt: str) -> str:
        try:
            return next(lines)
        except StopIteration:
            raise EOFError from None

    def printer(*args, **kwargs) -> None:
        printed.append(" ".join(str(arg) for arg in args))

    ChatLoop(engine, reader=reader, printer=printer).run()

    images = [message for message in engine.conversation.messages if isinstance(message, ImageMessage)]
    assert len(images) == 2
    assert "Image Enhanced Successfully" in images[-1].content
    assert engine.router.context.selected_image == images[-1].image_ref
    assert any("Mode set to photo" in line for line in printed)
    assert engine.snapshot_path.exists()


def test_new_chat_greeting_is_logged_under_new_session(tmp_path: Path) -> None:
    engine, _ = _engine(tmp_path)
    old_session = engine.conversation.session_id
    engine.send("hello there")

    engine.new_chat()

    path = engine.run_dir / "events.jsonl"
    events = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    greeting_id = engine.conversation.messages[0].message_id
    greeting_events = [event for event in events if event.get("message_id") == greeting_id]
    assert greeting_events
    assert greeting_events[0]["session_id"] == engine.conversation.session_id != old_session
    assert events[-1]["type"] == "session_started"
    assert events[-1]["session_id"] == engine.conversation.session_id


def test_chat_loop_clears_view_on_new_chat(tmp_path: Path) -> None:
    engine, _ = _engine(tmp_path)
    lines = iter(["hello there", "/new"])
    printed: list[str] = []

    def reader(_prompt: str) -> str:
        try:
            return next(lines)
        except StopIteration:
            raise EOFError from None

    def printer(*args, **kwargs) -> None:
        printed.append(" ".join(str(arg) for arg in args))

    ChatLoop(engine, reader=reader, printer=printer).run()

    assert "--- new conversation ---" in printed
    after = printed[printed.index("--- new conversation ---") + 1 :]
    assert any(line.startswith("Hello! I'm your AI assistant.") for line in after)
