from __future__ import annotations

import json
from pathlib import Path

import pytest
from PIL import Image

from atelier_engine.errors import ErrorCategory, ProviderError
from atelier_engine.media.artifacts import write_artifact
from atelier_engine.media.fallback import FallbackExhausted
from atelier_engine.media.pipeline import MediaPipeline
from atelier_engine.providers.base import (
    EditRequest,
    GeneratedArtifact,
    ImageRequest,
    ProviderRegistry,
    ProviderResponse,
    UpscaleRequest,
)
from atelier_engine.runs.events import EventWriter


def _png(path: Path, size: tuple[int, int] = (8, 8)) -> Path:
    Image.new("RGB", size, (10, 20, 30)).save(path, format="PNG")
    return path


def _response(out_dir: str | None, label: str) -> ProviderResponse:
    path = write_artifact(out_dir, label.encode("utf-8"), "png")
    return ProviderResponse(
        results=[GeneratedArtifact(image_path=path, width=8, height=8)],
        provider_request={},
        provider_response={},
    )


class FakeImageProvider:
    def __init__(self, name: str, *, fail: set[str] | None = None, status: int = 503) -> None:
        self.name = name
        self.fail = fail or set()
        self.status = status
        self.calls: list[tuple[str, object]] = []

    def _maybe_fail(self, op: str) -> None:
        if op in self.fail:
            raise ProviderError(ErrorCategory.SERVER_UNAVAILABLE, f"{op} down", status=self.status, provider=self.name)

    def generate(self, request: ImageRequest) -> ProviderResponse:
        self.calls.append(("generate", request))
        self._maybe_fail("generate")
        return _response(request.out_dir, f"{self.name}-generate")

    def edit(self, request: EditRequest) -> ProviderResponse:
        self.calls.append(("edit", request))
        self._maybe_fail("edit")
        return _response(request.out_dir, f"{self.name}-edit")

    def upscale(self, request: UpscaleRequest) -> ProviderResponse:
        self.calls.append(("upscale", request))
        self._maybe_fail("upscale")
        return _response(request.out_dir, f"{self.name}-upscale")


def _pipeline(tmp_path: Path, *providers: FakeImageProvider) -> tuple[MediaPipeline, Path]:
    events_path = tmp_path / "events.jsonl"
    pipeline = MediaPipeline(
        ProviderRegistry(providers),
        out_dir=str(tmp_path / "out"),
        events=EventWriter(events_path, "session-test"),
    )
    return pipeline, events_path


def _events(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_enhance_uses_standard_edit_first(tmp_path: Path) -> None:
    venice = FakeImageProvider("venice")
    pipeline, _ = _pipeline(tmp_path, venice)
    source = _png(tmp_path / "source.png")

    result = pipeline.enhance(str(source), "enhance the lighting")

    assert result.strategy == "edit:standard"
    assert len(venice.calls) == 1
    op, request = venice.calls[0]
    assert op == "edit"
    assert isinstance(request, EditRequest)
    assert (request.strength, request.guidance_scale, request.num_inference_steps) == (0.7, 8.0, 20)
    assert request.image == source.read_bytes()
    assert Path(result.image_ref).exists()


def test_enhance_falls_through_to_relaxed_edit(tmp_path: Path) -> None:
    class FlakyEditor(FakeImageProvider):
        def edit(self, request: EditRequest) -> ProviderResponse:
            self.calls.append(("edit", request))
            if request.strength == 0.7:
                raise ProviderError(ErrorCategory.SERVER_UNAVAILABLE, "edit down", status=503)
            return _response(request.out_dir, "relaxed")

    venice = FlakyEditor("venice", fail={"upscale"})
    pipeline, events_path = _pipeline(tmp_path, venice)
    source = _png(tmp_path / "source.png")

    result = pipeline.enhance(str(source), "enhance the lighting")

    assert [op for op, _ in venice.calls] == ["edit", "upscale", "edit"]
    upscale_request = venice.calls[1][1]
    assert isinstance(upscale_request, UpscaleRequest)
    assert upscale_request.scale == 1
    assert upscale_request.enhance_prompt == "enhance the lighting"
    relaxed = venice.calls[2][1]
    assert isinstance(relaxed, EditRequest)
    assert (relaxed.strength, relaxed.guidance_scale, relaxed.num_inference_steps) == (0.5, 5.0, 15)
    assert result.strategy == "edit:relaxed"
    assert [attempt.outcome for attempt in result.attempts] == ["failed", "failed", "success"]

    attempts = [event for event in _events(events_path) if event["type"] == "media_attempt"]
    assert [event["strategy"] for event in attempts] == ["edit:standard", "upscale:enhance", "edit:relaxed"]


def test_enhance_stops_after_three_attempts(tmp_path: Path) -> None:
    venice = FakeImageProvider("venice", fail={"edit", "upscale"})
    pipeline, events_path = _pipeline(tmp_path, venice)
    source = _png(tmp_path / "source.png")

    with pytest.raises(FallbackExhausted) as excinfo:
        pipeline.enhance(str(source), "enhance the lighting")

    assert len(venice.calls) == 3
    assert excinfo.value.category == ErrorCategory.SERVER_UNAVAILABLE
    assert len(excinfo.value.attempts) == 3
    exhausted = [event for event in _events(events_path) if event["type"] == "media_fallback_exhausted"]
    assert len(exhausted) == 1
    assert exhausted[0]["operation"] == "enhance"


def test_enhance_without_source_is_no_selection(tmp_path: Path) -> None:
    venice = FakeImageProvider("venice")
    pipeline, _ = _pipeline(tmp_path, venice)

    with pytest.raises(ProviderError) as excinfo:
        pipeline.enhance(None, "enhance")

    assert excinfo.value.category == ErrorCategory.NO_SELECTION
    assert venice.calls == []


def test_generate_falls_back_to_openai(tmp_path: Path) -> None:
    venice = FakeImageProvider("venice", fail={"generate"})
    openai = FakeImageProvider("openai")
    pipeline, _ = _pipeline(tmp_path, venice, openai)

    result = pipeline.generate("a lighthouse")

    assert result.provider == "openai"
    request = openai.calls[0][1]
    assert isinstance(request, ImageRequest)
    assert request.prompt.startswith("a lighthouse, Photographic style")
    assert request.negative_prompt


def test_missing_generator_counts_as_not_configured(tmp_path: Path) -> None:
    pipeline, _ = _pipeline(tmp_path)

    with pytest.raises(FallbackExhausted) as excinfo:
        pipeline.generate("a lighthouse")

    assert excinfo.value.category == ErrorCategory.NOT_CONFIGURED


def test_photo_upscale_cue_upscales_generated_image(tmp_path: Path) -> None:
    venice = FakeImageProvider("venice")
    pipeline, _ = _pipeline(tmp_path, venice)

    outcome = pipeline.photo("a fox in 4k")

    assert [op for op, _ in venice.calls] == ["generate", "upscale"]
    upscale_request = venice.calls[1][1]
    assert isinstance(upscale_request, UpscaleRequest)
    assert upscale_request.scale == 2
    assert outcome.upscaled
    assert outcome.image_ref != outcome.generated.image_ref


def test_photo_upscale_failure_keeps_generated_image(tmp_path: Path) -> None:
    venice = FakeImageProvider("venice", fail={"upscale"})
    pipeline, _ = _pipeline(tmp_path, venice)

    outcome = pipeline.photo("a fox in 4k")

    assert outcome.image_ref == outcome.generated.image_ref
    assert not outcome.upscaled
    assert outcome.note == "Original image generated (upscaling failed)"
    assert outcome.note_category == ErrorCategory.SERVER_UNAVAILABLE


def test_photo_edit_cue_edits_previous_image(tmp_path: Path) -> None:
    venice = FakeImageProvider("venice")
    pipeline, _ = _pipeline(tmp_path, venice)
    previous = _png(tmp_path / "previous.png")

    outcome = pipeline.photo("change the sky, dramatic", previous_image=str(previous))

    assert [op for op, _ in venice.calls] == ["generate", "edit"]
    edit_request = venice.calls[1][1]
    assert isinstance(edit_request, EditRequest)
    assert edit_request.image == previous.read_bytes()
    assert edit_request.strength == 0.9
    assert outcome.applied == "edit"
    assert outcome.parameters is not None and outcome.parameters.strength == 0.9
