from __future__ import annotations

from pathlib import Path

import pytest
from PIL import Image

from atelier_engine.cancellation import CancelToken
from atelier_engine.errors import Cancelled
from atelier_engine.providers.base import ChatRequest, EditRequest, ImageRequest, SpeechRequest, UpscaleRequest
from atelier_engine.providers.dryrun import DryRunProvider


def test_dryrun_generate_writes_png(tmp_path: Path) -> None:
    provider = DryRunProvider()
    response = provider.generate(ImageRequest(prompt="boat", width=64, height=48, seed=7, out_dir=str(tmp_path)))

    artifact = response.results[0]
    assert artifact.image_path.exists()
    assert artifact.seed == 7
    with Image.open(artifact.image_path) as image:
        assert image.size == (64, 48)


def test_dryrun_edit_and_upscale(tmp_path: Path) -> None:
    provider = DryRunProvider()
    source = provider.generate(ImageRequest(prompt="boat", width=32, height=32, out_dir=str(tmp_path)))
    data = source.results[0].image_path.read_bytes()

    edited = provider.edit(EditRequest(prompt="brighter", image=data, strength=0.5, out_dir=str(tmp_path)))
    upscaled = provider.upscale(UpscaleRequest(image=data, scale=2, out_dir=str(tmp_path)))

    assert (edited.results[0].width, edited.results[0].height) == (32, 32)
    assert edited.provider_response["factor"] == 1.5
    with Image.open(upscaled.results[0].image_path) as image:
        assert image.size == (64, 64)


def test_dryrun_text_stream_matches_completion() -> None:
    provider = DryRunProvider()
    request = ChatRequest(system_prompt="s", turns=[{"role": "user", "content": "hello world"}])
    assert provider.complete(request) == "[dryrun] hello world"
    assert "".join(provider.stream(request)).strip() == "[dryrun] hello world"

    token = CancelToken()
    token.cancel()
    assert list(provider.stream(request, token)) == []


def test_dryrun_speech_respects_cancellation() -> None:
    provider = DryRunProvider()
    assert provider.synthesize(SpeechRequest(text="hi")) == b"dryrun-audio:af_sky:hi"
    token = CancelToken()
    token.cancel()
    with pytest.raises(Cancelled):
        provider.synthesize(SpeechRequest(text="hi"), token)
