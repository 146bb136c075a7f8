from __future__ import annotations

import base64
import io
import json
from pathlib import Path

import pytest
from PIL import Image
from urllib.error import HTTPError, URLError

from atelier_engine.errors import ErrorCategory, ProviderError
from atelier_engine.providers.base import ChatRequest, EditRequest, ImageRequest, SpeechRequest
from atelier_engine.providers.venice import VeniceProvider, build_edit_payload, build_generate_payload


class DummyResponse:
    def __init__(self, body: bytes, status: int = 200, headers: dict | None = None, lines: list[bytes] | None = None):
        self._body = body
        self.status = status
        self.headers = headers or {}
        self._lines = lines or []

    def read(self) -> bytes:
        return self._body

    def __iter__(self):
        return iter(self._lines)

    def __enter__(self) -> "DummyResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        return False


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (16, 12), (200, 10, 10)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def venice_key(monkeypatch) -> None:
    monkeypatch.setenv("VENICE_API_KEY", "test-key")
    monkeypatch.delenv("VENICE_IMAGE_API_KEY", raising=False)
    monkeypatch.delenv("VENICE_CHAT_API_KEY", raising=False)
    monkeypatch.delenv("VENICE_API_BASE", raising=False)


def test_venice_generate_writes_artifact(tmp_path: Path, monkeypatch, venice_key) -> None:
    captured = {}
    image = _png_bytes()

    def fake_urlopen(req, timeout=0):
        captured["url"] = req.full_url
        captured["auth"] = req.get_header("Authorization")
        captured["payload"] = json.loads(req.data.decode("utf-8"))
        return DummyResponse(json.dumps({"images": [base64.b64encode(image).decode("ascii")]}).encode("utf-8"))

    monkeypatch.setattr("atelier_engine.providers.http.urlopen", fake_urlopen)

    response = VeniceProvider().generate(
        ImageRequest(prompt="a lighthouse", seed=42, style_preset="Photographic", out_dir=str(tmp_path))
    )

    assert captured["url"] == "https://api.venice.ai/api/v1/image/generate"
    assert captured["auth"] == "Bearer test-key"
    payload = captured["payload"]
    assert payload["model"] == "hidream"
    assert payload["seed"] == 42
    assert payload["style_preset"] == "Photographic"
    assert payload["return_binary"] is False
    artifact = response.results[0]
    assert artifact.image_path.read_bytes() == image
    assert (artifact.width, artifact.height) == (16, 12)
    assert artifact.image_path.suffix == ".webp"


def test_generate_payload_drops_unknown_style() -> None:
    payload = build_generate_payload(ImageRequest(prompt="x", style_preset="Anime"))
    assert "style_preset" not in payload
    assert 0 <= payload["seed"] <= 999_999_999


def test_edit_payload_clamps_parameters() -> None:
    payload = build_edit_payload(
        EditRequest(prompt="x", image=b"raw", strength=1.5, guidance_scale=0.5, num_inference_steps=80)
    )
    assert payload["strength"] == 1.0
    assert payload["guidance_scale"] == 1.0
    assert payload["num_inference_steps"] == 50
    assert payload["image"] == base64.b64encode(b"raw").decode("ascii")


def test_venice_edit_reads_binary_body(tmp_path: Path, monkeypatch, venice_key) -> None:
    image = _png_bytes()

    def fake_urlopen(req, timeout=0):
        assert req.full_url.endswith("/image/edit")
        return DummyResponse(image, headers={"Content-Type": "image/png"})

    monkeypatch.setattr("atelier_engine.providers.http.urlopen", fake_urlopen)

    response = VeniceProvider().edit(EditRequest(prompt="brighter", image=image, strength=0.7, out_dir=str(tmp_path)))

    assert response.results[0].image_path.suffix == ".png"
    assert response.results[0].image_path.read_bytes() == image


@pytest.mark.parametrize(
    ("status", "category"),
    [
        (401, ErrorCategory.AUTHENTICATION_FAILURE),
        (429, ErrorCategory.RATE_LIMITED),
        (503, ErrorCategory.SERVER_UNAVAILABLE),
    ],
)
def test_venice_http_errors_are_categorized(tmp_path: Path, monkeypatch, venice_key, status, category) -> None:
    def fake_urlopen(req, timeout=0):
        raise HTTPError(req.full_url, status, "error", {}, io.BytesIO(b'{"error": "nope"}'))

    monkeypatch.setattr("atelier_engine.providers.http.urlopen", fake_urlopen)

    with pytest.raises(ProviderError) as excinfo:
        VeniceProvider().edit(EditRequest(prompt="x", image=b"raw", out_dir=str(tmp_path)))

    assert excinfo.value.category == category
    assert excinfo.value.status == status
    assert "nope" in str(excinfo.value)


def test_venice_transport_error(monkeypatch, venice_key) -> None:
    def fake_urlopen(req, timeout=0):
        raise URLError("connection refused")

    monkeypatch.setattr("atelier_engine.providers.http.urlopen", fake_urlopen)

    with pytest.raises(ProviderError) as excinfo:
        VeniceProvider().complete(ChatRequest(system_prompt="s", turns=[]))

    assert excinfo.value.category == ErrorCategory.TRANSPORT_FAILURE


def test_venice_requires_api_key(monkeypatch) -> None:
    for key in ("VENICE_API_KEY", "VENICE_IMAGE_API_KEY", "VENICE_CHAT_API_KEY"):
        monkeypatch.delenv(key, raising=False)

    with pytest.raises(ProviderError) as excinfo:
        VeniceProvider().generate(ImageRequest(prompt="x"))

    assert excinfo.value.category == ErrorCategory.NOT_CONFIGURED


def test_venice_stream_yields_deltas(monkeypatch, venice_key) -> None:
    captured = {}
    lines = [
        b'data: {"choices": [{"delta": {"content": "Hel"}}]}\n',
        b"\n",
        b"data: not-json\n",
        b'data: {"choices": [{"delta": {"content": "lo"}}]}\n',
        b"data: [DONE]\n",
        b'data: {"choices": [{"delta": {"content": "ignored"}}]}\n',
    ]

    def fake_urlopen(req, timeout=0):
        captured["payload"] = json.loads(req.data.decode("utf-8"))
        captured["accept"] = req.get_header("Accept")
        return DummyResponse(b"", lines=lines)

    monkeypatch.setattr("atelier_engine.providers.http.urlopen", fake_urlopen)

    request = ChatRequest(system_prompt="sys", turns=[{"role": "user", "content": "hi"}], max_tokens=800)
    deltas = list(VeniceProvider().stream(request))

    assert deltas == ["Hel", "lo"]
    assert captured["payload"]["stream"] is True
    assert captured["payload"]["max_tokens"] == 800
    assert captured["payload"]["messages"][0] == {"role": "system", "content": "sys"}
    assert captured["accept"] == "text/event-stream"


def test_venice_speech_payload(monkeypatch, venice_key) -> None:
    captured = {}

    def fake_urlopen(req, timeout=0):
        captured["url"] = req.full_url
        captured["payload"] = json.loads(req.data.decode("utf-8"))
        return DummyResponse(b"ID3-audio", headers={"Content-Type": "audio/mpeg"})

    monkeypatch.setattr("atelier_engine.providers.http.urlopen", fake_urlopen)

    audio = VeniceProvider().synthesize(SpeechRequest(text="x" * 5000))

    assert audio == b"ID3-audio"
    assert captured["url"].endswith("/audio/speech")
    assert len(captured["payload"]["input"]) == 4096
    assert captured["payload"]["voice"] == "af_sky"
    assert captured["payload"]["streaming"] is False
