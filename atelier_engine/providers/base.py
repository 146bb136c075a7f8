"""Provider base classes."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Iterator, Mapping, Protocol, Sequence

from ..cancellation import CancelToken


@dataclass
class ChatRequest:
    system_prompt: str
    turns: Sequence[Mapping[str, Any]]
    model: str = "default"
    max_tokens: int = 1500
    temperature: float = 0.7

    def payload(self, *, stream: bool = False) -> dict[str, Any]:
        messages: list[dict[str, Any]] = [{"role": "system", "content": self.system_prompt}]
        messages.extend(dict(turn) for turn in self.turns)
        body: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        if stream:
            body["stream"] = True
        return body


@dataclass
class ImageRequest:
    prompt: str
    negative_prompt: str | None = None
    width: int = 1024
    height: int = 1024
    steps: int = 25
    cfg_scale: float = 8.0
    output_format: str = "webp"
    seed: int | None = None
    style_preset: str | None = None
    out_dir: str | None = None


@dataclass
class EditRequest:
    prompt: str
    image: bytes
    mask: bytes | None = None
    strength: float | None = None
    guidance_scale: float | None = None
    num_inference_steps: int | None = None
    out_dir: str | None = None


@dataclass
class UpscaleRequest:
    image: bytes
    scale: int = 2
    enhance: bool = True
    enhance_prompt: str = "enhance quality, improve details, sharpen"
    enhance_creativity: float = 0.5
    out_dir: str | None = None


@dataclass
class SpeechRequest:
    text: str
    voice: str = "af_sky"
    response_format: str = "mp3"
    speed: float = 1.0
    model: str = "tts-kokoro"

    MAX_CHARS = 4096

    def capped_text(self) -> str:
        return self.text[: self.MAX_CHARS]


@dataclass
class GeneratedArtifact:
    image_path: Path
    width: int | None = None
    height: int | None = None
    seed: int | None = None
    metadata: Mapping[str, Any] | None = None


@dataclass
class ProviderResponse:
    results: list[GeneratedArtifact]
    provider_request: Mapping[str, Any]
    provider_response: Mapping[str, Any]
    warnings: list[str] = field(default_factory=list)


class TextProvider(Protocol):
    name: str

    def complete(self, request: ChatRequest) -> str:
        ...

    def stream(self, request: ChatRequest, cancel: CancelToken | None = None) -> Iterator[str]:
        ...


class ImageGenerator(Protocol):
    name: str

    def generate(self, request: ImageRequest) -> ProviderResponse:
        ...


class ImageEditor(Protocol):
    name: str

    def edit(self, request: EditRequest) -> ProviderResponse:
        ...


class ImageUpscaler(Protocol):
    name: str

    def upscale(self, request: UpscaleRequest) -> ProviderResponse:
        ...


class SpeechSynthesizer(Protocol):
    name: str

    def synthesize(self, request: SpeechRequest, cancel: CancelToken | None = None) -> bytes:
        ...


class ProviderRegistry:
    def __init__(self, providers: Iterable[Any]) -> None:
        self._providers = {provider.name: provider for provider in providers}

    def get(self, name: str) -> Any | None:
        return self._providers.get(name)

    def require(self, name: str, capability: str) -> Any:
        provider = self.get(name)
        if provider is None or not callable(getattr(provider, capability, None)):
            raise RuntimeError(f"No provider '{name}' available for capability '{capability}'.")
        return provider

    def list(self) -> list[str]:
        return sorted(self._providers.keys())
