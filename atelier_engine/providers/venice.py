"""Venice AI provider: chat, image generate/edit/upscale, and speech."""

from __future__ import annotations

import base64
import os
import random
from typing import Any, Iterator

from ..cancellation import CancelToken
from ..errors import ErrorCategory, ProviderError
from ..media.artifacts import extension_for, image_size, write_artifact
from .base import (
    ChatRequest,
    EditRequest,
    GeneratedArtifact,
    ImageRequest,
    ProviderResponse,
    SpeechRequest,
    UpscaleRequest,
)
from .http import extract_completion_text, iter_sse_deltas, post_for_bytes, post_json

STYLE_PRESETS = {"Photographic", "Realistic", "Photorealistic"}


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class VeniceProvider:
    name = "venice"

    def __init__(self, api_base: str | None = None, timeout_s: float = 120.0, image_model: str = "hidream") -> None:
        self.api_base = (api_base or os.getenv("VENICE_API_BASE") or "https://api.venice.ai/api/v1").rstrip("/")
        self.timeout_s = timeout_s
        self.image_model = image_model

    def complete(self, request: ChatRequest) -> str:
        api_key = _require_key("chat")
        _, response = post_json(
            f"{self.api_base}/chat/completions",
            request.payload(),
            api_key,
            self.timeout_s,
            provider=self.name,
        )
        text = extract_completion_text(response)
        if text is None:
            raise ProviderError(
                ErrorCategory.SERVER_UNAVAILABLE, "Venice chat returned no completion.", provider=self.name
            )
        return text

    def stream(self, request: ChatRequest, cancel: CancelToken | None = None) -> Iterator[str]:
        api_key = _require_key("chat")
        return iter_sse_deltas(
            f"{self.api_base}/chat/completions",
            request.payload(stream=True),
            api_key,
            self.timeout_s,
            provider=self.name,
            cancel=cancel,
        )

    def generate(self, request: ImageRequest) -> ProviderResponse:
        api_key = _require_key("image")
        payload = build_generate_payload(request, model=self.image_model)
        endpoint = f"{self.api_base}/image/generate"
        status_code, response = post_json(endpoint, payload, api_key, self.timeout_s, provider=self.name)
        images = response.get("images")
        if not isinstance(images, list) or not images:
            raise ProviderError(
                ErrorCategory.SERVER_UNAVAILABLE, "No image received from Venice AI API.", provider=self.name
            )
        results: list[GeneratedArtifact] = []
        for idx, blob in enumerate(images):
            data = base64.b64decode(blob)
            width, height = image_size(data)
            path = write_artifact(request.out_dir, data, request.output_format or "webp", idx)
            results.append(GeneratedArtifact(image_path=path, width=width, height=height, seed=payload["seed"]))
        return ProviderResponse(
            results=results,
            provider_request={"endpoint": endpoint, "payload": payload},
            provider_response={"status_code": status_code, "images_count": len(images)},
        )

    def edit(self, request: EditRequest) -> ProviderResponse:
        api_key = _require_key("image")
        payload = build_edit_payload(request)
        endpoint = f"{self.api_base}/image/edit"
        return self._binary_image_call(endpoint, payload, api_key, request.out_dir)

    def upscale(self, request: UpscaleRequest) -> ProviderResponse:
        api_key = _require_key("image")
        payload = {
            "image": base64.b64encode(request.image).decode("ascii"),
            "scale": request.scale,
            "enhance": request.enhance,
            "enhanceCreativity": request.enhance_creativity,
            "enhancePrompt": request.enhance_prompt,
        }
        endpoint = f"{self.api_base}/image/upscale"
        return self._binary_image_call(endpoint, payload, api_key, request.out_dir)

    def synthesize(self, request: SpeechRequest, cancel: CancelToken | None = None) -> bytes:
        api_key = _require_key("chat")
        payload = {
            "input": request.capped_text(),
            "model": request.model,
            "voice": request.voice,
            "response_format": request.response_format,
            "speed": request.speed,
            "streaming": False,
        }
        _, body, _ = post_for_bytes(
            f"{self.api_base}/audio/speech",
            payload,
            api_key,
            self.timeout_s,
            provider=self.name,
            cancel=cancel,
        )
        return body

    def _binary_image_call(
        self, endpoint: str, payload: dict[str, Any], api_key: str, out_dir: str | None
    ) -> ProviderResponse:
        status_code, body, content_type = post_for_bytes(
            endpoint, payload, api_key, self.timeout_s, provider=self.name
        )
        width, height = image_size(body)
        path = write_artifact(out_dir, body, extension_for(content_type, default="png"))
        return ProviderResponse(
            results=[GeneratedArtifact(image_path=path, width=width, height=height)],
            provider_request={"endpoint": endpoint, "payload": payload},
            provider_response={"status_code": status_code, "content_type": content_type, "bytes": len(body)},
        )


def build_generate_payload(request: ImageRequest, model: str = "hidream") -> dict[str, Any]:
    seed = request.seed if request.seed is not None else random.randint(0, 999_999_999)
    payload: dict[str, Any] = {
        "prompt": request.prompt,
        "width": request.width,
        "height": request.height,
        "steps": request.steps,
        "cfg_scale": request.cfg_scale,
        "model": model,
        "format": request.output_format,
        "return_binary": False,
        "embed_exif_metadata": False,
        "hide_watermark": False,
        "safe_mode": False,
        "seed": seed,
        "lora_strength": 50,
    }
    if request.negative_prompt:
        payload["negative_prompt"] = request.negative_prompt
    if request.style_preset in STYLE_PRESETS:
        payload["style_preset"] = request.style_preset
    return payload


def build_edit_payload(request: EditRequest) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "prompt": request.prompt,
        "image": base64.b64encode(request.image).decode("ascii"),
    }
    if request.mask:
        payload["mask"] = base64.b64encode(request.mask).decode("ascii")
    if request.strength is not None:
        payload["strength"] = clamp(request.strength, 0.0, 1.0)
    if request.guidance_scale is not None:
        payload["guidance_scale"] = clamp(request.guidance_scale, 1.0, 20.0)
    if request.num_inference_steps is not None:
        payload["num_inference_steps"] = int(clamp(request.num_inference_steps, 1, 50))
    return payload


def _require_key(purpose: str) -> str:
    if purpose == "image":
        key = os.getenv("VENICE_IMAGE_API_KEY") or os.getenv("VENICE_API_KEY")
    else:
        key = os.getenv("VENICE_CHAT_API_KEY") or os.getenv("VENICE_API_KEY")
    if not key:
        raise ProviderError(
            ErrorCategory.NOT_CONFIGURED,
            "Venice AI API key missing. Set VENICE_API_KEY.",
            provider="venice",
        )
    return key
