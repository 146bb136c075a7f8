"""Dry-run provider (offline) covering every capability."""

from __future__ import annotations

import hashlib
import io
import random
import time
from typing import Any, Iterator

from PIL import Image, ImageDraw, ImageEnhance, ImageFont

from ..cancellation import CancelToken
from ..media.artifacts import write_artifact
from .base import (
    ChatRequest,
    EditRequest,
    GeneratedArtifact,
    ImageRequest,
    ProviderResponse,
    SpeechRequest,
    UpscaleRequest,
)


class DryRunProvider:
    name = "dryrun"

    def __init__(self) -> None:
        self._font = None

    def complete(self, request: ChatRequest) -> str:
        last_user = ""
        for turn in reversed(list(request.turns)):
            if turn.get("role") == "user":
                last_user = str(turn.get("content") or "")
                break
        return f"[dryrun] {last_user[:200]}".strip()

    def stream(self, request: ChatRequest, cancel: CancelToken | None = None) -> Iterator[str]:
        text = self.complete(request)
        for word in text.split(" "):
            if cancel is not None and cancel.cancelled:
                return
            yield word + " "

    def generate(self, request: ImageRequest) -> ProviderResponse:
        start = time.monotonic()
        seed = request.seed if request.seed is not None else random.randint(1, 10_000_000)
        image = Image.new("RGB", (request.width, request.height), _color_from_prompt(request.prompt, seed))
        draw = ImageDraw.Draw(image)
        font = self._font or ImageFont.load_default()
        draw.text((20, 20), f"dryrun\n{request.prompt[:60]}", fill=(255, 255, 255), font=font)
        path = write_artifact(request.out_dir, _encode_png(image), "png")
        return ProviderResponse(
            results=[
                GeneratedArtifact(
                    image_path=path,
                    width=request.width,
                    height=request.height,
                    seed=seed,
                    metadata={"dryrun": True},
                )
            ],
            provider_request={"prompt": request.prompt, "width": request.width, "height": request.height},
            provider_response={"elapsed": time.monotonic() - start, "count": 1},
        )

    def edit(self, request: EditRequest) -> ProviderResponse:
        strength = request.strength if request.strength is not None else 0.7
        with Image.open(io.BytesIO(request.image)) as source:
            image = source.convert("RGB")
        factor = 1.0 + strength
        image = ImageEnhance.Contrast(image).enhance(factor)
        image = ImageEnhance.Color(image).enhance(factor)
        image = ImageEnhance.Sharpness(image).enhance(factor)
        path = write_artifact(request.out_dir, _encode_png(image), "png")
        return ProviderResponse(
            results=[GeneratedArtifact(image_path=path, width=image.width, height=image.height)],
            provider_request={
                "prompt": request.prompt,
                "strength": request.strength,
                "guidance_scale": request.guidance_scale,
                "num_inference_steps": request.num_inference_steps,
            },
            provider_response={"factor": factor},
        )

    def upscale(self, request: UpscaleRequest) -> ProviderResponse:
        with Image.open(io.BytesIO(request.image)) as source:
            image = source.convert("RGB")
        scale = max(int(request.scale), 1)
        if scale > 1:
            image = image.resize((image.width * scale, image.height * scale), Image.Resampling.LANCZOS)
        if request.enhance:
            image = ImageEnhance.Sharpness(image).enhance(1.0 + request.enhance_creativity)
        path = write_artifact(request.out_dir, _encode_png(image), "png")
        return ProviderResponse(
            results=[GeneratedArtifact(image_path=path, width=image.width, height=image.height)],
            provider_request={"scale": scale, "enhance": request.enhance, "enhance_prompt": request.enhance_prompt},
            provider_response={"size": [image.width, image.height]},
        )

    def synthesize(self, request: SpeechRequest, cancel: CancelToken | None = None) -> bytes:
        if cancel is not None:
            cancel.raise_if_cancelled()
        return f"dryrun-audio:{request.voice}:{request.capped_text()}".encode("utf-8")


def _encode_png(image: Any) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def _color_from_prompt(prompt: str, seed: int) -> tuple[int, int, int]:
    digest = hashlib.sha256(f"{prompt}:{seed}".encode("utf-8")).digest()
    return digest[0], digest[1], digest[2]
