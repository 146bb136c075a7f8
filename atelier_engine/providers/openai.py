"""OpenAI Images provider, used as the secondary generator."""

from __future__ import annotations

import base64
import os
from typing import Any, Mapping

from ..errors import ErrorCategory, ProviderError
from ..media.artifacts import image_size, write_artifact
from .base import GeneratedArtifact, ImageRequest, ProviderResponse
from .http import fetch_bytes, post_json

_OPENAI_OUTPUT_FORMATS = {"png", "jpeg", "webp"}


class OpenAIImageProvider:
    name = "openai"

    def __init__(self, api_base: str | None = None, timeout_s: float = 90.0) -> None:
        self.api_base = (api_base or "https://api.openai.com/v1").rstrip("/")
        self.timeout_s = timeout_s

    def generate(self, request: ImageRequest) -> ProviderResponse:
        api_key = _get_api_key()
        if not api_key:
            raise ProviderError(
                ErrorCategory.NOT_CONFIGURED,
                "OpenAI API key missing. Set OPENAI_API_KEY or OPENAI_API_KEY_BACKUP.",
                provider=self.name,
            )
        payload = _build_images_payload(request)
        endpoint = f"{self.api_base}/images/generations"
        status_code, response = post_json(endpoint, payload, api_key, self.timeout_s, provider=self.name)
        items = _extract_image_items(response)
        if not items:
            raise ProviderError(
                ErrorCategory.SERVER_UNAVAILABLE, "OpenAI Images API returned no image data.", provider=self.name
            )
        extension = payload.get("output_format") or "png"
        results: list[GeneratedArtifact] = []
        for idx, item in enumerate(items):
            if isinstance(item.get("b64_json"), str):
                data = base64.b64decode(item["b64_json"])
            else:
                data = fetch_bytes(str(item["url"]), self.timeout_s, provider=self.name)
            width, height = image_size(data)
            path = write_artifact(request.out_dir, data, "jpg" if extension == "jpeg" else extension, idx)
            results.append(
                GeneratedArtifact(
                    image_path=path,
                    width=width,
                    height=height,
                    metadata={"revised_prompt": item.get("revised_prompt")} if item.get("revised_prompt") else None,
                )
            )
        return ProviderResponse(
            results=results,
            provider_request={"endpoint": endpoint, "payload": payload},
            provider_response={"status_code": status_code, "count": len(results)},
        )


def _get_api_key() -> str | None:
    return os.getenv("OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY_BACKUP")


def _build_images_payload(request: ImageRequest) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "model": os.getenv("OPENAI_IMAGE_MODEL") or "gpt-image-1",
        "prompt": request.prompt,
        "n": 1,
        "size": f"{request.width}x{request.height}",
    }
    if str(payload["model"]).startswith("gpt-image"):
        output_format = (request.output_format or "").lower()
        if output_format == "jpg":
            output_format = "jpeg"
        if output_format in _OPENAI_OUTPUT_FORMATS:
            payload["output_format"] = output_format
        payload["moderation"] = "low"
    return payload


def _extract_image_items(response: Mapping[str, Any]) -> list[Mapping[str, Any]]:
    data = response.get("data")
    if not isinstance(data, list):
        return []
    return [
        item
        for item in data
        if isinstance(item, Mapping) and (isinstance(item.get("b64_json"), str) or isinstance(item.get("url"), str))
    ]
