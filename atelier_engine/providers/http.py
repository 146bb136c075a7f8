"""urllib transport helpers shared by the HTTP providers.

Every helper converts `HTTPError` into a `ProviderError` classified from the
status code, and `URLError`/socket failures into `TRANSPORT_FAILURE`.
"""

from __future__ import annotations

import json
from typing import Any, Iterator, Mapping, NoReturn
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..cancellation import CancelToken
from ..errors import ErrorCategory, ProviderError, classify_status


def _json_request(url: str, payload: Mapping[str, Any], api_key: str, *, accept: str | None = None) -> Request:
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
    }
    if accept:
        headers["Accept"] = accept
    return Request(url, data=json.dumps(payload).encode("utf-8"), headers=headers, method="POST")


def _raise_http_error(exc: HTTPError, provider: str) -> NoReturn:
    raw = exc.read().decode("utf-8", errors="replace") if exc.fp else str(exc)
    raise ProviderError(
        classify_status(exc.code),
        f"{provider} API error ({exc.code}): {raw[:500]}",
        status=exc.code,
        provider=provider,
    ) from exc


def _raise_transport_error(exc: BaseException, provider: str) -> NoReturn:
    raise ProviderError(
        ErrorCategory.TRANSPORT_FAILURE,
        f"{provider} request failed: {exc}",
        provider=provider,
    ) from exc


def post_json(
    url: str,
    payload: Mapping[str, Any],
    api_key: str,
    timeout_s: float,
    *,
    provider: str,
) -> tuple[int, dict[str, Any]]:
    req = _json_request(url, payload, api_key)
    try:
        with urlopen(req, timeout=timeout_s) as response:
            status_code = int(getattr(response, "status", 200))
            raw = response.read().decode("utf-8")
    except HTTPError as exc:
        _raise_http_error(exc, provider)
    except (URLError, OSError) as exc:
        _raise_transport_error(exc, provider)

    try:
        payload_json: dict[str, Any] = json.loads(raw)
    except ValueError as exc:
        raise ProviderError(
            ErrorCategory.TRANSPORT_FAILURE,
            f"{provider} returned a non-JSON body.",
            status=status_code,
            provider=provider,
        ) from exc
    return status_code, payload_json


def post_for_bytes(
    url: str,
    payload: Mapping[str, Any],
    api_key: str,
    timeout_s: float,
    *,
    provider: str,
    cancel: CancelToken | None = None,
) -> tuple[int, bytes, str]:
    req = _json_request(url, payload, api_key)
    try:
        with urlopen(req, timeout=timeout_s) as response:
            if cancel is not None:
                cancel.raise_if_cancelled()
            status_code = int(getattr(response, "status", 200))
            content_type = ""
            headers = getattr(response, "headers", None)
            if headers is not None:
                content_type = str(headers.get("Content-Type") or "")
            body = response.read()
    except HTTPError as exc:
        _raise_http_error(exc, provider)
    except (URLError, OSError) as exc:
        _raise_transport_error(exc, provider)
    if cancel is not None:
        cancel.raise_if_cancelled()
    if not body:
        raise ProviderError(
            ErrorCategory.SERVER_UNAVAILABLE,
            f"{provider} returned an empty body.",
            status=status_code,
            provider=provider,
        )
    return status_code, body, content_type


def iter_sse_deltas(
    url: str,
    payload: Mapping[str, Any],
    api_key: str,
    timeout_s: float,
    *,
    provider: str,
    cancel: CancelToken | None = None,
) -> Iterator[str]:
    """Yield content deltas from an OpenAI-compatible `data:` event stream.

    Lines that are not valid JSON are skipped. A failure while reading the
    body surfaces as `TRANSPORT_FAILURE` so callers can fall back to a
    non-streaming request.
    """
    req = _json_request(url, payload, api_key, accept="text/event-stream")
    try:
        response = urlopen(req, timeout=timeout_s)
    except HTTPError as exc:
        _raise_http_error(exc, provider)
    except (URLError, OSError) as exc:
        _raise_transport_error(exc, provider)

    with response:
        try:
            for raw_line in response:
                if cancel is not None and cancel.cancelled:
                    return
                line = raw_line.decode("utf-8", errors="replace").strip()
                if not line.startswith("data:"):
                    continue
                data = line[5:].strip()
                if data == "[DONE]":
                    return
                try:
                    chunk = json.loads(data)
                except ValueError:
                    continue
                delta = _extract_delta(chunk)
                if delta:
                    yield delta
        except (URLError, OSError) as exc:
            _raise_transport_error(exc, provider)


def _extract_delta(chunk: Any) -> str | None:
    if not isinstance(chunk, Mapping):
        return None
    choices = chunk.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], Mapping):
        choice = choices[0]
        delta = choice.get("delta")
        if isinstance(delta, Mapping) and isinstance(delta.get("content"), str):
            return delta["content"]
        message = choice.get("message")
        if isinstance(message, Mapping) and isinstance(message.get("content"), str):
            return message["content"]
        if isinstance(choice.get("text"), str):
            return choice["text"]
    return None


def extract_completion_text(payload: Mapping[str, Any]) -> str | None:
    choices = payload.get("choices")
    if isinstance(choices, list) and choices and isinstance(choices[0], Mapping):
        message = choices[0].get("message")
        if isinstance(message, Mapping) and isinstance(message.get("content"), str):
            return message["content"].strip()
    return None


def fetch_bytes(url: str, timeout_s: float, *, provider: str) -> bytes:
    try:
        with urlopen(Request(url, method="GET"), timeout=timeout_s) as response:
            return response.read()
    except HTTPError as exc:
        _raise_http_error(exc, provider)
    except (URLError, OSError) as exc:
        _raise_transport_error(exc, provider)
