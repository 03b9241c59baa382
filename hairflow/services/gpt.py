"""GPT-4o vision and DALL-E integration using the OpenAI client."""

from __future__ import annotations

import atexit
import base64
import json
import logging
import os
from typing import Any

import httpx
from openai import APITimeoutError, OpenAI, OpenAIError

from hairflow.config import Settings

logger = logging.getLogger(__name__)
settings = Settings()

_client: OpenAI | None = None
_http_client: httpx.Client | None = None


class GPTResponseError(ValueError):
    """The model answered with nothing usable."""


def _get_client() -> OpenAI:
    """Lazily build and cache the OpenAI client."""

    global _client, _http_client
    if _client is None:
        mounts: dict[str, httpx.HTTPTransport] = {}
        http_proxy = os.environ.get("HTTP_PROXY")
        https_proxy = os.environ.get("HTTPS_PROXY")
        if http_proxy:
            mounts["http://"] = httpx.HTTPTransport(proxy=http_proxy)
        if https_proxy:
            mounts["https://"] = httpx.HTTPTransport(proxy=https_proxy)

        _http_client = httpx.Client(mounts=mounts) if mounts else None
        api_key = os.environ.get("OPENAI_API_KEY")
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY environment variable is not set")
        _client = OpenAI(api_key=api_key, http_client=_http_client)
    return _client


def _close_client() -> None:
    global _client, _http_client
    if _http_client is not None:
        _http_client.close()
    _http_client = None
    _client = None


atexit.register(_close_client)


def image_data_url(data: bytes, content_type: str = "image/jpeg") -> str:
    """Inline image as a ``data:`` URL for the vision model."""
    encoded = base64.b64encode(data).decode()
    return f"data:{content_type};base64,{encoded}"


def image_part(url: str) -> dict[str, Any]:
    return {"type": "image_url", "image_url": {"url": url, "detail": "high"}}


def text_part(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def call_gpt_json(
    system_prompt: str,
    content: str | list[dict[str, Any]],
    *,
    max_tokens: int = 2000,
    temperature: float = 0.3,
) -> dict[str, Any]:
    """Run one chat completion in JSON mode and return the parsed object.

    Parameters
    ----------
    system_prompt: str
        Role instructions for the model.
    content: str | list
        Plain text or a list of ``text``/``image_url`` parts.

    Raises ``TimeoutError`` on provider timeouts, ``RuntimeError`` on other
    SDK failures and :class:`GPTResponseError` when the answer is empty or
    not a JSON object.
    """
    client = _get_client()
    try:
        response = client.chat.completions.create(
            model=settings.openai_model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": content},
            ],
            max_tokens=max_tokens,
            temperature=temperature,
            response_format={"type": "json_object"},
            timeout=settings.openai_timeout,
        )
    except APITimeoutError as exc:
        raise TimeoutError("OpenAI request timed out") from exc
    except OpenAIError as exc:
        raise RuntimeError("OpenAI request failed") from exc

    try:
        payload = response.choices[0].message.content
    except (AttributeError, IndexError, TypeError) as exc:
        raise GPTResponseError("Malformed GPT response") from exc
    if not payload:
        raise GPTResponseError("Empty GPT response")
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as exc:
        raise GPTResponseError("GPT response is not JSON") from exc
    if not isinstance(data, dict):
        raise GPTResponseError("GPT response is not a JSON object")
    return data


def generate_image(prompt: str) -> str:
    """Generate one 1024x1024 image and return its URL ('' if none came back)."""
    client = _get_client()
    try:
        response = client.images.generate(
            model=settings.openai_image_model,
            prompt=prompt,
            n=1,
            size="1024x1024",
            quality="standard",
            timeout=settings.openai_timeout,
        )
    except APITimeoutError as exc:
        raise TimeoutError("Image generation timed out") from exc
    except OpenAIError as exc:
        raise RuntimeError("Image generation failed") from exc
    data = getattr(response, "data", None) or []
    if not data:
        return ""
    return getattr(data[0], "url", None) or ""


__all__ = [
    "GPTResponseError",
    "call_gpt_json",
    "generate_image",
    "image_data_url",
    "image_part",
    "text_part",
]
