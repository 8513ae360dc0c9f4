"""Synchronous client for the Ollama generate endpoint."""

from __future__ import annotations

import base64
import json
import logging
import os
from contextlib import AbstractContextManager
from typing import Any, Iterator, Optional, Sequence

import httpx

logger = logging.getLogger(__name__)

DEFAULT_PORT = 11434
DEFAULT_BASE_URL = f"http://127.0.0.1:{DEFAULT_PORT}"


class OllamaError(RuntimeError):
    """Raised when the Ollama HTTP API cannot be reached or returns an error."""


def _default_base_url() -> str:
    return (
        os.environ.get("OLLAMA_BASE_URL")
        or os.environ.get("OLLAMA_HOST")
        or DEFAULT_BASE_URL
    )


def normalise_base_url(raw: str) -> str:
    """Return an absolute http(s) URL for *raw*, which may omit the scheme.

    ``OLLAMA_HOST`` is commonly exported as ``host``, ``host:port`` or even
    ``:port``. A value without a scheme is plain HTTP, and one without a port
    as well gets the daemon's default port rather than 80.
    """

    value = raw.strip().rstrip("/")
    if not value:
        raise OllamaError("Ollama base URL is empty")
    bare = "://" not in value
    if bare:
        if value.startswith(":"):
            value = f"127.0.0.1{value}"
        value = f"http://{value}"
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as exc:
        raise OllamaError(f"Invalid Ollama base URL '{raw}': {exc}") from exc
    if url.scheme not in {"http", "https"} or not url.host:
        raise OllamaError(f"Invalid Ollama base URL '{raw}'")
    if bare:
        authority, sep, path = value[len("http://") :].partition("/")
        if ":" not in authority.rpartition("]")[2]:
            value = f"http://{authority}:{DEFAULT_PORT}{sep}{path}"
    return value


class OllamaClient(AbstractContextManager["OllamaClient"]):
    """Small synchronous client for the Ollama HTTP API.

    ``timeout=None`` disables client-side timeouts entirely, leaving long
    generations to whatever limits the daemon itself applies.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        *,
        keep_alive: Optional[str] = None,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.base_url = normalise_base_url(base_url or _default_base_url())
        self.keep_alive = keep_alive
        self._client = client or httpx.Client(timeout=timeout)

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: D401
        self.close()

    def close(self) -> None:
        self._client.close()

    def generate(
        self,
        model: str,
        prompt: str,
        images: Sequence[bytes] = (),
        *,
        stream: bool = True,
    ) -> Iterator[str]:
        """Yield response text fragments for a single ``/api/generate`` call."""

        url = f"{self.base_url}/api/generate"
        payload: dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "images": [base64.b64encode(data).decode("ascii") for data in images],
            "stream": stream,
        }
        if self.keep_alive is not None:
            payload["keep_alive"] = self.keep_alive

        logger.debug(
            "POST %s model=%s images=%d stream=%s", url, model, len(images), stream
        )
        if not stream:
            data = self._post_json(url, payload)
            yield str(data.get("response") or "")
            return

        try:
            with self._client.stream("POST", url, json=payload) as resp:
                if resp.status_code >= 400:
                    body = resp.read().decode("utf-8", errors="ignore")
                    raise OllamaError(
                        f"POST {url} returned HTTP {resp.status_code}: "
                        f"{self._error_message(body)}"
                    )
                for line in resp.iter_lines():
                    if not line.strip():
                        continue
                    chunk = self._decode_chunk(line)
                    fragment = chunk.get("response")
                    if fragment:
                        yield str(fragment)
                    if chunk.get("done"):
                        break
        except httpx.HTTPError as exc:
            raise OllamaError(f"Failed to POST {url}: {exc}") from exc

    def _post_json(self, url: str, payload: dict[str, Any]) -> dict[str, Any]:
        try:
            resp = self._client.post(url, json=payload)
        except httpx.HTTPError as exc:
            raise OllamaError(f"Failed to POST {url}: {exc}") from exc
        if resp.status_code >= 400:
            raise OllamaError(
                f"POST {url} returned HTTP {resp.status_code}: "
                f"{self._error_message(resp.text)}"
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise OllamaError(
                f"Failed to decode JSON from Ollama generate response: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise OllamaError("Ollama generate response was not an object")
        if data.get("error"):
            raise OllamaError(f"Ollama generate failed: {data['error']}")
        return data

    @staticmethod
    def _decode_chunk(line: str) -> dict[str, Any]:
        try:
            chunk = json.loads(line)
        except ValueError as exc:
            raise OllamaError(f"Malformed generate stream line: {line[:120]}") from exc
        if not isinstance(chunk, dict):
            raise OllamaError("Generate stream line was not an object")
        if chunk.get("error"):
            raise OllamaError(f"Ollama generate failed: {chunk['error']}")
        return chunk

    @staticmethod
    def _error_message(body: str) -> str:
        try:
            data = json.loads(body)
        except ValueError:
            return body.strip()[:200]
        if isinstance(data, dict) and data.get("error"):
            return str(data["error"])
        return body.strip()[:200]


__all__ = ["DEFAULT_BASE_URL", "DEFAULT_PORT", "OllamaClient", "OllamaError", "normalise_base_url"]
