"""Async client for the Groq chat-completions and transcription endpoints."""

from __future__ import annotations

import time
from typing import Any, Iterable, Optional, Protocol

import httpx

from .config import Settings, get_settings
from .errors import GroqError, GroqHTTPError, GroqResponseError, MissingAPIKeyError
from .logger import get_logger
from .metrics import inc_groq_error, observe_groq

groq_log = get_logger("groq")


class CompletionBackend(Protocol):
    """Anything able to answer a prompt; GroqClient or a test double."""

    async def complete(self, user_prompt: str, *, system_prompt: str | None = None) -> str:
        ...


def build_chat_messages(
    *,
    system: str | None = None,
    history: Iterable[tuple[str, str]] | None = None,
    prompt: str,
) -> list[dict[str, str]]:
    messages: list[dict[str, str]] = []
    if system:
        messages.append({"role": "system", "content": system})
    if history:
        for role, content in history:
            role_norm = role if role in {"user", "assistant", "system"} else "user"
            messages.append({"role": role_norm, "content": content})
    messages.append({"role": "user", "content": prompt})
    return messages


def _extract_content(payload: Any) -> str:
    if not isinstance(payload, dict):
        raise GroqResponseError("Invalid response from Groq API")
    choices = payload.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        raise GroqResponseError("Empty response from Groq API")
    message = choices[0].get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise GroqResponseError("Empty response from Groq API")
    return content


class GroqClient:
    """Thin async wrapper over the Groq OpenAI-compatible API."""

    def __init__(
        self,
        settings: Settings | None = None,
        *,
        api_key: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.api_key = api_key if api_key is not None else (self.settings.groq_api_key or "")
        self.model = self.settings.groq_model
        self.fast_model = self.settings.groq_fast_model
        self.whisper_model = self.settings.groq_whisper_model
        self.temperature = float(self.settings.groq_temperature)
        self.max_tokens = int(self.settings.groq_max_tokens)
        timeout = httpx.Timeout(self.settings.groq_timeout_sec)
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def __aenter__(self) -> "GroqClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    def _headers(self) -> dict[str, str]:
        if not self.api_key:
            raise MissingAPIKeyError()
        return {"Authorization": f"Bearer {self.api_key}"}

    async def complete(
        self,
        user_prompt: str,
        *,
        system_prompt: str | None = None,
        model: str | None = None,
    ) -> str:
        """Send a chat completion and return the first choice content."""
        headers = self._headers()
        selected = model or self.model
        payload: dict[str, Any] = {
            "model": selected,
            "messages": build_chat_messages(system=system_prompt, prompt=user_prompt),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        groq_log.debug("groq chat model=%s prompt=%s", selected, user_prompt[:100])
        data = await self._post("chat", self.settings.groq_chat_url, headers=headers, json=payload)
        content = _extract_content(data)
        groq_log.info("chat completion model=%s chars=%d", selected, len(content))
        return content

    async def quick_complete(self, prompt: str) -> str:
        """Completion on the fast model, for simple prompts."""
        return await self.complete(prompt, model=self.fast_model)

    async def transcribe(self, audio: bytes, *, language: Optional[str] = None) -> str:
        """Transcribe WAV audio with Whisper."""
        headers = self._headers()
        form: dict[str, str] = {"model": self.whisper_model}
        if language:
            form["language"] = language
        files = {"file": ("audio.wav", audio, "audio/wav")}
        groq_log.debug("groq transcription bytes=%d language=%s", len(audio), language)
        data = await self._post(
            "transcription",
            self.settings.groq_transcription_url,
            headers=headers,
            data=form,
            files=files,
        )
        text = data.get("text") if isinstance(data, dict) else None
        if not isinstance(text, str):
            raise GroqResponseError("Transcription response has no text")
        groq_log.info("transcription chars=%d", len(text))
        return text

    async def _post(self, endpoint: str, url: str, **kwargs: Any) -> Any:
        start = time.perf_counter()
        try:
            resp = await self._client.post(url, **kwargs)
        except httpx.TimeoutException as exc:
            inc_groq_error(endpoint)
            groq_log.warning("%s request timed out", endpoint, extra={"endpoint": endpoint})
            raise GroqError("Groq request timed out") from exc
        except httpx.RequestError as exc:
            inc_groq_error(endpoint)
            groq_log.warning("%s request failed: %s", endpoint, exc, extra={"endpoint": endpoint})
            raise GroqError(f"Unable to reach Groq: {exc}") from exc
        finally:
            observe_groq(endpoint, time.perf_counter() - start)
        if resp.status_code != 200:
            inc_groq_error(endpoint)
            detail = resp.text.strip() or resp.reason_phrase or "Unknown error"
            groq_log.warning(
                "%s API error %s: %s", endpoint, resp.status_code, detail[:200], extra={"endpoint": endpoint}
            )
            raise GroqHTTPError(resp.status_code, detail)
        try:
            return resp.json()
        except ValueError as exc:
            snippet = resp.text[:200]
            raise GroqResponseError(f"Non-JSON response from Groq: {snippet}") from exc
