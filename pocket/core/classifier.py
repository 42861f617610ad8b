"""Voice command classification: cache, pattern match, then LLM."""

from __future__ import annotations

import asyncio
import json
import re
from typing import Any, Optional, Sequence, Union

from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr, ValidationError

from .cache import IntentCache, cache_key
from .config import Settings, get_settings
from .corrections import autocorrect
from .errors import InvalidJSONError, UnknownActionError, error_payload
from .groq import CompletionBackend
from .logger import get_logger
from .metrics import inc_classification
from .models import (
    Action,
    AirPlay,
    ContentType,
    Convert,
    Extract,
    ExtractText,
    Hold,
    Intent,
    PocketItem,
    Print,
    Send,
    Summarize,
    Transcribe,
    Translate,
)
from .patterns import extract_copies, quick_match
from .session import PocketSession, describe_items
from .trace import get_cycle_id

log = get_logger("classifier")


SessionContext = Union[PocketSession, Sequence[PocketItem], None]

SYSTEM_PROMPT = """You are a JSON parser for a file management app. Parse user commands into structured actions.
Commands may be in English or Chinese.

Available actions:
- hold: Store the item temporarily
- send: Send to a person (extract target name)
- convert: Convert file format (extract target format like pdf, jpg, png)
- summarize: Summarize content
- extract_text: Extract text from image/document
- translate: Translate content (extract target language)
- transcribe: Transcribe audio or video
- print: Print document (extract copies count if mentioned)
- airplay: Send to display device (extract device name)

Respond ONLY with JSON in this exact format:
{"action": "action_name", "target": "optional_target", "confidence": 0.0-1.0, "apply_to_all": false}

Examples:
- "Send this to John" -> {"action": "send", "target": "John", "confidence": 0.95, "apply_to_all": false}
- "Convert to PDF" -> {"action": "convert", "target": "pdf", "confidence": 0.95, "apply_to_all": false}
- "Summarize this" -> {"action": "summarize", "confidence": 0.9, "apply_to_all": false}
- "Print 2 copies" -> {"action": "print", "target": "2", "confidence": 0.9, "apply_to_all": false}
- "把这个发给小明" -> {"action": "send", "target": "小明", "confidence": 0.9, "apply_to_all": false}"""

BATCH_INSTRUCTIONS = """

The user has several items staged in a session. Set "apply_to_all" to true when the
command targets every staged item (for example "send all to Mike" or "convert them all
to pdf"), otherwise false.

Batch examples:
- "Send all to Mike" -> {"action": "send", "target": "Mike", "confidence": 0.9, "apply_to_all": true}
- "全部转成pdf" -> {"action": "convert", "target": "pdf", "confidence": 0.9, "apply_to_all": true}"""

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class LLMIntentPayload(BaseModel):
    """Strict shape of the classification answer."""

    model_config = ConfigDict(extra="ignore")

    action: StrictStr
    target: Optional[Union[StrictStr, StrictInt, StrictFloat]] = None
    confidence: Optional[StrictFloat] = Field(default=None, ge=0.0, le=1.0)
    apply_to_all: StrictBool = False


def _strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "").strip()


def decode_llm_payload(text: str) -> LLMIntentPayload:
    """Parse and validate the raw LLM answer."""
    cleaned = _strip_fences(text)
    if not cleaned:
        raise InvalidJSONError("Empty response")
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise InvalidJSONError(f"Invalid response format: {exc.msg}") from exc
    if not isinstance(data, dict):
        raise InvalidJSONError("Response is not a JSON object")
    try:
        return LLMIntentPayload.model_validate(data)
    except ValidationError as exc:
        raise InvalidJSONError(f"Response does not match schema: {exc.error_count()} error(s)") from exc


def _target(payload: LLMIntentPayload) -> Optional[str]:
    if payload.target is None:
        return None
    value = str(payload.target).strip()
    return value or None


def map_action(payload: LLMIntentPayload) -> Action:
    """Map the LLM action vocabulary (with synonyms) to an Action."""
    name = payload.action.strip().lower()
    target = _target(payload)
    if name in {"hold", "store", "save", "keep"}:
        return Hold()
    if name in {"send", "share"}:
        return Send(target=target or "Unknown")
    if name in {"convert", "change"}:
        return Convert(format=(target or "pdf").lower())
    if name in {"summarize", "summary"}:
        return Extract(operation=Summarize())
    if name in {"extract_text", "extract", "ocr"}:
        return Extract(operation=ExtractText())
    if name == "translate":
        return Extract(operation=Translate(target_language=target or "English"))
    if name == "transcribe":
        return Extract(operation=Transcribe())
    if name == "print":
        return Print(copies=extract_copies(target or "") or 1)
    if name in {"airplay", "cast", "mirror"}:
        return AirPlay(device=target or "TV")
    raise UnknownActionError(payload.action)


def _session_items(session: SessionContext) -> list[PocketItem]:
    if session is None:
        return []
    if isinstance(session, PocketSession):
        return session.items
    return list(session)


def build_user_prompt(command: str, item_type: ContentType, items: Sequence[PocketItem] = ()) -> str:
    prompt = f'File type: {item_type.value}\nCommand: "{command}"'
    if len(items) > 1:
        prompt = prompt + "\n\n" + describe_items(list(items))
    return prompt


class IntentClassifier:
    """Turns a transcribed utterance into an Intent.

    Resolution order: empty command, cache, deterministic phrase match, LLM.
    Classification never raises; LLM failures resolve to a low-confidence
    hold and are exposed through ``last_error``.
    """

    def __init__(
        self,
        llm: CompletionBackend | None,
        *,
        settings: Settings | None = None,
        cache: IntentCache | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.llm = llm
        self.cache = cache or IntentCache(self.settings.intent_cache_size)
        self.is_processing = False
        self.last_error: dict[str, Any] | None = None

    async def classify(
        self,
        raw_utterance: str | None,
        item_type: ContentType | str,
        *,
        session: SessionContext = None,
        timeout: float | None = None,
    ) -> Intent:
        kind = ContentType(item_type)
        if raw_utterance is None or not raw_utterance.strip():
            inc_classification("empty")
            log.info("no command, defaulting to hold")
            return Intent.hold()

        corrected = autocorrect(raw_utterance)
        items = _session_items(session)
        batch = len(items) > 1
        key = cache_key(corrected, kind) + ("_batch" if batch else "")

        cached = self.cache.get(key)
        if cached is not None:
            inc_classification("cache")
            log.info("cache hit %s -> %s", key, cached.action.kind, extra={"tier": "cache", "item_type": kind.value})
            return cached

        action = quick_match(corrected)
        if action is not None:
            intent = Intent(
                action=action,
                raw_command=raw_utterance,
                confidence=self.settings.pattern_confidence,
            )
            self.cache.put(key, intent)
            inc_classification("pattern")
            log.info(
                "pattern match '%s' -> %s",
                corrected,
                action.kind,
                extra={"tier": "pattern", "action": action.kind, "item_type": kind.value},
            )
            return intent

        return await self._classify_with_llm(raw_utterance, corrected, kind, key, items, timeout)

    async def _classify_with_llm(
        self,
        raw_utterance: str,
        corrected: str,
        kind: ContentType,
        key: str,
        items: Sequence[PocketItem],
        timeout: float | None,
    ) -> Intent:
        self.last_error = None
        self.is_processing = True
        batch = len(items) > 1
        try:
            if self.llm is None:
                raise RuntimeError("No LLM backend configured")
            system = SYSTEM_PROMPT + (BATCH_INSTRUCTIONS if batch else "")
            prompt = build_user_prompt(corrected, kind, items if batch else ())
            call = self.llm.complete(prompt, system_prompt=system)
            limit = timeout if timeout is not None else self.settings.classification_timeout_sec
            if limit is not None:
                text = await asyncio.wait_for(call, timeout=limit)
            else:
                text = await call
            payload = decode_llm_payload(text)
            action = map_action(payload)
        except Exception as exc:
            code = type(exc).__name__
            if isinstance(exc, asyncio.TimeoutError):
                code, message = "timeout", "Classification timed out"
            else:
                message = str(exc) or code
            self.last_error = error_payload(
                code,
                message,
                details={"command": raw_utterance, "item_type": kind.value},
                cycle_id=get_cycle_id(),
            )
            inc_classification("fallback")
            log.warning(
                "LLM classification failed (%s): %s", code, message, extra={"tier": "fallback", "item_type": kind.value}
            )
            return Intent(
                action=Hold(),
                raw_command=raw_utterance,
                confidence=self.settings.fallback_confidence,
            )
        finally:
            self.is_processing = False

        confidence = (
            payload.confidence if payload.confidence is not None else self.settings.llm_default_confidence
        )
        intent = Intent(
            action=action,
            raw_command=raw_utterance,
            confidence=confidence,
            apply_to_all=bool(payload.apply_to_all) and batch,
        )
        self.cache.put(key, intent)
        inc_classification("llm")
        log.info(
            "LLM classification '%s' -> %s (%.2f)",
            corrected,
            action.kind,
            confidence,
            extra={"tier": "llm", "action": action.kind, "item_type": kind.value},
        )
        return intent
