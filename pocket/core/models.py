"""Data model shared by the classifier, the phase machine and the executors."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, ClassVar, Mapping, Optional, Union
from uuid import UUID, uuid4

from .errors import InvalidTransitionError


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ContentType(str, Enum):
    """Kind of content held by a PocketItem."""

    IMAGE = "image"
    DOCUMENT = "document"
    LINK = "link"
    TEXT = "text"
    VIDEO = "video"
    AUDIO = "audio"

    @property
    def icon(self) -> str:
        return _CONTENT_ICONS[self]

    @classmethod
    def from_extension(cls, extension: str) -> "ContentType":
        """Map a file extension (with or without the dot) to a content type."""
        ext = extension.lower().lstrip(".")
        return _EXTENSION_TYPES.get(ext, cls.DOCUMENT)


_CONTENT_ICONS = {
    ContentType.IMAGE: "photo.fill",
    ContentType.DOCUMENT: "doc.fill",
    ContentType.LINK: "link",
    ContentType.TEXT: "text.alignleft",
    ContentType.VIDEO: "video.fill",
    ContentType.AUDIO: "waveform",
}

_EXTENSION_TYPES: dict[str, ContentType] = {}
for _ext in ("jpg", "jpeg", "png", "gif", "heic", "webp"):
    _EXTENSION_TYPES[_ext] = ContentType.IMAGE
for _ext in ("pdf", "doc", "docx", "pages"):
    _EXTENSION_TYPES[_ext] = ContentType.DOCUMENT
for _ext in (
    "txt", "rtf", "json", "xml", "html", "css", "js", "ts",
    "swift", "py", "md", "yaml", "yml", "csv", "log",
):
    _EXTENSION_TYPES[_ext] = ContentType.TEXT
for _ext in ("mp4", "mov", "avi", "mkv"):
    _EXTENSION_TYPES[_ext] = ContentType.VIDEO
for _ext in ("mp3", "wav", "m4a", "aac"):
    _EXTENSION_TYPES[_ext] = ContentType.AUDIO


def _format_size(count: int) -> str:
    if count < 1000:
        return f"{count} bytes"
    value = float(count)
    for unit in ("KB", "MB", "GB", "TB"):
        value /= 1000.0
        if value < 1000 or unit == "TB":
            return f"{value:.1f} {unit}"
    return f"{count} bytes"  # pragma: no cover


@dataclass(frozen=True, slots=True)
class PocketItem:
    """Immutable unit of dropped or transferred content."""

    type: ContentType
    data: bytes
    name: str
    id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=_now)
    metadata: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "type", ContentType(self.type))
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    def __hash__(self) -> int:
        return hash(self.id)

    @property
    def size_string(self) -> str:
        return _format_size(len(self.data))

    def text(self) -> str:
        """Decode the payload as UTF-8, replacing invalid bytes."""
        return self.data.decode("utf-8", errors="replace")

    def derive(self, *, type: ContentType, data: bytes, name: str, **metadata: str) -> "PocketItem":
        """Build a new item produced from this one (conversion, extraction)."""
        meta = {"derived_from": str(self.id), **metadata}
        return PocketItem(type=type, data=data, name=name, metadata=meta)

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "type": self.type.value,
            "name": self.name,
            "size": len(self.data),
            "timestamp": self.timestamp.isoformat(),
            "metadata": dict(self.metadata),
        }

    @classmethod
    def from_text(cls, text: str, name: str = "Text") -> "PocketItem":
        return cls(type=ContentType.TEXT, data=text.encode("utf-8"), name=name)

    @classmethod
    def from_url(cls, url: str, name: str | None = None) -> "PocketItem":
        item_name = name or url.rstrip("/").rsplit("/", 1)[-1] or url
        return cls(type=ContentType.LINK, data=url.encode("utf-8"), name=item_name)

    @classmethod
    def from_path(cls, path: str | Path) -> "PocketItem":
        file_path = Path(path)
        return cls(
            type=ContentType.from_extension(file_path.suffix),
            data=file_path.read_bytes(),
            name=file_path.name,
        )


# --------------------------------------------------------------------------- #
# Extraction operations
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class Summarize:
    kind: ClassVar[str] = "summarize"

    @property
    def description(self) -> str:
        return "Summarizing..."


@dataclass(frozen=True, slots=True)
class ExtractText:
    kind: ClassVar[str] = "extract_text"

    @property
    def description(self) -> str:
        return "Extracting text..."


@dataclass(frozen=True, slots=True)
class Translate:
    target_language: str = "English"
    kind: ClassVar[str] = "translate"

    @property
    def description(self) -> str:
        return f"Translating to {self.target_language}..."


@dataclass(frozen=True, slots=True)
class Transcribe:
    kind: ClassVar[str] = "transcribe"

    @property
    def description(self) -> str:
        return "Transcribing..."


@dataclass(frozen=True, slots=True)
class Custom:
    prompt: str
    kind: ClassVar[str] = "custom"

    @property
    def description(self) -> str:
        return "Processing..."


ExtractionOperation = Union[Summarize, ExtractText, Translate, Transcribe, Custom]


# --------------------------------------------------------------------------- #
# Actions
# --------------------------------------------------------------------------- #


class PaperSize(str, Enum):
    A4 = "A4"
    LETTER = "Letter"
    A3 = "A3"


@dataclass(frozen=True, slots=True)
class PrintOptions:
    duplex: bool = False
    color: bool = True
    paper_size: PaperSize = PaperSize.A4


@dataclass(frozen=True, slots=True)
class Hold:
    kind: ClassVar[str] = "hold"
    icon: ClassVar[str] = "tray.and.arrow.down.fill"


@dataclass(frozen=True, slots=True)
class Send:
    target: str
    kind: ClassVar[str] = "send"
    icon: ClassVar[str] = "paperplane.fill"


@dataclass(frozen=True, slots=True)
class Convert:
    format: str
    kind: ClassVar[str] = "convert"
    icon: ClassVar[str] = "arrow.triangle.2.circlepath"


@dataclass(frozen=True, slots=True)
class Extract:
    operation: ExtractionOperation
    kind: ClassVar[str] = "extract"
    icon: ClassVar[str] = "text.magnifyingglass"


@dataclass(frozen=True, slots=True)
class Print:
    copies: int = 1
    options: PrintOptions = field(default_factory=PrintOptions)
    kind: ClassVar[str] = "print"
    icon: ClassVar[str] = "printer.fill"


@dataclass(frozen=True, slots=True)
class AirPlay:
    device: str
    kind: ClassVar[str] = "airplay"
    icon: ClassVar[str] = "airplayvideo"


Action = Union[Hold, Send, Convert, Extract, Print, AirPlay]


def action_payload(action: Action) -> dict[str, Any]:
    """Serialise an Action for logs and the CLI."""
    payload: dict[str, Any] = {"action": action.kind}
    if isinstance(action, Send):
        payload["target"] = action.target
    elif isinstance(action, Convert):
        payload["format"] = action.format
    elif isinstance(action, Extract):
        payload["operation"] = action.operation.kind
        if isinstance(action.operation, Translate):
            payload["target_language"] = action.operation.target_language
        elif isinstance(action.operation, Custom):
            payload["prompt"] = action.operation.prompt
    elif isinstance(action, Print):
        payload["copies"] = action.copies
        payload["options"] = {
            "duplex": action.options.duplex,
            "color": action.options.color,
            "paper_size": action.options.paper_size.value,
        }
    elif isinstance(action, AirPlay):
        payload["device"] = action.device
    return payload


# --------------------------------------------------------------------------- #
# Intent
# --------------------------------------------------------------------------- #


@dataclass(frozen=True, slots=True)
class Intent:
    """Resolved meaning of a voice command. Never mutated after creation."""

    action: Action
    raw_command: Optional[str] = None
    confidence: float = 1.0
    apply_to_all: bool = False
    id: UUID = field(default_factory=uuid4)
    timestamp: datetime = field(default_factory=_now)

    def __post_init__(self) -> None:
        if not 0.0 <= float(self.confidence) <= 1.0:
            raise ValueError(f"confidence out of range: {self.confidence}")
        object.__setattr__(self, "confidence", float(self.confidence))

    @classmethod
    def hold(cls) -> "Intent":
        """Default intent when no voice command was given."""
        return cls(action=Hold(), raw_command=None, confidence=1.0)

    def resolves_like(self, other: "Intent") -> bool:
        """True when both intents carry the same action and confidence."""
        return (
            self.action == other.action
            and self.confidence == other.confidence
            and self.apply_to_all == other.apply_to_all
        )

    @property
    def description(self) -> str:
        action = self.action
        if isinstance(action, Hold):
            return "Holding item..."
        if isinstance(action, Send):
            return f"Sending to {action.target}..."
        if isinstance(action, Convert):
            return f"Converting to {action.format.upper()}..."
        if isinstance(action, Extract):
            return action.operation.description
        if isinstance(action, Print):
            suffix = "y" if action.copies == 1 else "ies"
            return f"Printing {action.copies} cop{suffix}..."
        if isinstance(action, AirPlay):
            return f"Playing on {action.device}..."
        return "Processing..."  # pragma: no cover

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            **action_payload(self.action),
            "raw_command": self.raw_command,
            "confidence": self.confidence,
            "apply_to_all": self.apply_to_all,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
        }

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), ensure_ascii=False)


# --------------------------------------------------------------------------- #
# Tasks
# --------------------------------------------------------------------------- #


class TaskStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED)


_TASK_TRANSITIONS: dict[TaskStatus, frozenset[TaskStatus]] = {
    TaskStatus.PENDING: frozenset({TaskStatus.PROCESSING, TaskStatus.FAILED, TaskStatus.CANCELLED}),
    TaskStatus.PROCESSING: frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}),
    TaskStatus.COMPLETED: frozenset(),
    TaskStatus.FAILED: frozenset(),
    TaskStatus.CANCELLED: frozenset(),
}


@dataclass(frozen=True, slots=True)
class ItemResult:
    item: PocketItem

    @property
    def display_message(self) -> str:
        return f"Created: {self.item.name}"


@dataclass(frozen=True, slots=True)
class TextResult:
    text: str

    @property
    def display_message(self) -> str:
        preview = self.text[:50]
        return preview + ("..." if len(self.text) > 50 else "")


@dataclass(frozen=True, slots=True)
class SentResult:
    target: str

    @property
    def display_message(self) -> str:
        return f"Sent to {self.target}"


@dataclass(frozen=True, slots=True)
class PrintedResult:
    copies: int

    @property
    def display_message(self) -> str:
        suffix = "y" if self.copies == 1 else "ies"
        return f"Printed {self.copies} cop{suffix}"


@dataclass(frozen=True, slots=True)
class AirPlayedResult:
    device: str

    @property
    def display_message(self) -> str:
        return f"Playing on {self.device}"


TaskResult = Union[ItemResult, TextResult, SentResult, PrintedResult, AirPlayedResult]


@dataclass(slots=True)
class PocketTask:
    """One item bound to one intent, plus its execution state."""

    item: PocketItem
    intent: Intent
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=_now)
    status: TaskStatus = TaskStatus.PENDING
    result: Optional[TaskResult] = None
    progress: float = 0.0
    failure_reason: Optional[str] = None
    finished_at: Optional[datetime] = None

    @property
    def is_active(self) -> bool:
        return not self.status.is_terminal

    @property
    def duration(self) -> float:
        end = self.finished_at or _now()
        return (end - self.created_at).total_seconds()

    def _move(self, status: TaskStatus) -> None:
        if status not in _TASK_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"task {self.id}: {self.status.value} -> {status.value} is not allowed"
            )
        self.status = status
        if status.is_terminal:
            self.finished_at = _now()

    def start(self) -> None:
        self._move(TaskStatus.PROCESSING)

    def complete(self, result: Optional[TaskResult] = None) -> None:
        self._move(TaskStatus.COMPLETED)
        self.result = result
        self.progress = 1.0

    def fail(self, reason: str) -> None:
        self._move(TaskStatus.FAILED)
        self.failure_reason = reason

    def cancel(self) -> None:
        self._move(TaskStatus.CANCELLED)

    def update_progress(self, fraction: float) -> None:
        if self.status is not TaskStatus.PROCESSING:
            raise InvalidTransitionError("progress can only change while processing")
        value = max(0.0, min(1.0, float(fraction)))
        if value < self.progress:
            raise InvalidTransitionError("progress cannot move backwards")
        self.progress = value

    def to_payload(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "item": self.item.to_payload(),
            "intent": self.intent.to_payload(),
            "status": self.status.value,
            "progress": self.progress,
            "result": self.result.display_message if self.result is not None else None,
            "failure_reason": self.failure_reason,
            "created_at": self.created_at.isoformat(),
        }


__all__ = [
    "Action",
    "AirPlay",
    "AirPlayedResult",
    "ContentType",
    "Convert",
    "Custom",
    "Extract",
    "ExtractText",
    "ExtractionOperation",
    "Hold",
    "Intent",
    "ItemResult",
    "PaperSize",
    "PocketItem",
    "PocketTask",
    "Print",
    "PrintOptions",
    "PrintedResult",
    "Send",
    "SentResult",
    "Summarize",
    "TaskResult",
    "TaskStatus",
    "TextResult",
    "Transcribe",
    "Translate",
    "action_payload",
]
