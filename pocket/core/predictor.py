"""Action suggestions shown while an item is dragged, before any voice input."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Tuple

from .models import (
    Action,
    AirPlay,
    ContentType,
    Convert,
    Extract,
    ExtractText,
    Hold,
    Print,
    Send,
    Summarize,
    Transcribe,
    Translate,
)

MAX_PREDICTIONS = 4


@dataclass(frozen=True, slots=True)
class PredictedAction:
    action: Action
    icon: str
    label: str
    confidence: float
    color: str


_HOLD = PredictedAction(Hold(), "tray.and.arrow.down.fill", "Hold", 1.0, "gray")

_Row = Tuple[Action, str, str, float, str]

_BY_TYPE: Dict[ContentType, List[_Row]] = {
    ContentType.IMAGE: [
        (Extract(ExtractText()), "doc.text.viewfinder", "OCR", 0.9, "blue"),
        (Convert("pdf"), "doc.fill", "PDF", 0.8, "red"),
        (Send(""), "paperplane.fill", "Send", 0.7, "green"),
    ],
    ContentType.DOCUMENT: [
        (Extract(Summarize()), "text.alignleft", "Summary", 0.85, "purple"),
        (Convert("pdf"), "doc.fill", "PDF", 0.8, "red"),
        (Print(1), "printer.fill", "Print", 0.7, "orange"),
    ],
    ContentType.TEXT: [
        (Extract(Summarize()), "text.alignleft", "Summary", 0.9, "purple"),
        (Convert("pdf"), "doc.fill", "PDF", 0.8, "red"),
        (Extract(Translate("English")), "globe", "Translate", 0.75, "cyan"),
    ],
    ContentType.LINK: [
        (Send("Mac"), "desktopcomputer", "To Mac", 0.85, "blue"),
        (Convert("pdf"), "doc.fill", "Save PDF", 0.7, "red"),
        (Send(""), "paperplane.fill", "Share", 0.65, "green"),
    ],
    ContentType.AUDIO: [
        (Extract(Transcribe()), "waveform", "Transcribe", 0.95, "purple"),
        (Send(""), "paperplane.fill", "Send", 0.7, "green"),
        (AirPlay(""), "airplayaudio", "AirPlay", 0.6, "blue"),
    ],
    ContentType.VIDEO: [
        (AirPlay("TV"), "tv.fill", "AirPlay", 0.9, "blue"),
        (Send(""), "paperplane.fill", "Send", 0.7, "green"),
        (Convert("gif"), "photo.on.rectangle", "GIF", 0.5, "pink"),
    ],
}


def predict(content_type: ContentType | str) -> List[PredictedAction]:
    """Ranked candidate actions for a content type, Hold always first."""
    kind = ContentType(content_type)
    actions = [_HOLD] + [PredictedAction(*row) for row in _BY_TYPE[kind]]
    return actions[:MAX_PREDICTIONS]
