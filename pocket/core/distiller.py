from __future__ import annotations

from .errors import ExtractionFailedError
from .groq import CompletionBackend
from .logger import get_logger
from .models import (
    Custom,
    ExtractText,
    ExtractionOperation,
    PocketItem,
    Summarize,
    Transcribe,
    Translate,
)

log = get_logger("distiller")


def build_prompt(content: str, operation: ExtractionOperation) -> str:
    if isinstance(operation, Summarize):
        return f"Summarize the following content concisely in 2-3 sentences:\n\n{content}"
    if isinstance(operation, ExtractText):
        return f"Extract the main text content, removing any formatting or metadata:\n\n{content}"
    if isinstance(operation, Translate):
        return f"Translate the following to {operation.target_language}:\n\n{content}"
    if isinstance(operation, Transcribe):
        return f"Transcribe and clean up the following text:\n\n{content}"
    if isinstance(operation, Custom):
        return f"{operation.prompt}\n\nContent:\n{content}"
    raise ExtractionFailedError(f"unsupported operation {operation!r}")


_RESULT_NAMES = {
    "summarize": "Summary",
    "extract_text": "Extracted Text",
    "translate": "Translation",
    "transcribe": "Transcript",
    "custom": "Result",
}


def result_name(operation: ExtractionOperation) -> str:
    return _RESULT_NAMES.get(operation.kind, "Result")


def _readable_text(item: PocketItem) -> str:
    # binary payloads (images, audio) contribute no text
    try:
        return item.data.decode("utf-8")
    except UnicodeDecodeError:
        return ""


class ContentDistiller:
    """Runs summarize/extract/translate prompts over an item's content."""

    def __init__(self, llm: CompletionBackend) -> None:
        self.llm = llm

    async def process(self, item: PocketItem, operation: ExtractionOperation) -> str:
        prompt = build_prompt(_readable_text(item), operation)
        try:
            result = await self.llm.complete(prompt)
        except Exception as exc:
            log.warning("content distillation failed for %s: %s", item.name, exc)
            raise ExtractionFailedError(str(exc) or type(exc).__name__) from exc
        return result.strip()
