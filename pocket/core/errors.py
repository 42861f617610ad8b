from __future__ import annotations

from typing import Any, Dict


class PocketError(RuntimeError):
    """Base error of the Pocket core."""


# Groq / HTTP


class GroqError(PocketError):
    """Failure while talking to the Groq API."""


class MissingAPIKeyError(GroqError):
    def __init__(self) -> None:
        super().__init__("Groq API key is not configured. Set GROQ_API_KEY or groq_api_key.")


class GroqHTTPError(GroqError):
    def __init__(self, status_code: int, message: str) -> None:
        self.status_code = status_code
        self.message = message
        super().__init__(f"API error ({status_code}): {message}")


class GroqResponseError(GroqError):
    """The API answered 200 but the body is unusable."""


# Intent parsing


class IntentParseError(PocketError):
    """The LLM answer could not be turned into an Intent."""


class InvalidJSONError(IntentParseError):
    def __init__(self, detail: str = "Invalid response format") -> None:
        super().__init__(detail)


class UnknownActionError(IntentParseError):
    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"Unknown action: {action}")


# Task execution


class TaskExecutionError(PocketError):
    """Raised by task-execution collaborators."""


class ConversionFailedError(TaskExecutionError):
    def __init__(self, source: str, target: str) -> None:
        self.source = source
        self.target = target
        super().__init__(f"Failed to convert from {source} to {target}")


class SendingFailedError(TaskExecutionError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to send: {reason}")


class PrintingFailedError(TaskExecutionError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to print: {reason}")


class AirPlayFailedError(TaskExecutionError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to AirPlay: {reason}")


class ExtractionFailedError(TaskExecutionError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to extract: {reason}")


class UnsupportedOperationError(TaskExecutionError):
    def __init__(self, detail: str = "This operation is not supported") -> None:
        super().__init__(detail)


class InvalidTransitionError(PocketError):
    """A PocketTask status tried to move backwards."""


class TranscriptionError(PocketError):
    """Voice transcription failed."""


def error_payload(
    code: str,
    message: str,
    *,
    details: Any | None = None,
    cycle_id: str | None = None,
) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if details is not None:
        payload["error"]["details"] = details
    if cycle_id is not None:
        payload["error"]["cycle_id"] = cycle_id
    return payload
