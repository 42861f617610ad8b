"""Assemble a PhaseMachine from settings and the platform file service."""

from __future__ import annotations

from typing import Optional

from .classifier import IntentClassifier
from .config import Settings, get_settings
from .distiller import ContentDistiller
from .executor import ActionDispatcher, FileService, TaskExecutor
from .groq import CompletionBackend, GroqClient
from .history import TaskHistory
from .logger import get_logger
from .phases import PhaseMachine
from .session import PocketSession

log = get_logger("wiring")


def build_machine(
    file_service: FileService,
    *,
    settings: Optional[Settings] = None,
    llm: Optional[CompletionBackend] = None,
    executor: Optional[TaskExecutor] = None,
    session: Optional[PocketSession] = None,
) -> PhaseMachine:
    """Wire classifier, distiller and dispatcher around one shared LLM backend."""
    cfg = settings or get_settings()
    backend: CompletionBackend = llm if llm is not None else GroqClient(cfg)
    classifier = IntentClassifier(backend, settings=cfg)
    if executor is None:
        executor = ActionDispatcher(file_service, ContentDistiller(backend))
    if session is None:
        session = PocketSession(max_items=cfg.session_max_items, timeout=cfg.session_timeout_sec)
    machine = PhaseMachine(
        classifier,
        executor,
        settings=cfg,
        session=session,
        history=TaskHistory(cfg.task_history_limit),
    )
    log.info("phase machine ready (backend=%s)", type(backend).__name__)
    return machine
