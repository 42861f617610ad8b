"""Dispatch of resolved actions to the file and content collaborators."""

from __future__ import annotations

from typing import Protocol

from .distiller import ContentDistiller
from .errors import UnsupportedOperationError
from .logger import get_logger
from .models import (
    AirPlay,
    AirPlayedResult,
    Convert,
    Extract,
    Hold,
    ItemResult,
    PocketItem,
    PocketTask,
    Print,
    PrintedResult,
    PrintOptions,
    Send,
    SentResult,
    TaskResult,
    TextResult,
)

log = get_logger("executor")


class FileService(Protocol):
    """Platform file operations (sharing, conversion, printing, casting)."""

    async def send_file(self, item: PocketItem, target: str) -> None:
        ...

    async def convert_file(self, item: PocketItem, format: str) -> PocketItem:
        ...

    async def print_file(self, item: PocketItem, copies: int, options: PrintOptions) -> None:
        ...

    async def airplay_file(self, item: PocketItem, device: str) -> None:
        ...


class TaskExecutor(Protocol):
    async def execute(self, task: PocketTask) -> TaskResult:
        ...


class ActionDispatcher:
    """Default TaskExecutor: one branch per Action kind."""

    def __init__(self, file_service: FileService, distiller: ContentDistiller | None = None) -> None:
        self.file_service = file_service
        self.distiller = distiller

    async def execute(self, task: PocketTask) -> TaskResult:
        action = task.intent.action
        item = task.item
        log.info("executing %s on %s", action.kind, item.name)

        if isinstance(action, Hold):
            return ItemResult(item)

        if isinstance(action, Send):
            await self.file_service.send_file(item, action.target)
            return SentResult(action.target)

        if isinstance(action, Convert):
            converted = await self.file_service.convert_file(item, action.format)
            return ItemResult(converted)

        if isinstance(action, Extract):
            if self.distiller is None:
                raise UnsupportedOperationError("No content distiller configured")
            text = await self.distiller.process(item, action.operation)
            return TextResult(text)

        if isinstance(action, Print):
            await self.file_service.print_file(item, action.copies, action.options)
            return PrintedResult(action.copies)

        if isinstance(action, AirPlay):
            await self.file_service.airplay_file(item, action.device)
            return AirPlayedResult(action.device)

        raise UnsupportedOperationError(f"Unsupported action {action!r}")
