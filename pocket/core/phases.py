"""Interaction phase state machine driving one drop -> voice -> action cycle."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, ClassVar, List, Optional, Union

from .classifier import IntentClassifier
from .config import Settings, get_settings
from .distiller import result_name
from .executor import TaskExecutor
from .history import TaskHistory
from .logger import get_logger
from .metrics import inc_cycle
from .models import (
    Action,
    ContentType,
    Extract,
    Intent,
    ItemResult,
    PocketItem,
    PocketTask,
    TaskResult,
    TextResult,
)
from .session import PocketSession
from .trace import new_cycle_id, set_cycle_id
from .voice import TranscriptSlot

log = get_logger("phases")


@dataclass(frozen=True, slots=True)
class Idle:
    name: ClassVar[str] = "idle"


@dataclass(frozen=True, slots=True)
class Anticipation:
    name: ClassVar[str] = "anticipation"


@dataclass(frozen=True, slots=True)
class Engagement:
    name: ClassVar[str] = "engagement"


@dataclass(frozen=True, slots=True)
class Listening:
    name: ClassVar[str] = "listening"


@dataclass(frozen=True, slots=True)
class Processing:
    status_message: str
    name: ClassVar[str] = "processing"


@dataclass(frozen=True, slots=True)
class Completion:
    success: bool
    name: ClassVar[str] = "completion"


InteractionPhase = Union[Idle, Anticipation, Engagement, Listening, Processing, Completion]
PhaseListener = Callable[[InteractionPhase, InteractionPhase], None]
Sleeper = Callable[[float], Awaitable[Any]]


class PhaseMachine:
    """Holds the live phase, the pending item and the finished task history.

    One cycle runs at a time. Guarded signals return False when the current
    phase does not allow them and leave the state untouched.
    """

    def __init__(
        self,
        classifier: IntentClassifier,
        executor: TaskExecutor,
        *,
        settings: Settings | None = None,
        session: PocketSession | None = None,
        history: TaskHistory | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.settings = settings or get_settings()
        self.classifier = classifier
        self.executor = executor
        self.session = session
        self.history = history if history is not None else TaskHistory(self.settings.task_history_limit)
        self._sleep = sleep
        self._phase: InteractionPhase = Idle()
        self._listeners: List[PhaseListener] = []
        self._cycle: Optional[asyncio.Task[Any]] = None
        self._reset_task: Optional[asyncio.Task[None]] = None
        self.pending_item: Optional[PocketItem] = None
        self.active_task: Optional[PocketTask] = None
        self.held_items: List[PocketItem] = []
        self.last_intent: Optional[Intent] = None

    # ------------------------------------------------------------------ #
    # Observation
    # ------------------------------------------------------------------ #
    @property
    def phase(self) -> InteractionPhase:
        return self._phase

    def subscribe(self, callback: PhaseListener) -> Callable[[], None]:
        """Register ``callback(old, new)``; returns an unsubscribe function."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _transition(self, new: InteractionPhase) -> None:
        old = self._phase
        if old == new:
            return
        self._phase = new
        log.info("phase %s -> %s", old.name, new.name, extra={"phase": new.name})
        for callback in list(self._listeners):
            try:
                callback(old, new)
            except Exception:
                log.exception("phase listener failed")

    # ------------------------------------------------------------------ #
    # Drop-zone signals
    # ------------------------------------------------------------------ #
    def on_drag_detected(self) -> bool:
        if not isinstance(self._phase, Idle):
            return False
        self._transition(Anticipation())
        return True

    def on_hover_enter(self) -> bool:
        if not isinstance(self._phase, Anticipation):
            return False
        self._transition(Engagement())
        return True

    def on_hover_exit(self) -> bool:
        if not isinstance(self._phase, Engagement):
            return False
        self._transition(Anticipation())
        return True

    def on_drop_confirmed(self, item: PocketItem) -> bool:
        """Force the machine into listening with ``item`` pending."""
        self._abort_in_flight()
        new_cycle_id()
        self.pending_item = item
        log.info("drop confirmed: %s (%s)", item.name, item.type.value)
        self._transition(Listening())
        return True

    # ------------------------------------------------------------------ #
    # Voice and execution signals
    # ------------------------------------------------------------------ #
    async def listen(self, slot: TranscriptSlot) -> Optional[PocketTask]:
        """Wait for the recording's transcript, then run the cycle."""
        try:
            text = await slot.wait(self.settings.listening_timeout_sec)
        except Exception as exc:
            log.warning("transcript unavailable, holding item: %s", exc)
            text = None
        return await self.on_transcript_ready(text)

    def submit_transcript(self, text: Optional[str]) -> "asyncio.Task[Optional[PocketTask]]":
        """Run ``on_transcript_ready`` in the background."""
        return asyncio.get_running_loop().create_task(self.on_transcript_ready(text))

    async def on_transcript_ready(self, text: Optional[str]) -> Optional[PocketTask]:
        """Classify ``text`` against the pending item, execute it and settle.

        Returns the finished task, or None when nothing was pending.
        """
        item = self.pending_item
        if item is None:
            log.info("transcript without pending item, back to idle")
            self._reset()
            return None
        if not isinstance(self._phase, Listening):
            return None

        me = asyncio.current_task()
        self._cycle = me
        task: Optional[PocketTask] = None
        try:
            intent = await self.classifier.classify(
                text,
                item.type,
                session=self.session,
                timeout=self.settings.classification_timeout_sec,
            )
            self.last_intent = intent
            task = PocketTask(item=item, intent=intent)
            task.start()
            self.active_task = task
            self._transition(Processing(intent.description))

            try:
                result = await self.executor.execute(task)
                if intent.apply_to_all and self.session is not None and self.session.is_batch:
                    await self._apply_to_session(intent, item)
            except asyncio.CancelledError:
                raise
            except Exception as exc:
                log.warning("execution failed: %s", exc)
                self._finish(task, error=exc)
            else:
                self._finish(task, result=result)

            await self._sleep(self.settings.completion_reset_delay_sec)
            if self._cycle is me and isinstance(self._phase, Completion):
                self._reset()
            return task
        except asyncio.CancelledError:
            if task is not None and task.is_active:
                task.cancel()
                self.history.append(task)
                inc_cycle("cancelled")
            if self._cycle is me:
                self._reset()
            raise
        finally:
            if self._cycle is me:
                self._cycle = None

    def on_execution_result(self, success: bool, payload: Union[TaskResult, BaseException, str, None] = None) -> bool:
        """Report the outcome of an execution running outside the machine."""
        task = self.active_task
        if not isinstance(self._phase, Processing) or task is None:
            return False
        if success:
            result = payload if not isinstance(payload, (BaseException, str)) else None
            finished = self._finish(task, result=result)
        else:
            error = payload if isinstance(payload, BaseException) else RuntimeError(str(payload or "execution failed"))
            finished = self._finish(task, error=error)
        if finished:
            self.schedule_reset()
        return finished

    def schedule_reset(self) -> None:
        """Return to idle after the completion delay without blocking."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._reset()
            return
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
        self._reset_task = loop.create_task(self._delayed_reset())

    async def _delayed_reset(self) -> None:
        await self._sleep(self.settings.completion_reset_delay_sec)
        if isinstance(self._phase, Completion):
            self._reset()

    def cancel(self) -> bool:
        """Abort the in-flight cycle and go back to idle."""
        if isinstance(self._phase, Idle) and self.pending_item is None:
            return False
        self._abort_in_flight()
        self._reset()
        return True

    # ------------------------------------------------------------------ #
    # Prediction bubbles
    # ------------------------------------------------------------------ #
    async def execute_directly(self, item: PocketItem, action: Action) -> PocketTask:
        """Run ``action`` on ``item`` without voice; the phase is untouched."""
        task = PocketTask(item=item, intent=Intent(action=action))
        task.start()
        try:
            result = await self.executor.execute(task)
        except asyncio.CancelledError:
            task.cancel()
            self.history.append(task)
            raise
        except Exception as exc:
            log.warning("direct %s failed: %s", action.kind, exc)
            task.fail(str(exc) or type(exc).__name__)
        else:
            task.complete(result)
            self._keep_result(task, result)
        self.history.append(task)
        return task

    # ------------------------------------------------------------------ #
    # Internals
    # ------------------------------------------------------------------ #
    def _finish(
        self,
        task: PocketTask,
        *,
        result: Optional[TaskResult] = None,
        error: Optional[BaseException] = None,
    ) -> bool:
        if not task.is_active:
            return False
        if error is None:
            task.complete(result)
            self._keep_result(task, result)
        else:
            task.fail(str(error) or type(error).__name__)
        success = error is None
        self.history.append(task)
        if self.active_task is task:
            self.active_task = None
        self.pending_item = None
        inc_cycle("success" if success else "failure")
        self._transition(Completion(success))
        return True

    async def _apply_to_session(self, intent: Intent, primary: PocketItem) -> None:
        if self.session is None:
            return
        for other in self.session.items:
            if other.id == primary.id:
                continue
            batch_task = PocketTask(item=other, intent=intent)
            batch_task.start()
            try:
                result = await self.executor.execute(batch_task)
            except asyncio.CancelledError:
                batch_task.cancel()
                self.history.append(batch_task)
                raise
            except Exception as exc:
                log.warning("batch %s failed on %s: %s", intent.action.kind, other.name, exc)
                batch_task.fail(str(exc) or type(exc).__name__)
            else:
                batch_task.complete(result)
                self._keep_result(batch_task, result)
            self.history.append(batch_task)

    def _keep_result(self, task: PocketTask, result: Optional[TaskResult]) -> None:
        if isinstance(result, ItemResult):
            self.held_items.append(result.item)
        elif isinstance(result, TextResult) and isinstance(task.intent.action, Extract):
            derived = task.item.derive(
                type=ContentType.TEXT,
                data=result.text.encode("utf-8"),
                name=result_name(task.intent.action.operation),
            )
            self.held_items.append(derived)

    def _abort_in_flight(self) -> None:
        cycle = self._cycle
        self._cycle = None
        if cycle is not None and not cycle.done() and cycle is not asyncio.current_task():
            cycle.cancel()
        if self._reset_task is not None and not self._reset_task.done():
            self._reset_task.cancel()
        self._reset_task = None
        task = self.active_task
        if task is not None and task.is_active:
            task.cancel()
            self.history.append(task)
            inc_cycle("cancelled")
            log.info("cancelled task %s", task.id)
        self.active_task = None

    def _reset(self) -> None:
        self.pending_item = None
        self.active_task = None
        self._transition(Idle())
        set_cycle_id(None)
