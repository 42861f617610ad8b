"""Voice transcript hand-off between the recorder and the phase machine."""

from __future__ import annotations

import asyncio
from typing import Optional

from .groq import GroqClient
from .logger import get_logger

log = get_logger("voice")


class TranscriptSlot:
    """One-shot completion signal for a single recording."""

    def __init__(self) -> None:
        self._future: Optional[asyncio.Future[Optional[str]]] = None

    def _ensure(self) -> asyncio.Future[Optional[str]]:
        if self._future is None:
            self._future = asyncio.get_running_loop().create_future()
        return self._future

    @property
    def done(self) -> bool:
        return self._future is not None and self._future.done()

    def resolve(self, text: Optional[str]) -> bool:
        future = self._ensure()
        if future.done():
            return False
        future.set_result(text.strip() if text and text.strip() else None)
        return True

    def fail(self, exc: BaseException) -> bool:
        future = self._ensure()
        if future.done():
            return False
        future.set_exception(exc)
        return True

    async def wait(self, timeout: Optional[float] = None) -> Optional[str]:
        """Transcript text, or None when nothing arrived before the timeout."""
        future = self._ensure()
        try:
            return await asyncio.wait_for(asyncio.shield(future), timeout)
        except asyncio.TimeoutError:
            log.info("no transcript after %ss", timeout)
            return None


class VoiceTranscriber:
    def __init__(self, groq: GroqClient, *, language: Optional[str] = None) -> None:
        self.groq = groq
        self.language = language

    async def transcribe(
        self,
        wav_bytes: bytes,
        language: Optional[str] = None,
        *,
        slot: Optional[TranscriptSlot] = None,
    ) -> Optional[str]:
        """Send the recording to the transcription endpoint and fill ``slot``.

        Failures are logged and resolve to None so the caller falls back to hold.
        """
        slot = slot or TranscriptSlot()
        if not wav_bytes:
            slot.resolve(None)
            return await slot.wait()
        try:
            text = await self.groq.transcribe(wav_bytes, language=language or self.language)
        except asyncio.CancelledError:
            slot.resolve(None)
            raise
        except Exception as exc:
            log.warning("transcription failed: %s", exc)
            slot.resolve(None)
        else:
            log.info("transcribed %d bytes -> %r", len(wav_bytes), text)
            slot.resolve(text)
        return await slot.wait()
