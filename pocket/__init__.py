"""Pocket: voice-driven file actions for the Dynamic Island drop zone."""

from __future__ import annotations

from typing import Any

__all__ = ["build_machine"]

__version__ = "0.1.0"


def build_machine(*args: Any, **kwargs: Any) -> Any:
    """Entrypoint to build a wired interaction machine (lazy import)."""
    from .core.wiring import build_machine as _build

    return _build(*args, **kwargs)
