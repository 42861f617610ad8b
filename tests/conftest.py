from __future__ import annotations

import os
import tempfile

import pytest

# keep JSON log files out of the source tree
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="pocket-logs-"))

from pocket.core.config import get_settings  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_settings(monkeypatch):
    for name in ("GROQ_API_KEY", "POCKET_GROQ_API_KEY", "groq_api_key"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
