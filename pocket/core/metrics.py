from __future__ import annotations

from prometheus_client import Counter, Histogram

from pocket.core.config import get_settings


CLASSIFICATIONS = Counter("pocket_classifications_total", "Intent classifications", ["tier"])
GROQ_LATENCY = Histogram("pocket_groq_request_seconds", "Groq request latency", ["endpoint"])
GROQ_ERRORS = Counter("pocket_groq_errors_total", "Groq request failures", ["endpoint"])
CYCLES = Counter("pocket_cycles_total", "Interaction cycles", ["outcome"])


def _enabled() -> bool:
    return bool(get_settings().enable_metrics)


def inc_classification(tier: str) -> None:
    if _enabled():
        try:
            CLASSIFICATIONS.labels(tier=tier).inc()
        except Exception:
            pass


def observe_groq(endpoint: str, duration_s: float) -> None:
    if _enabled():
        try:
            GROQ_LATENCY.labels(endpoint=endpoint).observe(duration_s)
        except Exception:
            pass


def inc_groq_error(endpoint: str) -> None:
    if _enabled():
        try:
            GROQ_ERRORS.labels(endpoint=endpoint).inc()
        except Exception:
            pass


def inc_cycle(outcome: str) -> None:
    if _enabled():
        try:
            CYCLES.labels(outcome=outcome).inc()
        except Exception:
            pass
