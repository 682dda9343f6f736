"""
lending_engines.tracer -- engine invocation tracer emitting LENDING_ENGINE_TRACE.

Responsibility:
    ``@traced_engine`` wraps a pure engine function and logs one structured
    record per call with engine_name, engine_version, an input fingerprint
    (SHA-256 prefix of selected keyword arguments) and duration_ms.

Architecture position:
    Engines -- infrastructure for the pure calculation layer.  Emits a log
    record only; does not mutate inputs.  Uses a logger under the
    ``lending_kernel`` namespace so the kernel's structured formatter picks
    it up once logging is configured.

Failure modes:
    - A fingerprint field missing from kwargs is recorded as "null".
"""

from __future__ import annotations

import functools
import hashlib
import logging
import time
from collections.abc import Callable
from dataclasses import asdict, is_dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any

_logger = logging.getLogger("lending_kernel.engines.tracer")


def _canonicalize(value: Any) -> str:
    """Stable string form of a value for fingerprinting."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, Decimal):
        return str(value.normalize())
    if isinstance(value, (int, float, str, date)):
        return str(value)
    if is_dataclass(value) and not isinstance(value, type):
        return _canonicalize(asdict(value))
    if isinstance(value, dict):
        items = sorted(value.items())
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """16-hex-char SHA-256 prefix over the named keyword arguments."""
    parts = [f"{field}={_canonicalize(kwargs.get(field))}" for field in fingerprint_fields]
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits LENDING_ENGINE_TRACE for pure engine invocations.

    Args:
        engine_name: Engine identifier (e.g., "irr").
        engine_version: Engine version (e.g., "1.0").
        fingerprint_fields: Keyword argument names to include in the
            input fingerprint.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                fp = compute_input_fingerprint(fingerprint_fields, kwargs)

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.info(
                "LENDING_ENGINE_TRACE",
                extra={
                    "trace_type": "LENDING_ENGINE_TRACE",
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fp,
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
