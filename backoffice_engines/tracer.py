"""
backoffice_engines.tracer -- engine invocation tracer.

Responsibility:
    ``@traced_engine`` wraps a pure engine call with one structured
    ``BACKOFFICE_ENGINE_TRACE`` debug record: engine name and version, a
    fingerprint of selected keyword inputs, and wall time.  Two calls with
    the same amounts, dates and cleared flags produce the same fingerprint,
    so a logged balance computation can be matched to its inputs.

Architecture position:
    Engines -- infrastructure support.  Reads kwargs and emits a log record;
    inputs and the return value pass through untouched.

Canonical forms:
    Decimal     normalized (``Decimal("1.0")`` and ``Decimal("1.00")`` agree)
    date/time   ISO 8601
    Enum        its value
    dataclass   ``Name{field:value,...}`` in field order
    missing     ``null``

Usage:
    @traced_engine("bank_reconciliation", "1.0",
                   fingerprint_fields=("beginning_balance", "candidates"))
    def compute_balances(*, beginning_balance, candidates, ...):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import logging
import time
from collections.abc import Callable, Mapping
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from backoffice_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")

TRACE_MESSAGE = "BACKOFFICE_ENGINE_TRACE"
FINGERPRINT_LENGTH = 16


def _canonicalize(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return _canonicalize(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return str(value.normalize()) if value.is_finite() else str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        body = ",".join(
            f"{f.name}:{_canonicalize(getattr(value, f.name))}"
            for f in dataclasses.fields(value)
        )
        return f"{type(value).__name__}{{{body}}}"
    if isinstance(value, Mapping):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: Mapping[str, Any],
) -> str:
    """SHA-256 prefix over ``field=value`` pairs of the selected kwargs."""
    canonical = "|".join(
        f"{name}={_canonicalize(kwargs.get(name))}" for name in fingerprint_fields
    )
    digest = hashlib.sha256(canonical.encode("utf-8")).hexdigest()
    return digest[:FINGERPRINT_LENGTH]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """
    Args:
        engine_name: Engine identifier, e.g. ``"bank_reconciliation"``.
        engine_version: Version of the engine's formulas.
        fingerprint_fields: Keyword arguments hashed into the fingerprint.
            Positional arguments are not fingerprinted.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = (time.perf_counter() - started) * 1000

            if _logger.isEnabledFor(logging.DEBUG):
                _logger.debug(
                    TRACE_MESSAGE,
                    extra={
                        "trace_type": TRACE_MESSAGE,
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": (
                            compute_input_fingerprint(fingerprint_fields, kwargs)
                            if fingerprint_fields
                            else ""
                        ),
                        "duration_ms": round(elapsed_ms, 2),
                        "function": func.__qualname__,
                    },
                )
            return result

        return wrapper

    return decorator
