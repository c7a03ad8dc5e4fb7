"""
erp_engines.tracer -- Debug trace records for pure engine calls.

``@traced_engine`` logs one ``engine_invoked`` record per call: the engine
name and version, how long it ran, and a short digest of the keyword
arguments named in ``fingerprint_fields``.  Two calls with the same digest
received the same inputs, which is enough to line up a FIFO plan or a
payment allocation with the document that asked for it.

Engines stay pure: the decorator reads arguments and returns the result
unchanged.
"""

from __future__ import annotations

import functools
import hashlib
import json
import time
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from erp_kernel.logging_config import get_logger

logger = get_logger("engines.tracer")

F = TypeVar("F", bound=Callable[..., Any])


def input_digest(fields: Iterable[str], kwargs: dict[str, Any]) -> str:
    """First 16 hex chars of SHA-256 over the named kwargs; missing ones hash as null."""
    picked = {name: kwargs.get(name) for name in fields}
    encoded = json.dumps(picked, sort_keys=True, default=str).encode("utf-8")
    return hashlib.sha256(encoded).hexdigest()[:16]


def traced_engine(name: str, version: str, fingerprint_fields: tuple[str, ...] = ()) -> Callable[[F], F]:
    def decorate(func: F) -> F:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            logger.debug("engine_invoked", extra={
                "engine_name": name,
                "engine_version": version,
                "function": func.__qualname__,
                "input_digest": input_digest(fingerprint_fields, kwargs) if fingerprint_fields else None,
                "duration_ms": round((time.perf_counter() - started) * 1000, 3),
            })
            return result

        return wrapper  # type: ignore[return-value]

    return decorate
