"""
erp_services.action_boundary -- Outer error boundary for user-facing actions.

Responsibility:
    Runs one service call on behalf of a caller (web handler, CLI command),
    binds the request's log context, refuses modules the business profile
    has switched off, and turns every outcome into an ``ActionResult``.

Architecture position:
    Services -- outermost layer.  Callers never see raw exceptions from
    here; the services below it still raise typed errors.

Invariants enforced:
    - Typed ``ErpKernelError`` failures are reported with their ``code``
      and message.
    - Any other exception is logged with its traceback and reported with a
      generic message, so internal details do not leak to the caller.
    - Services have already rolled back by the time an error reaches here.
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from erp_config.schema import BusinessProfile
from erp_kernel.domain.actor import Actor
from erp_kernel.exceptions import ErpKernelError, ModuleDisabledError
from erp_kernel.logging_config import LogContext, get_logger

logger = get_logger("services.action_boundary")

T = TypeVar("T")

INTERNAL_ERROR_CODE = "INTERNAL_ERROR"
INTERNAL_ERROR_MESSAGE = "An unexpected error occurred"


@dataclass(frozen=True)
class ActionResult(Generic[T]):
    """Outcome of one action.  ``value`` is set only on success."""

    success: bool
    value: T | None = None
    error: str | None = None
    code: str | None = None

    @classmethod
    def ok(cls, value: T) -> "ActionResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: str, code: str) -> "ActionResult[T]":
        return cls(success=False, error=error, code=code)


def ensure_module_enabled(profile: BusinessProfile, module: str) -> None:
    if not profile.is_enabled(module):
        raise ModuleDisabledError(module, profile.business_type.value)


def run_action(
    action_name: str,
    fn: Callable[[], T],
    *,
    actor: Actor,
    profile: BusinessProfile | None = None,
    module: str | None = None,
    correlation_id: str | None = None,
) -> ActionResult[T]:
    """
    Execute ``fn`` inside the action boundary.

    Args:
        action_name: Event label for the logs ("create_invoice", ...).
        fn: Zero-argument callable doing the work.
        actor: Who is acting; bound into the log context.
        profile: Business profile to check ``module`` against.
        module: Module the action belongs to; skipped when None.
        correlation_id: Request id; generated when omitted.
    """
    correlation_id = correlation_id or str(uuid.uuid4())
    with LogContext.bind(correlation_id=correlation_id, actor_id=actor.user_id):
        t0 = time.monotonic()
        try:
            if profile is not None and module is not None:
                ensure_module_enabled(profile, module)
            value = fn()
        except ErpKernelError as exc:
            logger.warning("action_failed", extra={
                "action": action_name,
                "error_code": exc.code,
                "duration_ms": _elapsed_ms(t0),
            })
            return ActionResult.fail(str(exc), exc.code)
        except Exception:
            logger.error(
                "action_crashed",
                extra={"action": action_name, "duration_ms": _elapsed_ms(t0)},
                exc_info=True,
            )
            return ActionResult.fail(INTERNAL_ERROR_MESSAGE, INTERNAL_ERROR_CODE)

        logger.info("action_completed", extra={
            "action": action_name,
            "duration_ms": _elapsed_ms(t0),
        })
        return ActionResult.ok(value)


def _elapsed_ms(t0: float) -> float:
    return round((time.monotonic() - t0) * 1000, 2)


__all__ = ["ActionResult", "ensure_module_enabled", "run_action"]
