"""
Tests for the outer action boundary.

Tests cover:
- Success wraps the value
- Typed kernel errors keep their code and message
- Unexpected errors are logged and reported generically
- Disabled modules are refused before the action runs
"""

from erp_config import BusinessProfile, BusinessType
from erp_kernel.exceptions import ItemNotFoundError
from erp_kernel.logging_config import LogContext
from erp_services.action_boundary import ActionResult, run_action


class TestRunAction:

    def test_success(self, admin):
        result = run_action("noop", lambda: 42, actor=admin)
        assert result == ActionResult(success=True, value=42)

    def test_typed_error_reported_with_code(self, admin):
        def fail():
            raise ItemNotFoundError(7)

        result = run_action("load_item", fail, actor=admin)

        assert not result.success
        assert result.code == "ITEM_NOT_FOUND"
        assert "7" in result.error

    def test_unexpected_error_hidden(self, admin, captured_logs):
        def crash():
            raise RuntimeError("connection string with secrets")

        result = run_action("crash", crash, actor=admin, correlation_id="req-1")

        assert result.code == "INTERNAL_ERROR"
        assert "secrets" not in result.error
        record = next(r for r in captured_logs() if r["message"] == "action_crashed")
        assert record["correlation_id"] == "req-1"
        assert record["exc_type"] == "RuntimeError"

    def test_disabled_module_refused(self, admin):
        calls = []
        profile = BusinessProfile(BusinessType.RETAIL, frozenset({"sales"}))

        result = run_action(
            "commit_run", lambda: calls.append(1), actor=admin, profile=profile, module="production",
        )

        assert result.code == "MODULE_DISABLED"
        assert calls == []

    def test_context_cleared_afterwards(self, admin):
        run_action("noop", lambda: None, actor=admin, correlation_id="req-2")
        assert "correlation_id" not in LogContext.get_all()
