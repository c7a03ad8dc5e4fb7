"""
Tests for structured logging.

Tests cover:
- JSON lines carry the standard fields, bound context and extras
- Typed errors expose their structured attributes
- configure_logging is idempotent
"""

import json
import logging
from io import StringIO

from erp_kernel.exceptions import InsufficientStockError
from erp_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    get_logger,
)


def _format(record_factory):
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    logger = get_logger("tests.logging")
    logger.addHandler(handler)
    try:
        record_factory(logger)
    finally:
        logger.removeHandler(handler)
    return json.loads(stream.getvalue().strip().splitlines()[-1])


class TestStructuredFormatter:

    def test_standard_fields_and_extras(self):
        payload = _format(lambda log: log.info("stock_issued", extra={"item_id": 7, "quantity": 3}))

        assert payload["message"] == "stock_issued"
        assert payload["level"] == "INFO"
        assert payload["logger"] == "erp_kernel.tests.logging"
        assert payload["item_id"] == 7
        assert payload["quantity"] == 3
        assert "ts" in payload

    def test_context_fields(self):
        with LogContext.bind(correlation_id="req-9", actor_id="clerk", document_type="Invoice"):
            payload = _format(lambda log: log.info("sales_create_invoice_started"))

        assert payload["correlation_id"] == "req-9"
        assert payload["actor_id"] == "clerk"
        assert payload["document_type"] == "Invoice"

    def test_bind_restores_previous_context(self):
        LogContext.set(correlation_id="outer")
        with LogContext.bind(correlation_id="inner"):
            assert LogContext.get_all()["correlation_id"] == "inner"
        assert LogContext.get_all()["correlation_id"] == "outer"

    def test_exception_fields(self):
        def log_failure(log):
            try:
                raise InsufficientStockError(item_id=4, requested_quantity=12, available_quantity=10)
            except InsufficientStockError:
                log.error("issue_failed", exc_info=True)

        payload = _format(log_failure)

        assert payload["exc_type"] == "InsufficientStockError"
        assert payload["exc_code"] == "INSUFFICIENT_STOCK"
        assert payload["exc_requested_quantity"] == 12
        assert payload["exc_available_quantity"] == 10
        assert "Traceback" in payload["traceback"]


class TestConfigureLogging:

    def test_idempotent(self):
        root = logging.getLogger("erp_kernel")
        before = len(root.handlers)
        configure_logging(level=logging.DEBUG)
        configure_logging(level=logging.DEBUG)
        assert len(root.handlers) == before
        assert root.propagate is False
