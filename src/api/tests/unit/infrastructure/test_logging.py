"""Unit tests for the structlog configuration."""

from __future__ import annotations

import json

import structlog

from infrastructure.logging import add_call_context, configure_logging
from shared_kernel.call_context import ContextSlot, call_context


class TestAddCallContext:
    """Tests for the call context processor."""

    def test_tags_event_with_correlation_and_tenant(self) -> None:
        with call_context.scoped(ContextSlot.CORRELATION_ID, "req-1"):
            with call_context.scoped(ContextSlot.TENANT_ID, "tenant-1"):
                event = add_call_context(None, "info", {"event": "tag_created"})

        assert event == {"event": "tag_created", "request_id": "req-1", "tenant_id": "tenant-1"}

    def test_omits_slots_outside_a_call(self) -> None:
        event = add_call_context(None, "info", {"event": "application_started"})

        assert event == {"event": "application_started"}

    def test_explicit_keys_win(self) -> None:
        with call_context.scoped(ContextSlot.TENANT_ID, "tenant-1"):
            event = add_call_context(None, "info", {"event": "e", "tenant_id": "other"})

        assert event["tenant_id"] == "other"


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_json_output_carries_call_context(self, monkeypatch, capsys) -> None:
        # captured stdout is not a TTY, so JSON rendering is selected
        monkeypatch.delenv("FORCE_COLOR", raising=False)
        configure_logging()
        try:
            logger = structlog.get_logger()
            with call_context.scoped(ContextSlot.CORRELATION_ID, "req-7"):
                logger.info("tenant_verified", tenant_key=42)
        finally:
            structlog.reset_defaults()

        line = capsys.readouterr().out.strip().splitlines()[-1]
        payload = json.loads(line)
        assert payload["event"] == "tenant_verified"
        assert payload["request_id"] == "req-7"
        assert payload["tenant_key"] == 42
        assert payload["level"] == "info"
