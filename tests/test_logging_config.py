"""Tests for structured logging configuration."""

import json
import logging

from services.logging_config import (
    ContextLogger,
    JsonFormatter,
    ReadableFormatter,
    configure_logging,
    get_logger,
    request_id_var,
    tenant_id_var,
)


def _record(msg="Recomputed", **extra):
    record = logging.makeLogRecord({"name": "compliance.service", "levelname": "INFO", "msg": msg})
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    """JSON output."""

    def test_includes_extra_fields(self):
        payload = json.loads(JsonFormatter().format(_record(client_id=7, score_value=70)))

        assert payload["message"] == "Recomputed"
        assert payload["logger"] == "compliance.service"
        assert payload["client_id"] == 7
        assert payload["score_value"] == 70

    def test_includes_context_vars(self):
        request_token = request_id_var.set("req-1")
        tenant_token = tenant_id_var.set(3)
        try:
            payload = json.loads(JsonFormatter().format(_record()))
        finally:
            request_id_var.reset(request_token)
            tenant_id_var.reset(tenant_token)

        assert payload["request_id"] == "req-1"
        assert payload["tenant_id"] == 3

    def test_exception_included(self):
        try:
            raise ValueError("bad row")
        except ValueError:
            import sys
            record = logging.makeLogRecord({"msg": "failed", "exc_info": sys.exc_info()})

        payload = json.loads(JsonFormatter().format(record))
        assert "ValueError: bad row" in payload["exception"]


class TestReadableFormatter:

    def test_appends_extras(self):
        line = ReadableFormatter().format(_record(client_id=7))
        assert "[compliance.service] Recomputed" in line
        assert "client_id=7" in line


class TestContextLogger:

    def test_bound_fields_merge_with_call_extra(self):
        adapter = ContextLogger(logging.getLogger("test"), {"client_id": 7})
        _, kwargs = adapter.process("msg", {"extra": {"level": "amber"}})
        assert kwargs["extra"] == {"client_id": 7, "level": "amber"}

    def test_get_logger(self):
        logger = get_logger("compliance.test", tenant_id=1)
        assert isinstance(logger, ContextLogger)
        assert logger.extra == {"tenant_id": 1}


class TestConfigureLogging:
    """configure_logging only manages its own handlers."""

    def test_keeps_foreign_handlers(self):
        root = logging.getLogger()
        foreign = logging.NullHandler()
        root.addHandler(foreign)
        original_level = root.level
        try:
            configure_logging(level="DEBUG")
            configure_logging(level="INFO", json_output=True)

            ours = [h for h in root.handlers if getattr(h, "_compliance_core", False)]
            assert len(ours) == 1
            assert isinstance(ours[0].formatter, JsonFormatter)
            assert foreign in root.handlers
            assert root.level == logging.INFO
        finally:
            for handler in [h for h in root.handlers if getattr(h, "_compliance_core", False)]:
                root.removeHandler(handler)
            root.removeHandler(foreign)
            root.setLevel(original_level)

    def test_file_handler(self, tmp_path):
        root = logging.getLogger()
        log_file = tmp_path / "logs" / "app.log"
        try:
            configure_logging(log_file=log_file)
            logging.getLogger("compliance.test").warning("written", extra={"client_id": 9})
            for handler in root.handlers:
                handler.flush()

            payload = json.loads(log_file.read_text().strip().splitlines()[-1])
            assert payload["message"] == "written"
            assert payload["client_id"] == 9
        finally:
            for handler in [h for h in root.handlers if getattr(h, "_compliance_core", False)]:
                root.removeHandler(handler)
                handler.close()
