import json
import logging

from labinventory.core.logging_config import (
    PerformanceFilter,
    SecurityFilter,
    StructuredFormatter,
    get_logger,
    reset_request_context,
    set_request_context,
)

def _record(msg, **extra):
    record = logging.LogRecord("labinventory.test", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record

def test_formatter_emits_json_with_context_and_fields():
    reset_request_context()
    set_request_context(request_id="req-1", user_id="stu-1")
    record = _record("Borrow approved", extra_fields={"record_id": "REC-1", "duration_ms": 12.5})
    PerformanceFilter().filter(record)

    entry = json.loads(StructuredFormatter("labinventory", "test", "1.0.0").format(record))
    reset_request_context()

    assert entry["message"] == "Borrow approved"
    assert entry["service"] == {"name": "labinventory", "environment": "test", "version": "1.0.0"}
    assert entry["request"] == {"request_id": "req-1", "user_id": "stu-1"}
    assert entry["fields"] == {"record_id": "REC-1"}
    assert entry["duration_ms"] == 12.5

def test_security_filter_redacts_tokens():
    record = _record("Authorization: Bearer abc.def.ghi", extra_fields={"token": "abc", "user_id": "stu-1"})
    SecurityFilter().filter(record)
    assert "abc.def.ghi" not in record.getMessage()
    assert record.extra_fields == {"token": SecurityFilter.MASK, "user_id": "stu-1"}

def test_adapter_merges_static_fields():
    adapter = get_logger("labinventory.test", component="catalog")
    _, kwargs = adapter.process("msg", {"extra": {"extra_fields": {"component_id": "COMP-1"}}})
    assert kwargs["extra"]["extra_fields"] == {"component": "catalog", "component_id": "COMP-1"}
