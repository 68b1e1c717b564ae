import json
import logging

import pytest

from bifrost.observability import JsonLogFormatter, StructuredLogger


def test_structured_logger_keeps_records_and_mirrors_them(caplog: pytest.LogCaptureFixture) -> None:
    log = StructuredLogger()
    caplog.set_level(logging.DEBUG, logger="bifrost.operations")

    log.log(operation="load", kind="Load", stage="prepared", workspace="demo", message="prepared")
    log.log(
        operation="load",
        kind="Load",
        stage="executed",
        workspace="demo",
        message="executed",
        level="debug",
        extra={"bytes": 278},
    )

    assert [record["stage"] for record in log.records] == ["prepared", "executed"]
    assert log.records[1]["extra"] == {"bytes": 278}
    assert [(r.levelno, r.getMessage()) for r in caplog.records] == [
        (logging.INFO, "prepared"),
        (logging.DEBUG, "executed"),
    ]
    assert caplog.records[0].workspace == "demo"


def test_json_formatter_carries_extra_fields() -> None:
    record = logging.LogRecord("bifrost.test", logging.INFO, __file__, 1, "staged %s", ("demo",), None)
    record.workspace = "demo"

    payload = json.loads(JsonLogFormatter().format(record))

    assert payload["message"] == "staged demo"
    assert payload["level"] == "INFO"
    assert payload["workspace"] == "demo"
