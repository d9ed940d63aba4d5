import json
import logging

from everjourney.core.monitoring import JSONFormatter, track_performance


class _Result:
    total = 7


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("everjourney.test", logging.INFO, __file__, 1, "GET %s", ("/hotels",), None)
    record.status_code = 200
    record.duration_ms = 12.5
    line = json.loads(JSONFormatter().format(record))
    assert line["message"] == "GET /hotels"
    assert line["status_code"] == 200
    assert line["duration_ms"] == 12.5
    assert "path" not in line


def test_slow_searches_are_warnings(caplog):
    search = track_performance("hotels.search", slow_ms=0)(lambda: _Result())
    with caplog.at_level(logging.DEBUG, logger="everjourney.core.monitoring"):
        assert search().total == 7
    [record] = caplog.records
    assert record.levelno == logging.WARNING
    assert record.total == 7
    assert record.operation == "hotels.search"
