import json
import logging

from edupulse.core.logging import CustomJsonFormatter, log_function_call


def test_json_formatter_reports_duration_in_ms():
    formatter = CustomJsonFormatter(extra_fields=["owner_id", "student_id", "date"])
    record = logging.LogRecord("EduPulseLogger", logging.INFO, __file__, 1, "Exiting function: save", None, None)
    record.duration = 12.5
    record.owner_id = "teacher-1"

    payload = json.loads(formatter.format(record))

    assert payload["duration_ms"] == 12.5
    assert payload["owner_id"] == "teacher-1"
    assert "student_id" not in payload


async def test_decorator_logs_duration(caplog):
    test_logger = logging.getLogger("edupulse-test")

    @log_function_call(test_logger)
    async def work():
        return "done"

    with caplog.at_level(logging.INFO, logger="edupulse-test"):
        assert await work() == "done"

    exit_record = next(r for r in caplog.records if r.getMessage() == "Exiting function: work")
    assert exit_record.duration >= 0
