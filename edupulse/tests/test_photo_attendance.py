import json
from datetime import date

from sqlalchemy import select

from conftest import IMAGE, OWNER, FakeGateway, fail_on_call
from edupulse.core.errors import AIGatewayError, ConfigurationError
from edupulse.models import AttendanceRecord, REGISTER_ABSENCE_REASON
from edupulse.services.photo_attendance_service import (
    PhotoAttendanceService,
    coerce_status,
    image_bytes_to_data_url,
    validate_image
)

MONDAY = date(2024, 3, 4)


async def all_records(session):
    return (await session.execute(select(AttendanceRecord).order_by(AttendanceRecord.id))).scalars().all()


def fenced(entries):
    return "```json\n" + json.dumps(entries) + "\n```"


async def test_unknown_and_mismatched_entries_are_dropped(session, students):
    gateway = FakeGateway(replies=[fenced([
        {"student_id": students[0].id, "index_number": "1001", "status": 1, "date": "2024-03-04"},
        {"student_id": "ghost", "index_number": "9999", "status": 0, "date": "2024-03-04"},
        {"student_id": students[1].id, "index_number": "7777", "status": 0, "date": "2024-03-04"},
    ])])

    result = await PhotoAttendanceService(session, OWNER, gateway).mark_from_photo(IMAGE, "2024-03-04")

    assert result.success is True
    assert result.identified_count == 1
    assert result.total_students == 2
    assert [(r.index_number, r.status) for r in result.attendance_records] == [("1001", "present")]
    assert result.message == "Successfully read and updated 1 student records from register"

    records = await all_records(session)
    assert [(r.student_id, r.date, r.status) for r in records] == [(students[0].id, MONDAY, 1)]


async def test_absent_rows_are_tagged_and_prompt_lists_roster(session, students):
    gateway = FakeGateway(replies=[json.dumps([
        {"student_id": students[1].id, "index_number": "1002", "status": "0"},
    ])])

    result = await PhotoAttendanceService(session, OWNER, gateway).mark_from_photo(IMAGE, "2024-03-04")

    assert [(r.index_number, r.status) for r in result.attendance_records] == [("1002", "absent")]
    records = await all_records(session)
    assert records[0].absence_reason == REGISTER_ABSENCE_REASON
    assert records[0].date == MONDAY

    call = gateway.calls[0]
    assert call["image"] == IMAGE
    assert "Index: 1001, Name: Amal Perera, Grade: 10-A" in call["prompt"]
    assert students[1].id in call["prompt"]


async def test_last_entry_for_a_student_wins(session, students):
    gateway = FakeGateway(replies=[json.dumps([
        {"student_id": students[0].id, "status": 0, "date": "2024-03-04"},
        {"student_id": students[0].id, "status": 1, "date": "2024-03-04"},
    ])])

    result = await PhotoAttendanceService(session, OWNER, gateway).mark_from_photo(IMAGE, "2024-03-04")

    assert result.identified_count == 1
    records = await all_records(session)
    assert len(records) == 1
    assert records[0].status == 1


async def test_failed_row_is_reported_and_others_still_land(session, students, monkeypatch):
    attempted = fail_on_call(monkeypatch, 1)
    gateway = FakeGateway(replies=[json.dumps([
        {"student_id": students[0].id, "index_number": "1001", "status": 1, "date": "2024-03-04"},
        {"student_id": students[1].id, "index_number": "1002", "status": 0, "date": "2024-03-04"},
    ])])

    result = await PhotoAttendanceService(session, OWNER, gateway).mark_from_photo(IMAGE, "2024-03-04")

    assert attempted == [students[0].id, students[1].id]
    assert result.success is True
    assert result.identified_count == 1
    assert [(e.index_number, "constraint failed" in e.error) for e in result.errors] == [("1001", True)]
    assert [(r.index_number, r.status) for r in result.attendance_records] == [("1002", "absent")]

    records = await all_records(session)
    assert [(r.student_id, r.status) for r in records] == [(students[1].id, 0)]


async def test_invalid_entry_date_falls_back_to_request_date(session, students):
    gateway = FakeGateway(replies=[json.dumps([
        {"student_id": students[0].id, "status": 1, "date": "04/03/2024"},
    ])])

    await PhotoAttendanceService(session, OWNER, gateway).mark_from_photo(IMAGE, "2024-03-04")

    records = await all_records(session)
    assert records[0].date == MONDAY


async def test_unparsable_reply_gives_empty_result(session, students):
    gateway = FakeGateway(replies=["I could not see any register in this photo."])

    result = await PhotoAttendanceService(session, OWNER, gateway).mark_from_photo(IMAGE, "2024-03-04")

    assert result.success is False
    assert result.identified_count == 0
    assert result.attendance_records == []
    assert "Could not read attendance marks" in result.message
    assert await all_records(session) == []


async def test_gateway_failure_gives_empty_result(session, students):
    gateway = FakeGateway(error=AIGatewayError("AI gateway error: 502"))

    result = await PhotoAttendanceService(session, OWNER, gateway).mark_from_photo(IMAGE, "2024-03-04")

    assert result.success is False
    assert result.total_students == 2
    assert "AI gateway error: 502" in result.message


async def test_missing_gateway_key_gives_empty_result(session, students):
    gateway = FakeGateway(error=ConfigurationError("AI gateway API key is not configured"))

    result = await PhotoAttendanceService(session, OWNER, gateway).mark_from_photo(IMAGE, "2024-03-04")

    assert result.success is False


async def test_bad_input_never_reaches_the_gateway(session, students):
    gateway = FakeGateway()
    service = PhotoAttendanceService(session, OWNER, gateway)

    for image, day in (
        (None, "2024-03-04"),
        (12345, "2024-03-04"),
        ("data:application/pdf;base64,AAAA", "2024-03-04"),
        (IMAGE, "2024-13-45"),
        (IMAGE, None),
        (IMAGE, "yesterday"),
    ):
        result = await service.mark_from_photo(image, day)
        assert result.success is False
        assert result.attendance_records == []

    assert gateway.calls == []


async def test_empty_roster(session):
    gateway = FakeGateway()
    result = await PhotoAttendanceService(session, OWNER, gateway).mark_from_photo(IMAGE, "2024-03-04")

    assert result.success is False
    assert gateway.calls == []


def test_validate_image_size(monkeypatch):
    from edupulse.core.config import settings

    monkeypatch.setattr(settings, "MAX_IMAGE_SIZE", 30)
    assert validate_image("data:image/png;base64," + "A" * 100).startswith("Image too large")
    assert validate_image("data:image/png;base64,AAAA") is None


def test_coerce_status():
    assert coerce_status(1) == 1
    assert coerce_status(0.0) == 0
    assert coerce_status(True) == 1
    assert coerce_status("absent") == 0
    assert coerce_status(" 1 ") == 1
    assert coerce_status(2) is None
    assert coerce_status("maybe") is None


def test_image_bytes_to_data_url():
    assert image_bytes_to_data_url(b"abc", "image/jpeg") == "data:image/jpeg;base64,YWJj"
