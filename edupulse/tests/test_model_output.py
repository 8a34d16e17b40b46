from edupulse.utils import parse_model_json


def test_bare_json():
    assert parse_model_json('[{"student_id": "a", "status": 1}]') == [{"student_id": "a", "status": 1}]


def test_fenced_json():
    reply = 'Here you go:\n```json\n{"trends": "stable"}\n```\nThanks'
    assert parse_model_json(reply, expect=dict) == {"trends": "stable"}


def test_json_inside_prose():
    reply = 'I found these marks: [{"student_id": "a", "status": 0}] hope that helps'
    assert parse_model_json(reply, expect=list) == [{"student_id": "a", "status": 0}]


def test_wrong_type_is_rejected():
    assert parse_model_json('{"a": 1}', expect=list) is None


def test_unparsable_reply():
    assert parse_model_json("Attendance looks fine this week.") is None
    assert parse_model_json("") is None
    assert parse_model_json(None) is None


def test_truncated_json():
    assert parse_model_json('[{"student_id": "a", "status": 1}, {"student_id"', expect=list) is None
