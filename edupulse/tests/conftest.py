import os
import tempfile

# Settings are read at import time
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-edupulse")
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("AI_GATEWAY_API_KEY", "test-gateway-key")
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="edupulse-logs-"))

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy.exc import IntegrityError

from edupulse import create_app
from edupulse.core import database
from edupulse.core.config import settings
from edupulse.core.dependencies import get_ai_gateway
from edupulse.models import Base
from edupulse.schemas.student import StudentCreate
from edupulse.services.attendance_service import AttendanceService
from edupulse.services.student_service import StudentService

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"
OWNER = "teacher-1"
OTHER_OWNER = "teacher-2"
IMAGE = "data:image/png;base64,iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNk"


class FakeGateway:
    """Stands in for AIGateway; returns scripted replies and records each call."""

    def __init__(self, replies=None, error=None):
        self.replies = list(replies or [])
        self.error = error
        self.calls = []

    async def chat_complete(self, prompt_or_messages, image=None):
        self.calls.append({"prompt": prompt_or_messages, "image": image})
        if self.error is not None:
            raise self.error
        return self.replies.pop(0) if self.replies else ""


def make_token(owner_id: str = OWNER) -> str:
    return jwt.encode({"sub": owner_id}, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def auth_headers(owner_id: str = OWNER) -> dict:
    return {"Authorization": f"Bearer {make_token(owner_id)}"}


def fail_on_call(monkeypatch, call_number):
    """upsert_row raises IntegrityError on the given call; returns the student ids attempted."""
    attempted = []
    original = AttendanceService.upsert_row

    async def upsert_row(self, student_id, day, status, absence_reason):
        attempted.append(student_id)
        if len(attempted) == call_number:
            raise IntegrityError("INSERT INTO attendance_records", {}, Exception("constraint failed"))
        return await original(self, student_id, day, status, absence_reason)

    monkeypatch.setattr(AttendanceService, "upsert_row", upsert_row)
    return attempted


@pytest.fixture
async def session():
    engine = database.build_engine(TEST_DATABASE_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    factory = database.build_session_factory(engine)
    async with factory() as db_session:
        yield db_session

    await engine.dispose()


@pytest.fixture
async def students(session):
    service = StudentService(session, OWNER)
    return [
        await service.create_student(StudentCreate(
            name="Amal Perera", index_number="1001", grade=10, section="A", attendance_percentage=60
        )),
        await service.create_student(StudentCreate(
            name="Nimali Silva", index_number="1002", grade=10, section="B", attendance_percentage=90
        )),
    ]


@pytest.fixture
def fake_gateway():
    return FakeGateway()


@pytest.fixture
def client(fake_gateway):
    database.configure_engine(TEST_DATABASE_URL)
    app = create_app()
    app.dependency_overrides[get_ai_gateway] = lambda: fake_gateway
    with TestClient(app) as test_client:
        yield test_client
