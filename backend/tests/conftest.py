import os

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")
os.environ.setdefault("TIMEZONE", "Asia/Kolkata")

from datetime import date
from io import BytesIO

import pytest
from fastapi.testclient import TestClient
from openpyxl import Workbook
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from classplan.api.deps import get_calendar_sync, get_db
from classplan.db.base import Base
from classplan.main import app
from classplan.models.cpr import CprModule, CprSubTopic, CprTopic
from classplan.models.room import Room
from classplan.models.roster import Division, Student, Subject
from classplan.models.teacher import Teacher

# 2030-01-07 is a Monday.
MONDAY = date(2030, 1, 7)


class RecordingCalendarSync:
    def __init__(self) -> None:
        self.created: list[tuple[str, object]] = []
        self.updated: list[tuple[str, str]] = []
        self.deleted: list[str] = []
        self.fail_on_create: set[int] = set()

    def create_event(self, teacher, event) -> str:
        index = len(self.created)
        self.created.append((teacher.email, event))
        if index in self.fail_on_create:
            raise RuntimeError("calendar provider unavailable")
        return f"evt-{index}"

    def update_event(self, teacher, event_id, event) -> None:
        self.updated.append((event_id, event.title))

    def delete_event(self, teacher, event_id) -> None:
        self.deleted.append(event_id)


@pytest.fixture()
def engine():
    engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def calendar():
    return RecordingCalendarSync()


@pytest.fixture()
def client(session_factory, calendar):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_calendar_sync] = lambda: calendar

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def register_user(client, payload):
    response = client.post("/api/auth/register", json=payload)
    assert response.status_code == 201
    return response.json()


def login_user(client, email, password):
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200
    return response.json()["access_token"]


def auth_headers(client, role: str) -> dict:
    payload = {
        "name": f"{role.title()} User",
        "email": f"{role}@school.example.org",
        "password": "password123",
        "role": role,
    }
    register_user(client, payload)
    token = login_user(client, payload["email"], payload["password"])
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture()
def admin_headers(client):
    return auth_headers(client, "admin")


@pytest.fixture()
def teacher_headers(client):
    return auth_headers(client, "teacher")


@pytest.fixture()
def student_headers(client):
    return auth_headers(client, "student")


@pytest.fixture()
def roster(client, admin_headers):
    """Teacher, division with two students, subject and room created through the API."""
    teacher = client.post(
        "/api/teachers",
        json={"name": "Asha Rao", "email": "asha@school.example.org", "calendar_sync_enabled": True},
        headers=admin_headers,
    ).json()
    division = client.post("/api/divisions", json={"code": "CS-A", "name": "CS Division A"}, headers=admin_headers).json()
    for name in ("Ravi", "Meera"):
        client.post(
            "/api/students",
            json={"name": name, "email": f"{name.lower()}@school.example.org", "division_id": division["id"]},
            headers=admin_headers,
        )
    subject = client.post(
        "/api/subjects",
        json={
            "name": "Data Structures",
            "code": "CS201",
            "credits": 4,
            "teacher_id": teacher["id"],
            "division_id": division["id"],
        },
        headers=admin_headers,
    ).json()
    room = client.post("/api/rooms", json={"name": "Lab 1", "building": "Main", "capacity": 40}, headers=admin_headers).json()
    return {"teacher": teacher, "division": division, "subject": subject, "room": room}


def make_subject(db, *, code="CS201", teacher=None, name="Data Structures") -> Subject:
    teacher = teacher or Teacher(name="Asha Rao", email=f"asha-{code.lower()}@school.example.org")
    division = Division(code=f"DIV-{code}", name=f"Division {code}")
    db.add_all([teacher, division])
    db.flush()
    db.add(Student(name="Ravi", email=f"ravi-{code.lower()}@school.example.org", division_id=division.id))
    subject = Subject(name=name, code=code, credits=4, teacher_id=teacher.id, division_id=division.id)
    db.add(subject)
    db.flush()
    return subject


def make_room(db, name="Lab 1") -> Room:
    room = Room(name=name, building="Main", capacity=40)
    db.add(room)
    db.flush()
    return room


def make_curriculum(db, subject: Subject, lecture_counts: list[list[list[int]]]) -> list[CprSubTopic]:
    """Build modules -> topics -> sub-topics from nested lecture counts; returns sub-topics in order."""
    created: list[CprSubTopic] = []
    for module_order, topics in enumerate(lecture_counts, start=1):
        module = CprModule(subject_id=subject.id, name=f"Module {module_order}", order=module_order)
        db.add(module)
        db.flush()
        for topic_order, counts in enumerate(topics, start=1):
            topic = CprTopic(module_id=module.id, name=f"Topic {module_order}.{topic_order}", order=topic_order)
            db.add(topic)
            db.flush()
            for sub_order, count in enumerate(counts, start=1):
                sub_topic = CprSubTopic(
                    topic_id=topic.id,
                    name=f"Sub-topic {module_order}.{topic_order}.{sub_order}",
                    order=sub_order,
                    lecture_count=count,
                )
                db.add(sub_topic)
                created.append(sub_topic)
    db.flush()
    return created


CPR_HEADERS = ("Module", "Topic", "Sub Topic", "Lecture Count")

SAMPLE_ROWS = [
    ("Foundations", "Arrays", "Static arrays", 2),
    ("Foundations", "Arrays", "Dynamic arrays", 1),
    ("Foundations", "Lists", "Linked lists", 3),
    ("Trees", "Binary trees", "Traversals", 2),
]


def workbook_bytes(rows, headers=CPR_HEADERS) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(list(headers))
    for row in rows:
        sheet.append(list(row))
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def weekly_payload(roster, **overrides):
    payload = {
        "subject_id": roster["subject"]["id"],
        "room_id": roster["room"]["id"],
        "start_date": "2030-01-07",
        "end_date": "2030-01-13",
        "schedule_items": [
            {"day_of_week": "Monday", "start_time": "09:00", "end_time": "10:00", "lecture_number": 1},
            {"day_of_week": "Wednesday", "start_time": "11:00", "end_time": "12:00", "lecture_number": 2},
        ],
    }
    payload.update(overrides)
    return payload


def schedule(client, headers, payload):
    return client.post("/api/class/schedule", json=payload, headers=headers)
