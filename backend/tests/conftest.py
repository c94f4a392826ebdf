import os

# Keep app import from binding to the default PostgreSQL URL.
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite://")

from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from api_helpers import register_and_login
from app.api.deps import get_db
from app.core.security import get_password_hash
from app.db import session as session_module
from app.db.base import Base
from app.main import app
from app.models.course import Course, SessionGroup
from app.models.room import Room
from app.models.user import User, UserRole


@pytest.fixture()
def engine(monkeypatch):
    test_engine = create_engine(
        "sqlite+pysqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=test_engine)
    # Startup bootstrap and readiness checks read the module-level engine.
    monkeypatch.setattr(session_module, "engine", test_engine)
    yield test_engine
    test_engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture()
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture()
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture()
def reference_data(db_session):
    """Two teachers, a manager, one course with one group, and two rooms."""
    hashed = get_password_hash("Passw0rd!23")
    teacher = User(name="Ada Teacher", email="ada@example.com", hashed_password=hashed, role=UserRole.teacher)
    other_teacher = User(name="Ben Teacher", email="ben@example.com", hashed_password=hashed, role=UserRole.teacher)
    manager = User(name="Mia Manager", email="mia@example.com", hashed_password=hashed, role=UserRole.manager)
    course = Course(code="MATH101", name="Calculus I")
    db_session.add_all([teacher, other_teacher, manager, course])
    db_session.flush()

    group = SessionGroup(course_id=course.id, title="Section A")
    room_101 = Room(name="101", building="Main Hall", capacity=40)
    room_102 = Room(name="102", building="Main Hall", capacity=40)
    db_session.add_all([group, room_101, room_102])
    db_session.commit()

    return SimpleNamespace(
        teacher=teacher,
        other_teacher=other_teacher,
        manager=manager,
        course=course,
        group=group,
        room_101=room_101,
        room_102=room_102,
    )


@pytest.fixture()
def campus(client):
    """Users for every role plus one course, one group and rooms 101/102, created through the API."""
    admin = register_and_login(client, name="Admin", email="admin@example.com", role="admin")
    manager = register_and_login(client, name="Manager", email="manager@example.com", role="manager")
    coordinator = register_and_login(client, name="Coordinator", email="coord@example.com", role="coordinator")
    teacher = register_and_login(client, name="Teacher X", email="x@example.com", role="teacher")
    other_teacher = register_and_login(client, name="Teacher Y", email="y@example.com", role="teacher")
    student = register_and_login(client, name="Student", email="student@example.com", role="student")

    course = client.post("/api/courses/", json={"code": "phys101", "name": "Physics I"}, headers=admin.headers)
    assert course.status_code == 201
    course_id = course.json()["id"]
    assert course.json()["code"] == "PHYS101"

    group = client.post(f"/api/courses/{course_id}/groups", json={"title": "Section A"}, headers=admin.headers)
    assert group.status_code == 201

    for name in ("101", "102"):
        room = client.post("/api/rooms/", json={"name": name, "building": "Science", "capacity": 40}, headers=admin.headers)
        assert room.status_code == 201

    return SimpleNamespace(
        admin=admin,
        manager=manager,
        coordinator=coordinator,
        teacher=teacher,
        other_teacher=other_teacher,
        student=student,
        course_id=course_id,
        group_id=group.json()["id"],
    )
