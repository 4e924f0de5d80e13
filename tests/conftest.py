# tests/conftest.py

import pytest
from werkzeug.security import generate_password_hash

from academics import create_app
from academics.extensions import db
from academics.models import Section, Subject, User
from academics.services.enrollment import enroll

PASSWORD = "secret123"


def make_user(username, name, role, registration_no=None):
    user = User(
        username=username,
        name=name,
        role=role,
        registration_no=registration_no,
        password_hash=generate_password_hash(PASSWORD),
    )
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def app():
    app = create_app("config.TestConfig")
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def login(client):
    def _login(username):
        response = client.post(
            "/auth/login", json={"username": username, "password": PASSWORD}
        )
        assert response.status_code == 200
        return client

    return _login


@pytest.fixture
def admin(app):
    return make_user("admin", "Ana Admin", "admin")


@pytest.fixture
def teacher(app):
    return make_user("t.maria", "Maria Santos", "teacher")


@pytest.fixture
def other_teacher(app):
    return make_user("t.paulo", "Paulo Lima", "teacher")


@pytest.fixture
def students(app):
    return [
        make_user("2025001", "Alice Souza", "student", "2025001"),
        make_user("2025002", "Bruno Costa", "student", "2025002"),
        make_user("2025003", "Carla Dias", "student", "2025003"),
    ]


@pytest.fixture
def subject(app):
    subject = Subject(code="PROG1", name="Programming I", workload=60)
    db.session.add(subject)
    db.session.commit()
    return subject


@pytest.fixture
def section(subject, teacher):
    section = Section(
        code="PROG1-2025-1A",
        subject=subject,
        teacher=teacher,
        year=2025,
        term=1,
        capacity=3,
        room="B-12",
    )
    db.session.add(section)
    db.session.commit()
    return section


@pytest.fixture
def enrollments(section, students):
    return [enroll(s.registration_no, section.code) for s in students]
