from __future__ import annotations

import sys
from pathlib import Path

import fakeredis
import fitz
import pytest
from flask_jwt_extended import create_access_token

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from courseware import create_app, db
from courseware.models import Part, User, UserRole
from courseware.services import get_services


CHUNK_SIZE = 1024


def make_pdf(pages=1, width=595, height=842, text="Lecture"):
    document = fitz.open()
    for number in range(pages):
        page = document.new_page(width=width, height=height)
        page.insert_text((72, 72), f"{text} page {number + 1}", fontsize=14)
    data = document.tobytes()
    document.close()
    return data


class RecordingQueue:
    def __init__(self):
        self.jobs = []
        self.error = None

    def enqueue(self, job_name, payload):
        if self.error is not None:
            raise self.error
        self.jobs.append((job_name, payload))
        return f"job-{len(self.jobs)}"


class FakeConverter:
    def __init__(self, pages=2):
        self.pages = pages
        self.calls = []
        self.error = None

    def convert(self, data, target_format="pdf", source_extension=".bin"):
        self.calls.append((data, target_format, source_extension))
        if self.error is not None:
            raise self.error
        return make_pdf(pages=self.pages, text="Converted")

    def version(self):
        return "LibreOffice 7.6.4.1"


@pytest.fixture()
def redis_client():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer())


@pytest.fixture()
def render_queue():
    return RecordingQueue()


@pytest.fixture()
def converter():
    return FakeConverter()


@pytest.fixture()
def app(tmp_path: Path, redis_client, render_queue, converter):
    app = create_app(
        "testing",
        config_overrides={
            "UPLOAD_CHUNK_SIZE": CHUNK_SIZE,
            "UPLOAD_MAX_FILE_SIZE": 64 * CHUNK_SIZE,
            "UPLOAD_SCRATCH_DIR": str(tmp_path / "scratch"),
            "STORAGE_LOCAL_ROOT": str(tmp_path / "storage"),
            "WATERMARK_BRAND": "Courseware",
            "WATERMARK_CONTACT": "+1 555 0100",
        },
        redis_client=redis_client,
        render_queue=render_queue,
        converter=converter,
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def services(app):
    return get_services()


@pytest.fixture()
def users(app):
    instructor = User(email="instructor@example.com", username="instructor", role=UserRole.INSTRUCTOR)
    other = User(email="other@example.com", username="other", role=UserRole.INSTRUCTOR)
    admin = User(email="admin@example.com", username="admin", role=UserRole.ADMIN)
    student = User(email="student@example.com", username="student", role=UserRole.STUDENT)
    db.session.add_all([instructor, other, admin, student])
    db.session.commit()
    return {"instructor": instructor, "other": other, "admin": admin, "student": student}


@pytest.fixture()
def part(users):
    part = Part(title="Week 1", owner_id=users["instructor"].id)
    db.session.add(part)
    db.session.commit()
    return part


@pytest.fixture()
def auth_headers(users):
    def headers_for(name):
        token = create_access_token(identity=users[name].email)
        return {"Authorization": f"Bearer {token}"}

    return headers_for
