import itertools
import time

import pytest

from config import TestConfig
from doctor_directory import create_app, db, registrations
from doctor_directory.models import Doctor

_emails = itertools.count(1)


@pytest.fixture
def app(tmp_path):
    class Config(TestConfig):
        UPLOAD_FOLDER = str(tmp_path / "uploads")

    app = create_app(Config)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
    registrations.clear()
    registrations.clock = time.time


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_doctor(app):
    """Insert a doctor with sensible defaults; keyword arguments override."""

    def _make(**overrides):
        fields = {
            "name": "Dr. Test",
            "specialization": "Cardiologist",
            "location": "Mumbai",
            "experience_years": 10,
            "rating": 4.5,
            "consultation_fee": 1000,
            "phone": "9876543210",
            "email": f"doctor{next(_emails)}@example.com",
        }
        fields.update(overrides)
        doctor = Doctor(**fields)
        db.session.add(doctor)
        db.session.commit()
        return doctor

    return _make


@pytest.fixture
def step1_form():
    return {
        "name": "Dr. A",
        "email": "a@x.com",
        "phone": "9876543210",
        "gender": "Male",
        "age": "40",
        "location": "Pune",
    }


@pytest.fixture
def step2_form():
    return {
        "specialization": "Cardiologist",
        "institute": "AIIMS",
        "degree": "MD",
        "experience_years": "10",
        "consultation_fee": "500",
    }


@pytest.fixture
def search_count(app):
    """Current search_count straight from the table."""

    def _read(doctor_id):
        return db.session.scalar(db.select(Doctor.search_count).where(Doctor.id == doctor_id))

    return _read
