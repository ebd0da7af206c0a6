import io

import pytest
from sqlalchemy.exc import OperationalError

from doctor_directory import db, registrations, doctor_store
from doctor_directory.models import Doctor


def doctor_count():
    return db.session.scalar(db.select(db.func.count(Doctor.id)))


def start(client, form):
    resp = client.post("/api/register/step1", data=form)
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["tempId"]


def test_full_registration_flow(client, step1_form, step2_form):
    temp_id = start(client, step1_form)
    assert temp_id.startswith("temp_")

    resp = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    body = resp.get_json()
    assert resp.status_code == 201
    assert body["success"] is True
    doctor = body["data"]
    assert doctor["name"] == "Dr. A"
    assert doctor["email"] == "a@x.com"
    assert doctor["specialization"] == "Cardiologist"
    assert doctor["experience_years"] == 10
    assert doctor["consultation_fee"] == 500
    assert doctor["rating"] == "0.0"
    assert doctor["search_count"] == 0

    viewed = client.get(f"/api/doctors/{doctor['id']}").get_json()["data"]
    assert viewed["search_count"] == 1
    assert temp_id not in registrations


def test_step1_echoes_cleaned_data(client, step1_form):
    step1_form.update(email="  Mixed.Case@Example.com ", name="  Dr. Spaces ")
    body = client.post("/api/register/step1", data=step1_form).get_json()
    assert body["data"]["email"] == "mixed.case@example.com"
    assert body["data"]["name"] == "Dr. Spaces"
    assert body["data"]["age"] == 40


def test_step1_validation_errors_are_itemized(client):
    resp = client.post("/api/register/step1", data={"name": "Al", "email": "nope", "age": "12"})
    body = resp.get_json()
    assert resp.status_code == 400
    assert body["message"] == "Validation failed"
    assert len(body["errors"]) == 6
    assert len(registrations) == 0


def test_step1_conflict_on_existing_email(client, make_doctor, step1_form):
    make_doctor(email="a@x.com")
    resp = client.post("/api/register/step1", data=step1_form)
    assert resp.status_code == 409
    assert resp.get_json()["field"] == "email"
    assert len(registrations) == 0


def test_step2_conflict_when_email_claimed_meanwhile(client, make_doctor, step1_form, step2_form):
    temp_id = start(client, step1_form)
    make_doctor(email="a@x.com")

    resp = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    assert resp.status_code == 409
    assert doctor_count() == 1
    assert temp_id not in registrations


def test_unique_index_is_authoritative(client, make_doctor, step1_form, step2_form, monkeypatch):
    temp_id = start(client, step1_form)
    make_doctor(email="a@x.com")
    # pre-check misses the race; the insert must still be refused
    monkeypatch.setattr(doctor_store, "email_taken", lambda email: False)

    resp = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    assert resp.status_code == 409
    assert doctor_count() == 1


def test_temp_id_is_single_use(client, step1_form, step2_form):
    temp_id = start(client, step1_form)
    first = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    second = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})

    assert first.status_code == 201
    assert second.status_code == 400
    assert second.get_json()["message"].startswith("Invalid or expired registration session")
    assert doctor_count() == 1


def test_step2_unknown_temp_id(client, step2_form):
    resp = client.post("/api/register/step2", data={"tempId": "temp_0_missing", **step2_form})
    assert resp.status_code == 400
    assert doctor_count() == 0


def test_step2_validation_runs_before_session_is_used(client, step1_form):
    temp_id = start(client, step1_form)
    resp = client.post("/api/register/step2", data={"tempId": temp_id, "experience_years": "90"})
    assert resp.status_code == 400
    assert "Experience years must be between 0 and 70" in resp.get_json()["errors"]
    assert temp_id in registrations


def test_expired_session_is_rejected(client, step1_form, step2_form):
    now = [1_000_000.0]
    registrations.clock = lambda: now[0]
    temp_id = start(client, step1_form)

    now[0] += registrations.ttl + 1
    registrations.sweep()
    resp = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    assert resp.status_code == 400
    assert doctor_count() == 0


def test_expired_session_rejected_before_sweep(client, step1_form, step2_form):
    now = [1_000_000.0]
    registrations.clock = lambda: now[0]
    temp_id = start(client, step1_form)

    now[0] += registrations.ttl + 1
    resp = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    assert resp.status_code == 400


def test_database_failure_keeps_session(client, step1_form, step2_form, monkeypatch):
    temp_id = start(client, step1_form)

    def broken(**fields):
        raise OperationalError("INSERT INTO doctors", {}, Exception("database is locked"))

    monkeypatch.setattr(doctor_store, "create_doctor", broken)
    resp = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    assert resp.status_code == 500
    assert "error" not in resp.get_json()
    assert temp_id in registrations


def test_oversized_fee_is_a_validation_error(client, step1_form, step2_form):
    temp_id = start(client, step1_form)
    step2_form["consultation_fee"] = "1e30"
    resp = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    assert resp.status_code == 400
    assert "Consultation fee must not exceed 2147483647" in resp.get_json()["errors"]
    assert temp_id in registrations
    assert doctor_count() == 0


def test_unexpected_failure_keeps_session(client, step1_form, step2_form, monkeypatch):
    temp_id = start(client, step1_form)

    def broken(**fields):
        raise OverflowError("int too large to convert")

    monkeypatch.setattr(doctor_store, "create_doctor", broken)
    # unhandled errors propagate under TESTING
    with pytest.raises(OverflowError):
        client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    assert temp_id in registrations

    monkeypatch.undo()
    resp = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    assert resp.status_code == 201


def test_temp_lookup_and_expiry(client, step1_form):
    now = [2_000_000.0]
    registrations.clock = lambda: now[0]
    temp_id = start(client, step1_form)
    now[0] += 600

    body = client.get(f"/api/register/temp/{temp_id}").get_json()
    assert body["success"] is True
    assert body["data"]["location"] == "Pune"
    assert body["expiresIn"] == registrations.ttl - 600


def test_temp_lookup_unknown(client):
    resp = client.get("/api/register/temp/temp_nope")
    assert resp.status_code == 404


def test_cancel(client, step1_form, step2_form):
    temp_id = start(client, step1_form)
    assert client.delete(f"/api/register/temp/{temp_id}").status_code == 200
    assert client.delete(f"/api/register/temp/{temp_id}").status_code == 404
    resp = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form})
    assert resp.status_code == 400


def test_stats(client, step1_form):
    start(client, step1_form)
    body = client.get("/api/register/stats").get_json()
    assert body["activeRegistrations"] == 1
    assert body["registrations"][0]["tempId"].startswith("temp_")


class TestImageUpload:
    def upload(self, client, filename="face.png", content_type="image/png", **form):
        data = {"image": (io.BytesIO(b"\x89PNG fake"), filename, content_type), **form}
        return client.post("/api/register/upload-image", data=data, content_type="multipart/form-data")

    def test_upload_returns_relative_path(self, client, app):
        resp = self.upload(client)
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["imagePath"].startswith("uploads/doctors/")
        assert body["imagePath"].endswith(".png")

        served = client.get("/" + body["imagePath"])
        assert served.status_code == 200
        assert served.data == b"\x89PNG fake"

    def test_upload_rejects_non_images(self, client):
        resp = self.upload(client, filename="notes.pdf", content_type="application/pdf")
        assert resp.status_code == 400

    def test_upload_requires_a_file(self, client):
        resp = client.post("/api/register/upload-image", data={}, content_type="multipart/form-data")
        assert resp.status_code == 400
        assert resp.get_json()["message"] == "No image file provided"

    def test_upload_too_large(self, client, app):
        app.config["MAX_CONTENT_LENGTH"] = 1024
        data = {"image": (io.BytesIO(b"x" * 4096), "big.png", "image/png")}
        resp = client.post("/api/register/upload-image", data=data, content_type="multipart/form-data")
        assert resp.status_code == 413

    def test_uploaded_image_is_used_by_step2(self, client, step1_form, step2_form):
        temp_id = start(client, step1_form)
        image_path = self.upload(client, tempId=temp_id).get_json()["imagePath"]
        assert client.get(f"/api/register/temp/{temp_id}").get_json()["imagePath"] == image_path

        doctor = client.post("/api/register/step2", data={"tempId": temp_id, **step2_form}).get_json()["data"]
        assert doctor["image_url"] == image_path

    def test_explicit_image_url_wins(self, client, step1_form, step2_form):
        temp_id = start(client, step1_form)
        self.upload(client, tempId=temp_id)
        form = {"tempId": temp_id, "image_url": "uploads/doctors/chosen.png", **step2_form}
        doctor = client.post("/api/register/step2", data=form).get_json()["data"]
        assert doctor["image_url"] == "uploads/doctors/chosen.png"

    def test_upload_for_unknown_session(self, client, app):
        resp = self.upload(client, tempId="temp_gone")
        assert resp.status_code == 400


@pytest.mark.parametrize("rating,status", [("4.5", 201), ("7", 400), ("abc", 400)])
def test_optional_rating(client, step1_form, step2_form, rating, status):
    temp_id = start(client, step1_form)
    resp = client.post("/api/register/step2", data={"tempId": temp_id, "rating": rating, **step2_form})
    assert resp.status_code == status
