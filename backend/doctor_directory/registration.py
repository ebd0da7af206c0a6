import os
import logging
from flask import request, current_app
from flask_restx import Namespace, Resource
from . import db, limiter, registrations, doctor_store
from .errors import Conflict, InvalidSession
from .uploads import save_image
from .validators import validate_step1, validate_step2

logger = logging.getLogger(__name__)

registration_ns = Namespace("register", description="Two-step doctor registration")


def _registration_limit():
    return current_app.config.get("REGISTRATION_RATE_LIMIT", "30 per minute")


rate_limited = [limiter.limit(_registration_limit, methods=["POST"])]


def start_registration(form):
    """Step 1: stage personal info and hand back a temp id."""
    step1 = validate_step1(form)
    if doctor_store.email_taken(step1["email"]):
        raise Conflict("Email already registered", field="email")
    temp_id = registrations.create(step1)
    return temp_id, step1


def complete_registration(form):
    """Step 2: promote a staged registration into a doctor row.

    The session is claimed before touching the database, so a temp id can
    produce at most one doctor. A duplicate email discards the session; any
    other failure puts it back so the client can retry.
    """
    step2 = validate_step2(form)
    session = registrations.claim(form.get("tempId"))
    step1 = session.step1_data
    image_url = step2.pop("image_url") or session.image_path

    try:
        if doctor_store.email_taken(step1["email"]):
            raise Conflict("Email already registered. Please use a different email.", field="email")
        doctor = doctor_store.create_doctor(**step1, **step2, image_url=image_url)
    except Conflict:
        raise
    except Exception:
        db.session.rollback()
        registrations.restore(session)
        raise
    return doctor


@registration_ns.route("/step1")
class RegisterStep1(Resource):
    decorators = rate_limited

    @registration_ns.doc(params={
        "name": {"in": "formData", "required": True},
        "gender": {"in": "formData", "required": True, "description": "Male, Female or Other"},
        "age": {"in": "formData", "required": True, "description": "25-80"},
        "email": {"in": "formData", "required": True},
        "phone": {"in": "formData", "required": True, "description": "Indian mobile number"},
        "location": {"in": "formData", "required": True},
    })
    def post(self):
        """Personal info. Returns the tempId used by the following steps."""
        temp_id, step1 = start_registration(request.form)
        return {
            "success": True,
            "message": "Step 1 completed successfully",
            "tempId": temp_id,
            "data": step1,
        }, 200


@registration_ns.route("/upload-image")
class UploadImage(Resource):
    decorators = rate_limited

    @registration_ns.doc(params={
        "image": {"in": "formData", "type": "file", "required": True,
                  "description": "jpg, jpeg, png, gif or webp, max 5MB"},
        "tempId": {"in": "formData", "description": "Staged registration to attach the image to"},
    })
    def post(self):
        """Profile picture; may be called between step 1 and step 2."""
        image_path = save_image(request.files.get("image"))
        temp_id = request.form.get("tempId")
        if temp_id:
            try:
                registrations.attach_image(temp_id, image_path)
            except InvalidSession:
                os.remove(os.path.join(current_app.config["UPLOAD_FOLDER"], image_path.split("/", 1)[1]))
                raise
        return {
            "success": True,
            "message": "Image uploaded successfully",
            "imagePath": image_path,
        }, 200


@registration_ns.route("/step2")
class RegisterStep2(Resource):
    decorators = rate_limited

    @registration_ns.doc(params={
        "tempId": {"in": "formData", "required": True},
        "specialization": {"in": "formData", "required": True},
        "institute": {"in": "formData", "required": True},
        "degree": {"in": "formData", "required": True},
        "experience_years": {"in": "formData", "required": True, "description": "0-70"},
        "consultation_fee": {"in": "formData", "required": True},
        "bio": {"in": "formData"},
        "rating": {"in": "formData", "description": "0-5, defaults to 0.0"},
        "image_url": {"in": "formData", "description": "imagePath returned by upload-image"},
    })
    def post(self):
        """Professional details. Creates the doctor and ends the session."""
        doctor = complete_registration(request.form)
        return {
            "success": True,
            "message": "Registration completed successfully",
            "data": doctor.to_dict(),
        }, 201


@registration_ns.route("/temp/<string:temp_id>")
class StagedRegistration(Resource):
    def get(self, temp_id):
        """Staged step-1 data, so the client can restore its form."""
        session = registrations.get(temp_id)
        return {
            "success": True,
            "data": session.step1_data,
            "imagePath": session.image_path,
            "expiresIn": registrations.expires_in(session),
        }, 200

    def delete(self, temp_id):
        """Cancel a staged registration."""
        registrations.cancel(temp_id)
        return {"success": True, "message": "Registration cancelled successfully"}, 200


@registration_ns.route("/stats")
class RegistrationStats(Resource):
    def get(self):
        stats = registrations.stats()
        return {"success": True, "activeRegistrations": len(stats), "registrations": stats}, 200
