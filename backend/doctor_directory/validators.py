import math
import re
import logging
from .errors import ValidationError
from .models import MAX_DB_INT

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
# Indian mobile numbers: +91-9876543210, +919876543210, 9876543210
PHONE_RE = re.compile(r"^(\+91[\-\s]?)?[6-9]\d{9}$")
GENDERS = ("Male", "Female", "Other")


def is_valid_email(email):
    return bool(email) and EMAIL_RE.match(email) is not None


def is_valid_phone(phone):
    return bool(phone) and PHONE_RE.match(phone) is not None


def _str(form, key):
    value = form.get(key)
    return value.strip() if isinstance(value, str) else ""


def _parse_int(value):
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def _parse_float(value):
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def validate_step1(form):
    """Check personal info; returns the cleaned step-1 payload."""
    name = _str(form, "name")
    email = _str(form, "email")
    phone = _str(form, "phone")
    gender = _str(form, "gender")
    raw_age = form.get("age")
    location = _str(form, "location")

    errors = []
    if len(name) < 3:
        errors.append("Name must be at least 3 characters long")
    if not is_valid_email(email):
        errors.append("Valid email is required")
    if not is_valid_phone(phone):
        errors.append(f"Valid Indian phone number is required. Received: {form.get('phone')}")
    if gender not in GENDERS:
        errors.append(f"Valid gender is required. Received: {form.get('gender')}")
    age = _parse_int(raw_age)
    if age is None or age < 25 or age > 80:
        errors.append(f"Age must be between 25 and 80. Received: {raw_age}")
    if len(location) < 2:
        errors.append("Location is required")

    if errors:
        logger.info("Step 1 validation failed: %s", errors)
        raise ValidationError(errors=errors)

    return {
        "name": name,
        "email": email.lower(),
        "phone": phone,
        "gender": gender,
        "age": age,
        "location": location,
    }


def validate_step2(form):
    """Check professional details; returns the cleaned step-2 payload."""
    specialization = _str(form, "specialization")
    institute = _str(form, "institute")
    degree = _str(form, "degree")
    experience_years = _parse_int(form.get("experience_years"))
    consultation_fee = _parse_float(form.get("consultation_fee"))
    bio = _str(form, "bio")
    image_url = _str(form, "image_url")
    raw_rating = form.get("rating")

    errors = []
    if len(specialization) < 3:
        errors.append("Specialization is required")
    if len(institute) < 3:
        errors.append("Institute name is required")
    if len(degree) < 2:
        errors.append("Degree is required")
    if experience_years is None or experience_years < 0 or experience_years > 70:
        errors.append("Experience years must be between 0 and 70")
    if consultation_fee is None or consultation_fee < 0:
        errors.append("Valid consultation fee is required")
    elif consultation_fee > MAX_DB_INT:
        errors.append(f"Consultation fee must not exceed {MAX_DB_INT}")

    rating = 0.0
    if raw_rating not in (None, ""):
        rating = _parse_float(raw_rating)
        if rating is None or rating < 0 or rating > 5:
            errors.append("Rating must be between 0 and 5")

    if errors:
        raise ValidationError(errors=errors)

    return {
        "specialization": specialization,
        "institute": institute,
        "degree": degree,
        "experience_years": experience_years,
        "consultation_fee": int(consultation_fee),
        "bio": bio or None,
        "rating": rating,
        "image_url": image_url or None,
    }
