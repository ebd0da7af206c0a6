"""Queries against the ``doctors`` table.

Every statement here is parameterized through SQLAlchemy; nothing built from
client input is ever interpolated into SQL text.
"""
import logging
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from . import db
from .models import Doctor
from .errors import NotFound, Conflict

logger = logging.getLogger(__name__)

TOP_DEFAULT_LIMIT = 4
TOP_MAX_LIMIT = 10


def list_doctors():
    """All doctors, newest first."""
    stmt = select(Doctor).order_by(Doctor.created_at.desc(), Doctor.id.desc())
    return list(db.session.scalars(stmt))


def distinct_locations():
    stmt = select(Doctor.location).distinct().order_by(Doctor.location.asc())
    return list(db.session.scalars(stmt))


def distinct_specializations():
    stmt = select(Doctor.specialization).distinct().order_by(Doctor.specialization.asc())
    return list(db.session.scalars(stmt))


def count_doctors():
    return db.session.scalar(select(func.count()).select_from(Doctor))


def fetch_by_id(doctor_id):
    """Increment ``search_count`` for one doctor and return the updated row.

    The increment is a single ``UPDATE ... SET search_count = search_count + 1``;
    ``updated_at`` is left unchanged.
    The row is re-read inside the same transaction, so the returned record
    carries this request's increment.
    """
    result = db.session.execute(
        update(Doctor)
        .where(Doctor.id == doctor_id)
        .values(search_count=Doctor.search_count + 1, updated_at=Doctor.updated_at)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        db.session.rollback()
        raise NotFound("Doctor not found")

    doctor = db.session.get(Doctor, doctor_id, populate_existing=True)
    db.session.commit()
    return doctor


def normalize_top_limit(raw):
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return TOP_DEFAULT_LIMIT
    if limit < 1:
        return TOP_DEFAULT_LIMIT
    return min(limit, TOP_MAX_LIMIT)


def top_by_popularity(limit=TOP_DEFAULT_LIMIT):
    stmt = (
        select(Doctor)
        .order_by(Doctor.search_count.desc(), Doctor.id.asc())
        .limit(normalize_top_limit(limit))
    )
    return list(db.session.scalars(stmt))


def _email_exists(email):
    stmt = select(Doctor.id).where(func.lower(Doctor.email) == email.strip().lower()).limit(1)
    return db.session.scalar(stmt) is not None


def email_taken(email):
    return _email_exists(email)


def create_doctor(**fields):
    """Insert a new doctor with a zeroed popularity counter.

    The unique index on ``email`` is the final word on duplicates: an
    ``IntegrityError`` from the insert is reported as ``Conflict`` when the
    email turns out to be taken, even if the caller's pre-check passed. Any
    other constraint violation propagates.
    """
    doctor = Doctor(search_count=0, **fields)
    db.session.add(doctor)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        if not _email_exists(fields.get("email") or ""):
            raise
        logger.warning("Duplicate email rejected by the database: %s", fields.get("email"))
        raise Conflict("Email already registered. Please use a different email.", field="email")
    logger.info("Doctor %s registered (%s)", doctor.id, doctor.email)
    return doctor
