"""In-memory staging area for two-step doctor registrations.

A session is created by step 1, optionally gains an image path, and is
removed exactly once: claimed by step 2, cancelled, or expired. All map
access goes through one lock, shared by request handlers and the background
sweeper thread.
"""
import atexit
import logging
import secrets
import string
import threading
import time
from dataclasses import dataclass, field
from typing import Optional

from .errors import NotFound, InvalidSession

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 60 * 60
DEFAULT_SWEEP_INTERVAL_SECONDS = 10 * 60

_TOKEN_ALPHABET = string.ascii_lowercase + string.digits


def generate_temp_id(now=None):
    now = time.time() if now is None else now
    suffix = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(12))
    return f"temp_{int(now * 1000)}_{suffix}"


@dataclass(frozen=True)
class RegistrationSession:
    temp_id: str
    step1_data: dict
    timestamp: float
    image_path: Optional[str] = field(default=None)

    def age(self, now):
        return now - self.timestamp


class RegistrationSessionStore:
    def __init__(self, ttl=DEFAULT_TTL_SECONDS, sweep_interval=DEFAULT_SWEEP_INTERVAL_SECONDS, clock=time.time):
        self.ttl = ttl
        self.sweep_interval = sweep_interval
        self.clock = clock
        self._sessions = {}
        self._lock = threading.Lock()
        self._stop_event = threading.Event()
        self._thread = None
        self._atexit_registered = False

    def init_app(self, app):
        self.ttl = app.config.get("REGISTRATION_TTL_SECONDS", DEFAULT_TTL_SECONDS)
        self.sweep_interval = app.config.get("REGISTRATION_SWEEP_INTERVAL_SECONDS", DEFAULT_SWEEP_INTERVAL_SECONDS)
        app.extensions["registration_sessions"] = self
        if app.config.get("REGISTRATION_SWEEPER_ENABLED", True):
            self.start()

    # -- lifecycle ---------------------------------------------------------

    def start(self):
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self._thread = threading.Thread(target=self._run, name="registration-sweeper", daemon=True)
        self._thread.start()
        if not self._atexit_registered:
            atexit.register(self.stop)
            self._atexit_registered = True
        logger.info("Registration sweeper started (ttl=%ss, every %ss)", self.ttl, self.sweep_interval)

    def stop(self, timeout=5):
        self._stop_event.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread.is_alive():
            thread.join(timeout)
            logger.info("Registration sweeper stopped")

    @property
    def running(self):
        return self._thread is not None and self._thread.is_alive()

    def _run(self):
        while not self._stop_event.wait(self.sweep_interval):
            try:
                self.sweep()
            except Exception:
                logger.exception("Registration sweep failed")

    # -- operations --------------------------------------------------------

    def _expired(self, session, now):
        return session.age(now) > self.ttl

    def _live(self, temp_id, now):
        """Return the live session for ``temp_id``; caller holds the lock."""
        session = self._sessions.get(temp_id)
        if session is not None and self._expired(session, now):
            del self._sessions[temp_id]
            logger.info("Dropped expired registration on access: %s", temp_id)
            return None
        return session

    def create(self, step1_data):
        now = self.clock()
        with self._lock:
            temp_id = generate_temp_id(now)
            while temp_id in self._sessions:
                temp_id = generate_temp_id(now)
            self._sessions[temp_id] = RegistrationSession(temp_id, dict(step1_data), now)
        logger.info("Registration staged: %s", temp_id)
        return temp_id

    def get(self, temp_id):
        with self._lock:
            session = self._live(temp_id, self.clock())
        if session is None:
            raise NotFound("Registration session not found or expired")
        return session

    def attach_image(self, temp_id, image_path):
        with self._lock:
            session = self._live(temp_id, self.clock())
            if session is None:
                raise InvalidSession()
            updated = RegistrationSession(session.temp_id, session.step1_data, session.timestamp, image_path)
            self._sessions[temp_id] = updated
        return updated

    def claim(self, temp_id):
        """Remove and return a staged session. Only one caller can win."""
        with self._lock:
            session = self._live(temp_id, self.clock()) if temp_id else None
            if session is None:
                raise InvalidSession()
            del self._sessions[temp_id]
        return session

    def restore(self, session):
        """Put back a claimed session whose promotion failed internally."""
        with self._lock:
            self._sessions.setdefault(session.temp_id, session)

    def cancel(self, temp_id):
        with self._lock:
            session = self._sessions.pop(temp_id, None)
        if session is None:
            raise NotFound("Registration session not found")
        logger.info("Registration cancelled: %s", temp_id)

    def expires_in(self, session):
        return max(0, int(session.timestamp + self.ttl - self.clock()))

    def sweep(self, now=None):
        now = self.clock() if now is None else now
        with self._lock:
            expired = [key for key, session in self._sessions.items() if self._expired(session, now)]
            for key in expired:
                del self._sessions[key]
        for key in expired:
            logger.info("Cleaned up expired registration: %s", key)
        return len(expired)

    def stats(self):
        now = self.clock()
        with self._lock:
            sessions = list(self._sessions.values())
        return [
            {"tempId": s.temp_id, "timestamp": s.timestamp, "age": round(s.age(now), 3)}
            for s in sessions
        ]

    def clear(self):
        with self._lock:
            self._sessions.clear()

    def __len__(self):
        with self._lock:
            return len(self._sessions)

    def __contains__(self, temp_id):
        with self._lock:
            return temp_id in self._sessions
