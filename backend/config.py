import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "changeme")
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL", "sqlite:///" + os.path.join(BASE_DIR, "doctor_directory.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Uploads (profile pictures)
    UPLOAD_FOLDER = os.getenv("UPLOAD_FOLDER", os.path.join(BASE_DIR, "uploads"))
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024
    ALLOWED_IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}

    # Staged registrations
    REGISTRATION_TTL_SECONDS = int(os.getenv("REGISTRATION_TTL_SECONDS", 60 * 60))
    REGISTRATION_SWEEP_INTERVAL_SECONDS = int(os.getenv("REGISTRATION_SWEEP_INTERVAL_SECONDS", 10 * 60))
    REGISTRATION_SWEEPER_ENABLED = True

    RATELIMIT_ENABLED = True
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    REGISTRATION_RATE_LIMIT = os.getenv("REGISTRATION_RATE_LIMIT", "30 per minute")

    RESTX_ERROR_404_HELP = False
    RESTX_MASK_SWAGGER = False


class DevConfig(Config):
    DEBUG = True


class ProdConfig(Config):
    DEBUG = False


class TestConfig(Config):
    TESTING = True
    DEBUG = False
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    REGISTRATION_SWEEPER_ENABLED = False
    RATELIMIT_ENABLED = False
