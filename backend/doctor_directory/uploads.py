import os
import secrets
import time
import logging
from flask import Blueprint, current_app, send_from_directory
from werkzeug.utils import secure_filename
from .errors import ValidationError

logger = logging.getLogger(__name__)

uploads_bp = Blueprint("uploads", __name__)

IMAGE_SUBDIR = "doctors"


def allowed_image(filename, mimetype):
    """Extension and declared content type must both name an image type."""
    allowed = current_app.config.get("ALLOWED_IMAGE_EXTENSIONS", set())
    if "." not in filename:
        return False
    ext = filename.rsplit(".", 1)[1].lower()
    subtype = (mimetype or "").split("/")[-1].lower()
    return ext in allowed and subtype in allowed


def save_image(file):
    """Store an uploaded image and return its path relative to the server root."""
    if file is None or not file.filename:
        raise ValidationError("No image file provided")
    if not allowed_image(file.filename, file.mimetype):
        raise ValidationError("Only image files are allowed (jpg, jpeg, png, gif, webp)")

    ext = os.path.splitext(secure_filename(file.filename))[1].lower()
    filename = f"{int(time.time() * 1000)}-{secrets.randbelow(10 ** 9)}{ext}"
    folder = os.path.join(current_app.config["UPLOAD_FOLDER"], IMAGE_SUBDIR)
    os.makedirs(folder, exist_ok=True)
    file.save(os.path.join(folder, filename))
    logger.info("Stored image %s", filename)
    return f"uploads/{IMAGE_SUBDIR}/{filename}"


@uploads_bp.route("/uploads/<path:filename>")
def serve_upload(filename):
    return send_from_directory(current_app.config["UPLOAD_FOLDER"], filename)
