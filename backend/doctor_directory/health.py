import datetime
from flask import current_app
from flask_restx import Namespace, Resource
from sqlalchemy.exc import SQLAlchemyError
from . import db, registrations, doctor_store

health_ns = Namespace("health", description="Liveness and database checks")


@health_ns.route("", "/")
class Health(Resource):
    def get(self):
        return {
            "status": "ok",
            "message": "Doctor Directory API is running",
            "timestamp": datetime.datetime.now(datetime.timezone.utc).isoformat(),
            "sweeper": "running" if registrations.running else "stopped",
        }, 200


@health_ns.route("/db")
class HealthDb(Resource):
    def get(self):
        """Database connectivity, with the current doctor count."""
        try:
            total = doctor_store.count_doctors()
        except SQLAlchemyError as e:
            db.session.rollback()
            current_app.logger.error("Database health check failed: %s", e)
            body = {"success": False, "message": "Database connection failed"}
            if current_app.debug:
                body["error"] = str(e)
            return body, 500
        return {"success": True, "message": "Database connection successful", "doctorCount": total}, 200
