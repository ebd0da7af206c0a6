import logging
import os
from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_restx import Api
from config import DevConfig, ProdConfig

from .sessions import RegistrationSessionStore

db = SQLAlchemy(session_options={"expire_on_commit": False})
migrate = Migrate()
cors = CORS()
limiter = Limiter(key_func=get_remote_address)
registrations = RegistrationSessionStore()

logger = logging.getLogger(__name__)


def create_app(config_object=None):
    app = Flask(__name__)
    if config_object is None:
        env = os.getenv("FLASK_ENV", "development")
        config_object = ProdConfig if env == "production" else DevConfig
    app.config.from_object(config_object)

    logging.basicConfig(
        level=app.config.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    # Extensions
    db.init_app(app)
    migrate.init_app(app, db)
    cors.init_app(app, resources={r"/api/*": {"origins": "*"}})
    limiter.init_app(app)
    registrations.init_app(app)

    # RESTX (Swagger at /docs)
    api = Api(
        app,
        version="1.0",
        title="Doctor Directory API",
        description="Doctor search, popularity and two-step registration",
        doc="/docs",
    )

    from .errors import register_error_handlers
    from .doctors import doctors_ns
    from .registration import registration_ns
    from .health import health_ns
    from .uploads import uploads_bp
    from .cli import register_commands

    register_error_handlers(app, api)

    api.add_namespace(doctors_ns, path="/api/doctors")
    api.add_namespace(registration_ns, path="/api/register")
    api.add_namespace(health_ns, path="/health")
    app.register_blueprint(uploads_bp)
    register_commands(app)

    logger.info("Doctor Directory API ready (database: %s)", app.config["SQLALCHEMY_DATABASE_URI"])
    return app
