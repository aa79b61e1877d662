from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from dotenv import load_dotenv
from flask_migrate import Migrate
import logging

# Load environment variables early so config is available at import time
load_dotenv()

from quizhub.config import config

db = SQLAlchemy()
migrate = Migrate()


def create_app(test_config: dict | None = None) -> Flask:
    """
    Application factory for the quiz service.
    Loads environment variables, configures the database
    and logging, and registers the models.
    """
    # Re-initialize config to ensure latest .env values are loaded
    from quizhub.config import Config
    global config
    config = Config()

    # Validate configuration
    config.validate()

    app = Flask(__name__)

    # Load configuration from config module
    app.config["SECRET_KEY"] = config.SECRET_KEY
    db_uri = config.SQLALCHEMY_DATABASE_URI
    app.config["SQLALCHEMY_DATABASE_URI"] = db_uri
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = config.SQLALCHEMY_TRACK_MODIFICATIONS
    app.config["SQLALCHEMY_ECHO"] = config.SQLALCHEMY_ECHO
    app.config["ATTEMPT_GRACE_SECONDS"] = config.ATTEMPT_GRACE_SECONDS
    app.config["DEFAULT_MAX_QUESTIONS"] = config.DEFAULT_MAX_QUESTIONS
    app.config["DEFAULT_CUTOFF"] = config.DEFAULT_CUTOFF
    app.config["MAX_ASSIGN_BATCH"] = config.MAX_ASSIGN_BATCH

    if db_uri.startswith("mysql"):
        if "?" not in db_uri:
            app.config["SQLALCHEMY_DATABASE_URI"] = db_uri + "?charset=utf8mb4"
        # Database connection pooling for performance
        app.config["SQLALCHEMY_ENGINE_OPTIONS"] = {
            "pool_size": 10,
            "pool_recycle": 3600,
            "pool_pre_ping": True,
            "max_overflow": 20,
            "pool_reset_on_return": "commit",
            "connect_args": {
                "connect_timeout": 5,
                "read_timeout": 10,
                "write_timeout": 10,
                "charset": "utf8mb4",
                "autocommit": False,
            }
        }

    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, config.LOG_LEVEL.upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Create tables if they do not exist
    with app.app_context():
        from quizhub.auth.models import User  # noqa: F401
        from quizhub.quiz import models  # noqa: F401
        if app.config.get("AUTO_CREATE_TABLES", config.AUTO_CREATE_TABLES):
            db.create_all()

    app.logger.info(f"Quiz service initialized (env={config.FLASK_ENV or 'development'})")
    return app
