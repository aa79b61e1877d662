"""
Configuration module for the application.
All configuration values are read from environment variables,
usually populated from a .env file.
"""
import os
import secrets
import warnings


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self):
        """Initialize configuration from environment variables."""
        # Flask Configuration
        self.SECRET_KEY: str = os.getenv("SECRET_KEY", "")
        self.FLASK_ENV: str = os.getenv("FLASK_ENV", "")

        # Generate a development SECRET_KEY if not set and in development mode
        if not self.SECRET_KEY and self.FLASK_ENV != "production":
            self.SECRET_KEY = secrets.token_urlsafe(32)
            warnings.warn(
                "SECRET_KEY not set. Generated a temporary key for development. "
                "Set SECRET_KEY in your .env file for production!",
                UserWarning
            )

        # Database Configuration
        self.DB_USER: str = os.getenv("DB_USER", "")
        self.DB_PASSWORD: str = os.getenv("DB_PASSWORD", "")
        self.DB_HOST: str = os.getenv("DB_HOST", "")
        self.DB_PORT: str = os.getenv("DB_PORT", "")
        self.DB_NAME: str = os.getenv("DB_NAME", "")
        # Full URL override, e.g. sqlite:///:memory: for tests
        self.DATABASE_URL: str = os.getenv("DATABASE_URL", "")

        # SQLAlchemy Configuration
        self.SQLALCHEMY_TRACK_MODIFICATIONS: bool = False
        sqlalchemy_echo = os.getenv("SQLALCHEMY_ECHO", "")
        self.SQLALCHEMY_ECHO: bool = sqlalchemy_echo.lower() == "true" if sqlalchemy_echo else False
        auto_create = os.getenv("AUTO_CREATE_TABLES", "true")
        self.AUTO_CREATE_TABLES: bool = auto_create.lower() == "true"

        # Logging
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        # Quiz defaults
        self.DEFAULT_MAX_QUESTIONS: int = int(os.getenv("DEFAULT_MAX_QUESTIONS", "10"))
        self.DEFAULT_CUTOFF: int = int(os.getenv("DEFAULT_CUTOFF", "0"))

        # Seconds accepted after a quiz time limit before a submission counts as expired
        self.ATTEMPT_GRACE_SECONDS: int = int(os.getenv("ATTEMPT_GRACE_SECONDS", "60"))

        # Upper bound on users per assignment request
        self.MAX_ASSIGN_BATCH: int = int(os.getenv("MAX_ASSIGN_BATCH", "500"))

    @property
    def SQLALCHEMY_DATABASE_URI(self) -> str:
        """Construct database URI from environment variables."""
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"mysql+pymysql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"

    def validate(self) -> None:
        """
        Validate required configuration values.
        Only enforces SECRET_KEY in production environment.
        """
        if not self.SECRET_KEY:
            if self.FLASK_ENV == "production":
                raise ValueError(
                    "SECRET_KEY environment variable is required in production. "
                    "Set it in your .env file or environment variables."
                )
            # For non-production, a warning was already issued in __init__

        for name in ("DEFAULT_MAX_QUESTIONS", "DEFAULT_CUTOFF", "ATTEMPT_GRACE_SECONDS", "MAX_ASSIGN_BATCH"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")

        if not 0 <= self.DEFAULT_CUTOFF <= 100:
            raise ValueError("DEFAULT_CUTOFF must be between 0 and 100")


# Global config instance - will be re-initialized after load_dotenv()
config = Config()
