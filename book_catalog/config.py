"""Configuration management."""
import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def _env_flag(name: str, default: str = "False") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    """Settings read from the environment when the object is built."""

    # Database
    database_url: str = field(default_factory=lambda: os.getenv(
        "DATABASE_URL",
        f"sqlite+aiosqlite:///{os.path.join(BASE_DIR, 'bookcat.db')}"
    ))
    sql_echo: bool = field(default_factory=lambda: _env_flag("SQL_ECHO"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))


def configure_logging(level: str = "INFO") -> None:
    """Route catalog log records to stderr with a timestamped format."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=LOG_FORMAT)


settings = Settings()
