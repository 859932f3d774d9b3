"""Configuration settings for the drill."""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Define base directory
BASE_DIR = Path(__file__).parent.parent.parent

# Load environment variables from .env file
env_file = ".env.test" if os.getenv("ENV") == "test" else ".env"
load_dotenv(env_file)


# Define data directories from environment variables
DATA_DIR = Path(os.getenv("DATA_DIR", "./data"))

# Quiz settings
PLACEHOLDER = "__"
PAGE_SIZE = 1000  # rows per store round trip
DEFAULT_CATEGORY = "vocabulary"


def ensure_directories() -> None:
    """Ensure all required directories exist."""
    DATA_DIR.mkdir(parents=True, exist_ok=True)


@dataclass
class PathSettings:
    """Path configuration settings."""
    base_dir: Path = BASE_DIR
    data_dir: Path = DATA_DIR


@dataclass
class DatabaseSettings:
    """Database configuration settings."""
    url: str = os.getenv("DATABASE_URL", "sqlite:///vocabdrill.db")
    echo: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"


@dataclass
class LoggingSettings:
    """Logging configuration settings."""
    level: str = os.getenv("LOG_LEVEL", "INFO")
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    dir: Optional[str] = os.getenv("LOG_DIR", None)
    max_bytes: int = int(os.getenv("LOG_MAX_BYTES", str(10 * 1024 * 1024)))
    backup_count: int = int(os.getenv("LOG_BACKUP_COUNT", "5"))


@dataclass
class QuizSettings:
    """Question and session settings."""
    placeholder: str = os.getenv("PLACEHOLDER", PLACEHOLDER)
    page_size: int = int(os.getenv("PAGE_SIZE", str(PAGE_SIZE)))
    default_category: str = os.getenv("DEFAULT_CATEGORY", DEFAULT_CATEGORY)


@dataclass
class ImportSettings:
    """Bulk import settings."""
    vocabulary_file: Path = Path(
        os.getenv("VOCABULARY_FILE", str(DATA_DIR / "vocabulary.txt"))
    )
    progress_every: int = int(os.getenv("IMPORT_PROGRESS_EVERY", "100"))
    sample_fixes: int = 10


@dataclass
class MonitoringSettings:
    """Prometheus exporter settings."""
    enabled: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"
    port: int = int(os.getenv("METRICS_PORT", "9090"))


def get_path_settings() -> PathSettings:
    """Get path settings."""
    return PathSettings()


def get_database_settings() -> DatabaseSettings:
    """Get database settings."""
    return DatabaseSettings()


def get_logging_settings() -> LoggingSettings:
    """Get logging settings."""
    return LoggingSettings()


def get_quiz_settings() -> QuizSettings:
    """Get quiz settings."""
    return QuizSettings()


def get_import_settings() -> ImportSettings:
    """Get import settings."""
    return ImportSettings()


def get_monitoring_settings() -> MonitoringSettings:
    """Get monitoring settings."""
    return MonitoringSettings()


@dataclass
class Settings:
    """Main settings class that combines all configuration settings."""
    paths: PathSettings = field(default_factory=get_path_settings)
    database: DatabaseSettings = field(default_factory=get_database_settings)
    logging: LoggingSettings = field(default_factory=get_logging_settings)
    quiz: QuizSettings = field(default_factory=get_quiz_settings)
    importer: ImportSettings = field(default_factory=get_import_settings)
    monitoring: MonitoringSettings = field(default_factory=get_monitoring_settings)

    def validate(self) -> None:
        """Validate settings and raise ValueError if invalid."""
        if not self.database.url:
            raise ValueError("DATABASE_URL is required")

        if not self.quiz.placeholder:
            raise ValueError("PLACEHOLDER must not be empty")

        if self.quiz.page_size < 1:
            raise ValueError("PAGE_SIZE must be positive")

        if not self.quiz.default_category:
            raise ValueError("DEFAULT_CATEGORY must not be empty")

        if self.importer.progress_every < 1:
            raise ValueError("IMPORT_PROGRESS_EVERY must be positive")


# Create global settings instance
settings = Settings()
settings.validate()
