"""Application wiring: one engine and session factory per process."""
import logging
from typing import Optional

from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from vocabdrill.api import QuizApi
from vocabdrill.config import Settings, settings as default_settings
from vocabdrill.models.base import create_db_engine, create_session_factory, init_db
from vocabdrill.monitoring import start_monitoring


class VocabDrill:
    """Main application class."""

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[Engine] = None):
        """Initialize the application."""
        self.settings = settings or default_settings
        self.engine: Optional[Engine] = engine
        self._owns_engine = engine is None
        self.session_factory: Optional[sessionmaker] = None
        self.api: Optional[QuizApi] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            if self.engine is None:
                self.engine = create_db_engine(self.settings.database)
            init_db(self.engine)
            self.session_factory = create_session_factory(self.engine)
            self.logger.info("Database initialized")

            self.api = QuizApi(self.session_factory, self.settings)

            if self.settings.monitoring.enabled:
                start_monitoring(self.settings.monitoring.port)
                self.logger.info(f"Metrics served on port {self.settings.monitoring.port}")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            self.stop()
            raise

    def session(self) -> Session:
        """Open a session for one unit of work; the caller closes it."""
        if self.session_factory is None:
            raise RuntimeError("Application is not started")
        return self.session_factory()

    def stop(self) -> None:
        """Stop the application."""
        if self.engine is not None and self._owns_engine:
            self.engine.dispose()
            self.logger.info("Database engine disposed")
        self.api = None
        self.session_factory = None
        self.running = False
