"""Resolving bearer credentials to user identifiers."""
import hashlib
import logging
import secrets
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from vocabdrill import monitoring
from vocabdrill.errors import AuthenticationError, StoreError
from vocabdrill.models.models import User

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class IdentityResolver:
    """Maps an ``Authorization`` header to a stable user identifier."""

    def __init__(self, db: Session):
        """Initialize the resolver with a database session."""
        self.db = db

    def get_user(self, external_id: str) -> Optional[User]:
        """Get a user by external ID."""
        return self.db.query(User).filter(User.external_id == external_id).first()

    def resolve(self, authorization: Optional[str]) -> str:
        """Return the caller's user id or raise AuthenticationError."""
        if not authorization:
            self._reject("missing")
        if not authorization.startswith(BEARER_PREFIX):
            self._reject("malformed")
        token = authorization[len(BEARER_PREFIX):].strip()
        if not token:
            self._reject("missing")

        try:
            user = self.db.query(User).filter(User.api_token_hash == hash_token(token)).first()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to validate token: {e}")
            monitoring.store_errors.labels(code="FETCH_FAILED").inc()
            raise StoreError.from_exception("FETCH_FAILED", e)
        if user is None:
            self._reject("invalid")
        return user.external_id

    def issue_token(self, external_id: str, username: Optional[str] = None) -> str:
        """Create the user if needed and give it a fresh token."""
        token = secrets.token_urlsafe(32)
        user = self.get_user(external_id)
        if user is None:
            user = User(external_id=external_id, username=username)
            self.db.add(user)
        elif username:
            user.username = username
        user.api_token_hash = hash_token(token)
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            monitoring.store_errors.labels(code="INSERT_FAILED").inc()
            raise StoreError.from_exception("INSERT_FAILED", e)
        logger.info(f"Issued token for user {external_id}")
        return token

    @staticmethod
    def _reject(reason: str) -> None:
        monitoring.auth_failures.labels(reason=reason).inc()
        raise AuthenticationError(f"Unauthorized: {reason} credential")
