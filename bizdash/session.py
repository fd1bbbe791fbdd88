"""
Session Store

Holds the current user, business and token for one dashboard process.
An explicit context object: create one, ``restore()`` it, and hand it to
the API clients and screens that need the token.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError as ModelValidationError

from .exceptions import AuthError, DashboardAPIError
from .models import Business, BusinessSettings, Session, User
from .storage import (
    BUSINESS_KEY,
    BUSINESS_SETTINGS_KEY,
    SESSION_KEYS,
    TOKEN_KEY,
    USER_KEY,
    LocalStorage,
)


logger = logging.getLogger(__name__)


class SessionStore:
    """Process-wide auth state persisted to local storage"""

    def __init__(self, storage: LocalStorage, auth=None):
        """
        Args:
            storage: Persisted key/value storage
            auth: AuthService used by login/register/logout; may be bound later
        """
        self.storage = storage
        self.auth = auth
        self.user: Optional[User] = None
        self.business: Optional[Business] = None
        self.token: Optional[str] = None
        self.loading = True

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None and self.token is not None

    def bind(self, auth) -> "SessionStore":
        self.auth = auth
        return self

    def restore(self) -> bool:
        """Load a previously persisted session; returns is_authenticated"""
        try:
            token = self.storage.get_item(TOKEN_KEY)
            user = self.storage.get_json(USER_KEY)
            business = self.storage.get_json(BUSINESS_KEY)
            if token and user and business:
                try:
                    self.user = User.model_validate(user)
                    self.business = Business.model_validate(business)
                    self.token = token
                except ModelValidationError as e:
                    logger.warning(f"Discarding unreadable stored session: {e}")
                    self._reset()
        finally:
            self.loading = False
        return self.is_authenticated

    def _reset(self) -> None:
        self.user = None
        self.business = None
        self.token = None

    def _apply(self, session: Session) -> None:
        self.user = session.user
        self.business = session.business
        self.token = session.token

        self.storage.set_item(TOKEN_KEY, session.token)
        self.storage.set_json(USER_KEY, session.user.model_dump(mode="json"))
        self.storage.set_json(BUSINESS_KEY, session.business.model_dump(mode="json"))

    def _require_auth(self):
        if self.auth is None:
            raise RuntimeError("SessionStore has no AuthService bound")
        return self.auth

    def login(self, email: str, password: str) -> Session:
        """Authenticate and persist the session.

        Raises AuthError with the backend's message (or "Login failed");
        the current state is left unchanged on failure.
        """
        auth = self._require_auth()
        try:
            session = auth.login(email, password)
        except DashboardAPIError as e:
            logger.error(f"Login error: {e}")
            raise AuthError(e.user_message("Login failed"), status_code=e.status_code,
                            backend_message=e.backend_message)
        self._apply(session)
        logger.info(f"Logged in as {session.user.email}")
        return session

    def register(self, fields: Dict[str, Any]) -> Session:
        auth = self._require_auth()
        try:
            session = auth.register(fields)
        except DashboardAPIError as e:
            logger.error(f"Registration error: {e}")
            raise AuthError(e.user_message("Registration failed"), status_code=e.status_code,
                            backend_message=e.backend_message)
        self._apply(session)
        logger.info(f"Registered {session.user.email}")
        return session

    def logout(self) -> None:
        """Drop the local session, then best-effort notify the backend."""
        token = self.token
        self._reset()
        self.storage.remove_items(*SESSION_KEYS)

        if self.auth is None or not token:
            return
        try:
            self.auth.logout(token)
        except DashboardAPIError as e:
            # local logout already happened; the backend call is advisory
            logger.warning(f"Backend logout failed: {e}")

    def expire(self) -> None:
        """Clear the session after the backend rejected the token"""
        self._reset()
        self.storage.remove_items(*SESSION_KEYS)

    def business_settings(self) -> Optional[BusinessSettings]:
        data = self.storage.get_json(BUSINESS_SETTINGS_KEY)
        if not isinstance(data, dict):
            return None
        return BusinessSettings.model_validate(data)

    def save_business_settings(self, settings: BusinessSettings) -> None:
        self.storage.set_json(BUSINESS_SETTINGS_KEY, settings.model_dump(mode="json", by_alias=True))
