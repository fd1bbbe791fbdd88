"""
Auth Service

Handles login, registration, logout and profile operations.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError as ModelValidationError

from ..client import ApiClient, unwrap
from ..exceptions import AuthError, DashboardAPIError, wrap_error
from ..models import Session, User


logger = logging.getLogger(__name__)


class AuthService:
    """Service for the /auth endpoints"""

    def __init__(self, client: ApiClient):
        """
        Initialize AuthService

        Args:
            client: Generic API client instance
        """
        self.client = client

    def _session_from(self, response: Dict[str, Any]) -> Session:
        data = unwrap(response, default={})
        try:
            return Session.model_validate(data)
        except ModelValidationError as e:
            raise AuthError(f"Malformed auth response: {e}")

    def login(self, email: str, password: str) -> Session:
        """
        Authenticate with email and password

        Args:
            email: Account email
            password: Account password

        Returns:
            Session (user, business, token) issued by the backend

        Raises:
            AuthError: If the backend rejects the credentials or the call fails
        """
        try:
            logger.info(f"Logging in {email}")
            credentials = {"email": email, "password": password}
            response = self.client.request("POST", "/auth/login", data=credentials, expire_on_401=False)
            return self._session_from(response)
        except DashboardAPIError as e:
            logger.error(f"Login failed for {email}: {e}")
            raise wrap_error(e, AuthError, "Login failed")

    def register(self, fields: Dict[str, Any]) -> Session:
        """
        Register a new user and business

        Args:
            fields: email, password, first_name, last_name, business_name

        Returns:
            Session issued for the new account

        Raises:
            AuthError: If registration fails
        """
        try:
            logger.info(f"Registering {fields.get('email')}")
            response = self.client.request("POST", "/auth/register", data=fields, expire_on_401=False)
            return self._session_from(response)
        except DashboardAPIError as e:
            logger.error(f"Registration failed for {fields.get('email')}: {e}")
            raise wrap_error(e, AuthError, "Registration failed")

    def logout(self, token: Optional[str] = None) -> Dict[str, Any]:
        """Tell the backend to invalidate ``token`` (defaults to the session's)"""
        return self.client.request("POST", "/auth/logout", token=token)

    def get_profile(self) -> User:
        try:
            response = self.client.get("/auth/profile")
            data = unwrap(response, default={})
            if isinstance(data, dict) and "user" in data:
                data = data["user"]
            return User.model_validate(data)
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, AuthError, "Failed to load profile")

    def update_password(self, current_password: str, new_password: str) -> Dict[str, Any]:
        try:
            logger.info("Updating password")
            return self.client.put("/auth/password", data={
                "current_password": current_password,
                "new_password": new_password,
            })
        except DashboardAPIError as e:
            raise wrap_error(e, AuthError, "Failed to update password")
