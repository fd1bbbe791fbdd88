"""
Dashboard API Client

HTTP client for the business-management backend.
Attaches the session's bearer token to every request and maps HTTP
failures onto the dashboard exception hierarchy.
"""

import logging
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import requests

from .config import DashboardSettings, SERVICE_BILLING_PATH
from .exceptions import AuthError, DashboardAPIError, NotFoundError, SessionExpiredError

if TYPE_CHECKING:
    from .session import SessionStore


logger = logging.getLogger(__name__)


def _backend_message(response: requests.Response) -> Optional[str]:
    """Pull the human-readable message out of an error body, if any"""
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    message = body.get("message") or body.get("error")
    if isinstance(message, dict):
        message = message.get("message")
    return str(message) if message else None


class ApiClient:
    """Backend API client for one endpoint family"""

    def __init__(self, settings: DashboardSettings, session: Optional["SessionStore"] = None,
                 base_path: str = "", http: Optional[requests.Session] = None):
        """
        Initialize the API client

        Args:
            settings: Dashboard configuration
            session: Session store supplying the bearer token (optional)
            base_path: Path prefix of the endpoint family, e.g. "/service-billing"
            http: Preconfigured requests session (optional)
        """
        self.settings = settings
        self.settings.validate()
        self.session = session
        self.base_path = base_path.rstrip("/")
        self.http = http or requests.Session()

        logger.debug(f"API client for {self.base_url} ({settings.APP_ENV})")

    @classmethod
    def for_service_billing(cls, settings: DashboardSettings,
                            session: Optional["SessionStore"] = None,
                            http: Optional[requests.Session] = None) -> "ApiClient":
        """Client scoped to the /service-billing endpoint family"""
        return cls(settings, session, base_path=SERVICE_BILLING_PATH, http=http)

    @property
    def base_url(self) -> str:
        return f"{self.settings.base_url}{self.base_path}"

    def _url(self, endpoint: str) -> str:
        return f"{self.base_url}/{endpoint.lstrip('/')}"

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        if token is None and self.session is not None:
            token = self.session.token
        return self.settings.headers(token)

    def _make_request(self, method: str, endpoint: str, data: Optional[Dict[str, Any]] = None,
                      params: Optional[Dict[str, Any]] = None, token: Optional[str] = None,
                      expire_on_401: bool = True) -> Any:
        """
        Make HTTP request to the backend with error handling

        Args:
            method: HTTP method (GET, POST, PUT, PATCH, DELETE)
            endpoint: API endpoint relative to the family's base path
            data: Request body data
            params: Query parameters; None values are dropped
            token: Bearer token to send instead of the session's (optional)
            expire_on_401: Clear the session on a 401 (False for credential checks)

        Returns:
            Decoded JSON response ({} for an empty body)

        Raises:
            SessionExpiredError: The backend rejected the token (401)
            AuthError: The backend rejected the credentials (401, expire_on_401=False)
            NotFoundError: The resource does not exist (404)
            DashboardAPIError: Any other transport or HTTP failure
        """
        url = self._url(endpoint)
        if params:
            params = {k: v for k, v in params.items() if v is not None}

        try:
            logger.debug(f"Making {method} request to {url}")
            response = self.http.request(
                method=method,
                url=url,
                headers=self._headers(token),
                json=data,
                params=params or None,
                timeout=self.settings.REQUEST_TIMEOUT,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Request failed: {e}")
            raise DashboardAPIError(f"Request failed: {e}")

        if response.status_code == 401:
            message = _backend_message(response)
            if expire_on_401 and self.session is not None and self.session.token:
                logger.warning("Backend rejected the session token; clearing local session")
                self.session.expire()
            error_cls = SessionExpiredError if expire_on_401 else AuthError
            raise error_cls(
                f"Authentication failed: {message or 'unauthorized'}",
                status_code=401, response=response.text, backend_message=message,
            )

        if response.status_code >= 400:
            message = _backend_message(response)
            error_cls = NotFoundError if response.status_code == 404 else DashboardAPIError
            raise error_cls(
                f"API request failed: {message or f'HTTP {response.status_code} error'}",
                status_code=response.status_code,
                response=response.text,
                backend_message=message,
            )

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            raise DashboardAPIError("Backend returned a non-JSON response",
                                    status_code=response.status_code,
                                    response=response.text)

    def request(self, method: str, endpoint: str, data: Optional[Dict[str, Any]] = None,
                params: Optional[Dict[str, Any]] = None, token: Optional[str] = None,
                expire_on_401: bool = True) -> Any:
        """Make a request with an explicit method; ``token`` overrides the session's"""
        return self._make_request(method.upper(), endpoint, data=data, params=params, token=token,
                                  expire_on_401=expire_on_401)

    def get(self, endpoint: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """Make GET request"""
        return self._make_request("GET", endpoint, params=params)

    def post(self, endpoint: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """Make POST request"""
        return self._make_request("POST", endpoint, data=data)

    def put(self, endpoint: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """Make PUT request"""
        return self._make_request("PUT", endpoint, data=data)

    def patch(self, endpoint: str, data: Optional[Dict[str, Any]] = None) -> Any:
        """Make PATCH request"""
        return self._make_request("PATCH", endpoint, data=data)

    def delete(self, endpoint: str) -> Any:
        """Make DELETE request"""
        return self._make_request("DELETE", endpoint)

    def health_check(self) -> bool:
        """
        Check if the backend is reachable

        Returns:
            True if the health endpoint answered, False otherwise
        """
        try:
            self.get("/health")
            return True
        except DashboardAPIError as e:
            logger.error(f"Health check failed: {e}")
            return False

    def close(self) -> None:
        self.http.close()


def unwrap(payload: Any, key: Optional[str] = None, default: Any = None) -> Any:
    """Strip the backend's {success, message, data} envelope.

    Bare payloads (no "data" key) are returned as they are; with ``key`` the
    named member of the data object is returned.
    """
    data = payload
    if isinstance(payload, dict) and "data" in payload:
        data = payload["data"]
    if key is None:
        return data if data is not None else default
    if isinstance(data, dict):
        value = data.get(key)
        return value if value is not None else default
    return default


def unwrap_list(payload: Any, *keys: str) -> List[Any]:
    """Rows of a list endpoint, bare or keyed under one of ``keys``"""
    data = unwrap(payload)
    if isinstance(data, dict):
        data = next((data[k] for k in keys if isinstance(data.get(k), list)), [])
    if not isinstance(data, list):
        return []
    return [row for row in data if isinstance(row, dict)]
