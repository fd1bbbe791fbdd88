"""
Dashboard API Exceptions

Custom exception classes for backend and client-side error handling.
"""

from typing import Optional


class DashboardAPIError(Exception):
    """Base exception for backend API errors"""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response: Optional[str] = None,
                 backend_message: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response
        self.backend_message = backend_message

    def user_message(self, fallback: str) -> str:
        """Message to show in an alert: the backend's own words, else the fallback"""
        return self.backend_message or fallback


class AuthError(DashboardAPIError):
    """Exception for login, registration and credential errors"""
    pass


class SessionExpiredError(AuthError):
    """Exception raised when the backend rejects the stored token"""
    pass


class NotFoundError(DashboardAPIError):
    """Exception for missing resources"""
    pass


class AnalyticsError(DashboardAPIError):
    """Exception for analytics-related errors"""
    pass


class BillingError(DashboardAPIError):
    """Exception for service-billing errors"""
    pass


class CatalogError(DashboardAPIError):
    """Exception for item and category errors"""
    pass


class CustomerError(DashboardAPIError):
    """Exception for customer-related errors"""
    pass


class InvoicingError(DashboardAPIError):
    """Exception for invoice and quotation errors"""
    pass


class BusinessSettingsError(DashboardAPIError):
    """Exception for business settings errors"""
    pass


class FinancialAccountError(DashboardAPIError):
    """Exception for financial account errors"""
    pass


class ValidationError(Exception):
    """Client-side form validation failure; raised before any request is made"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def wrap_error(error: Exception, error_cls, message: str) -> DashboardAPIError:
    """Re-wrap an API error in a domain error, keeping status and backend message"""
    if isinstance(error, (error_cls, SessionExpiredError)):
        return error
    if isinstance(error, DashboardAPIError):
        return error_cls(f"{message}: {error.message}",
                         status_code=error.status_code,
                         response=error.response,
                         backend_message=error.backend_message)
    return error_cls(f"{message}: {error}")
