"""
Business Dashboard Client

Client library and command-line front end for the business-management
backend: session handling, analytics, service billing and receipts.
"""

from .client import ApiClient
from .config import DashboardSettings, get_settings
from .context import DashboardContext
from .exceptions import DashboardAPIError, ValidationError
from .session import SessionStore
from .storage import LocalStorage

__version__ = "1.0.0"

__all__ = [
    'ApiClient',
    'DashboardSettings',
    'get_settings',
    'DashboardContext',
    'DashboardAPIError',
    'ValidationError',
    'SessionStore',
    'LocalStorage',
]
