"""
Dashboard API Services

Service modules for the backend's endpoint families.
"""

from .auth import AuthService
from .analytics import AnalyticsService
from .service_billing import ServiceBillingService
from .catalog import CatalogService
from .customers import CustomersService
from .invoicing import InvoicingService
from .business import BusinessService
from .financial_accounts import FinancialAccountsService

__all__ = [
    'AuthService',
    'AnalyticsService',
    'ServiceBillingService',
    'CatalogService',
    'CustomersService',
    'InvoicingService',
    'BusinessService',
    'FinancialAccountsService',
]
