"""
Dashboard Context

Wires settings, storage, the session store, the two API clients and the
services together. One context per process; pass it to whatever needs a
screen or a service instead of reaching for globals.
"""

import logging
from typing import Optional

import requests

from .client import ApiClient
from .config import DashboardSettings, get_settings
from .receipt import ReceiptRenderer
from .services import (
    AnalyticsService,
    AuthService,
    BusinessService,
    CatalogService,
    CustomersService,
    FinancialAccountsService,
    InvoicingService,
    ServiceBillingService,
)
from .session import SessionStore
from .storage import LocalStorage


logger = logging.getLogger(__name__)


class DashboardContext:
    """Everything a dashboard process needs, built from one settings object"""

    def __init__(self, settings: Optional[DashboardSettings] = None,
                 storage: Optional[LocalStorage] = None,
                 http: Optional[requests.Session] = None):
        """
        Args:
            settings: Configuration (defaults to environment/.env)
            storage: Local storage (defaults to the file at settings.STORAGE_PATH)
            http: Shared requests session (mainly for tests)
        """
        self.settings = settings or get_settings()
        self.storage = storage if storage is not None else LocalStorage(self.settings.storage_file)
        self.session = SessionStore(self.storage)

        self.api = ApiClient(self.settings, self.session, http=http)
        self.service_billing_api = ApiClient.for_service_billing(self.settings, self.session, http=http)

        self.auth = AuthService(self.api)
        self.session.bind(self.auth)
        self.analytics = AnalyticsService(self.api)
        self.catalog = CatalogService(self.api)
        self.customers = CustomersService(self.api)
        self.invoicing = InvoicingService(self.api)
        self.business = BusinessService(self.api)
        self.accounts = FinancialAccountsService(self.api)
        self.billing = ServiceBillingService(self.service_billing_api)

        self.receipts = ReceiptRenderer(vat_rate=self.settings.VAT_RATE,
                                        output_dir=self.settings.RECEIPT_DIR)

    def restore(self) -> bool:
        """Load any persisted session; returns whether the user is signed in"""
        authenticated = self.session.restore()
        logger.debug(f"Session restored (authenticated={authenticated})")
        return authenticated

    def close(self) -> None:
        self.api.close()
        self.service_billing_api.close()
