"""
Screen Controllers

Each screen owns its own state (data, ``error``/``success`` alerts and a
loading flag) and reloads it whenever its filters change. Failures never
propagate out of a screen: they become an error alert plus a default
state.
"""

import logging
import threading
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional, Tuple

from .exceptions import DashboardAPIError, ValidationError
from .forms import (
    validate_booking,
    validate_business_settings,
    validate_commission_period,
    validate_commission_settings,
    validate_customer,
    validate_employee,
    validate_financial_account,
    validate_login,
    validate_registration,
    validate_service,
)
from .models import (
    DEFAULT_DATE_RANGE,
    AnalyticsOverview,
    Booking,
    BusinessSettings,
    Commission,
    CommissionSettings,
    Customer,
    DateRange,
    Employee,
    FinancialAccount,
    Service,
    ServiceInvoice,
)
from .presentation import format_currency, format_percentage
from .services.analytics import TABS, AnalyticsService
from .services.business import BusinessService
from .services.financial_accounts import FinancialAccountsService
from .services.service_billing import ServiceBillingService
from .session import SessionStore


logger = logging.getLogger(__name__)


class RequestSequencer:
    """Hands out increasing tickets; only the latest ticket is current"""

    def __init__(self):
        self._lock = threading.Lock()
        self._latest = 0

    def begin(self) -> int:
        with self._lock:
            self._latest += 1
            return self._latest

    def is_current(self, ticket: int) -> bool:
        with self._lock:
            return ticket == self._latest


class Screen:
    """Base class holding the alert and loading state of one screen"""

    def __init__(self):
        self.error = ""
        self.success = ""
        self.loading = False
        self.sequencer = RequestSequencer()

    def clear_alerts(self) -> None:
        self.error = ""
        self.success = ""

    def _run(self, fetch: Callable[[], Any], apply: Callable[[Any], None],
             fallback_message: str, on_error: Optional[Callable[[], None]] = None) -> bool:
        """
        Run a load and apply its result if no newer load has started since

        Args:
            fetch: Performs the request(s) and returns the result
            apply: Stores the result on the screen
            fallback_message: Error alert when the backend gives no message
            on_error: Resets the screen to its default state on failure

        Returns:
            True if the result was applied
        """
        ticket = self.sequencer.begin()
        self.loading = True
        try:
            result = fetch()
        except DashboardAPIError as e:
            if not self.sequencer.is_current(ticket):
                logger.info(f"Discarding failed stale response for {type(self).__name__}: {e}")
                return False
            logger.error(f"{type(self).__name__} load failed: {e}")
            self.error = e.user_message(fallback_message)
            if on_error is not None:
                on_error()
            return False
        finally:
            if self.sequencer.is_current(ticket):
                self.loading = False

        if not self.sequencer.is_current(ticket):
            logger.info(f"Discarding stale response for {type(self).__name__} (ticket {ticket})")
            return False
        apply(result)
        return True

    def _submit(self, action: Callable[[], Any], success_message: Optional[str],
                fallback_message: str) -> Optional[Any]:
        """Run a mutation; returns its result, or None with the error alert set"""
        self.clear_alerts()
        self.loading = True
        try:
            result = action()
        except ValidationError as e:
            self.error = str(e)
            return None
        except DashboardAPIError as e:
            logger.error(f"{type(self).__name__} action failed: {e}")
            self.error = e.user_message(fallback_message)
            return None
        finally:
            self.loading = False
        if success_message:
            self.success = success_message
        return result if result is not None else True


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

class LoginScreen(Screen):

    def __init__(self, session: SessionStore):
        super().__init__()
        self.session = session

    def submit(self, email: str, password: str) -> bool:
        def action():
            payload = validate_login(email, password)
            return self.session.login(payload["email"], payload["password"])
        return self._submit(action, None, "Login failed") is not None


class RegisterScreen(Screen):

    def __init__(self, session: SessionStore):
        super().__init__()
        self.session = session

    def submit(self, fields: Dict[str, Any]) -> bool:
        """Validate the form locally; nothing is sent when validation fails"""
        def action():
            return self.session.register(validate_registration(fields))
        return self._submit(action, None, "Registration failed") is not None


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

class AnalyticsScreen(Screen):
    """Overview metrics plus one lazily loaded dataset per tab"""

    def __init__(self, analytics: AnalyticsService, currency: str = "KES"):
        super().__init__()
        self.analytics = analytics
        self.currency = currency
        self.date_range = DEFAULT_DATE_RANGE
        self.overview = AnalyticsOverview()
        self.tabs: Dict[str, Any] = {}
        self.tab_errors: Dict[str, str] = {}
        self._tab_sequencers: Dict[str, RequestSequencer] = {}

    def set_date_range(self, value) -> None:
        self.date_range = DateRange.parse(value)
        self.refresh()

    def refresh(self) -> bool:
        self.error = ""
        date_range = self.date_range

        def apply(overview: AnalyticsOverview) -> None:
            self.overview = overview

        def reset() -> None:
            # the overview alert is fixed text, not the backend's message
            self.error = "Failed to load analytics data"
            self.overview = AnalyticsOverview()

        return self._run(lambda: self.analytics.overview(date_range), apply,
                         "Failed to load analytics data", on_error=reset)

    def load_tab(self, name: str) -> Any:
        """Load one analytics tab for the current date range; None on failure"""
        key = name.replace("_", "-")
        if key not in TABS:
            raise ValueError(f"Unknown analytics tab: {name}")
        fetcher = self.analytics.tab(key)
        sequencer = self._tab_sequencers.setdefault(key, RequestSequencer())
        ticket = sequencer.begin()
        try:
            data = fetcher(self.date_range)
        except DashboardAPIError as e:
            if sequencer.is_current(ticket):
                self.tab_errors[key] = e.user_message(f"Failed to load {key.replace('-', ' ')}")
                self.tabs.pop(key, None)
            return None
        if not sequencer.is_current(ticket):
            logger.info(f"Discarding stale {key} response")
            return None
        self.tab_errors.pop(key, None)
        self.tabs[key] = data
        return data

    def overview_cards(self) -> List[Tuple[str, str]]:
        o = self.overview
        return [
            ("Total Sales", format_currency(o.total_sales, self.currency)),
            ("Total Invoices", f"{o.total_invoices:,}"),
            ("Total Customers", f"{o.total_customers:,}"),
            ("Total Items", f"{o.total_items:,}"),
            ("Low Stock Items", f"{o.low_stock_items:,}"),
            ("Pending Quotations", f"{o.pending_quotations:,}"),
            ("Gross Profit", format_currency(o.gross_profit, self.currency)),
            ("Conversion Rate", format_percentage(o.conversion_rate).lstrip("+")),
        ]


# ---------------------------------------------------------------------------
# Business settings
# ---------------------------------------------------------------------------

class BusinessSettingsScreen(Screen):

    def __init__(self, business: BusinessService, session: SessionStore):
        super().__init__()
        self.business = business
        self.session = session
        self.settings = BusinessSettings()

    def load(self) -> bool:
        def apply(settings: Optional[BusinessSettings]) -> None:
            self.settings = settings or self.session.business_settings() or BusinessSettings()

        def fallback() -> None:
            stored = self.session.business_settings()
            if stored is not None:
                logger.info("Using locally stored business settings")
                self.settings = stored
                self.error = ""

        return self._run(self.business.get_settings, apply,
                         "Failed to load business settings", on_error=fallback)

    def save(self, settings: BusinessSettings) -> bool:
        def action():
            saved = self.business.save_settings(validate_business_settings(settings))
            self.session.save_business_settings(saved)
            self.settings = saved
            return saved
        return self._submit(action, "Business settings saved successfully!",
                            "Failed to save settings") is not None


# ---------------------------------------------------------------------------
# Service billing tabs
# ---------------------------------------------------------------------------

class _BillingTab(Screen):

    def __init__(self, billing: ServiceBillingService):
        super().__init__()
        self.billing = billing


class CustomersTab(_BillingTab):

    def __init__(self, billing: ServiceBillingService):
        super().__init__(billing)
        self.customers: List[Customer] = []

    def load(self) -> bool:
        def apply(rows):
            self.customers = rows
        return self._run(self.billing.list_customers, apply, "Failed to load customers",
                         on_error=lambda: setattr(self, "customers", []))

    def save(self, fields: Dict[str, Any], customer_id: Optional[int] = None) -> bool:
        def action():
            payload = validate_customer(fields)
            if customer_id is not None:
                return self.billing.update_customer(customer_id, payload)
            return self.billing.create_customer(payload)
        ok = self._submit(action, None, "Failed to save customer") is not None
        if ok:
            self.load()
        return ok


class EmployeesTab(_BillingTab):

    def __init__(self, billing: ServiceBillingService):
        super().__init__(billing)
        self.employees: List[Employee] = []

    def load(self) -> bool:
        def apply(rows):
            self.employees = rows
        return self._run(self.billing.list_employees, apply, "Failed to load employees",
                         on_error=lambda: setattr(self, "employees", []))

    def save(self, fields: Dict[str, Any], employee_id: Optional[int] = None) -> bool:
        def action():
            payload = validate_employee(fields)
            if employee_id is not None:
                return self.billing.update_employee(employee_id, payload)
            return self.billing.create_employee(payload)
        ok = self._submit(action, None, "Failed to save employee") is not None
        if ok:
            self.load()
        return ok


class ServicesTab(_BillingTab):

    def __init__(self, billing: ServiceBillingService):
        super().__init__(billing)
        self.services: List[Service] = []

    def load(self) -> bool:
        def apply(rows):
            self.services = rows
        return self._run(self.billing.list_services, apply, "Failed to load services",
                         on_error=lambda: setattr(self, "services", []))

    def save(self, fields: Dict[str, Any], service_id: Optional[int] = None) -> bool:
        def action():
            payload = validate_service(fields)
            if service_id is not None:
                return self.billing.update_service(service_id, payload)
            return self.billing.create_service(payload)
        ok = self._submit(action, None, "Failed to save service") is not None
        if ok:
            self.load()
        return ok

    def delete(self, service_id: int) -> bool:
        ok = self._submit(lambda: self.billing.delete_service(service_id), None,
                          "Failed to delete service") is not None
        if ok:
            self.load()
        return ok


class BookingsTab(_BillingTab):

    def __init__(self, billing: ServiceBillingService):
        super().__init__(billing)
        self.bookings: List[Booking] = []
        self.services: List[Service] = []
        self.customers: List[Customer] = []

    def load(self) -> bool:
        def fetch():
            return (self.billing.list_bookings(), self.billing.list_services(),
                    self.billing.list_customers())

        def apply(result):
            self.bookings, self.services, self.customers = result
        return self._run(fetch, apply, "Failed to load bookings")

    def create(self, customer_id: Any, booking_date: str, booking_time: str,
               service_ids: List[Any], notes: Optional[str] = None) -> bool:
        def action():
            payload = validate_booking(customer_id, booking_date, booking_time, service_ids, notes)
            return self.billing.create_booking(payload)
        ok = self._submit(
            action,
            "Booking created successfully! Go to Assignments tab to assign employees.",
            "Failed to create booking",
        ) is not None
        if ok:
            self.load()
        return ok


class CommissionTab(_BillingTab):

    def __init__(self, billing: ServiceBillingService):
        super().__init__(billing)
        self.settings: Optional[CommissionSettings] = None
        self.commissions: List[Commission] = []

    def load(self) -> bool:
        def fetch():
            return self.billing.get_commission_settings(), self.billing.list_commissions()

        def apply(result):
            settings, self.commissions = result
            if settings is not None:
                self.settings = settings
        return self._run(fetch, apply, "Failed to load commission data")

    def save_settings(self, min_customers: Any, commission_rate: Any) -> bool:
        def action():
            return self.billing.update_commission_settings(
                validate_commission_settings(min_customers, commission_rate))
        ok = self._submit(action, "Commission settings saved successfully!",
                          "Failed to save settings") is not None
        if ok:
            self.load()
        return ok

    def calculate(self, period_start: str, period_end: str) -> Optional[List[Commission]]:
        def action():
            period = validate_commission_period(period_start, period_end)
            return self.billing.calculate_commissions(period["period_start"], period["period_end"])
        result = self._submit(action, None, "Failed to calculate commissions")
        if result is None:
            return None
        if result:
            self.success = f"Commissions calculated for {len(result)} employee(s)!"
        else:
            self.success = "No employees qualified for commission in this period"
        self.load()
        return result


class InvoicesTab(_BillingTab):

    def __init__(self, billing: ServiceBillingService):
        super().__init__(billing)
        self.invoices: List[ServiceInvoice] = []
        self.search = ""

    def load(self) -> bool:
        def apply(rows):
            self.invoices = rows
        return self._run(self.billing.list_invoices, apply, "Failed to load invoices",
                         on_error=lambda: setattr(self, "invoices", []))

    def filtered(self, search: Optional[str] = None) -> List[ServiceInvoice]:
        """Invoices whose number, customer, phone, payment method or notes match"""
        query = (self.search if search is None else search).strip().lower()
        if not query:
            return list(self.invoices)
        return [
            invoice for invoice in self.invoices
            if any(query in (value or "").lower() for value in (
                invoice.invoice_number, invoice.customer_name, invoice.customer_phone,
                invoice.payment_method, invoice.notes,
            ))
        ]


# ---------------------------------------------------------------------------
# Financial accounts
# ---------------------------------------------------------------------------

class FinancialAccountsScreen(Screen):

    def __init__(self, accounts: FinancialAccountsService):
        super().__init__()
        self.service = accounts
        self.accounts: List[FinancialAccount] = []

    def load(self) -> bool:
        def apply(rows):
            self.accounts = rows
        return self._run(self.service.list_accounts, apply, "Failed to load financial accounts",
                         on_error=lambda: setattr(self, "accounts", []))

    def save(self, fields: Dict[str, Any], account_id: Optional[int] = None) -> bool:
        def action():
            payload = validate_financial_account(fields)
            if account_id is not None:
                return self.service.update_account(account_id, payload)
            return self.service.create_account(payload)
        ok = self._submit(action, None, "Failed to save account") is not None
        if ok:
            self.load()
        return ok

    def delete(self, account_id: int) -> bool:
        ok = self._submit(lambda: self.service.delete_account(account_id), None,
                          "Failed to delete account") is not None
        if ok:
            self.load()
        return ok

    def total_balance(self) -> Decimal:
        return sum((a.current_balance for a in self.accounts), Decimal("0"))
