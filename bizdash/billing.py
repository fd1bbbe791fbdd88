"""
Assignment Billing

Turns completed (or in-progress) customer assignments into invoices.

The billing board groups billable assignments by customer, tracks which
ones the user has selected, previews the totals and asks the backend to
create the invoice. The backend is authoritative: it marks exactly the
submitted assignments billed, or rejects the request, and the invoice it
returns is what the receipt shows.
"""

import logging
from collections import OrderedDict
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, Iterable, List, NamedTuple, Optional, Union

from .exceptions import ValidationError
from .forms import validate_additional_service, validate_assignment
from .models import (
    Assignment,
    AssignmentStatus,
    Booking,
    BookingStatus,
    Customer,
    Employee,
    Service,
    ServiceInvoice,
)
from .receipt import ReceiptCustomer, ReceiptRenderer
from .screens import Screen
from .services.service_billing import ServiceBillingService
from .session import SessionStore


logger = logging.getLogger(__name__)

VAT_RATE = Decimal("0.16")
CENT = Decimal("0.01")

Price = Union[int, float, str, Decimal]


class BillingTotals(NamedTuple):
    subtotal: Decimal
    vat: Decimal
    total: Decimal


def billing_totals(prices: Iterable[Price], vat_rate: Price = VAT_RATE) -> BillingTotals:
    """
    Subtotal, VAT and total for a set of service prices

    The total is subtotal x (1 + rate), computed before rounding so it
    matches the figure the receipt prints.
    """
    rate = Decimal(str(vat_rate))
    subtotal = sum((Decimal(str(p)) for p in prices), Decimal("0"))
    vat = subtotal * rate
    total = subtotal * (Decimal("1") + rate)
    return BillingTotals(
        subtotal.quantize(CENT, rounding=ROUND_HALF_UP),
        vat.quantize(CENT, rounding=ROUND_HALF_UP),
        total.quantize(CENT, rounding=ROUND_HALF_UP),
    )


def group_by_customer(assignments: Iterable[Assignment]) -> "OrderedDict[int, List[Assignment]]":
    """customer_id -> assignments, in fetch order"""
    grouped: "OrderedDict[int, List[Assignment]]" = OrderedDict()
    for assignment in assignments:
        grouped.setdefault(assignment.customer_id, []).append(assignment)
    return grouped


class BillingBoard(Screen):
    """Selection and invoicing state of the billing tab"""

    NONE = "none"
    PARTIAL = "partial"
    ALL = "all"

    def __init__(self, billing: ServiceBillingService, renderer: Optional[ReceiptRenderer] = None,
                 session: Optional[SessionStore] = None, vat_rate: Price = VAT_RATE):
        """
        Args:
            billing: Service-billing API service
            renderer: Receipt renderer used after a successful invoice
            session: Supplies the business header and user email for receipts
            vat_rate: Rate used for local previews only
        """
        super().__init__()
        self.billing = billing
        self.renderer = renderer or ReceiptRenderer(vat_rate=vat_rate)
        self.session = session
        self.vat_rate = vat_rate
        self.assignments: List[Assignment] = []
        self.groups: "OrderedDict[int, List[Assignment]]" = OrderedDict()
        self.selected: List[int] = []
        self.last_invoice: Optional[ServiceInvoice] = None
        self.last_receipt: Optional[str] = None

    def load(self) -> bool:
        def fetch():
            rows = self.billing.list_billable_assignments()
            billed = [a.id for a in rows if a.status is AssignmentStatus.BILLED]
            if billed:
                logger.warning(f"Backend listed already-billed assignments as billable: {billed}")
            return [a for a in rows if a.status.is_billable]

        def apply(rows: List[Assignment]) -> None:
            self.assignments = rows
            self.groups = group_by_customer(rows)
            present = {a.id for a in rows}
            self.selected = [i for i in self.selected if i in present]

        return self._run(fetch, apply, "Failed to load billing data")

    def _find(self, assignment_id: int) -> Optional[Assignment]:
        return next((a for a in self.assignments if a.id == assignment_id), None)

    def customer_ids(self) -> List[int]:
        return list(self.groups)

    def toggle(self, assignment_id: int) -> bool:
        """Flip one assignment's selection; returns whether it is now selected"""
        if assignment_id in self.selected:
            self.selected.remove(assignment_id)
            return False
        if self._find(assignment_id) is None:
            raise KeyError(f"Assignment {assignment_id} is not billable")
        self.selected.append(assignment_id)
        return True

    def toggle_customer(self, customer_id: int) -> None:
        """Select all of a customer's assignments, or clear them if all are selected"""
        ids = [a.id for a in self.groups.get(customer_id, [])]
        if ids and all(i in self.selected for i in ids):
            self.selected = [i for i in self.selected if i not in ids]
        else:
            self.selected.extend(i for i in ids if i not in self.selected)

    def selection_state(self, customer_id: int) -> str:
        ids = [a.id for a in self.groups.get(customer_id, [])]
        chosen = sum(1 for i in ids if i in self.selected)
        if chosen == 0:
            return self.NONE
        if chosen == len(ids):
            return self.ALL
        return self.PARTIAL

    def selected_for(self, customer_id: int) -> List[Assignment]:
        return [a for a in self.groups.get(customer_id, []) if a.id in self.selected]

    def preview(self, customer_id: int) -> BillingTotals:
        return billing_totals((a.service_price for a in self.selected_for(customer_id)), self.vat_rate)

    def customer(self, customer_id: int) -> Optional[ReceiptCustomer]:
        rows = self.groups.get(customer_id)
        if not rows:
            return None
        return ReceiptCustomer(customer_id, rows[0].customer_name, rows[0].customer_phone)

    def bill_customer(self, customer_id: int, payment_method: str = "Cash") -> Optional[ServiceInvoice]:
        """
        Invoice the selected assignments of one customer

        Returns:
            The backend's invoice, or None with ``error`` set
        """
        chosen = self.selected_for(customer_id)
        customer = self.customer(customer_id)
        if not chosen or customer is None:
            self.clear_alerts()
            self.error = "Please select at least one service to bill"
            return None

        invoice = self._submit(
            lambda: self.billing.create_invoice_from_assignments(
                customer_id,
                [a.id for a in chosen],
                payment_method=payment_method,
                notes=f"Service billing for {customer.name}",
            ),
            None,
            "Failed to create invoice",
        )
        if invoice is None:
            return None

        business = self.session.business if self.session else None
        user = self.session.user if self.session else None
        self.last_invoice = invoice
        self.last_receipt = self.renderer.render_html(invoice, customer, chosen, business, user)
        self.success = f"Invoice {invoice.invoice_number} created successfully!"
        billed = {a.id for a in chosen}
        self.selected = [i for i in self.selected if i not in billed]
        self.load()
        return invoice


class AssignmentBoard(Screen):
    """Customer-to-employee assignments and their status transitions"""

    def __init__(self, billing: ServiceBillingService,
                 status_filter: Optional[AssignmentStatus] = None):
        super().__init__()
        self.billing = billing
        self.status_filter = status_filter
        self.assignments: List[Assignment] = []
        self.customers: List[Customer] = []
        self.employees: List[Employee] = []
        self.services: List[Service] = []
        self.bookings: List[Booking] = []

    def set_status_filter(self, status: Optional[Union[AssignmentStatus, str]]) -> None:
        self.status_filter = AssignmentStatus(status) if status else None
        self.load()

    def load(self) -> bool:
        status = self.status_filter

        def fetch():
            return (
                self.billing.list_assignments(status),
                self.billing.list_customers(),
                self.billing.list_employees(),
                self.billing.list_services(),
                self.billing.list_bookings(),
            )

        def apply(result) -> None:
            (self.assignments, self.customers, self.employees,
             self.services, self.bookings) = result

        return self._run(fetch, apply, "Failed to load assignments")

    def pending_bookings(self) -> List[Booking]:
        """Pending bookings that no assignment refers to yet"""
        assigned = {a.booking_id for a in self.assignments if a.booking_id}
        return [b for b in self.bookings
                if b.id not in assigned and b.status == BookingStatus.PENDING.value]

    def create(self, customer_id, employee_id, service_id, booking_id=None,
               notes: Optional[str] = None) -> bool:
        def action():
            payload = validate_assignment(customer_id, employee_id, service_id, booking_id, notes)
            return self.billing.create_assignment(payload)
        ok = self._submit(action, "Customer assigned to employee successfully!",
                          "Failed to create assignment") is not None
        if ok:
            self.load()
        return ok

    def add_service(self, assignment: Assignment, service_id, employee_id=None,
                    notes: Optional[str] = None) -> bool:
        """Assign another service to the same customer, by default to the same employee"""
        if employee_id is None:
            employee_id = assignment.employee_id

        def action():
            fields = validate_additional_service(service_id, employee_id)
            return self.billing.create_assignment({
                "customer_id": assignment.customer_id,
                "employee_id": fields["employee_id"],
                "service_id": fields["service_id"],
                "notes": notes or f"Additional service requested during {assignment.service_name}",
            })
        ok = self._submit(action, f"Additional service added for {assignment.customer_name}!",
                          "Failed to add service") is not None
        if ok:
            self.load()
        return ok

    def complete(self, assignment_id: int) -> bool:
        current = next((a for a in self.assignments if a.id == assignment_id), None)

        def action():
            if current is not None and not current.status.can_transition_to(AssignmentStatus.COMPLETED):
                raise ValidationError(f"Assignment is already {current.status.value.replace('_', ' ')}")
            return self.billing.complete_assignment(assignment_id)
        ok = self._submit(action, "Service marked as completed!",
                          "Failed to complete assignment") is not None
        if ok:
            self.load()
        return ok


def billing_summary(groups: Dict[int, List[Assignment]], vat_rate: Price = VAT_RATE) -> Dict[int, BillingTotals]:
    """Totals per customer over all of their billable assignments"""
    return {cid: billing_totals((a.service_price for a in rows), vat_rate) for cid, rows in groups.items()}
