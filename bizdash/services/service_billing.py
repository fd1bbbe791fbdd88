"""
Service Billing Service

Handles the salon/service-billing endpoint family: services, customers,
employees, bookings, customer assignments, invoices and commissions.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from ..client import ApiClient, unwrap, unwrap_list
from ..exceptions import BillingError, DashboardAPIError, wrap_error
from ..models import (
    Assignment,
    AssignmentStatus,
    Booking,
    Commission,
    CommissionSettings,
    Customer,
    Employee,
    Service,
    ServiceInvoice,
)


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ServiceBillingService:
    """Service for the /service-billing endpoints"""

    def __init__(self, client: ApiClient):
        """
        Initialize ServiceBillingService

        Args:
            client: API client scoped to /service-billing
        """
        self.client = client

    # -- helpers ---------------------------------------------------------

    def _list(self, endpoint: str, key: str, model: Type[M],
              params: Optional[Dict[str, Any]] = None) -> List[M]:
        try:
            response = self.client.get(endpoint, params=params)
        except DashboardAPIError as e:
            logger.error(f"Failed to load {key}: {e}")
            raise wrap_error(e, BillingError, f"Failed to load {key}")
        try:
            return [model.model_validate(row) for row in unwrap_list(response, key)]
        except ModelValidationError as e:
            raise BillingError(f"Malformed {key} payload: {e}")

    def _send(self, method: str, endpoint: str, action: str,
              data: Optional[Dict[str, Any]] = None) -> Any:
        try:
            logger.info(f"{action}: {method} {endpoint}")
            return self.client.request(method, endpoint, data=data)
        except DashboardAPIError as e:
            logger.error(f"Failed to {action}: {e}")
            raise wrap_error(e, BillingError, f"Failed to {action}")

    @staticmethod
    def _one(response: Any, key: str, model: Type[M]) -> Optional[M]:
        row = unwrap(response, key)
        if not isinstance(row, dict):
            return None
        try:
            return model.model_validate(row)
        except ModelValidationError as e:
            raise BillingError(f"Malformed {key} payload: {e}")

    # -- services --------------------------------------------------------

    def list_services(self) -> List[Service]:
        return self._list("/services", "services", Service)

    def create_service(self, data: Dict[str, Any]) -> Optional[Service]:
        response = self._send("POST", "/services", "create service", data)
        return self._one(response, "service", Service)

    def update_service(self, service_id: int, data: Dict[str, Any]) -> Optional[Service]:
        response = self._send("PUT", f"/services/{service_id}", "update service", data)
        return self._one(response, "service", Service)

    def delete_service(self, service_id: int) -> None:
        self._send("DELETE", f"/services/{service_id}", "delete service")

    # -- customers -------------------------------------------------------

    def list_customers(self) -> List[Customer]:
        return self._list("/customers", "customers", Customer)

    def create_customer(self, data: Dict[str, Any]) -> Optional[Customer]:
        response = self._send("POST", "/customers", "create customer", data)
        return self._one(response, "customer", Customer)

    def update_customer(self, customer_id: int, data: Dict[str, Any]) -> Optional[Customer]:
        response = self._send("PUT", f"/customers/{customer_id}", "update customer", data)
        return self._one(response, "customer", Customer)

    # -- employees -------------------------------------------------------

    def list_employees(self) -> List[Employee]:
        return self._list("/employees", "employees", Employee)

    def create_employee(self, data: Dict[str, Any]) -> Optional[Employee]:
        response = self._send("POST", "/employees", "create employee", data)
        return self._one(response, "employee", Employee)

    def update_employee(self, employee_id: int, data: Dict[str, Any]) -> Optional[Employee]:
        response = self._send("PUT", f"/employees/{employee_id}", "update employee", data)
        return self._one(response, "employee", Employee)

    # -- bookings --------------------------------------------------------

    def list_bookings(self, params: Optional[Dict[str, Any]] = None) -> List[Booking]:
        return self._list("/bookings", "bookings", Booking, params=params)

    def create_booking(self, data: Dict[str, Any]) -> Optional[Booking]:
        response = self._send("POST", "/bookings", "create booking", data)
        return self._one(response, "booking", Booking)

    def assign_employee(self, booking_service_id: int, employee_id: int) -> Any:
        return self._send("POST", f"/bookings/services/{booking_service_id}/assign",
                          "assign employee", {"employee_id": employee_id})

    def complete_booking_service(self, booking_service_id: int) -> Any:
        return self._send("POST", f"/bookings/services/{booking_service_id}/complete",
                          "complete service")

    # -- assignments -----------------------------------------------------

    def list_assignments(self, status: Optional[AssignmentStatus] = None) -> List[Assignment]:
        params = {"status": AssignmentStatus(status).value} if status else None
        return self._list("/assignments", "assignments", Assignment, params=params)

    def create_assignment(self, data: Dict[str, Any]) -> Optional[Assignment]:
        response = self._send("POST", "/assignments", "create assignment", data)
        return self._one(response, "assignment", Assignment)

    def complete_assignment(self, assignment_id: int) -> Optional[Assignment]:
        response = self._send("POST", f"/assignments/{assignment_id}/complete", "complete assignment")
        return self._one(response, "assignment", Assignment)

    def list_billable_assignments(self) -> List[Assignment]:
        """Assignments that may still be invoiced (anything not yet billed)"""
        return self._list("/assignments/billing", "assignments", Assignment)

    def create_invoice_from_assignments(self, customer_id: int, assignment_ids: Iterable[int],
                                        payment_method: str = "Cash",
                                        notes: Optional[str] = None) -> ServiceInvoice:
        """
        Bill a set of a customer's assignments as one invoice

        The backend marks exactly these assignments billed, or rejects the
        request (for example when any id is already billed).

        Returns:
            The created invoice; its totals are authoritative

        Raises:
            BillingError: If the backend rejects the request or returns no invoice
        """
        data = {
            "customer_id": customer_id,
            "assignment_ids": list(assignment_ids),
            "payment_method": payment_method,
        }
        if notes:
            data["notes"] = notes
        response = self._send("POST", "/assignments/invoice", "create invoice", data)
        invoice = self._one(response, "invoice", ServiceInvoice)
        if invoice is None:
            raise BillingError("Failed to create invoice - no invoice data returned")
        logger.info(f"Created invoice {invoice.invoice_number} for customer {customer_id}")
        return invoice

    # -- invoices --------------------------------------------------------

    def list_invoices(self) -> List[ServiceInvoice]:
        return self._list("/invoices", "invoices", ServiceInvoice)

    def create_invoice(self, data: Dict[str, Any]) -> Optional[ServiceInvoice]:
        response = self._send("POST", "/invoices", "create invoice", data)
        return self._one(response, "invoice", ServiceInvoice)

    # -- commission ------------------------------------------------------

    def get_commission_settings(self) -> Optional[CommissionSettings]:
        try:
            response = self.client.get("/commission/settings")
        except DashboardAPIError as e:
            raise wrap_error(e, BillingError, "Failed to load commission settings")
        return self._one(response, "settings", CommissionSettings)

    def update_commission_settings(self, data: Dict[str, Any]) -> Any:
        return self._send("POST", "/commission/settings", "save settings", data)

    def calculate_commissions(self, period_start: str, period_end: str) -> List[Commission]:
        response = self._send("POST", "/commission/calculate", "calculate commissions",
                              {"period_start": period_start, "period_end": period_end})
        try:
            return [Commission.model_validate(row) for row in unwrap_list(response, "commissions")]
        except ModelValidationError as e:
            raise BillingError(f"Malformed commissions payload: {e}")

    def list_commissions(self, employee_id: Optional[int] = None) -> List[Commission]:
        params = {"employee_id": employee_id} if employee_id else None
        return self._list("/commission", "commissions", Commission, params=params)
