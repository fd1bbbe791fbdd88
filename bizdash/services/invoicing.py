"""
Invoicing Service

Invoices and quotations of the generic API.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as ModelValidationError

from ..client import ApiClient, unwrap, unwrap_list
from ..exceptions import DashboardAPIError, InvoicingError, wrap_error
from ..models import Invoice, Quotation


logger = logging.getLogger(__name__)


class InvoicingService:
    """Service for /invoices and /quotations"""

    def __init__(self, client: ApiClient):
        """
        Initialize InvoicingService

        Args:
            client: Generic API client instance
        """
        self.client = client

    # Invoices

    def list_invoices(self, params: Optional[Dict[str, Any]] = None) -> List[Invoice]:
        try:
            response = self.client.get("/invoices", params=params)
            return [Invoice.model_validate(row) for row in unwrap_list(response, "invoices")]
        except (DashboardAPIError, ModelValidationError) as e:
            logger.error(f"Failed to list invoices: {e}")
            raise wrap_error(e, InvoicingError, "Failed to list invoices")

    def next_invoice_number(self) -> str:
        """
        Ask the backend for the next free invoice number

        Returns:
            Invoice number string, e.g. "INV-0042"
        """
        try:
            data = unwrap(self.client.get("/invoices/next-invoice-number"), default={})
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, "Failed to get next invoice number")
        if isinstance(data, dict):
            data = data.get("invoice_number") or data.get("invoiceNumber") or data.get("next_number")
        if not data:
            raise InvoicingError("Backend returned no invoice number")
        return str(data)

    def get_invoice(self, invoice_id: int) -> Invoice:
        try:
            data = unwrap(self.client.get(f"/invoices/{invoice_id}"), default={})
            return Invoice.model_validate(data.get("invoice", data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, f"Failed to get invoice {invoice_id}")

    def create_invoice(self, data: Dict[str, Any]) -> Any:
        try:
            logger.info(f"Creating invoice for {data.get('customer_name')}")
            return unwrap(self.client.post("/invoices", data=data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, "Failed to create invoice")

    def update_invoice(self, invoice_id: int, data: Dict[str, Any]) -> Any:
        try:
            return unwrap(self.client.put(f"/invoices/{invoice_id}", data=data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, f"Failed to update invoice {invoice_id}")

    def update_invoice_status(self, invoice_id: int, status: str) -> Any:
        try:
            logger.info(f"Setting invoice {invoice_id} status to {status}")
            return unwrap(self.client.patch(f"/invoices/{invoice_id}/status", data={"status": status}))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, f"Failed to update invoice {invoice_id} status")

    def delete_invoice(self, invoice_id: int) -> None:
        try:
            self.client.delete(f"/invoices/{invoice_id}")
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, f"Failed to delete invoice {invoice_id}")

    # Quotations

    def list_quotations(self, params: Optional[Dict[str, Any]] = None) -> List[Quotation]:
        try:
            response = self.client.get("/quotations", params=params)
            return [Quotation.model_validate(row) for row in unwrap_list(response, "quotations")]
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, "Failed to list quotations")

    def get_quotation(self, quotation_id: int) -> Quotation:
        try:
            data = unwrap(self.client.get(f"/quotations/{quotation_id}"), default={})
            return Quotation.model_validate(data.get("quotation", data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, f"Failed to get quotation {quotation_id}")

    def create_quotation(self, data: Dict[str, Any]) -> Any:
        try:
            return unwrap(self.client.post("/quotations", data=data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, "Failed to create quotation")

    def update_quotation_status(self, quotation_id: int, status: str) -> Any:
        try:
            return unwrap(self.client.patch(f"/quotations/{quotation_id}/status", data={"status": status}))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, f"Failed to update quotation {quotation_id} status")

    def convert_quotation(self, quotation_id: int) -> Any:
        """Convert a quotation into an invoice; returns the backend's payload"""
        try:
            logger.info(f"Converting quotation {quotation_id} to invoice")
            return unwrap(self.client.post(f"/quotations/{quotation_id}/convert-to-invoice"))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, f"Failed to convert quotation {quotation_id}")

    def delete_quotation(self, quotation_id: int) -> None:
        try:
            self.client.delete(f"/quotations/{quotation_id}")
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, InvoicingError, f"Failed to delete quotation {quotation_id}")
