"""
Customers Service

Customer records of the generic API (distinct from service-billing customers).
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as ModelValidationError

from ..client import ApiClient, unwrap, unwrap_list
from ..exceptions import CustomerError, DashboardAPIError, wrap_error
from ..models import Customer, Invoice


logger = logging.getLogger(__name__)


class CustomersService:
    """Service for /customers"""

    def __init__(self, client: ApiClient):
        self.client = client

    def list_customers(self, search: Optional[str] = None) -> List[Customer]:
        """
        List customers, optionally filtered by a search term

        Args:
            search: Name, phone or email fragment

        Returns:
            List of Customer objects
        """
        try:
            response = self.client.get("/customers", params={"search": search})
            return [Customer.model_validate(row) for row in unwrap_list(response, "customers")]
        except (DashboardAPIError, ModelValidationError) as e:
            logger.error(f"Failed to list customers: {e}")
            raise wrap_error(e, CustomerError, "Failed to list customers")

    def get_customer(self, customer_id: int) -> Customer:
        try:
            data = unwrap(self.client.get(f"/customers/{customer_id}"), default={})
            return Customer.model_validate(data.get("customer", data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CustomerError, f"Failed to get customer {customer_id}")

    def create_customer(self, data: Dict[str, Any]) -> Any:
        try:
            logger.info(f"Creating customer {data.get('name')}")
            return unwrap(self.client.post("/customers", data=data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CustomerError, "Failed to create customer")

    def update_customer(self, customer_id: int, data: Dict[str, Any]) -> Any:
        try:
            return unwrap(self.client.put(f"/customers/{customer_id}", data=data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CustomerError, f"Failed to update customer {customer_id}")

    def delete_customer(self, customer_id: int) -> None:
        try:
            logger.info(f"Deleting customer {customer_id}")
            self.client.delete(f"/customers/{customer_id}")
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CustomerError, f"Failed to delete customer {customer_id}")

    def customer_invoices(self, customer_id: int) -> List[Invoice]:
        try:
            response = self.client.get(f"/customers/{customer_id}/invoices")
            return [Invoice.model_validate(row) for row in unwrap_list(response, "invoices")]
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CustomerError, f"Failed to load invoices for customer {customer_id}")
