"""
Financial Accounts Service

Cash, bank and mobile-money accounts of the generic API.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as ModelValidationError

from ..client import ApiClient, unwrap, unwrap_list
from ..exceptions import DashboardAPIError, FinancialAccountError, wrap_error
from ..models import FinancialAccount


logger = logging.getLogger(__name__)


class FinancialAccountsService:
    """Service for /financial-accounts"""

    def __init__(self, client: ApiClient):
        self.client = client

    def list_accounts(self, params: Optional[Dict[str, Any]] = None) -> List[FinancialAccount]:
        """
        List financial accounts

        Args:
            params: Optional paging and sorting (page, limit, search, sortBy, sortOrder)

        Returns:
            List of FinancialAccount objects
        """
        try:
            response = self.client.get("/financial-accounts", params=params)
            return [FinancialAccount.model_validate(row) for row in unwrap_list(response, "accounts")]
        except (DashboardAPIError, ModelValidationError) as e:
            logger.error(f"Failed to list financial accounts: {e}")
            raise wrap_error(e, FinancialAccountError, "Failed to load financial accounts")

    def get_account(self, account_id: int) -> FinancialAccount:
        try:
            data = unwrap(self.client.get(f"/financial-accounts/{account_id}"), default={})
            return FinancialAccount.model_validate(data.get("account", data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, FinancialAccountError, f"Failed to get account {account_id}")

    def create_account(self, data: Dict[str, Any]) -> Any:
        try:
            logger.info(f"Creating {data.get('account_type')} account {data.get('account_name')}")
            return unwrap(self.client.post("/financial-accounts", data=data))
        except DashboardAPIError as e:
            raise wrap_error(e, FinancialAccountError, "Failed to save account")

    def update_account(self, account_id: int, data: Dict[str, Any]) -> Any:
        try:
            return unwrap(self.client.put(f"/financial-accounts/{account_id}", data=data))
        except DashboardAPIError as e:
            raise wrap_error(e, FinancialAccountError, f"Failed to update account {account_id}")

    def delete_account(self, account_id: int) -> None:
        try:
            logger.info(f"Deleting financial account {account_id}")
            self.client.delete(f"/financial-accounts/{account_id}")
        except DashboardAPIError as e:
            raise wrap_error(e, FinancialAccountError, f"Failed to delete account {account_id}")

    def account_balance(self, account_id: int) -> Decimal:
        """Current balance of one account as reported by the backend"""
        try:
            data = unwrap(self.client.get(f"/financial-accounts/{account_id}/balance"), default={})
        except DashboardAPIError as e:
            raise wrap_error(e, FinancialAccountError, f"Failed to get balance of account {account_id}")
        if isinstance(data, dict):
            data = data.get("current_balance", data.get("balance"))
        try:
            return Decimal(str(data))
        except InvalidOperation:
            raise FinancialAccountError(f"Malformed balance for account {account_id}: {data!r}")
