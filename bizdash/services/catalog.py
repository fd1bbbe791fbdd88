"""
Catalog Service

Handles items and item categories of the generic API.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as ModelValidationError

from ..client import ApiClient, unwrap, unwrap_list
from ..exceptions import CatalogError, DashboardAPIError, wrap_error
from ..models import Item, ItemCategory


logger = logging.getLogger(__name__)


class CatalogService:
    """Service for /items and /item-categories"""

    def __init__(self, client: ApiClient):
        self.client = client

    def list_items(self, params: Optional[Dict[str, Any]] = None) -> List[Item]:
        """
        List catalog items

        Args:
            params: Optional filters (search, category_id, page, limit)

        Returns:
            List of Item objects
        """
        try:
            response = self.client.get("/items", params=params)
            return [Item.model_validate(row) for row in unwrap_list(response, "items")]
        except (DashboardAPIError, ModelValidationError) as e:
            logger.error(f"Failed to list items: {e}")
            raise wrap_error(e, CatalogError, "Failed to list items")

    def get_item(self, item_id: int) -> Item:
        try:
            data = unwrap(self.client.get(f"/items/{item_id}"), default={})
            return Item.model_validate(data.get("item", data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CatalogError, f"Failed to get item {item_id}")

    def create_item(self, data: Dict[str, Any]) -> Any:
        try:
            logger.info(f"Creating item {data.get('item_name')}")
            return unwrap(self.client.post("/items", data=data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CatalogError, "Failed to create item")

    def update_item(self, item_id: int, data: Dict[str, Any]) -> Any:
        try:
            return unwrap(self.client.put(f"/items/{item_id}", data=data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CatalogError, f"Failed to update item {item_id}")

    def delete_item(self, item_id: int) -> None:
        try:
            logger.info(f"Deleting item {item_id}")
            self.client.delete(f"/items/{item_id}")
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CatalogError, f"Failed to delete item {item_id}")

    def item_stats(self) -> Dict[str, Any]:
        try:
            return unwrap(self.client.get("/items/stats"), default={})
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CatalogError, "Failed to load item stats")

    def list_categories(self) -> List[ItemCategory]:
        try:
            response = self.client.get("/item-categories")
            return [ItemCategory.model_validate(row)
                    for row in unwrap_list(response, "categories", "item_categories")]
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CatalogError, "Failed to list categories")

    def get_category(self, category_id: int) -> ItemCategory:
        try:
            data = unwrap(self.client.get(f"/item-categories/{category_id}"), default={})
            return ItemCategory.model_validate(data.get("category", data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CatalogError, f"Failed to get category {category_id}")

    def create_category(self, data: Dict[str, Any]) -> Any:
        try:
            return unwrap(self.client.post("/item-categories", data=data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CatalogError, "Failed to create category")

    def update_category(self, category_id: int, data: Dict[str, Any]) -> Any:
        try:
            return unwrap(self.client.put(f"/item-categories/{category_id}", data=data))
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CatalogError, f"Failed to update category {category_id}")

    def delete_category(self, category_id: int) -> None:
        try:
            self.client.delete(f"/item-categories/{category_id}")
        except (DashboardAPIError, ModelValidationError) as e:
            raise wrap_error(e, CatalogError, f"Failed to delete category {category_id}")
