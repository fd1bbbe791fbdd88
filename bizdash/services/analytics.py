"""
Analytics Service

Read-only access to the backend's /analytics endpoints. Every figure is
aggregated server-side; this service only fetches and parses.
"""

import logging
from typing import Any, Callable, List, Type, TypeVar, Union

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from ..client import ApiClient, unwrap
from ..exceptions import AnalyticsError, DashboardAPIError, wrap_error
from ..models import (
    DEFAULT_DATE_RANGE,
    AnalyticsOverview,
    CustomerInsight,
    DateRange,
    InventoryOverview,
    PendingAction,
    ProfitabilityAnalysis,
    QuotationAnalysis,
    RevenueTrends,
    SalesPerformance,
    StockMovement,
    TopSellingItem,
)


logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

RangeArg = Union[DateRange, str]


class AnalyticsService:
    """Service for the analytics dashboard tabs"""

    def __init__(self, client: ApiClient):
        """
        Initialize AnalyticsService

        Args:
            client: Generic API client instance
        """
        self.client = client

    def _fetch(self, endpoint: str, date_range: RangeArg) -> Any:
        date_range = DateRange.parse(date_range)
        try:
            logger.info(f"Fetching {endpoint} for {date_range.value}")
            response = self.client.get(endpoint, params={"dateRange": date_range.value})
            return unwrap(response, default={})
        except DashboardAPIError as e:
            logger.error(f"Failed to fetch {endpoint}: {e}")
            raise wrap_error(e, AnalyticsError, f"Failed to fetch {endpoint}")

    @staticmethod
    def _parse(model: Type[M], data: Any) -> M:
        if not isinstance(data, dict):
            data = {}
        try:
            return model.model_validate(data)
        except ModelValidationError as e:
            raise AnalyticsError(f"Malformed {model.__name__} payload: {e}")

    @staticmethod
    def _parse_list(model: Type[M], data: Any, *keys: str) -> List[M]:
        # Lists arrive bare or wrapped under one of a few keys
        if isinstance(data, dict):
            data = next((data[k] for k in keys if isinstance(data.get(k), list)), [])
        if not isinstance(data, list):
            return []
        try:
            return [model.model_validate(row) for row in data if isinstance(row, dict)]
        except ModelValidationError as e:
            raise AnalyticsError(f"Malformed {model.__name__} payload: {e}")

    def overview(self, date_range: RangeArg = DEFAULT_DATE_RANGE) -> AnalyticsOverview:
        return self._parse(AnalyticsOverview, self._fetch("/analytics/overview", date_range))

    def top_selling_items(self, date_range: RangeArg = DEFAULT_DATE_RANGE) -> List[TopSellingItem]:
        data = self._fetch("/analytics/top-selling-items", date_range)
        return self._parse_list(TopSellingItem, data, "items", "topItems")

    def sales_performance(self, date_range: RangeArg = DEFAULT_DATE_RANGE) -> SalesPerformance:
        return self._parse(SalesPerformance, self._fetch("/analytics/sales-performance", date_range))

    def inventory_overview(self, date_range: RangeArg = DEFAULT_DATE_RANGE) -> InventoryOverview:
        return self._parse(InventoryOverview, self._fetch("/analytics/inventory-overview", date_range))

    def customer_insights(self, date_range: RangeArg = DEFAULT_DATE_RANGE) -> List[CustomerInsight]:
        data = self._fetch("/analytics/customer-insights", date_range)
        return self._parse_list(CustomerInsight, data, "customers")

    def quotation_analysis(self, date_range: RangeArg = DEFAULT_DATE_RANGE) -> QuotationAnalysis:
        return self._parse(QuotationAnalysis, self._fetch("/analytics/quotation-analysis", date_range))

    def revenue_trends(self, date_range: RangeArg = DEFAULT_DATE_RANGE) -> RevenueTrends:
        return self._parse(RevenueTrends, self._fetch("/analytics/revenue-trends", date_range))

    def profitability_analysis(self, date_range: RangeArg = DEFAULT_DATE_RANGE) -> ProfitabilityAnalysis:
        data = self._fetch("/analytics/profitability-analysis", date_range)
        return self._parse(ProfitabilityAnalysis, data)

    def stock_movement(self, date_range: RangeArg = DEFAULT_DATE_RANGE) -> StockMovement:
        return self._parse(StockMovement, self._fetch("/analytics/stock-movement", date_range))

    def pending_actions(self, date_range: RangeArg = DEFAULT_DATE_RANGE) -> List[PendingAction]:
        data = self._fetch("/analytics/pending-actions", date_range)
        return self._parse_list(PendingAction, data, "actions")

    def tab(self, name: str) -> Callable[[RangeArg], Any]:
        """Fetcher for an analytics tab by its endpoint name, e.g. "stock-movement" """
        fetcher = TABS.get(name.replace("_", "-"))
        if fetcher is None:
            raise ValueError(f"Unknown analytics tab: {name}")
        return getattr(self, fetcher)


TABS = {
    "overview": "overview",
    "top-selling-items": "top_selling_items",
    "sales-performance": "sales_performance",
    "inventory-overview": "inventory_overview",
    "customer-insights": "customer_insights",
    "quotation-analysis": "quotation_analysis",
    "revenue-trends": "revenue_trends",
    "profitability-analysis": "profitability_analysis",
    "stock-movement": "stock_movement",
    "pending-actions": "pending_actions",
}
