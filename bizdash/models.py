"""
Data models for the business dashboard backend.

The backend owns every entity; these are the transient copies the client
works with. Payloads are parsed tolerantly: unknown keys are ignored, nulls
fall back to field defaults and numeric strings are coerced.
"""

from __future__ import annotations

import json
from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class TolerantModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # null means "use the default", never "fail validation"
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class CamelModel(TolerantModel):
    """Payloads whose keys are camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel)


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class User(TolerantModel):
    id: Optional[int] = None
    business_id: Optional[int] = None
    email: str = ""
    first_name: str = ""
    last_name: str = ""
    role: str = "owner"
    status: str = "active"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Business(TolerantModel):
    id: Optional[int] = None
    name: str = ""
    business_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    status: str = "active"

    @property
    def display_name(self) -> str:
        return self.business_name or self.name


class Session(TolerantModel):
    user: User
    business: Business
    token: str


class BusinessSettings(CamelModel):
    business_name: str = ""
    street: str = ""
    city: str = ""
    email: str = ""
    telephone: str = ""
    created_by: str = ""
    approved_by: str = ""
    created_by_signature: str = ""
    approved_by_signature: str = ""
    logo: str = ""


# ---------------------------------------------------------------------------
# Service billing
# ---------------------------------------------------------------------------

class Customer(TolerantModel):
    id: int
    name: str
    phone: str = ""
    location: Optional[str] = None
    email: Optional[str] = None
    notes: Optional[str] = None


class Employee(TolerantModel):
    id: int
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    position: Optional[str] = None
    commission_rate: float = 0.0


class Service(TolerantModel):
    id: int
    service_name: str
    description: str = ""
    price: Decimal = Decimal("0")
    estimated_duration: float = 0


class BookingStatus(str, Enum):
    PENDING = "pending"
    ASSIGNED = "assigned"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BookingService(TolerantModel):
    id: Optional[int] = None
    service_id: Optional[int] = None
    service_name: str = ""
    price: Decimal = Decimal("0")
    employee_id: Optional[int] = None
    employee_name: Optional[str] = None
    status: Optional[str] = None


class Booking(TolerantModel):
    id: int
    customer_id: Optional[int] = None
    customer_name: str = ""
    customer_phone: str = ""
    booking_date: str = Field(default="", validation_alias=AliasChoices("booking_date", "date"))
    booking_time: str = Field(default="", validation_alias=AliasChoices("booking_time", "time"))
    services: List[BookingService] = Field(default_factory=list)
    status: str = BookingStatus.PENDING.value
    notes: Optional[str] = None


class AssignmentStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    BILLED = "billed"

    @property
    def rank(self) -> int:
        return _ASSIGNMENT_ORDER.index(self)

    def can_transition_to(self, target: "AssignmentStatus") -> bool:
        """Forward-only; in_progress may go straight to billed."""
        return AssignmentStatus(target).rank > self.rank

    @property
    def is_billable(self) -> bool:
        return self is not AssignmentStatus.BILLED


_ASSIGNMENT_ORDER = [AssignmentStatus.IN_PROGRESS, AssignmentStatus.COMPLETED, AssignmentStatus.BILLED]


def round_half_up(value: float) -> int:
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


class Assignment(TolerantModel):
    id: int
    customer_id: int
    customer_name: str = ""
    customer_phone: str = ""
    employee_id: Optional[int] = None
    employee_name: str = ""
    service_id: Optional[int] = None
    service_name: str = ""
    service_price: Decimal = Decimal("0")
    booking_id: Optional[int] = None
    status: AssignmentStatus = AssignmentStatus.IN_PROGRESS
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    estimated_duration: float = 0
    actual_duration: Optional[float] = None
    notes: Optional[str] = None

    @property
    def duration_minutes(self) -> int:
        return round_half_up(self.actual_duration or self.estimated_duration)


class ServiceInvoiceItem(TolerantModel):
    service_name: str = Field(default="", validation_alias=AliasChoices("service_name", "name"))
    employee_name: Optional[str] = None
    price: Decimal = Decimal("0")
    duration: Optional[float] = None


class ServiceInvoice(TolerantModel):
    model_config = ConfigDict(frozen=True)

    id: Optional[int] = None
    invoice_number: str
    customer_id: Optional[int] = None
    customer_name: str = ""
    customer_phone: str = ""
    items: List[ServiceInvoiceItem] = Field(default_factory=list)
    subtotal: Decimal = Decimal("0")
    vat_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    payment_method: str = "Cash"
    notes: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("items", mode="before")
    @classmethod
    def _decode_items(cls, value: Any) -> Any:
        # some backends store the line items as a JSON string
        if isinstance(value, str):
            try:
                value = json.loads(value)
            except ValueError:
                return []
        return value if isinstance(value, list) else []


class CommissionSettings(TolerantModel):
    min_customers: int = 0
    commission_rate: float = 0.0


class Commission(TolerantModel):
    id: Optional[int] = None
    employee_id: Optional[int] = None
    employee_name: str = ""
    period_start: str = ""
    period_end: str = ""
    total_customers: int = 0
    total_revenue: Decimal = Decimal("0")
    commission_amount: Decimal = Decimal("0")
    status: str = "pending"


# ---------------------------------------------------------------------------
# Generic API: catalog, invoices, quotations
# ---------------------------------------------------------------------------

class ItemCategory(TolerantModel):
    id: int
    name: str
    description: Optional[str] = None


class Item(TolerantModel):
    id: int
    item_name: str
    code: Optional[str] = None
    quantity: float = 0
    rate: Decimal = Decimal("0")
    buying_price: Optional[Decimal] = None
    selling_price: Optional[Decimal] = None
    unit: Optional[str] = None
    description: Optional[str] = None
    category_id: Optional[int] = None


class InvoiceLine(TolerantModel):
    id: Optional[int] = None
    item_id: Optional[int] = None
    code: str = ""
    description: str = ""
    quantity: float = 0
    unit_price: Decimal = Decimal("0")
    uom: Optional[str] = None
    total: Decimal = Decimal("0")


class Invoice(TolerantModel):
    id: int
    invoice_number: str = ""
    customer_name: str = ""
    customer_address: Optional[str] = None
    customer_pin: Optional[str] = None
    subtotal: Decimal = Decimal("0")
    vat: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    status: str = "draft"
    due_date: Optional[str] = None
    lines: List[InvoiceLine] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class Quotation(TolerantModel):
    id: int
    quotation_number: str = ""
    customer_name: str = ""
    subtotal: Decimal = Decimal("0")
    vat: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    status: str = "pending"
    valid_until: Optional[str] = None
    lines: List[InvoiceLine] = Field(default_factory=list)
    created_at: Optional[datetime] = None


ACCOUNT_TYPES = ("cash", "bank", "mobile_money")


class FinancialAccount(TolerantModel):
    id: int
    business_id: Optional[int] = None
    account_name: str
    account_type: str = "cash"
    account_number: Optional[str] = None
    opening_balance: Decimal = Decimal("0")
    current_balance: Decimal = Field(default=Decimal("0"),
                                     validation_alias=AliasChoices("current_balance", "balance"))
    is_active: bool = True
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Analytics
# ---------------------------------------------------------------------------

class DateRange(str, Enum):
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    THIS_QUARTER = "this_quarter"
    THIS_YEAR = "this_year"
    LAST_MONTH = "last_month"
    LAST_QUARTER = "last_quarter"

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()

    @classmethod
    def parse(cls, value: Any) -> "DateRange":
        if isinstance(value, cls):
            return value
        return cls(str(value).strip().lower())


DEFAULT_DATE_RANGE = DateRange.THIS_MONTH


class AnalyticsOverview(CamelModel):
    total_sales: float = 0
    total_invoices: int = 0
    total_customers: int = 0
    total_items: int = 0
    low_stock_items: int = 0
    pending_quotations: int = 0
    gross_profit: float = 0
    conversion_rate: float = 0


class TopSellingItem(CamelModel):
    id: Optional[int] = None
    item_name: str = ""
    velocity: str = "medium"
    sales: float = 0
    quantity: float = 0


class DailySales(CamelModel):
    date: str = ""
    sales: float = 0
    invoices: int = 0
    profit: float = 0


class SalesPerformance(CamelModel):
    total_sales: float = 0
    total_invoices: int = 0
    average_order_value: float = 0
    target_sales: float = 0
    gross_profit: float = 0
    profit_margin: float = 0
    sales_growth: float = 0
    daily_sales: List[DailySales] = Field(default_factory=list)

    @property
    def target_progress(self) -> float:
        if self.target_sales <= 0:
            return 0.0
        return self.total_sales / self.target_sales * 100


class InventoryItem(CamelModel):
    id: Optional[int] = None
    item_name: str = ""
    code: str = ""
    category: str = ""
    current_stock: float = 0
    min_stock_level: float = 0
    max_stock_level: float = 0
    unit_cost: float = 0
    total_value: float = 0
    status: Optional[str] = None
    last_restocked: Optional[str] = None
    turnover_rate: float = 0


class InventoryOverview(CamelModel):
    total_items: int = 0
    total_value: float = 0
    low_stock_items: int = 0
    out_of_stock_items: int = 0
    overstock_items: int = 0
    average_turnover: float = 0
    items: List[InventoryItem] = Field(default_factory=list)


class CustomerInsight(CamelModel):
    id: Optional[int] = None
    name: str = ""
    email: str = ""
    total_purchases: int = 0
    total_amount: float = 0
    last_purchase: Optional[str] = None
    frequency: str = "Low"


class QuotationStats(CamelModel):
    total_quotations: int = 0
    converted_quotations: int = 0
    pending_quotations: int = 0
    rejected_quotations: int = 0
    conversion_rate: float = 0
    average_value: float = 0
    total_value: float = 0


class QuotationSummaryItem(CamelModel):
    id: Optional[int] = None
    quotation_number: str = ""
    customer_name: str = ""
    amount: float = 0
    status: str = "Pending"
    created_at: Optional[str] = None
    valid_until: Optional[str] = None


class QuotationAnalysis(CamelModel):
    stats: QuotationStats = Field(default_factory=QuotationStats)
    quotations: List[QuotationSummaryItem] = Field(default_factory=list)


class MonthlyRevenue(CamelModel):
    month: str = ""
    revenue: float = 0
    growth: float = 0
    transactions: int = 0
    average_order_value: float = 0


class RevenueSummary(CamelModel):
    total_revenue: float = 0
    average_growth: float = 0
    best_month: str = ""
    total_transactions: int = 0


class RevenueTrends(CamelModel):
    monthly_data: List[MonthlyRevenue] = Field(
        default_factory=list,
        validation_alias=AliasChoices("monthlyData", "monthly", "monthly_data"),
    )
    summary: Optional[RevenueSummary] = None


class ProfitabilityItem(CamelModel):
    id: Optional[int] = None
    item_name: str = ""
    category: str = ""
    revenue: float = 0
    cost: float = 0
    gross_profit: float = 0
    margin_percentage: float = 0
    units_sold: float = 0
    profit_per_unit: float = 0
    profit_trend: str = "stable"


class ProfitabilitySummary(CamelModel):
    total_revenue: float = 0
    total_cost: float = 0
    total_gross_profit: float = 0
    overall_margin: float = 0
    best_performing_category: str = ""
    worst_performing_category: str = ""


class ProfitabilityAnalysis(CamelModel):
    items: List[ProfitabilityItem] = Field(default_factory=list)
    summary: Optional[ProfitabilitySummary] = None


class StockMovementItem(CamelModel):
    id: Optional[int] = None
    item_name: str = ""
    sku: str = ""
    category: str = ""
    inward_movement: float = 0
    outward_movement: float = 0
    net_movement: float = 0
    current_stock: float = 0
    average_movement: float = 0
    movement_type: str = "Medium"


class MovementSummary(CamelModel):
    total_inward: float = 0
    total_outward: float = 0
    net_movement: float = 0
    active_items: int = 0


class StockMovement(CamelModel):
    movements: List[StockMovementItem] = Field(default_factory=list)
    summary: Optional[MovementSummary] = None


class PendingAction(CamelModel):
    id: Optional[int] = None
    type: str = ""
    title: str = ""
    description: str = ""
    priority: str = "low"
    days_overdue: Optional[int] = None
    amount: Optional[float] = None
    created_at: Optional[str] = None
