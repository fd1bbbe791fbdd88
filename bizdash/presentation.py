"""
Presentation helpers

Pure classification and formatting over figures the backend has already
aggregated. Colors use the dashboard's severity names (success, info,
warning, error, default); account type chips also use primary and
secondary.
"""

from datetime import datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple, Optional, Union

from .models import Assignment, AssignmentStatus, round_half_up


Number = Union[int, float, Decimal]


class Chip(NamedTuple):
    label: str
    color: str


# -- formatting ------------------------------------------------------------

def _quantize(amount: Number, decimals: int) -> Decimal:
    exp = Decimal(1).scaleb(-decimals)
    return Decimal(str(amount)).quantize(exp, rounding=ROUND_HALF_UP)


def format_currency(amount: Number, currency: str = "KES", decimals: int = 0) -> str:
    """Format an amount as e.g. "KES 50,000"; negatives as "-KES 1,200"."""
    value = _quantize(amount or 0, decimals)
    sign = "-" if value < 0 else ""
    return f"{sign}{currency} {abs(value):,.{decimals}f}"


def format_money(amount: Number) -> str:
    """Receipt money format: "$12.50"."""
    value = _quantize(amount or 0, 2)
    sign = "-" if value < 0 else ""
    return f"{sign}${abs(value):,.2f}"


def format_percentage(value: Number, decimals: int = 1) -> str:
    value = float(value or 0)
    sign = "+" if value > 0 else ""
    return f"{sign}{value:.{decimals}f}%"


# -- thresholds ------------------------------------------------------------

def margin_color(margin: Number) -> str:
    if margin >= 30:
        return "success"
    if margin >= 15:
        return "warning"
    return "error"


def turnover_rating(rate: Number) -> Chip:
    if rate > 10:
        return Chip("Excellent", "success")
    if rate > 5:
        return Chip("Good", "warning")
    return Chip("Needs Improvement", "error")


def stock_level(current: Number, minimum: Number, maximum: Number) -> str:
    # order matters: an empty item with min 0 is out of stock, not low
    if current == 0:
        return "out_of_stock"
    if current <= minimum:
        return "low_stock"
    if current >= maximum:
        return "overstock"
    return "in_stock"


_STOCK_STATUS = {
    "in_stock": Chip("In Stock", "success"),
    "low_stock": Chip("Low Stock", "warning"),
    "out_of_stock": Chip("Out of Stock", "error"),
    "overstock": Chip("Overstock", "info"),
}


def stock_status_color(status: str) -> str:
    return _STOCK_STATUS.get(status, Chip("Unknown", "default")).color


def stock_status_label(status: str) -> str:
    return _STOCK_STATUS.get(status, Chip("Unknown", "default")).label


def growth_color(growth: Number) -> str:
    if growth > 5:
        return "success"
    if growth < -5:
        return "error"
    return "warning"


def progress_color(progress: Number) -> str:
    if progress >= 100:
        return "success"
    if progress >= 75:
        return "info"
    if progress >= 50:
        return "warning"
    return "error"


def daily_sales_performance(sales: Number) -> Chip:
    if sales > 20000:
        return Chip("Excellent", "success")
    if sales > 15000:
        return Chip("Good", "info")
    if sales > 10000:
        return Chip("Average", "warning")
    return Chip("Below Average", "error")


def net_movement_color(value: Number) -> str:
    if value > 0:
        return "success"
    if value < 0:
        return "error"
    return "warning"


# -- category chips --------------------------------------------------------

def frequency_color(frequency: str) -> str:
    return {"High": "success", "Medium": "warning", "Low": "error"}.get(frequency, "default")


def velocity_color(velocity: str) -> str:
    return {"fast": "success", "medium": "warning", "slow": "error"}.get(
        (velocity or "").lower(), "default")


def quotation_status_color(status: str) -> str:
    return {"Converted": "success", "Pending": "warning", "Rejected": "error"}.get(status, "default")


def profit_trend_color(trend: str) -> str:
    return {"increasing": "success", "decreasing": "error"}.get(trend, "warning")


_ASSIGNMENT_CHIPS = {
    AssignmentStatus.IN_PROGRESS.value: Chip("In Progress", "warning"),
    AssignmentStatus.COMPLETED.value: Chip("Completed", "success"),
    AssignmentStatus.BILLED.value: Chip("Billed", "default"),
}


def assignment_status_chip(status: Union[AssignmentStatus, str]) -> Chip:
    value = status.value if isinstance(status, AssignmentStatus) else str(status)
    return _ASSIGNMENT_CHIPS.get(value, Chip(value, "default"))


_ACCOUNT_TYPE_CHIPS = {
    "bank": Chip("Bank Account", "primary"),
    "mobile_money": Chip("Mobile Money", "success"),
}


def account_type_chip(account_type: str) -> Chip:
    """Anything that is not bank or mobile money displays as cash"""
    return _ACCOUNT_TYPE_CHIPS.get(account_type, Chip("Cash Account", "secondary"))


def _minutes(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def duration_status(assignment: Assignment, now: Optional[datetime] = None) -> Optional[Chip]:
    """
    Elapsed-time chip for an in-progress assignment

    Args:
        assignment: Assignment with start_time and estimated_duration
        now: Reference time (defaults to the current time in start_time's zone);
            naive times on either side are taken as local time

    Returns:
        "Overdue (Nmin)"/error once elapsed exceeds the estimate, otherwise
        "N/Mmin"/info; None for assignments that are not in progress
    """
    if assignment.status is not AssignmentStatus.IN_PROGRESS or assignment.start_time is None:
        return None
    start = assignment.start_time
    if now is None:
        now = datetime.now(start.tzinfo)
    elif start.tzinfo is None and now.tzinfo is not None:
        # naive backend times are local time
        now = now.astimezone().replace(tzinfo=None)
    elif start.tzinfo is not None and now.tzinfo is None:
        now = now.astimezone(start.tzinfo)
    elapsed = (now - start).total_seconds() / 60
    if elapsed > assignment.estimated_duration:
        return Chip(f"Overdue ({round_half_up(elapsed)}min)", "error")
    return Chip(f"{round_half_up(elapsed)}/{_minutes(assignment.estimated_duration)}min", "info")
