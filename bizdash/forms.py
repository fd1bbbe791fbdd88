"""
Form Validation

Required-field checks run before any request is issued. Each validator
returns the cleaned request payload or raises ``ValidationError`` with the
message shown to the user.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

from .exceptions import ValidationError
from .models import ACCOUNT_TYPES, BusinessSettings


MIN_PASSWORD_LENGTH = 6


def _blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def _clean(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


def _int(value: Any, message: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(message)


def _positive_number(value: Any, message: str) -> Decimal:
    try:
        number = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError(message)
    if not number.is_finite() or number <= 0:
        raise ValidationError(message)
    return number


def _optional(payload: Dict[str, Any], fields: Dict[str, Any], *names: str) -> Dict[str, Any]:
    for name in names:
        if not _blank(fields.get(name)):
            payload[name] = _clean(fields[name])
    return payload


# -- auth ------------------------------------------------------------------

def validate_login(email: Optional[str], password: Optional[str]) -> Dict[str, str]:
    if _blank(email) or _blank(password):
        raise ValidationError("Email and password are required")
    return {"email": email.strip(), "password": password}


def validate_registration(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate the registration form

    Args:
        fields: email, password, confirm_password, first_name, last_name, business_name

    Returns:
        Registration payload without the confirmation field
    """
    required = ("email", "password", "confirm_password", "first_name", "last_name", "business_name")
    if any(_blank(fields.get(name)) for name in required):
        raise ValidationError("Please fill in all required fields")
    if fields["password"] != fields["confirm_password"]:
        raise ValidationError("Passwords do not match")
    if len(fields["password"]) < MIN_PASSWORD_LENGTH:
        raise ValidationError("Password must be at least 6 characters long")

    return {
        "email": fields["email"].strip(),
        "password": fields["password"],
        "first_name": fields["first_name"].strip(),
        "last_name": fields["last_name"].strip(),
        "business_name": fields["business_name"].strip(),
    }


# -- service billing -------------------------------------------------------

def validate_customer(fields: Dict[str, Any]) -> Dict[str, Any]:
    if _blank(fields.get("name")) or _blank(fields.get("phone")):
        raise ValidationError("Name and phone are required")
    payload = {"name": _clean(fields["name"]), "phone": _clean(fields["phone"])}
    return _optional(payload, fields, "location", "email", "notes")


def validate_employee(fields: Dict[str, Any]) -> Dict[str, Any]:
    if _blank(fields.get("name")):
        raise ValidationError("Name is required")
    payload = {"name": _clean(fields["name"])}
    _optional(payload, fields, "phone", "email", "position")
    if not _blank(fields.get("commission_rate")):
        payload["commission_rate"] = float(fields["commission_rate"])
    return payload


def validate_service(fields: Dict[str, Any]) -> Dict[str, Any]:
    message = "Service name, price, and estimated duration are required"
    if any(_blank(fields.get(name)) for name in ("service_name", "price", "estimated_duration")):
        raise ValidationError(message)
    price = _positive_number(fields["price"], message)
    duration = _positive_number(fields["estimated_duration"], message)
    payload = {
        "service_name": _clean(fields["service_name"]),
        "price": float(price),
        "estimated_duration": int(duration),
    }
    return _optional(payload, fields, "description")


def validate_booking(customer_id: Any, booking_date: Optional[str], booking_time: Optional[str],
                     service_ids: Iterable[Any], notes: Optional[str] = None) -> Dict[str, Any]:
    message = "Please fill all required fields and select at least one service"
    service_ids = list(service_ids or [])
    if _blank(customer_id) or _blank(booking_date) or _blank(booking_time) or not service_ids:
        raise ValidationError(message)
    return {
        "customer_id": _int(customer_id, message),
        "booking_date": booking_date.strip(),
        "booking_time": booking_time.strip(),
        "services": [{"service_id": _int(sid, message)} for sid in service_ids],
        "notes": notes or "",
    }


def validate_assignment(customer_id: Any, employee_id: Any, service_id: Any,
                        booking_id: Any = None, notes: Optional[str] = None) -> Dict[str, Any]:
    message = "Customer, Employee, and Service are required"
    if _blank(customer_id) or _blank(employee_id) or _blank(service_id):
        raise ValidationError(message)
    payload = {
        "customer_id": _int(customer_id, message),
        "employee_id": _int(employee_id, message),
        "service_id": _int(service_id, message),
        "notes": notes or "",
    }
    if not _blank(booking_id):
        payload["booking_id"] = _int(booking_id, message)
    return payload


def validate_additional_service(service_id: Any, employee_id: Any) -> Dict[str, int]:
    message = "Service and Employee are required"
    if _blank(service_id) or _blank(employee_id):
        raise ValidationError(message)
    return {"service_id": _int(service_id, message), "employee_id": _int(employee_id, message)}


def validate_commission_settings(min_customers: Any, commission_rate: Any) -> Dict[str, Any]:
    message = "Both fields are required"
    # zero counts as missing
    if _blank(min_customers) or _blank(commission_rate) or not min_customers or not commission_rate:
        raise ValidationError(message)
    try:
        return {"min_customers": int(min_customers), "commission_rate": float(commission_rate)}
    except (TypeError, ValueError):
        raise ValidationError(message)


def validate_commission_period(period_start: Optional[str], period_end: Optional[str]) -> Dict[str, str]:
    if _blank(period_start) or _blank(period_end):
        raise ValidationError("Please select both start and end dates")
    return {"period_start": period_start.strip(), "period_end": period_end.strip()}


# -- business settings -----------------------------------------------------

def validate_business_settings(settings: BusinessSettings) -> BusinessSettings:
    if _blank(settings.business_name):
        raise ValidationError("Business name is required")
    if _blank(settings.email):
        raise ValidationError("Email is required")
    if _blank(settings.telephone):
        raise ValidationError("Telephone is required")
    return settings


# -- financial accounts ----------------------------------------------------

def validate_financial_account(fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate the financial account form

    Args:
        fields: account_name, account_type, account_number, balance, is_active

    Returns:
        Account payload; a blank balance is sent as 0
    """
    if _blank(fields.get("account_name")):
        raise ValidationError("Account name is required")
    account_type = _clean(fields.get("account_type")) or "cash"
    if account_type not in ACCOUNT_TYPES:
        raise ValidationError("Account type must be cash, bank or mobile_money")
    balance = fields.get("balance")
    try:
        balance = float(balance) if not _blank(balance) else 0.0
    except (TypeError, ValueError):
        raise ValidationError("Balance must be a number")

    payload = {"account_name": _clean(fields["account_name"]), "account_type": account_type,
               "balance": balance}
    _optional(payload, fields, "account_number")
    if fields.get("is_active") is not None:
        payload["is_active"] = bool(fields["is_active"])
    return payload
