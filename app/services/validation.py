"""Explicit input validation.

Each function returns a mapping of field name to message; an empty mapping
means the input is acceptable. Routers call these before delegating to the
services, and the services re-check the loan rules before touching the store.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from app.core.settings import settings
from app.schemas.common import parse_role

MIN_LOAN_AMOUNT = Decimal("100.00")
MIN_LOAN_TERM = 1

# Column limits of the loans table: Numeric(12, 2), Integer and String(255).
MAX_LOAN_AMOUNT = Decimal("9999999999.99")
MAX_LOAN_TERM = 2**31 - 1
MAX_PURPOSE_LENGTH = 255

# Image types browsers may execute script from.
_SCRIPTABLE_IMAGE_TYPES = {"image/svg+xml"}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_decimal(value: Any) -> Decimal | None:
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return None


def _check_amount(errors: dict[str, str], amount: Any) -> None:
    parsed = _as_decimal(amount)
    if parsed is None or not parsed.is_finite():
        errors["amount"] = "Amount must be a number"
    elif parsed < MIN_LOAN_AMOUNT:
        errors["amount"] = "Minimum loan amount is 100.00"
    elif parsed > MAX_LOAN_AMOUNT:
        errors["amount"] = f"Maximum loan amount is {MAX_LOAN_AMOUNT}"


def _check_term(errors: dict[str, str], term: Any) -> None:
    if isinstance(term, bool) or not isinstance(term, int):
        errors["term"] = "Term must be a whole number of months"
    elif term < MIN_LOAN_TERM:
        errors["term"] = "Minimum term is 1 month"
    elif term > MAX_LOAN_TERM:
        errors["term"] = f"Maximum term is {MAX_LOAN_TERM} months"


def _check_purpose(errors: dict[str, str], purpose: Any) -> None:
    if not isinstance(purpose, str) or not purpose.strip():
        errors["purpose"] = "Purpose is required"
    elif len(purpose) > MAX_PURPOSE_LENGTH:
        errors["purpose"] = f"Purpose must be at most {MAX_PURPOSE_LENGTH} characters"


def validate_loan_application(amount: Any, term: Any, purpose: Any) -> dict[str, str]:
    errors: dict[str, str] = {}
    if amount is None:
        errors["amount"] = "Amount is required"
    else:
        _check_amount(errors, amount)
    if term is None:
        errors["term"] = "Term is required"
    else:
        _check_term(errors, term)
    _check_purpose(errors, purpose)
    return errors


def validate_loan_update(
    amount: Any, term: Any, purpose: Any, *, require_purpose: bool = False
) -> dict[str, str]:
    """Only provided fields are checked; purpose is mandatory on the HTTP surface."""
    errors: dict[str, str] = {}
    if amount is not None:
        _check_amount(errors, amount)
    if term is not None:
        _check_term(errors, term)
    if purpose is not None or require_purpose:
        _check_purpose(errors, purpose)
    return errors


def validate_review(status: Any, review_comment: Any) -> dict[str, str]:
    errors: dict[str, str] = {}
    if status is None:
        errors["status"] = "Status is required"
    if _blank(review_comment):
        errors["reviewComment"] = "Review comment is required"
    return errors


def validate_registration(
    name: Any, email: Any, password: Any, phone: Any, income: Any, role: Any
) -> dict[str, str]:
    errors: dict[str, str] = {}
    if _blank(name):
        errors["name"] = "Name is required"
    if _blank(email):
        errors["email"] = "Email is required"
    if _blank(password):
        errors["password"] = "Password is required"
    elif len(password) < settings.password_min_length:
        errors["password"] = f"Password must be at least {settings.password_min_length} characters"
    if income is not None:
        parsed = _as_decimal(income)
        if parsed is None or not parsed.is_finite() or parsed < 0:
            errors["income"] = "Income must be a non-negative number"
    if role is not None and parse_role(role) is None:
        errors["role"] = f"Invalid role: {role}"
    return errors


def validate_login(email: Any, password: Any) -> dict[str, str]:
    errors: dict[str, str] = {}
    if _blank(email):
        errors["email"] = "Email is required"
    if _blank(password):
        errors["password"] = "Password is required"
    return errors


def validate_password_change(current_password: Any, new_password: Any) -> dict[str, str]:
    errors: dict[str, str] = {}
    if _blank(current_password):
        errors["currentPassword"] = "Current password is required"
    if _blank(new_password):
        errors["newPassword"] = "New password is required"
    elif len(new_password) < settings.password_min_length:
        errors["newPassword"] = (
            f"Password must be at least {settings.password_min_length} characters"
        )
    return errors


def validate_profile_image(content_type: str | None, size_bytes: int) -> dict[str, str]:
    if size_bytes <= 0:
        return {"file": "No file uploaded"}
    normalized = (content_type or "").split(";")[0].strip().lower()
    if not normalized.startswith("image/") or normalized in _SCRIPTABLE_IMAGE_TYPES:
        return {"file": "Only image files are allowed"}
    if size_bytes > settings.profile_image_max_bytes:
        limit_mb = settings.profile_image_max_bytes // (1024 * 1024)
        return {"file": f"File size exceeds {limit_mb}MB limit"}
    return {}
