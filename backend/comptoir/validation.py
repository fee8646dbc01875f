from __future__ import annotations

import math
from typing import Any


class ServiceError(Exception):
    """Base class for errors a route can turn into a JSON response."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(ServiceError):
    """400-level input problem."""
    status_code = 400


class BusinessRuleError(ServiceError):
    """400-level business rule violation (duplicate ticket, already drawn...)."""
    status_code = 400


class InsufficientStockError(BusinessRuleError):
    """A cart line asks for more than the product has on hand."""


class NotFoundError(ServiceError):
    status_code = 404


class AuthorizationError(ServiceError):
    status_code = 403


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_amount(value: Any, field: str, *, allow_negative: bool = False) -> float:
    """
    Coerce a JSON amount (number or numeric string) to float.

    Rejects booleans, NaN/inf and, unless allowed, negative values.
    """
    if value is None or value == "":
        raise ValidationError(f"{field} is required")

    if _is_number(value):
        amount = float(value)
    elif isinstance(value, str):
        try:
            amount = float(value.strip())
        except ValueError:
            raise ValidationError(f"{field} must be a number")
    else:
        raise ValidationError(f"{field} must be a number")

    if math.isnan(amount) or math.isinf(amount):
        raise ValidationError(f"{field} must be a finite number")
    if not allow_negative and amount < 0:
        raise ValidationError(f"{field} must be a positive number")
    return amount


def parse_int(value: Any, field: str, *, minimum: int | None = None) -> int:
    """Strict integer coercion: plain digits only, no decimals."""
    if value is None or value == "":
        raise ValidationError(f"{field} is required")

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        result = value
    elif isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(f"{field} must be an integer (no decimals)")
        result = int(value)
    elif isinstance(value, str):
        stripped = value.strip()
        if "." in stripped or "e" in stripped.lower():
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    else:
        raise ValidationError(f"{field} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be >= {minimum}")
    return result


def parse_week_arg(value: str | None) -> int | None:
    """
    Parse the optional ?week= query argument.

    Anything that is not an integer is treated as "not provided" so the
    caller falls back to the current week.
    """
    if value is None:
        return None
    try:
        return int(value, 10)
    except (TypeError, ValueError):
        return None


def require_object(data: Any) -> dict:
    """Request bodies are JSON objects; a missing or unparseable body counts as empty."""
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def require_fields(data: dict, *fields: str) -> None:
    missing = [f for f in fields if data.get(f) in (None, "")]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )
