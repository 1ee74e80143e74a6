"""
Request payload coercion.

Blueprints use these helpers to turn loosely-typed JSON into the strict ints,
booleans and dates the services expect. Money is always integer cents; floats
and scientific notation are rejected so no dollar amounts sneak in.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from .errors import ValidationError
from .time_utils import parse_business_date


# Maximum amount: $9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999

_MISSING = object()


def coerce_int(key: str, value: Any) -> int:
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    # String input - must be plain digits (with optional leading minus)
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{key} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer")
    # Reject floats explicitly
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal")
    raise ValidationError(f"{key} must be an integer")


def require_int(payload: dict, key: str, *, minimum: int | None = None) -> int:
    if payload.get(key) is None:
        raise ValidationError(f"{key} is required")
    value = coerce_int(key, payload[key])
    if minimum is not None and value < minimum:
        raise ValidationError(f"{key} must be at least {minimum}")
    return value


def optional_int(payload: dict, key: str, default=None, *, minimum: int | None = None):
    raw = payload.get(key, _MISSING)
    if raw is _MISSING or raw is None or raw == "":
        return default
    value = coerce_int(key, raw)
    if minimum is not None and value < minimum:
        raise ValidationError(f"{key} must be at least {minimum}")
    return value


def _check_cents(key: str, value: int) -> int:
    if value < 0:
        raise ValidationError(f"{key} cannot be negative")
    if value > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{key} exceeds maximum of {MAX_AMOUNT_CENTS} cents")
    return value


def require_cents(payload: dict, key: str) -> int:
    return _check_cents(key, require_int(payload, key))


def optional_cents(payload: dict, key: str, default=None):
    value = optional_int(payload, key, _MISSING)
    if value is _MISSING:
        return default
    return _check_cents(key, value)


def optional_bool(payload: dict, key: str, default: bool = False) -> bool:
    value = payload.get(key)
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no", ""):
            return False
        raise ValidationError(f"{key} must be a boolean")
    # fallback: truthiness
    return bool(value)


def optional_str(payload: dict, key: str, *, max_length: int | None = None) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    value = str(value).strip()
    if not value:
        return None
    if max_length is not None and len(value) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return value


def require_str(payload: dict, key: str, *, max_length: int | None = None) -> str:
    value = optional_str(payload, key, max_length=max_length)
    if value is None:
        raise ValidationError(f"{key} is required")
    return value


def optional_date(payload: dict, key: str) -> date | None:
    try:
        return parse_business_date(payload.get(key))
    except ValueError:
        raise ValidationError(f"{key} must be an ISO-8601 date")


def require_list(payload: dict, key: str) -> list:
    value = payload.get(key)
    if not isinstance(value, list) or not value:
        raise ValidationError(f"{key} must be a non-empty list")
    for entry in value:
        if not isinstance(entry, dict):
            raise ValidationError(f"{key} entries must be objects")
    return value


def get_json_payload(request) -> dict:
    payload = request.get_json(silent=True)
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload
