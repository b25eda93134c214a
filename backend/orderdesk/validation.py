from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Boolean, Float, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta

from .errors import ValidationError


# Largest amount accepted for a single price: 9,999,999.99
MAX_PRICE = 9_999_999.99

# Keys that carry request context rather than entity data
CONTEXT_FIELDS = frozenset({"organizationId"})


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: API field name -> model column key (security boundary)
    - required_on_create: API fields required for create semantics
    - required_message: error text when a required field is missing or blank
    """
    writable_fields: dict[str, str]
    required_on_create: frozenset[str] = frozenset()
    required_message: str | None = None
    ignored_fields: frozenset[str] = field(default=CONTEXT_FIELDS)


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    mapper = model.__mapper__
    return {c.key: c for c in mapper.columns}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _coerce_value(name: str, col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers - strict validation to reject floats and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped:
                raise ValidationError(f"{name} must be an integer")
            if 'e' in stripped.lower():
                raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
            if '.' in stripped:
                raise ValidationError(f"{name} must be an integer (no decimals)")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{name} must be an integer")
        if isinstance(value, float):
            if value.is_integer():
                return int(value)
            raise ValidationError(f"{name} must be an integer, not a decimal")
        raise ValidationError(f"{name} must be an integer")

    # Amounts and percentages
    if isinstance(coltype, Float):
        if isinstance(value, bool):
            raise ValidationError(f"{name} must be a number")
        if isinstance(value, (int, float)):
            return float(value)
        if isinstance(value, str):
            try:
                return float(value.strip())
            except ValueError:
                raise ValidationError(f"{name} must be a number")
        raise ValidationError(f"{name} must be a number")

    # Booleans
    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)

    # Strings / Text
    if isinstance(coltype, (String, Text)):
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON/form data against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by model column keys.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if _is_blank(payload.get(f)))
        if missing:
            raise ValidationError(
                policy.required_message or f"Missing required fields: {', '.join(missing)}"
            )

    cols = _columns_by_key(model)

    for k in payload.keys():
        if k in policy.ignored_fields:
            continue
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}

    for k, raw in payload.items():
        if k in policy.ignored_fields:
            continue
        key = policy.writable_fields[k]
        col = cols[key]

        if raw is None or (isinstance(raw, str) and raw.strip() == "" and not isinstance(col.type, (String, Text))):
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[key] = None
            continue

        val = _coerce_value(k, col, raw)

        if isinstance(col.type, (String, Text)) and not col.nullable:
            if isinstance(val, str) and val == "" and k in policy.required_on_create:
                raise ValidationError(policy.required_message or f"{k} cannot be blank")

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[key] = val

    return patch


def parse_id(value: Any, message: str) -> int:
    """Parse a path/body identifier; malformed ids raise ValidationError(message)."""
    if isinstance(value, bool):
        raise ValidationError(message)
    if isinstance(value, int):
        if value <= 0:
            raise ValidationError(message)
        return value
    if isinstance(value, str) and value.strip().isdigit():
        parsed = int(value.strip())
        if parsed > 0:
            return parsed
    raise ValidationError(message)


def parse_positive_int(value: Any, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a positive integer")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, str) and value.strip().isdigit():
        value = int(value.strip())
    if not isinstance(value, int) or value <= 0:
        raise ValidationError(f"{name} must be a positive integer")
    return value


def parse_flag(value: Any, default: bool = False) -> bool:
    """Query-string booleans ("true"/"false")."""
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "true"


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    Keep these small and centralized.
    """
    if patch.get("quantity") is not None and patch["quantity"] < 0:
        raise ValidationError("quantity must be >= 0")
    if patch.get("low_stock_threshold") is not None and patch["low_stock_threshold"] < 0:
        raise ValidationError("lowStockThreshold must be >= 0")
    if patch.get("discount_percent") is not None:
        pct = patch["discount_percent"]
        if not math.isfinite(pct) or pct < 0 or pct > 100:
            raise ValidationError("discountPercent must be a number between 0 and 100")
    if "status" in patch and patch["status"] not in {"Active", "Inactive"}:
        raise ValidationError("status must be Active or Inactive")


def enforce_rules_price(price: Any, *, allow_zero: bool) -> float:
    """Validate a price amount; update_price requires > 0, creation allows 0."""
    if isinstance(price, bool) or price is None:
        raise ValidationError("Invalid Price. Please provide a valid number.")
    if isinstance(price, str):
        try:
            price = float(price.strip())
        except ValueError:
            raise ValidationError("Invalid Price. Please provide a valid number.")
    if not isinstance(price, (int, float)):
        raise ValidationError("Invalid Price. Please provide a valid number.")
    if not math.isfinite(price) or price < 0 or (price == 0 and not allow_zero):
        raise ValidationError("Invalid Price. Please provide a valid number.")
    if price > MAX_PRICE:
        raise ValidationError(f"price cannot exceed {MAX_PRICE:,.2f}")
    return float(price)
