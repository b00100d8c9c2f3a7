# Overview: Payload validation against model metadata plus small business rules.

from __future__ import annotations
from datetime import datetime

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text, DateTime

from .formats import parse_iso_datetime, amount_to_cents
from .models import Product


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

PRODUCT_STATUSES = {"active", "inactive"}


class ValidationError(ValueError):
    """400-level input problem."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., duplicate SKU)."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    Central policy layer:
    - writable_fields: what clients are allowed to set (security boundary)
    - required_on_create: fields required for POST
    - aliases: client field name -> column key (e.g. "price" -> "price_cents")
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()
    aliases: tuple[tuple[str, str], ...] = ()


def _columns_by_key(model) -> dict[str, Any]:
    return {c.key: c for c in model.__mapper__.columns}


def _coerce_value(col, value: Any):
    coltype = col.type

    if value is None:
        return None

    # Integers: reject floats, decimals and scientific notation
    if isinstance(coltype, Integer):
        if isinstance(value, int) and not isinstance(value, bool):
            return value
        if isinstance(value, str):
            stripped = value.strip()
            if not stripped or 'e' in stripped.lower() or '.' in stripped:
                raise ValidationError(f"{col.key} must be an integer")
            try:
                return int(stripped)
            except ValueError:
                raise ValidationError(f"{col.key} must be an integer")
        raise ValidationError(f"{col.key} must be an integer")

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, DateTime):
        if isinstance(value, datetime):
            return value
        if isinstance(value, str):
            try:
                dt = parse_iso_datetime(value)
            except ValueError:
                dt = None
            if dt is None:
                raise ValidationError(f"{col.key} must be an ISO-8601 datetime")
            return dt
        raise ValidationError(f"{col.key} must be a datetime")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model,
    payload: dict,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against:
    - SQLAlchemy column metadata (nullable, type, String length)
    - a policy allowlist (writable_fields)
    - required_on_create (if partial=False)
    Returns a cleaned patch dict keyed by column name.

    Unknown keys are ignored rather than rejected: the back-office UI posts
    whole records including read-only fields like id and created_at.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    aliases = dict(policy.aliases)

    if not partial:
        missing = sorted(
            f for f in policy.required_on_create
            if payload.get(f) in (None, "")
            and not any(payload.get(src) not in (None, "") for src, dst in aliases.items() if dst == f)
        )
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in payload.items():
        if k in aliases:
            continue
        if k not in policy.writable_fields or k not in cols:
            continue
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_value(col, raw)

        if isinstance(col.type, (String, Text)) and isinstance(val, str) and val == "":
            if not col.nullable:
                raise ValidationError(f"{k} cannot be blank")
            val = None

        if isinstance(col.type, String) and col.type.length and isinstance(val, str):
            if len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def product_patch_from_payload(payload: dict, partial: bool) -> dict:
    """
    Product payloads carry a decimal "price"; the column is price_cents.
    """
    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=partial)
    if isinstance(payload, dict) and "price" in payload:
        try:
            patch["price_cents"] = amount_to_cents(payload["price"])
        except ValueError:
            raise ValidationError("price must be a number")
    enforce_rules_product(patch)
    return patch


def enforce_rules_product(patch: dict) -> None:
    """
    Business rules that are not captured by SQLAlchemy metadata alone.
    """
    if "price_cents" in patch and patch["price_cents"] is not None:
        price = patch["price_cents"]
        if price < 0:
            raise ValidationError("price must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"price cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")

    if "status" in patch and patch["status"] not in PRODUCT_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(sorted(PRODUCT_STATUSES))}")


def enforce_rules_inventory(patch: dict) -> None:
    if "quantity" in patch and (patch["quantity"] is None or patch["quantity"] < 0):
        raise ValidationError("quantity must be >= 0")
    if "low_stock_threshold" in patch and (patch["low_stock_threshold"] is None or patch["low_stock_threshold"] < 0):
        raise ValidationError("low_stock_threshold must be >= 0")


PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"name", "sku", "category", "description", "status", "image_url"}),
    required_on_create=frozenset({"name", "price_cents"}),
    aliases=(("price", "price_cents"),),
)

INVENTORY_POLICY = ModelValidationPolicy(
    writable_fields=frozenset({"quantity", "low_stock_threshold"}),
)
