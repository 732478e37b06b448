from __future__ import annotations

from typing import Any, Iterable

from .errors import ValidationError


# Maximum single amount (price, cost, payment): 9,999,999.99
MAX_AMOUNT_CENTS = 999_999_999

# Maximum units on one line
MAX_QUANTITY = 100_000

# Maximum line subtotal or document total: 999,999,999.99
MAX_TOTAL_CENTS = 99_999_999_999


def require_int(name: str, value: Any, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """
    Strict integer coercion for quantities and cent amounts.

    Accepts ints and plain digit strings; rejects bools, floats, decimals
    and scientific notation so that money never passes through a float.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be an integer")

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{name} must be an integer")
        if 'e' in stripped.lower():
            raise ValidationError(f"{name} must be a plain integer (scientific notation not allowed)")
        if '.' in stripped:
            raise ValidationError(f"{name} must be an integer (no decimals)")
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{name} must be an integer")
    elif isinstance(value, float):
        raise ValidationError(f"{name} must be an integer, not a decimal")
    else:
        raise ValidationError(f"{name} must be an integer")

    if minimum is not None and result < minimum:
        raise ValidationError(f"{name} must be >= {minimum}", details={name: result})
    if maximum is not None and result > maximum:
        raise ValidationError(f"{name} must be <= {maximum}", details={name: result})
    return result


def normalize_method(value: Any, allowed: Iterable[str]) -> str:
    """
    Canonicalize a payment method ("cash", "Store-Credit" -> "CASH", "STORE_CREDIT").
    """
    allowed = list(allowed)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"payment method required. Must be one of {allowed}")
    method = value.strip().upper().replace("-", "_").replace(" ", "_")
    if method not in allowed:
        raise ValidationError(
            f"Invalid payment method: {value}. Must be one of {allowed}",
            details={"payment_method": value},
        )
    return method


def normalize_items(items: Any, *, amount_field: str, min_amount: int = 0) -> list[dict]:
    """
    Validate a list of {variant_id, quantity, <amount_field>} lines.

    Quantities must be positive; amounts must be >= min_amount. Returns new
    dicts with coerced ints, in the caller's order.
    """
    if not isinstance(items, (list, tuple)) or not items:
        raise ValidationError("At least one item is required")

    cleaned = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        for key in ("variant_id", "quantity", amount_field):
            if item.get(key) is None:
                raise ValidationError(f"items[{index}].{key} required")
        cleaned.append({
            "variant_id": require_int(f"items[{index}].variant_id", item["variant_id"], minimum=1),
            "quantity": require_int(
                f"items[{index}].quantity", item["quantity"], minimum=1, maximum=MAX_QUANTITY,
            ),
            amount_field: require_int(
                f"items[{index}].{amount_field}", item[amount_field],
                minimum=min_amount, maximum=MAX_AMOUNT_CENTS,
            ),
        })
    return cleaned


def lines_total(lines: list[dict], *, amount_field: str) -> int:
    """
    Sum of quantity * amount over normalized lines.

    Raises ValidationError if any line subtotal or the total exceeds
    MAX_TOTAL_CENTS.
    """
    total = 0
    for index, line in enumerate(lines):
        subtotal = line["quantity"] * line[amount_field]
        if subtotal > MAX_TOTAL_CENTS:
            raise ValidationError(
                f"items[{index}] subtotal must be <= {MAX_TOTAL_CENTS}",
                details={"index": index, "subtotal_cents": subtotal},
            )
        total += subtotal
    if total > MAX_TOTAL_CENTS:
        raise ValidationError(
            f"total must be <= {MAX_TOTAL_CENTS}",
            details={"total_cents": total},
        )
    return total


def clean_text(value: Any, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"Text exceeds {max_length} characters")
    return text
