"""Domain validation helpers."""

from decimal import Decimal

from app.api.errors import ValidationError

CENT = Decimal("0.01")


def ensure_non_zero_decimal(value: Decimal, field_name: str) -> None:
    """Validate that a signed decimal value is not zero."""

    if value == 0:
        raise ValidationError(f"{field_name} must not be zero")


def ensure_distinct_values(left: object, right: object, field_name: str) -> None:
    """Validate that two values are not equal."""

    if left == right:
        raise ValidationError(f"{field_name} values must be different")


def to_money(value: Decimal) -> Decimal:
    """Quantize to the two-decimal precision used by every balance column."""

    return Decimal(value).quantize(CENT)
