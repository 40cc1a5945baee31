from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

from .engine.errors import ValidationError
from .time_utils import parse_iso_date


# Maximum single amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical amounts
MAX_AMOUNT_CENTS = 999_999_999

# Arabic-Indic and Extended Arabic-Indic digits, Arabic decimal separator
_DIGIT_MAP = {ord(c): str(i) for i, c in enumerate("٠١٢٣٤٥٦٧٨٩")}
_DIGIT_MAP.update({ord(c): str(i) for i, c in enumerate("۰۱۲۳۴۵۶۷۸۹")})
_DIGIT_MAP[ord("٫")] = "."

_THOUSANDS_SEPARATORS = {",", "٬", "'"}
_CURRENCY_RE = re.compile(r"ر\.س|ريال|﷼|SAR|SR", re.IGNORECASE)
_AMOUNT_RE = re.compile(r"-?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)")


class ConflictError(ValueError):
    """409-level business rule conflict (e.g., deleting a supplier with receivables)."""


def normalize_digits(value: str, *, keep_sign: bool = False) -> str:
    """
    Convert user-typed amounts to plain ASCII digits.

    Arabic-Indic digits are translated; whitespace, thousands separators and
    currency tokens are removed, so "١٬٢٥٠٫٥ SAR" becomes "1250.5". Any other
    character is left in place for the caller to reject. A leading minus is
    dropped unless keep_sign is set.
    """
    s = _CURRENCY_RE.sub("", value.translate(_DIGIT_MAP))
    s = "".join(ch for ch in s if not ch.isspace() and ch not in _THOUSANDS_SEPARATORS)
    if not keep_sign and s.startswith("-"):
        s = s[1:]
    return s


def coerce_cents(value: Any, field: str = "amount_cents") -> int:
    """
    Strict integer-cents coercion for *_cents payload fields.

    Rejects floats, booleans, decimals and scientific notation.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        # Reject decimal points (e.g., "12.5")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_amount_cents(
    value: Any,
    *,
    field: str = "amount",
    allow_negative: bool = False,
    allow_zero: bool = False,
) -> int:
    """
    Parse a human-entered money amount into integer cents (half-up).

    Accepts numbers and strings, including Arabic-Indic digits.
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f"{field} is required")

    if isinstance(value, str):
        text = normalize_digits(value, keep_sign=True)
        if not _AMOUNT_RE.fullmatch(text):
            raise ValidationError(f"{field} is not a valid amount")
        raw = text
    elif isinstance(value, (int, float, Decimal)):
        raw = str(value)
    else:
        raise ValidationError(f"{field} is not a valid amount")

    try:
        amount = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"{field} is not a valid amount")
    if not amount.is_finite():
        raise ValidationError(f"{field} is not a valid amount")

    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    if cents < 0 and not allow_negative:
        raise ValidationError(f"{field} must be positive")
    if cents == 0 and not allow_zero:
        raise ValidationError(f"{field} must be non-zero" if allow_negative else f"{field} must be positive")
    if abs(cents) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    return cents


def amount_from_payload(data: dict, *, allow_negative: bool = False) -> int:
    """Read "amount_cents" (strict integer) or "amount" (decimal text) from a JSON body."""
    if data.get("amount_cents") is not None:
        cents = coerce_cents(data["amount_cents"])
        if cents == 0 or (cents < 0 and not allow_negative):
            raise ValidationError("amount_cents must be positive" if not allow_negative else "amount_cents must be non-zero")
        if abs(cents) > MAX_AMOUNT_CENTS:
            raise ValidationError(f"amount_cents cannot exceed {MAX_AMOUNT_CENTS}")
        return cents
    return parse_amount_cents(data.get("amount"), allow_negative=allow_negative)


def require_text(value: Any, field: str, max_length: int | None = None) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def optional_text(value: Any, max_length: int | None = None, field: str = "value") -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def parse_date_field(value: Any, field: str) -> date | None:
    if value is None or value == "":
        return None
    if isinstance(value, date):
        return value
    try:
        return parse_iso_date(str(value))
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date (YYYY-MM-DD)")
