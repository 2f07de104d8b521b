"""Field rules shared by the entity services.

Every function here is pure: it either returns the normalized value that
should be persisted or raises ``ValidationError`` with a client-facing message.
"""

import re
from datetime import date, datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

from bookkeeper.core.errors import ValidationError

ACCOUNT_TYPES = ("WALLET", "CHECKING", "SAVINGS", "INVESTMENT")
MEMBER_ROLES = ("OWNER", "EDITOR", "VIEWER")
CATEGORY_TYPES = ("INCOME", "EXPENSE")
TRANSACTION_TYPES = ("INCOME", "EXPENSE", "TRANSFER")
TRANSACTION_STATUSES = ("PENDING", "PAID")
GOAL_STATUSES = ("IN_PROGRESS", "COMPLETED", "FAILED")
AUDIT_ACTIONS = ("CREATE", "UPDATE", "DELETE", "LOGIN")

CENTS = Decimal("0.01")
# INTEGER primary keys and NUMERIC(15, 2) money columns.
MAX_ID = 2_147_483_647
MAX_AMOUNT = Decimal(10) ** 13
HEX_COLOR_RE = re.compile(r"^#[0-9A-F]{6}$", re.IGNORECASE)
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_ID_RE = re.compile(r"^\d+$")


def describe_choices(choices: Iterable[str]) -> str:
    items = list(choices)
    if len(items) == 2:
        return f"{items[0]} or {items[1]}"
    return ", ".join(items[:-1]) + f", or {items[-1]}"


def parse_id(value: Any, message: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(message)
    raw = str(value).strip() if value is not None else ""
    if not _ID_RE.fullmatch(raw):
        raise ValidationError(message)
    parsed = int(raw)
    if parsed <= 0 or parsed > MAX_ID:
        raise ValidationError(message)
    return parsed


def require_text(value: Any, message: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message)
    return value.strip()


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    cleaned = str(value).strip()
    return cleaned or None


def require_choice(value: Any, choices: tuple[str, ...], label: str) -> str:
    if value not in choices:
        raise ValidationError(f"{label} must be {describe_choices(choices)}")
    return value


def to_decimal(value: Any) -> Decimal | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not parsed.is_finite():
        return None
    return parsed


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENTS, rounding=ROUND_HALF_UP)


def _bounded_money(parsed: Decimal, message: str) -> Decimal:
    # Checked before and after rounding: 9999999999999.999 rounds up out of range.
    if abs(parsed) >= MAX_AMOUNT:
        raise ValidationError(message)
    amount = quantize_money(parsed)
    if abs(amount) >= MAX_AMOUNT:
        raise ValidationError(message)
    return amount


def positive_amount(value: Any, message: str) -> Decimal:
    parsed = to_decimal(value)
    if parsed is None or parsed <= 0:
        raise ValidationError(message)
    amount = _bounded_money(parsed, message)
    if amount <= 0:
        raise ValidationError(message)
    return amount


def non_negative_amount(value: Any, message: str) -> Decimal:
    parsed = to_decimal(value)
    if parsed is None or parsed < 0:
        raise ValidationError(message)
    return _bounded_money(parsed, message)


def any_amount(value: Any, message: str) -> Decimal:
    parsed = to_decimal(value)
    if parsed is None:
        raise ValidationError(message)
    return _bounded_money(parsed, message)


def _parse_instant(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str) and value.strip():
        raw = value.strip().replace("Z", "+00:00")
        try:
            dt = datetime.fromisoformat(raw)
        except ValueError:
            return None
    else:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_date(value: Any, message: str) -> date:
    dt = _parse_instant(value)
    if dt is None:
        raise ValidationError(message)
    return dt.date()


def future_date(value: Any, now: datetime | None = None) -> date:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError("Deadline is required")
    dt = _parse_instant(value)
    if dt is None:
        raise ValidationError("Deadline must be a valid date (YYYY-MM-DD)")
    if dt <= (now or datetime.now(timezone.utc)):
        raise ValidationError("Deadline must be in the future")
    return dt.date()


def hex_color(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if not isinstance(value, str) or not HEX_COLOR_RE.fullmatch(value):
        raise ValidationError("Color must be a valid hex color (#RRGGBB)")
    return value


def email_address(value: Any) -> str:
    if not isinstance(value, str) or not EMAIL_RE.fullmatch(value.strip()):
        raise ValidationError("Invalid email format")
    return value.strip().lower()


def password(value: Any, min_len: int) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationError("Password is required")
    if len(value) < min_len:
        raise ValidationError(f"Password too short (min {min_len})")
    if len(value.encode("utf-8")) > 72:
        raise ValidationError("Password too long (max 72 bytes)")
    return value


def goal_status(current: Decimal, target: Decimal, requested: str) -> str:
    if current >= target:
        return "COMPLETED"
    return requested
