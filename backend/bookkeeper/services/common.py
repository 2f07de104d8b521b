from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

from pydantic import BaseModel

from bookkeeper.services.validation import quantize_money, to_decimal


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def money(value: Any) -> str | None:
    if value is None:
        return None
    parsed = value if isinstance(value, Decimal) else to_decimal(value)
    if parsed is None:
        return None
    return f"{quantize_money(parsed):.2f}"


def supplied(payload: BaseModel | dict[str, Any]) -> dict[str, Any]:
    """Fields the client actually sent, explicit nulls included."""
    if isinstance(payload, BaseModel):
        return {name: getattr(payload, name) for name in payload.model_fields_set}
    return dict(payload)
