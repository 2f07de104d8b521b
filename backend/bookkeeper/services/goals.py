from datetime import datetime
from decimal import Decimal
from typing import Any

from bookkeeper.core.errors import ValidationError
from bookkeeper.services.audit import record_audit
from bookkeeper.services.common import money
from bookkeeper.services.policy import require_owned
from bookkeeper.services.validation import (
    GOAL_STATUSES,
    future_date,
    goal_status,
    non_negative_amount,
    parse_id,
    positive_amount,
    quantize_money,
    require_choice,
    require_text,
    to_decimal,
)

ENTITY = "GOAL"
TARGET_MESSAGE = "Target amount must be a positive number"
CURRENT_MESSAGE = "Current amount must be zero or a positive number"


def present_goal(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "user_id": row.get("user_id"),
        "name": row["name"],
        "target_amount": money(row.get("target_amount")),
        "current_amount": money(row.get("current_amount")),
        "deadline": row.get("deadline"),
        "status": row.get("status"),
        "created_at": row.get("created_at"),
    }


def _current_amount(value: Any) -> Decimal:
    # An explicit null or empty value resets the progress.
    if value is None or value == "":
        return Decimal("0.00")
    return non_negative_amount(value, CURRENT_MESSAGE)


def list_goals(store, ctx, filters: dict[str, Any]) -> list[dict[str, Any]]:
    where: dict[str, Any] = {"user_id": ctx.actor.id}
    if filters.get("status"):
        where["status"] = require_choice(filters["status"], GOAL_STATUSES, "Status")
    rows = store.select("goals", where, order_by="created_at", descending=True)
    return [present_goal(row) for row in rows]


def create_goal(store, ctx, data: dict[str, Any], now: datetime | None = None) -> dict[str, Any]:
    name = require_text(data.get("name"), "Goal name is required")
    target = positive_amount(data.get("target_amount"), TARGET_MESSAGE)
    current = _current_amount(data.get("current_amount"))
    deadline = future_date(data.get("deadline"), now)

    values = {
        "user_id": ctx.actor.id,
        "name": name,
        "target_amount": target,
        "current_amount": current,
        "deadline": deadline,
        "status": goal_status(current, target, "IN_PROGRESS"),
    }
    goal_id = store.insert("goals", values)
    store.commit()
    record_audit(store, ctx, "CREATE", ENTITY, goal_id, values)
    created = store.select_one("goals", {"id": goal_id}) or {"id": goal_id, **values}
    return present_goal(created)


def update_goal(
    store,
    ctx,
    raw_id: Any,
    changes: dict[str, Any],
    now: datetime | None = None,
) -> dict[str, Any]:
    """Patch a goal; reaching the target forces COMPLETED.

    Completion only moves one way: lowering ``current_amount`` below the target
    leaves a COMPLETED goal COMPLETED unless the client also sends a status.
    """
    goal_id = parse_id(raw_id, "Invalid goal ID")
    existing = require_owned(store, "goals", goal_id, ctx.actor, "Goal not found")

    update: dict[str, Any] = {}
    if "name" in changes:
        update["name"] = require_text(changes["name"], "Goal name is required")
    if "target_amount" in changes:
        update["target_amount"] = positive_amount(changes["target_amount"], TARGET_MESSAGE)
    if "current_amount" in changes:
        update["current_amount"] = _current_amount(changes["current_amount"])
    if "deadline" in changes:
        update["deadline"] = future_date(changes["deadline"], now)
    if "status" in changes:
        if changes["status"] not in GOAL_STATUSES:
            raise ValidationError("Status must be IN_PROGRESS, COMPLETED, or FAILED")
        update["status"] = changes["status"]

    target = update.get("target_amount", to_decimal(existing.get("target_amount")))
    current = update.get("current_amount", to_decimal(existing.get("current_amount")) or Decimal("0"))
    if target is not None:
        requested = update.get("status", existing.get("status") or "IN_PROGRESS")
        resolved = goal_status(quantize_money(current), quantize_money(target), requested)
        if resolved != existing.get("status") or "status" in update:
            update["status"] = resolved

    store.update("goals", goal_id, update)
    store.commit()
    record_audit(store, ctx, "UPDATE", ENTITY, goal_id, update)
    return present_goal({**existing, **update})


def delete_goal(store, ctx, raw_id: Any) -> None:
    goal_id = parse_id(raw_id, "Invalid goal ID")
    require_owned(store, "goals", goal_id, ctx.actor, "Goal not found")
    store.delete("goals", {"id": goal_id})
    store.commit()
    record_audit(store, ctx, "DELETE", ENTITY, goal_id, None)
