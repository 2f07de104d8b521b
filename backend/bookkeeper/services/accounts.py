from typing import Any

from bookkeeper.core.errors import Conflict
from bookkeeper.services.audit import record_audit
from bookkeeper.services.common import money
from bookkeeper.services.policy import require_owned
from bookkeeper.services.validation import (
    ACCOUNT_TYPES,
    any_amount,
    hex_color,
    parse_id,
    require_choice,
    require_text,
)

ENTITY = "ACCOUNT"


def present_account(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "user_id": row.get("user_id"),
        "name": row["name"],
        "type": row.get("type"),
        "initial_balance": money(row.get("initial_balance")),
        "color": row.get("color"),
        "created_at": row.get("created_at"),
    }


def list_accounts(store, ctx) -> list[dict[str, Any]]:
    rows = store.select("accounts", {"user_id": ctx.actor.id})
    return [present_account(row) for row in rows]


def create_account(store, ctx, data: dict[str, Any]) -> dict[str, Any]:
    name = require_text(data.get("name"), "Account name is required")
    account_type = data.get("type") or "CHECKING"
    require_choice(account_type, ACCOUNT_TYPES, "Account type")
    raw_balance = data.get("initial_balance")
    if raw_balance is None or raw_balance == "":
        raw_balance = "0.00"
    initial_balance = any_amount(raw_balance, "Initial balance must be a valid number")
    color = hex_color(data.get("color"))

    values = {
        "user_id": ctx.actor.id,
        "name": name,
        "type": account_type,
        "initial_balance": initial_balance,
        "color": color,
    }
    account_id = store.insert("accounts", values)
    store.commit()
    record_audit(store, ctx, "CREATE", ENTITY, account_id, values)
    created = store.select_one("accounts", {"id": account_id}) or {"id": account_id, **values}
    return present_account(created)


def update_account(store, ctx, raw_id: Any, changes: dict[str, Any]) -> dict[str, Any]:
    account_id = parse_id(raw_id, "Invalid account ID")
    existing = require_owned(store, "accounts", account_id, ctx.actor, "Account not found")

    update: dict[str, Any] = {}
    if "name" in changes:
        update["name"] = require_text(changes["name"], "Account name is required")
    if "type" in changes:
        update["type"] = require_choice(changes["type"], ACCOUNT_TYPES, "Account type")
    if "color" in changes:
        update["color"] = hex_color(changes["color"])

    store.update("accounts", account_id, update)
    store.commit()
    record_audit(store, ctx, "UPDATE", ENTITY, account_id, update)
    return present_account({**existing, **update})


def delete_account(store, ctx, raw_id: Any) -> None:
    account_id = parse_id(raw_id, "Invalid account ID")
    require_owned(store, "accounts", account_id, ctx.actor, "Account not found")
    if store.select_one("transactions", {"account_id": account_id}):
        raise Conflict("Cannot delete account with transactions")

    store.delete("accounts", {"id": account_id})
    store.commit()
    record_audit(store, ctx, "DELETE", ENTITY, account_id, None)
