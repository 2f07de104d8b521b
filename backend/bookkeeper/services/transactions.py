from typing import Any

from bookkeeper.core.errors import ValidationError
from bookkeeper.services.audit import record_audit
from bookkeeper.services.common import money, now_utc
from bookkeeper.services.policy import require_owned
from bookkeeper.services.validation import (
    TRANSACTION_STATUSES,
    TRANSACTION_TYPES,
    optional_text,
    parse_date,
    parse_id,
    positive_amount,
    require_choice,
    require_text,
)

ENTITY = "TRANSACTION"
AMOUNT_MESSAGE = "Amount must be a positive number"

LIST_SQL = """
    SELECT t.id, t.user_id, t.account_id, t.category_id, t.description, t.amount,
           t.type, t.status, t.due_date, t.paid_date, t.observation,
           t.created_at, t.updated_at,
           a.name AS account_name, a.type AS account_type,
           c.name AS category_name, c.type AS category_type, c.icon AS category_icon,
           ARRAY(
               SELECT tt.tag_id FROM transaction_tags tt
               WHERE tt.transaction_id = t.id ORDER BY tt.tag_id
           ) AS tag_ids
    FROM transactions t
    LEFT JOIN accounts a ON a.id = t.account_id
    LEFT JOIN categories c ON c.id = t.category_id
    WHERE t.user_id = %s
"""


def present_transaction(row: dict[str, Any]) -> dict[str, Any]:
    data = {
        "id": row["id"],
        "user_id": row.get("user_id"),
        "account_id": row.get("account_id"),
        "category_id": row.get("category_id"),
        "description": row["description"],
        "amount": money(row.get("amount")),
        "type": row.get("type"),
        "status": row.get("status"),
        "due_date": row.get("due_date"),
        "paid_date": row.get("paid_date"),
        "observation": row.get("observation"),
        "tag_ids": list(row.get("tag_ids") or []),
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }
    if "account_name" in row:
        data.update(
            account_name=row.get("account_name"),
            account_type=row.get("account_type"),
            category_name=row.get("category_name"),
            category_type=row.get("category_type"),
            category_icon=row.get("category_icon"),
        )
    return data


def _owned_account_id(store, actor, value: Any) -> int:
    if value is None or value == "":
        raise ValidationError("Account ID is required")
    account_id = parse_id(value, "Invalid account ID")
    if not store.select_one("accounts", {"id": account_id, "user_id": actor.id}):
        raise ValidationError("Account not found")
    return account_id


def _owned_category_id(store, actor, value: Any) -> int | None:
    if value is None or value == "":
        return None
    category_id = parse_id(value, "Invalid category ID")
    if not store.select_one("categories", {"id": category_id, "user_id": actor.id}):
        raise ValidationError("Category not found")
    return category_id


def _owned_tag_ids(store, actor, values: Any) -> list[int]:
    if values is None:
        return []
    if not isinstance(values, (list, tuple)):
        raise ValidationError("tag_ids must be a list")
    tag_ids: list[int] = []
    for value in values:
        tag_id = parse_id(value, "Invalid tag ID")
        if tag_id in tag_ids:
            continue
        if not store.select_one("tags", {"id": tag_id, "user_id": actor.id}):
            raise ValidationError("Tag not found")
        tag_ids.append(tag_id)
    return tag_ids


def _current_tag_ids(store, transaction_id: int) -> list[int]:
    rows = store.select("transaction_tags", {"transaction_id": transaction_id}, order_by="tag_id")
    return [row["tag_id"] for row in rows]


def _replace_tags(store, transaction_id: int, tag_ids: list[int]) -> None:
    store.delete("transaction_tags", {"transaction_id": transaction_id})
    for tag_id in tag_ids:
        store.insert("transaction_tags", {"transaction_id": transaction_id, "tag_id": tag_id}, returning=None)


def list_transactions(store, ctx, filters: dict[str, Any]) -> list[dict[str, Any]]:
    sql = LIST_SQL
    params: list[Any] = [ctx.actor.id]
    if filters.get("account_id"):
        sql += " AND t.account_id = %s"
        params.append(parse_id(filters["account_id"], "Invalid account ID"))
    if filters.get("category_id"):
        sql += " AND t.category_id = %s"
        params.append(parse_id(filters["category_id"], "Invalid category ID"))
    if filters.get("type"):
        sql += " AND t.type = %s"
        params.append(require_choice(filters["type"], TRANSACTION_TYPES, "Transaction type"))
    if filters.get("status"):
        sql += " AND t.status = %s"
        params.append(require_choice(filters["status"], TRANSACTION_STATUSES, "Status"))
    if filters.get("start_date"):
        sql += " AND t.due_date >= %s"
        params.append(parse_date(filters["start_date"], "Invalid start_date, expected YYYY-MM-DD"))
    if filters.get("end_date"):
        sql += " AND t.due_date <= %s"
        params.append(parse_date(filters["end_date"], "Invalid end_date, expected YYYY-MM-DD"))
    sql += " ORDER BY t.due_date DESC, t.id DESC"
    return [present_transaction(row) for row in store.fetch_all(sql, params)]


def create_transaction(store, ctx, data: dict[str, Any]) -> dict[str, Any]:
    description = require_text(data.get("description"), "Transaction description is required")
    amount = positive_amount(data.get("amount"), AMOUNT_MESSAGE)
    tx_type = data.get("type")
    if tx_type not in TRANSACTION_TYPES:
        raise ValidationError("Transaction type must be INCOME, EXPENSE, or TRANSFER")
    status = data.get("status") or "PAID"
    require_choice(status, TRANSACTION_STATUSES, "Status")
    if not data.get("due_date"):
        raise ValidationError("Due date is required")
    due_date = parse_date(data["due_date"], "Due date must be a valid date (YYYY-MM-DD)")
    paid_date = None
    if data.get("paid_date"):
        paid_date = parse_date(data["paid_date"], "Paid date must be a valid date (YYYY-MM-DD)")

    account_id = _owned_account_id(store, ctx.actor, data.get("account_id"))
    category_id = _owned_category_id(store, ctx.actor, data.get("category_id"))
    tag_ids = _owned_tag_ids(store, ctx.actor, data.get("tag_ids"))

    values = {
        "user_id": ctx.actor.id,
        "account_id": account_id,
        "category_id": category_id,
        "description": description,
        "amount": amount,
        "type": tx_type,
        "status": status,
        "due_date": due_date,
        "paid_date": paid_date,
        "observation": optional_text(data.get("observation")),
    }
    transaction_id = store.insert("transactions", values)
    _replace_tags(store, transaction_id, tag_ids)
    store.commit()
    record_audit(store, ctx, "CREATE", ENTITY, transaction_id, {**values, "tag_ids": tag_ids})
    created = store.select_one("transactions", {"id": transaction_id}) or {"id": transaction_id, **values}
    return present_transaction({**created, "tag_ids": tag_ids})


def update_transaction(store, ctx, raw_id: Any, changes: dict[str, Any]) -> dict[str, Any]:
    transaction_id = parse_id(raw_id, "Invalid transaction ID")
    existing = require_owned(store, "transactions", transaction_id, ctx.actor, "Transaction not found")

    update: dict[str, Any] = {}
    if "description" in changes:
        update["description"] = require_text(changes["description"], "Transaction description is required")
    if "amount" in changes:
        update["amount"] = positive_amount(changes["amount"], AMOUNT_MESSAGE)
    if "type" in changes:
        if changes["type"] not in TRANSACTION_TYPES:
            raise ValidationError("Transaction type must be INCOME, EXPENSE, or TRANSFER")
        update["type"] = changes["type"]
    if "account_id" in changes:
        update["account_id"] = _owned_account_id(store, ctx.actor, changes["account_id"])
    if "category_id" in changes:
        update["category_id"] = _owned_category_id(store, ctx.actor, changes["category_id"])
    if "due_date" in changes:
        if not changes["due_date"]:
            raise ValidationError("Due date is required")
        update["due_date"] = parse_date(changes["due_date"], "Due date must be a valid date (YYYY-MM-DD)")
    if "paid_date" in changes:
        update["paid_date"] = (
            parse_date(changes["paid_date"], "Paid date must be a valid date (YYYY-MM-DD)")
            if changes["paid_date"]
            else None
        )
    if "status" in changes:
        update["status"] = require_choice(changes["status"], TRANSACTION_STATUSES, "Status")
    if "observation" in changes:
        update["observation"] = optional_text(changes["observation"])

    tag_ids = None
    if "tag_ids" in changes:
        tag_ids = _owned_tag_ids(store, ctx.actor, changes["tag_ids"])

    if update:
        update["updated_at"] = now_utc()
    store.update("transactions", transaction_id, update)
    if tag_ids is not None:
        _replace_tags(store, transaction_id, tag_ids)
    store.commit()

    audited = dict(update)
    if tag_ids is not None:
        audited["tag_ids"] = tag_ids
    record_audit(store, ctx, "UPDATE", ENTITY, transaction_id, audited)

    if tag_ids is None:
        tag_ids = _current_tag_ids(store, transaction_id)
    return present_transaction({**existing, **update, "tag_ids": tag_ids})


def delete_transaction(store, ctx, raw_id: Any) -> None:
    transaction_id = parse_id(raw_id, "Invalid transaction ID")
    require_owned(store, "transactions", transaction_id, ctx.actor, "Transaction not found")
    store.delete("transactions", {"id": transaction_id})
    store.commit()
    record_audit(store, ctx, "DELETE", ENTITY, transaction_id, None)
