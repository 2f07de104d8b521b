from typing import Any

from psycopg.errors import UniqueViolation

from bookkeeper.core.errors import Conflict, ValidationError
from bookkeeper.services.audit import record_audit
from bookkeeper.services.policy import (
    require_account,
    require_account_reader,
    require_member_manager,
    require_member_remover,
    require_member_row,
)
from bookkeeper.services.validation import MEMBER_ROLES, parse_id

ENTITY = "ACCOUNT_MEMBER"
ROLE_MESSAGE = "Role must be OWNER, EDITOR, or VIEWER"
ALREADY_MEMBER = "User is already a member of this account"

MEMBERS_SQL = """
    SELECT m.id, m.account_id, m.user_id, m.role, m.created_at,
           u.name AS user_name, u.email AS user_email
    FROM account_members m
    LEFT JOIN users u ON u.id = m.user_id
    WHERE m.account_id = %s
    ORDER BY m.id
"""


def present_member(row: dict[str, Any]) -> dict[str, Any]:
    data = {
        "id": row["id"],
        "account_id": row["account_id"],
        "user_id": row["user_id"],
        "role": row["role"],
        "created_at": row.get("created_at"),
    }
    if "user_name" in row:
        data["user_name"] = row.get("user_name")
        data["user_email"] = row.get("user_email")
    return data


def _ids(raw_account_id: Any, raw_member_id: Any) -> tuple[int, int]:
    message = "Invalid account ID or member ID"
    return parse_id(raw_account_id, message), parse_id(raw_member_id, message)


def list_members(store, ctx, raw_account_id: Any) -> list[dict[str, Any]]:
    account_id = parse_id(raw_account_id, "Invalid account ID")
    account = require_account(store, account_id)
    require_account_reader(store, account, ctx.actor)
    return [present_member(row) for row in store.fetch_all(MEMBERS_SQL, (account_id,))]


def add_member(store, ctx, raw_account_id: Any, data: dict[str, Any]) -> dict[str, Any]:
    account_id = parse_id(raw_account_id, "Invalid account ID")
    if data.get("user_id") in (None, ""):
        raise ValidationError("User ID is required")
    role = data.get("role") or "EDITOR"
    if role not in MEMBER_ROLES:
        raise ValidationError(ROLE_MESSAGE)

    account = require_account(store, account_id)
    require_member_manager(store, account, ctx.actor, "add members")

    user_id = parse_id(data["user_id"], "Invalid user ID")
    if not store.select_one("users", {"id": user_id}):
        raise ValidationError("Target user not found")
    if store.select_one("account_members", {"account_id": account_id, "user_id": user_id}):
        raise Conflict(ALREADY_MEMBER)

    values = {"account_id": account_id, "user_id": user_id, "role": role}
    try:
        member_id = store.insert("account_members", values)
    except UniqueViolation:
        store.rollback()
        raise Conflict(ALREADY_MEMBER)
    store.commit()
    record_audit(store, ctx, "CREATE", ENTITY, member_id, values)
    created = store.select_one("account_members", {"id": member_id}) or {"id": member_id, **values}
    return present_member(created)


def update_member(store, ctx, raw_account_id: Any, raw_member_id: Any, data: dict[str, Any]) -> dict[str, Any]:
    account_id, member_id = _ids(raw_account_id, raw_member_id)
    role = data.get("role")
    if not role or role not in MEMBER_ROLES:
        raise ValidationError(ROLE_MESSAGE)

    account = require_account(store, account_id)
    member = require_member_row(store, account_id, member_id)
    require_member_manager(store, account, ctx.actor, "update member roles")

    store.update("account_members", member_id, {"role": role})
    store.commit()
    record_audit(store, ctx, "UPDATE", ENTITY, member_id, {"role": role})
    return present_member({**member, "role": role})


def remove_member(store, ctx, raw_account_id: Any, raw_member_id: Any) -> None:
    account_id, member_id = _ids(raw_account_id, raw_member_id)
    account = require_account(store, account_id)
    member = require_member_row(store, account_id, member_id)
    require_member_remover(store, account, member, ctx.actor)

    store.delete("account_members", {"id": member_id})
    store.commit()
    record_audit(store, ctx, "DELETE", ENTITY, member_id, None)
