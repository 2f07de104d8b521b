from dataclasses import replace
from typing import Any

from psycopg.errors import UniqueViolation

from bookkeeper.core.config import settings
from bookkeeper.core.errors import Conflict, ValidationError
from bookkeeper.services.audit import record_audit
from bookkeeper.services.auth import hash_password, verify_password
from bookkeeper.services.common import now_utc
from bookkeeper.services.policy import require_self
from bookkeeper.services.validation import email_address, parse_id, password, require_text

ENTITY = "USER"


def present_user(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "name": row["name"],
        "email": row["email"],
        "created_at": row.get("created_at"),
        "updated_at": row.get("updated_at"),
    }


def list_users(store, ctx) -> list[dict[str, Any]]:
    return [present_user(row) for row in store.select("users", {"id": ctx.actor.id})]


def create_user(store, ctx, data: dict[str, Any]) -> dict[str, Any]:
    if not data.get("name") or not data.get("email") or not data.get("password"):
        raise ValidationError("Name, email and password are required")
    name = require_text(data["name"], "Name is required")
    email = email_address(data["email"])
    plain = password(data["password"], settings.password_min_len)
    if store.select_one("users", {"email": email}):
        raise Conflict("Email already registered")

    try:
        user_id = store.insert("users", {"name": name, "email": email, "password_hash": hash_password(plain)})
    except UniqueViolation:
        store.rollback()
        raise Conflict("Email already registered")
    store.commit()
    record_audit(store, ctx, "CREATE", ENTITY, user_id, {"name": name, "email": email})
    return {"id": user_id, "name": name, "email": email}


def update_user(store, ctx, raw_id: Any, changes: dict[str, Any]) -> dict[str, Any]:
    user_id = parse_id(raw_id, "Invalid user ID")
    existing = require_self(store, user_id, ctx.actor)

    update: dict[str, Any] = {}
    audited: dict[str, Any] = {}
    if changes.get("name") is not None:
        update["name"] = require_text(changes["name"], "Name is required")
    if changes.get("email") is not None:
        email = email_address(changes["email"])
        taken = store.select("users", {"email": email})
        if any(row["id"] != user_id for row in taken):
            raise Conflict("Email already registered by another user")
        update["email"] = email
    audited.update(update)

    if changes.get("new_password"):
        if not changes.get("current_password"):
            raise ValidationError("Current password is required to set new password")
        if not verify_password(changes["current_password"], existing["password_hash"]):
            raise ValidationError("Current password is incorrect")
        plain = password(changes["new_password"], settings.password_min_len)
        update["password_hash"] = hash_password(plain)
        audited["password_changed"] = True

    if update:
        update["updated_at"] = now_utc()
    try:
        store.update("users", user_id, update)
    except UniqueViolation:
        store.rollback()
        raise Conflict("Email already registered by another user")
    store.commit()
    record_audit(store, ctx, "UPDATE", ENTITY, user_id, audited)
    return present_user({**existing, **update})


def delete_user(store, ctx, raw_id: Any) -> None:
    user_id = parse_id(raw_id, "Invalid user ID")
    require_self(store, user_id, ctx.actor)
    store.delete("users", {"id": user_id})
    store.commit()
    # The actor row is gone, so the entry cannot reference it.
    record_audit(store, replace(ctx, actor=None), "DELETE", ENTITY, user_id, None)
