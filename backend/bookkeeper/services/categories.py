from typing import Any

from bookkeeper.core.errors import Conflict, ValidationError
from bookkeeper.services.audit import record_audit
from bookkeeper.services.policy import require_owned
from bookkeeper.services.validation import (
    CATEGORY_TYPES,
    optional_text,
    parse_id,
    require_choice,
    require_text,
)

ENTITY = "CATEGORY"


def present_category(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "user_id": row.get("user_id"),
        "parent_id": row.get("parent_id"),
        "name": row["name"],
        "type": row["type"],
        "icon": row.get("icon"),
    }


def has_children(store, category_id: int) -> bool:
    return store.select_one("categories", {"parent_id": category_id}) is not None


def list_categories(store, ctx) -> list[dict[str, Any]]:
    rows = store.select("categories", {"user_id": ctx.actor.id})
    return [present_category(row) for row in rows]


def create_category(store, ctx, data: dict[str, Any]) -> dict[str, Any]:
    name = require_text(data.get("name"), "Category name is required")
    category_type = require_choice(data.get("type"), CATEGORY_TYPES, "Category type")

    parent_id = None
    if data.get("parent_id") not in (None, ""):
        parent_id = parse_id(data["parent_id"], "Invalid parent category ID")
        parent = store.select_one("categories", {"id": parent_id, "user_id": ctx.actor.id})
        if not parent:
            raise ValidationError("Parent category not found")
        if parent["type"] != category_type:
            raise ValidationError("Parent category must have the same type")

    values = {
        "user_id": ctx.actor.id,
        "parent_id": parent_id,
        "name": name,
        "type": category_type,
        "icon": optional_text(data.get("icon")),
    }
    category_id = store.insert("categories", values)
    store.commit()
    record_audit(store, ctx, "CREATE", ENTITY, category_id, values)
    created = store.select_one("categories", {"id": category_id}) or {"id": category_id, **values}
    return present_category(created)


def update_category(store, ctx, raw_id: Any, changes: dict[str, Any]) -> dict[str, Any]:
    category_id = parse_id(raw_id, "Invalid category ID")
    existing = require_owned(store, "categories", category_id, ctx.actor, "Category not found")

    update: dict[str, Any] = {}
    if "name" in changes:
        update["name"] = require_text(changes["name"], "Category name is required")
    if "type" in changes:
        new_type = require_choice(changes["type"], CATEGORY_TYPES, "Category type")
        if new_type != existing["type"]:
            if has_children(store, category_id):
                raise Conflict("Cannot change category type when it has child categories")
            if existing.get("parent_id") is not None:
                parent = store.select_one("categories", {"id": existing["parent_id"]})
                if parent and parent["type"] != new_type:
                    raise ValidationError("Category type must match its parent category")
        update["type"] = new_type
    if "icon" in changes:
        update["icon"] = optional_text(changes["icon"])

    store.update("categories", category_id, update)
    store.commit()
    record_audit(store, ctx, "UPDATE", ENTITY, category_id, update)
    return present_category({**existing, **update})


def delete_category(store, ctx, raw_id: Any) -> None:
    category_id = parse_id(raw_id, "Invalid category ID")
    require_owned(store, "categories", category_id, ctx.actor, "Category not found")
    if has_children(store, category_id):
        raise Conflict("Cannot delete category with child categories")

    store.delete("categories", {"id": category_id})
    store.commit()
    record_audit(store, ctx, "DELETE", ENTITY, category_id, None)
