from typing import Any

from psycopg.errors import UniqueViolation

from bookkeeper.core.errors import Conflict
from bookkeeper.services.audit import record_audit
from bookkeeper.services.policy import require_owned
from bookkeeper.services.validation import hex_color, parse_id, require_text

ENTITY = "TAG"
DUPLICATE_NAME = "Tag with this name already exists"


def present_tag(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": row["id"],
        "user_id": row.get("user_id"),
        "name": row["name"],
        "color": row.get("color"),
    }


def _name_taken(store, user_id: int, name: str, exclude_id: int | None = None) -> bool:
    rows = store.select("tags", {"user_id": user_id, "name": name})
    return any(row["id"] != exclude_id for row in rows)


def list_tags(store, ctx) -> list[dict[str, Any]]:
    return [present_tag(row) for row in store.select("tags", {"user_id": ctx.actor.id}, order_by="name")]


def create_tag(store, ctx, data: dict[str, Any]) -> dict[str, Any]:
    name = require_text(data.get("name"), "Tag name is required")
    color = hex_color(data.get("color"))
    if _name_taken(store, ctx.actor.id, name):
        raise Conflict(DUPLICATE_NAME)

    values = {"user_id": ctx.actor.id, "name": name, "color": color}
    try:
        tag_id = store.insert("tags", values)
    except UniqueViolation:
        store.rollback()
        raise Conflict(DUPLICATE_NAME)
    store.commit()
    record_audit(store, ctx, "CREATE", ENTITY, tag_id, values)
    created = store.select_one("tags", {"id": tag_id}) or {"id": tag_id, **values}
    return present_tag(created)


def update_tag(store, ctx, raw_id: Any, changes: dict[str, Any]) -> dict[str, Any]:
    tag_id = parse_id(raw_id, "Invalid tag ID")
    existing = require_owned(store, "tags", tag_id, ctx.actor, "Tag not found")

    update: dict[str, Any] = {}
    if "name" in changes:
        name = require_text(changes["name"], "Tag name is required")
        if _name_taken(store, ctx.actor.id, name, exclude_id=tag_id):
            raise Conflict(DUPLICATE_NAME)
        update["name"] = name
    if "color" in changes:
        update["color"] = hex_color(changes["color"])

    try:
        store.update("tags", tag_id, update)
    except UniqueViolation:
        store.rollback()
        raise Conflict(DUPLICATE_NAME)
    store.commit()
    record_audit(store, ctx, "UPDATE", ENTITY, tag_id, update)
    return present_tag({**existing, **update})


def delete_tag(store, ctx, raw_id: Any) -> None:
    tag_id = parse_id(raw_id, "Invalid tag ID")
    require_owned(store, "tags", tag_id, ctx.actor, "Tag not found")
    store.delete("tags", {"id": tag_id})
    store.commit()
    record_audit(store, ctx, "DELETE", ENTITY, tag_id, None)
