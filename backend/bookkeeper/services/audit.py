from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Any

import structlog
from psycopg.types.json import Jsonb

from bookkeeper.core.config import settings
from bookkeeper.core.errors import AuthorizationDenied, ValidationError
from bookkeeper.services.validation import (
    AUDIT_ACTIONS,
    optional_text,
    parse_date,
    parse_id,
    require_choice,
    require_text,
)

log = structlog.get_logger(__name__)


def _snapshot_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return f"{value:.2f}"
    if isinstance(value, datetime):
        return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: _snapshot_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_snapshot_value(v) for v in value]
    return value


def snapshot(changes: dict[str, Any] | None) -> dict[str, Any] | None:
    if changes is None:
        return None
    return _snapshot_value(changes)


def record_audit(
    store,
    ctx,
    action: str,
    entity: str,
    entity_id: int,
    changes: dict[str, Any] | None,
) -> None:
    """Append one audit row in its own transaction.

    Runs after the audited mutation has been committed. A failure here is
    logged and rolled back; it never reaches the caller.
    """
    try:
        payload = snapshot(changes)
        store.insert(
            "audit_logs",
            {
                "user_id": ctx.actor_id,
                "action": action,
                "entity": entity,
                "entity_id": entity_id,
                "changes": Jsonb(payload) if payload is not None else None,
                "ip_address": ctx.ip_address,
                "user_agent": ctx.user_agent,
            },
            returning=None,
        )
        store.commit()
    except Exception:
        log.warning("audit_write_failed", action=action, entity=entity, entity_id=entity_id, exc_info=True)
        try:
            store.rollback()
        except Exception:
            log.warning("audit_rollback_failed", entity=entity, entity_id=entity_id, exc_info=True)


def _present(row: dict[str, Any]) -> dict[str, Any]:
    changes = row.get("changes")
    return {
        "id": row["id"],
        "user_id": row.get("user_id"),
        "user_name": row.get("user_name"),
        "action": row["action"],
        "entity": row["entity"],
        "entity_id": row["entity_id"],
        "changes": changes.obj if isinstance(changes, Jsonb) else changes,
        "ip_address": row.get("ip_address"),
        "user_agent": row.get("user_agent"),
        "created_at": row.get("created_at"),
    }


def list_audit_logs(store, ctx, filters: dict[str, Any]) -> list[dict[str, Any]]:
    sql = """
        SELECT l.id, l.user_id, l.action, l.entity, l.entity_id, l.changes,
               l.ip_address, l.user_agent, l.created_at,
               u.name AS user_name
        FROM audit_logs l
        LEFT JOIN users u ON u.id = l.user_id
        WHERE l.user_id = %s
    """
    params: list[Any] = [ctx.actor_id]
    entity = optional_text(filters.get("entity"))
    if entity:
        sql += " AND l.entity = %s"
        params.append(entity.upper())
    if filters.get("action"):
        sql += " AND l.action = %s"
        params.append(require_choice(filters["action"], AUDIT_ACTIONS, "Action"))
    if filters.get("start_date"):
        start = parse_date(filters["start_date"], "Invalid start_date, expected YYYY-MM-DD")
        sql += " AND l.created_at >= %s"
        params.append(datetime(start.year, start.month, start.day, tzinfo=timezone.utc))
    if filters.get("end_date"):
        end = parse_date(filters["end_date"], "Invalid end_date, expected YYYY-MM-DD")
        sql += " AND l.created_at < %s"
        params.append(datetime(end.year, end.month, end.day, tzinfo=timezone.utc) + timedelta(days=1))
    sql += " ORDER BY l.created_at DESC, l.id DESC LIMIT %s"
    params.append(settings.audit_log_limit)
    return [_present(row) for row in store.fetch_all(sql, params)]


def create_audit_log(store, ctx, data: dict[str, Any]) -> dict[str, Any]:
    action = data.get("action")
    if not action or action not in AUDIT_ACTIONS:
        raise ValidationError("Action must be CREATE, UPDATE, DELETE, or LOGIN")
    entity = require_text(data.get("entity"), "Entity is required").upper()
    if data.get("entity_id") in (None, ""):
        raise ValidationError("Entity ID is required")
    entity_id = parse_id(data.get("entity_id"), "Invalid entity ID")
    changes = data.get("changes")
    if changes is not None and not isinstance(changes, dict):
        raise ValidationError("Changes must be an object")

    values = {
        "user_id": ctx.actor_id,
        "action": action,
        "entity": entity,
        "entity_id": entity_id,
        "changes": Jsonb(snapshot(changes)) if changes is not None else None,
        "ip_address": optional_text(data.get("ip_address")) or ctx.ip_address,
        "user_agent": optional_text(data.get("user_agent")) or ctx.user_agent,
    }
    log_id = store.insert("audit_logs", values)
    store.commit()
    return _present(store.select_one("audit_logs", {"id": log_id}) or {"id": log_id, **values})


def reject_modification() -> None:
    raise AuthorizationDenied("Audit logs cannot be modified")
