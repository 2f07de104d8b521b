"""Who may touch which rows.

Ownership is the base rule: a row whose ``user_id`` is the actor's id is fully
accessible, and rows owned by someone else are reported as missing. Account
membership adds a second layer used only by member management, where the
account's owner or an OWNER-role member may act. Existence of the account and
of the target membership row is always settled before any role is looked at.
"""

from typing import Any

from bookkeeper.core.errors import AuthorizationDenied, NotFound


def require_owned(store, table: str, row_id: int, actor, message: str) -> dict[str, Any]:
    row = store.select_one(table, {"id": row_id, "user_id": actor.id})
    if not row:
        raise NotFound(message)
    return row


def require_self(store, user_id: int, actor) -> dict[str, Any]:
    user = store.select_one("users", {"id": user_id})
    if not user:
        raise NotFound("User not found")
    if user["id"] != actor.id:
        raise AuthorizationDenied("You can only manage your own user")
    return user


def require_account(store, account_id: int) -> dict[str, Any]:
    account = store.select_one("accounts", {"id": account_id})
    if not account:
        raise NotFound("Account not found")
    return account


def require_member_row(store, account_id: int, member_id: int) -> dict[str, Any]:
    member = store.select_one("account_members", {"id": member_id, "account_id": account_id})
    if not member:
        raise NotFound("Account member not found")
    return member


def membership(store, account_id: int, user_id: int) -> dict[str, Any] | None:
    return store.select_one("account_members", {"account_id": account_id, "user_id": user_id})


def is_account_owner(store, account: dict[str, Any], actor) -> bool:
    if account["user_id"] == actor.id:
        return True
    row = membership(store, account["id"], actor.id)
    return bool(row and row["role"] == "OWNER")


def require_account_reader(store, account: dict[str, Any], actor) -> None:
    if account["user_id"] == actor.id:
        return
    if membership(store, account["id"], actor.id) is None:
        raise AuthorizationDenied("Access denied to this account")


def require_member_manager(store, account: dict[str, Any], actor, verb: str) -> None:
    if not is_account_owner(store, account, actor):
        raise AuthorizationDenied(f"Only account owners can {verb}")


def require_member_remover(store, account: dict[str, Any], member: dict[str, Any], actor) -> None:
    if member["user_id"] == actor.id:
        return
    require_member_manager(store, account, actor, "remove members")
