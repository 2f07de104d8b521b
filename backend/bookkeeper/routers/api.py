from contextlib import contextmanager

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from bookkeeper.core.errors import ApiError, UnexpectedError
from bookkeeper.db.store import store_session
from bookkeeper.models.payloads import (
    AccountCreate,
    AccountUpdate,
    AuditLogCreate,
    CategoryCreate,
    CategoryUpdate,
    GoalCreate,
    GoalUpdate,
    MemberCreate,
    MemberUpdate,
    TagCreate,
    TagUpdate,
    TransactionCreate,
    TransactionUpdate,
    UserCreate,
    UserUpdate,
)
from bookkeeper.services import accounts, audit, categories, goals, members, tags, transactions, users
from bookkeeper.services.auth import RequestContext, optional_context, request_context
from bookkeeper.services.common import supplied

log = structlog.get_logger(__name__)

router = APIRouter()


@contextmanager
def guard(message: str):
    """Let service errors through; anything else becomes a generic 500 with ``message``."""
    try:
        yield
    except ApiError:
        raise
    except Exception:
        log.exception("request_failed", operation=message)
        raise UnexpectedError(message)


def ok(message: str, data=None) -> dict:
    return {"message": message, "data": data}


def no_content() -> Response:
    return Response(status_code=204)


# Users


@router.get("/users")
def list_users(ctx: RequestContext = Depends(request_context)):
    with guard("Error fetching user data"), store_session() as store:
        return ok("User data retrieved", users.list_users(store, ctx))


@router.post("/users", status_code=201)
def create_user(payload: UserCreate, ctx: RequestContext = Depends(optional_context)):
    with guard("Error creating user"), store_session() as store:
        return ok("User created successfully", users.create_user(store, ctx, payload.model_dump()))


@router.put("/users/{user_id}")
def update_user(user_id: str, payload: UserUpdate, ctx: RequestContext = Depends(request_context)):
    with guard("Error updating user"), store_session() as store:
        return ok("User updated successfully", users.update_user(store, ctx, user_id, supplied(payload)))


@router.delete("/users/{user_id}", status_code=204)
def delete_user(req: Request, user_id: str, ctx: RequestContext = Depends(request_context)):
    with guard("Error deleting user"), store_session() as store:
        users.delete_user(store, ctx, user_id)
    req.session.clear()
    return no_content()


# Accounts


@router.get("/accounts")
def list_accounts(ctx: RequestContext = Depends(request_context)):
    with guard("Error fetching accounts"), store_session() as store:
        return ok("Accounts retrieved successfully", accounts.list_accounts(store, ctx))


@router.post("/accounts", status_code=201)
def create_account(payload: AccountCreate, ctx: RequestContext = Depends(request_context)):
    with guard("Error creating account"), store_session() as store:
        return ok("Account created successfully", accounts.create_account(store, ctx, payload.model_dump()))


@router.put("/accounts/{account_id}")
def update_account(account_id: str, payload: AccountUpdate, ctx: RequestContext = Depends(request_context)):
    with guard("Error updating account"), store_session() as store:
        data = accounts.update_account(store, ctx, account_id, supplied(payload))
        return ok("Account updated successfully", data)


@router.delete("/accounts/{account_id}", status_code=204)
def delete_account(account_id: str, ctx: RequestContext = Depends(request_context)):
    with guard("Error deleting account"), store_session() as store:
        accounts.delete_account(store, ctx, account_id)
    return no_content()


# Account members


@router.get("/account-members/account/{account_id}")
def list_account_members(account_id: str, ctx: RequestContext = Depends(request_context)):
    with guard("Error fetching account members"), store_session() as store:
        return ok("Account members retrieved successfully", members.list_members(store, ctx, account_id))


@router.post("/account-members/account/{account_id}", status_code=201)
def add_account_member(account_id: str, payload: MemberCreate, ctx: RequestContext = Depends(request_context)):
    with guard("Error adding account member"), store_session() as store:
        data = members.add_member(store, ctx, account_id, payload.model_dump())
        return ok("Account member added successfully", data)


@router.put("/account-members/account/{account_id}/{member_id}")
def update_account_member(
    account_id: str,
    member_id: str,
    payload: MemberUpdate,
    ctx: RequestContext = Depends(request_context),
):
    with guard("Error updating account member"), store_session() as store:
        data = members.update_member(store, ctx, account_id, member_id, payload.model_dump())
        return ok("Account member updated successfully", data)


@router.delete("/account-members/account/{account_id}/{member_id}", status_code=204)
def remove_account_member(account_id: str, member_id: str, ctx: RequestContext = Depends(request_context)):
    with guard("Error removing account member"), store_session() as store:
        members.remove_member(store, ctx, account_id, member_id)
    return no_content()


# Categories


@router.get("/categories")
def list_categories(ctx: RequestContext = Depends(request_context)):
    with guard("Error fetching categories"), store_session() as store:
        return ok("Categories retrieved successfully", categories.list_categories(store, ctx))


@router.post("/categories", status_code=201)
def create_category(payload: CategoryCreate, ctx: RequestContext = Depends(request_context)):
    with guard("Error creating category"), store_session() as store:
        return ok("Category created successfully", categories.create_category(store, ctx, payload.model_dump()))


@router.put("/categories/{category_id}")
def update_category(category_id: str, payload: CategoryUpdate, ctx: RequestContext = Depends(request_context)):
    with guard("Error updating category"), store_session() as store:
        data = categories.update_category(store, ctx, category_id, supplied(payload))
        return ok("Category updated successfully", data)


@router.delete("/categories/{category_id}", status_code=204)
def delete_category(category_id: str, ctx: RequestContext = Depends(request_context)):
    with guard("Error deleting category"), store_session() as store:
        categories.delete_category(store, ctx, category_id)
    return no_content()


# Transactions


@router.get("/transactions")
def list_transactions(
    account_id: str | None = None,
    category_id: str | None = None,
    type: str | None = None,
    status: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    ctx: RequestContext = Depends(request_context),
):
    filters = {
        "account_id": account_id,
        "category_id": category_id,
        "type": type,
        "status": status,
        "start_date": start_date,
        "end_date": end_date,
    }
    with guard("Error fetching transactions"), store_session() as store:
        return ok("Transactions retrieved successfully", transactions.list_transactions(store, ctx, filters))


@router.post("/transactions", status_code=201)
def create_transaction(payload: TransactionCreate, ctx: RequestContext = Depends(request_context)):
    with guard("Error creating transaction"), store_session() as store:
        data = transactions.create_transaction(store, ctx, payload.model_dump())
        return ok("Transaction created successfully", data)


@router.put("/transactions/{transaction_id}")
def update_transaction(
    transaction_id: str,
    payload: TransactionUpdate,
    ctx: RequestContext = Depends(request_context),
):
    with guard("Error updating transaction"), store_session() as store:
        data = transactions.update_transaction(store, ctx, transaction_id, supplied(payload))
        return ok("Transaction updated successfully", data)


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(transaction_id: str, ctx: RequestContext = Depends(request_context)):
    with guard("Error deleting transaction"), store_session() as store:
        transactions.delete_transaction(store, ctx, transaction_id)
    return no_content()


# Goals


@router.get("/goals")
def list_goals(status: str | None = None, ctx: RequestContext = Depends(request_context)):
    with guard("Error fetching goals"), store_session() as store:
        return ok("Goals retrieved successfully", goals.list_goals(store, ctx, {"status": status}))


@router.post("/goals", status_code=201)
def create_goal(payload: GoalCreate, ctx: RequestContext = Depends(request_context)):
    with guard("Error creating goal"), store_session() as store:
        return ok("Goal created successfully", goals.create_goal(store, ctx, payload.model_dump()))


@router.put("/goals/{goal_id}")
def update_goal(goal_id: str, payload: GoalUpdate, ctx: RequestContext = Depends(request_context)):
    with guard("Error updating goal"), store_session() as store:
        return ok("Goal updated successfully", goals.update_goal(store, ctx, goal_id, supplied(payload)))


@router.delete("/goals/{goal_id}", status_code=204)
def delete_goal(goal_id: str, ctx: RequestContext = Depends(request_context)):
    with guard("Error deleting goal"), store_session() as store:
        goals.delete_goal(store, ctx, goal_id)
    return no_content()


# Tags


@router.get("/tags")
def list_tags(ctx: RequestContext = Depends(request_context)):
    with guard("Error fetching tags"), store_session() as store:
        return ok("Tags retrieved successfully", tags.list_tags(store, ctx))


@router.post("/tags", status_code=201)
def create_tag(payload: TagCreate, ctx: RequestContext = Depends(request_context)):
    with guard("Error creating tag"), store_session() as store:
        return ok("Tag created successfully", tags.create_tag(store, ctx, payload.model_dump()))


@router.put("/tags/{tag_id}")
def update_tag(tag_id: str, payload: TagUpdate, ctx: RequestContext = Depends(request_context)):
    with guard("Error updating tag"), store_session() as store:
        return ok("Tag updated successfully", tags.update_tag(store, ctx, tag_id, supplied(payload)))


@router.delete("/tags/{tag_id}", status_code=204)
def delete_tag(tag_id: str, ctx: RequestContext = Depends(request_context)):
    with guard("Error deleting tag"), store_session() as store:
        tags.delete_tag(store, ctx, tag_id)
    return no_content()


# Audit logs


@router.get("/audit-logs")
def list_audit_logs(
    entity: str | None = None,
    action: str | None = None,
    start_date: str | None = None,
    end_date: str | None = None,
    ctx: RequestContext = Depends(request_context),
):
    filters = {"entity": entity, "action": action, "start_date": start_date, "end_date": end_date}
    with guard("Error fetching audit logs"), store_session() as store:
        return ok("Audit logs retrieved successfully", audit.list_audit_logs(store, ctx, filters))


@router.post("/audit-logs", status_code=201)
def create_audit_log(payload: AuditLogCreate, ctx: RequestContext = Depends(request_context)):
    with guard("Error creating audit log"), store_session() as store:
        return ok("Audit log created successfully", audit.create_audit_log(store, ctx, payload.model_dump()))


@router.put("/audit-logs/{log_id}")
def update_audit_log(log_id: str):
    audit.reject_modification()


@router.delete("/audit-logs/{log_id}")
def delete_audit_log(log_id: str):
    audit.reject_modification()
