from typing import Any

from pydantic import BaseModel, ConfigDict

Amount = str | int | float | None
IdValue = str | int | None


class Payload(BaseModel):
    """Loosely typed request body.

    Field rules live in ``services.validation``; update handlers read
    ``model_fields_set`` to tell omitted fields from explicit nulls.
    """

    model_config = ConfigDict(extra="ignore")


class LoginRequest(Payload):
    email: str | None = None
    password: str | None = None


class UserCreate(Payload):
    name: str | None = None
    email: str | None = None
    password: str | None = None


class UserUpdate(Payload):
    name: str | None = None
    email: str | None = None
    current_password: str | None = None
    new_password: str | None = None


class AccountCreate(Payload):
    name: str | None = None
    type: str | None = None
    initial_balance: Amount = None
    color: str | None = None


class AccountUpdate(Payload):
    name: str | None = None
    type: str | None = None
    color: str | None = None


class MemberCreate(Payload):
    user_id: IdValue = None
    role: str | None = None


class MemberUpdate(Payload):
    role: str | None = None


class CategoryCreate(Payload):
    name: str | None = None
    type: str | None = None
    icon: str | None = None
    parent_id: IdValue = None


class CategoryUpdate(Payload):
    name: str | None = None
    type: str | None = None
    icon: str | None = None


class TransactionCreate(Payload):
    description: str | None = None
    amount: Amount = None
    type: str | None = None
    account_id: IdValue = None
    category_id: IdValue = None
    due_date: str | None = None
    paid_date: str | None = None
    status: str | None = None
    observation: str | None = None
    tag_ids: list[IdValue] | None = None


class TransactionUpdate(TransactionCreate):
    pass


class GoalCreate(Payload):
    name: str | None = None
    target_amount: Amount = None
    current_amount: Amount = None
    deadline: str | None = None


class GoalUpdate(GoalCreate):
    status: str | None = None


class TagCreate(Payload):
    name: str | None = None
    color: str | None = None


class TagUpdate(TagCreate):
    pass


class AuditLogCreate(Payload):
    action: str | None = None
    entity: str | None = None
    entity_id: IdValue = None
    changes: dict[str, Any] | None = None
    ip_address: str | None = None
    user_agent: str | None = None
