"""Apply the schema and create an administrator with a starter set of data.

Usage: ``python -m bookkeeper.db.seed`` (or the ``bookkeeper-seed`` script).
Nothing is inserted when the users table already has rows.
"""

import os
from pathlib import Path

import structlog

from bookkeeper.core.config import settings
from bookkeeper.core.logs import configure_logging
from bookkeeper.db.pool import close_db_pool, open_db_pool
from bookkeeper.db.store import Store, store_session
from bookkeeper.services.auth import hash_password

log = structlog.get_logger(__name__)

SCHEMA_PATH = Path(__file__).with_name("schema.sql")

DEFAULT_ACCOUNTS = [
    {"name": "Wallet", "type": "WALLET", "color": "#FF6B6B"},
    {"name": "Checking", "type": "CHECKING", "color": "#4ECDC4"},
    {"name": "Savings", "type": "SAVINGS", "color": "#45B7D1"},
    {"name": "Investments", "type": "INVESTMENT", "color": "#96CEB4"},
]

DEFAULT_CATEGORIES = [
    {"name": "Salary", "type": "INCOME", "icon": "💵"},
    {"name": "Freelance", "type": "INCOME", "icon": "💼"},
    {"name": "Investments", "type": "INCOME", "icon": "📈"},
    {"name": "Food", "type": "EXPENSE", "icon": "🍔"},
    {"name": "Transport", "type": "EXPENSE", "icon": "🚗"},
    {"name": "Housing", "type": "EXPENSE", "icon": "🏠"},
    {"name": "Health", "type": "EXPENSE", "icon": "🏥"},
    {"name": "Education", "type": "EXPENSE", "icon": "📚"},
    {"name": "Leisure", "type": "EXPENSE", "icon": "🎮"},
    {"name": "Bills", "type": "EXPENSE", "icon": "📄"},
]

DEFAULT_TAGS = [
    {"name": "Urgent", "color": "#FF0000"},
    {"name": "Recurring", "color": "#0000FF"},
    {"name": "Personal", "color": "#00AA00"},
]


def apply_schema(store: Store) -> None:
    store.cur.execute(SCHEMA_PATH.read_text(encoding="utf-8"))
    store.commit()


def seed(store: Store, email: str, password: str) -> int | None:
    if store.select("users", limit=1):
        log.info("seed_skipped", reason="users table is not empty")
        return None

    user_id = store.insert(
        "users",
        {"name": "Administrator", "email": email.strip().lower(), "password_hash": hash_password(password)},
    )
    account_ids = [
        store.insert("accounts", {"user_id": user_id, "initial_balance": "0.00", **account})
        for account in DEFAULT_ACCOUNTS
    ]
    for category in DEFAULT_CATEGORIES:
        store.insert("categories", {"user_id": user_id, **category})
    for tag in DEFAULT_TAGS:
        store.insert("tags", {"user_id": user_id, **tag})
    store.insert("account_members", {"account_id": account_ids[0], "user_id": user_id, "role": "OWNER"})
    store.commit()
    log.info(
        "seed_completed",
        user_id=user_id,
        accounts=len(DEFAULT_ACCOUNTS),
        categories=len(DEFAULT_CATEGORIES),
        tags=len(DEFAULT_TAGS),
    )
    return user_id


def main() -> None:
    configure_logging(settings.log_level, settings.log_json)
    email = os.getenv("SEED_ADMIN_EMAIL", "admin@example.com")
    password = os.getenv("SEED_ADMIN_PASSWORD")
    if not password:
        raise SystemExit("SEED_ADMIN_PASSWORD is required")

    open_db_pool(wait=True)
    try:
        with store_session() as store:
            apply_schema(store)
            seed(store, email, password)
    finally:
        close_db_pool()


if __name__ == "__main__":
    main()
