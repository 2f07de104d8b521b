from dataclasses import dataclass
from typing import Any

import structlog
from fastapi import Request
from passlib.hash import bcrypt

from bookkeeper.core.config import settings
from bookkeeper.core.errors import AuthenticationRequired, TooManyRequests, ValidationError
from bookkeeper.db.store import store_session
from bookkeeper.services.audit import record_audit
from bookkeeper.services.state import login_throttle

log = structlog.get_logger(__name__)

SESSION_KEY = "user_id"


@dataclass(frozen=True)
class Actor:
    id: int


@dataclass(frozen=True)
class RequestContext:
    actor: Actor | None
    ip_address: str | None = None
    user_agent: str | None = None

    @property
    def actor_id(self) -> int | None:
        return self.actor.id if self.actor else None


def get_client_ip(req: Request) -> str:
    forwarded = req.headers.get("x-forwarded-for", "")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = req.headers.get("x-real-ip", "")
    if real_ip:
        return real_ip.strip()
    if req.client:
        return req.client.host
    return "unknown"


def _user_agent(req: Request) -> str | None:
    agent = req.headers.get("user-agent")
    return agent[:255] if agent else None


def _session_actor(req: Request) -> Actor | None:
    """Actor named by the session cookie, or None when the cookie is absent or the user is gone."""
    user_id = (req.session or {}).get(SESSION_KEY)
    if not user_id:
        return None
    with store_session() as store:
        user = store.select_one("users", {"id": int(user_id)})
    if not user:
        log.info("stale_session_cleared", user_id=user_id)
        req.session.clear()
        return None
    return Actor(id=user["id"])


def optional_context(req: Request) -> RequestContext:
    actor = _session_actor(req)
    return RequestContext(actor=actor, ip_address=get_client_ip(req)[:45], user_agent=_user_agent(req))


def request_context(req: Request) -> RequestContext:
    ctx = optional_context(req)
    if ctx.actor is None:
        raise AuthenticationRequired("Not authenticated")
    return ctx


def hash_password(plain: str) -> str:
    return bcrypt.hash(plain)


def verify_password(plain: str, password_hash: str) -> bool:
    try:
        return bcrypt.verify(plain, password_hash)
    except ValueError:
        return False


def enforce_login_rate_limit(ctx: RequestContext, email: str) -> None:
    window = settings.login_rate_window
    if login_throttle.hit(f"ip:{ctx.ip_address}", settings.login_rate_limit, window):
        raise TooManyRequests("Too many login attempts. Try again later.")
    if login_throttle.hit(f"user:{email}", settings.login_rate_limit, window):
        raise TooManyRequests("Too many login attempts. Try again later.")


def login(store, ctx: RequestContext, data: dict[str, Any]) -> dict[str, Any]:
    email = (data.get("email") or "").strip().lower()
    plain = data.get("password") or ""
    if not email or not plain:
        raise ValidationError("Email and password are required")
    if len(plain.encode("utf-8")) > 72:
        raise ValidationError("Password too long (max 72 bytes)")
    enforce_login_rate_limit(ctx, email)

    user = store.select_one("users", {"email": email})
    if not user or not verify_password(plain, user["password_hash"]):
        log.info("login_failed", email=email, ip_address=ctx.ip_address)
        raise AuthenticationRequired("Invalid credentials")

    log.info("login_succeeded", user_id=user["id"])
    record_audit(
        store,
        RequestContext(actor=Actor(id=user["id"]), ip_address=ctx.ip_address, user_agent=ctx.user_agent),
        "LOGIN",
        "USER",
        user["id"],
        None,
    )
    return {"id": user["id"], "name": user["name"], "email": user["email"]}
