from fastapi import APIRouter, Depends, Request

from bookkeeper.db.store import store_session
from bookkeeper.models.payloads import LoginRequest
from bookkeeper.routers.api import guard, ok
from bookkeeper.services import auth, users
from bookkeeper.services.auth import RequestContext, optional_context, request_context

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "UP"}


@router.post("/auth/login")
def login(req: Request, payload: LoginRequest, ctx: RequestContext = Depends(optional_context)):
    with guard("Error logging in"), store_session() as store:
        user = auth.login(store, ctx, payload.model_dump())
    req.session.clear()
    req.session[auth.SESSION_KEY] = user["id"]
    return ok("Logged in successfully", user)


@router.post("/auth/logout")
def logout(req: Request):
    req.session.clear()
    return ok("Logged out successfully")


@router.get("/me")
def me(ctx: RequestContext = Depends(request_context)):
    with guard("Error fetching user data"), store_session() as store:
        rows = users.list_users(store, ctx)
    return ok("User data retrieved", rows[0] if rows else None)
