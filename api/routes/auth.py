"""
api/routes/auth.py -- Authentication REST endpoints.

Routes:
  POST     /api/auth/register  -- bootstrap the first (admin) account; sets session cookie
  POST     /api/auth/login     -- password login; sets session cookie
  GET|POST /api/auth/logout    -- clears session cookie; always 200
  GET      /api/auth/me        -- current user's profile (requires session)

Security:
  register and login are rate-limited to 10 requests/minute per IP.
  Cache-Control: no-store on every response that starts or ends a session.
  The password hash never appears in a response (auth.tokens.public_profile).
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from api.limiter import limiter
from api.models import LoginRequest
from auth import accounts
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import TokenIssuer, public_profile

# Auth policy:
# - POST     /api/auth/register: public -- refused once any user exists
# - POST     /api/auth/login:    public -- login endpoint must be unauthenticated
# - GET|POST /api/auth/logout:   public -- clearing a cookie needs no prior auth
# - GET      /api/auth/me:       requires session (get_current_user)
router = APIRouter()


@router.post("/auth/register", status_code=201)
@limiter.limit("10/minute")
async def register(request: Request) -> JSONResponse:
    """Create the bootstrap admin and start a session for it.

    The body is read as raw JSON and never schema-checked here, so once an
    admin exists every call gets "Admin already exists" whatever was sent
    (no body, malformed JSON, wrong types). accounts.register() checks the
    fields after the conflict check.
    """
    try:
        payload = await request.json()
    except ValueError:
        payload = None
    fields = payload if isinstance(payload, dict) else {}

    user_store: UserStore = request.app.state.user_store
    tokens: TokenIssuer = request.app.state.tokens
    admin = await run_in_threadpool(
        accounts.register,
        user_store,
        fields.get("name"),
        fields.get("email"),
        fields.get("phone"),
        fields.get("password"),
    )
    return tokens.attach(admin, 201)


@router.post("/auth/login")
@limiter.limit("10/minute")
def login(request: Request, body: Optional[LoginRequest] = None) -> JSONResponse:
    """Authenticate with email and password and start a session."""
    body = body or LoginRequest()
    user_store: UserStore = request.app.state.user_store
    tokens: TokenIssuer = request.app.state.tokens
    user = accounts.login(user_store, body.email, body.password)
    return tokens.attach(user, 200)


@router.api_route("/auth/logout", methods=["GET", "POST"])
async def logout(request: Request) -> JSONResponse:
    """Clear the session cookie. Idempotent; works with or without a session."""
    tokens: TokenIssuer = request.app.state.tokens
    resp = JSONResponse(content={"status": "success", "message": "Logged out successfully"})
    tokens.clear(resp)
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.get("/auth/me")
async def me(current_user: User = Depends(get_current_user)) -> dict:
    """Return the profile of the user owning the session."""
    return {"status": "success", "data": public_profile(current_user)}
