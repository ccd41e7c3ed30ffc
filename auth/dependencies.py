"""
auth/dependencies.py -- Access guard: session authentication + role check.

resolve_access() is the single "require role" operation. It authenticates
the request from the "jwt" cookie and, only if that succeeded, checks the
role. The result is tagged, so authorization can never run on an
unauthenticated request:

  authorized       token valid, user exists, role satisfied
  unauthenticated  no cookie / token failed / user no longer exists
  forbidden        authenticated but admin required and user is not admin

A token whose user has since been deleted is an authentication failure,
never an empty user passed downstream.

get_current_user() and require_admin() are the FastAPI Depends() wrappers.
Both raise AuthError (401) for any non-authorized outcome. Forbidden is also
401, with the message "Not authorized as admin".

Layer rule: no imports from api/, catalog/, or media/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass

from fastapi import Request

from auth.models import User
from auth.store import UserStore
from auth.tokens import COOKIE_NAME, TokenIssuer
from core.errors import AuthError


class Access(str, enum.Enum):
    AUTHORIZED = "authorized"
    UNAUTHENTICATED = "unauthenticated"
    FORBIDDEN = "forbidden"


@dataclass(frozen=True)
class AccessResult:
    """Outcome of resolve_access(). user is set whenever authentication succeeded."""

    access: Access
    user: User | None = None
    reason: str = ""
    message: str = ""

    @property
    def allowed(self) -> bool:
        return self.access is Access.AUTHORIZED


_NO_TOKEN = AccessResult(Access.UNAUTHENTICATED, reason="no_token", message="Not authorized, no token")
_TOKEN_FAILED = AccessResult(Access.UNAUTHENTICATED, reason="token_failed", message="Not authorized, token failed")
_USER_GONE = AccessResult(Access.UNAUTHENTICATED, reason="user_not_found", message="Not authorized, user not found")


def check_access(
    token: str | None,
    tokens: TokenIssuer,
    store: UserStore,
    require_admin: bool = False,
) -> AccessResult:
    """Authenticate token against the store, then apply the role requirement."""
    if not token:
        return _NO_TOKEN
    user_id = tokens.decode(token)
    if user_id is None:
        return _TOKEN_FAILED
    user = store.get_by_id(user_id)
    if user is None:
        return _USER_GONE
    if require_admin and not user.is_admin:
        return AccessResult(
            Access.FORBIDDEN,
            user=user,
            reason="not_admin",
            message="Not authorized as admin",
        )
    return AccessResult(Access.AUTHORIZED, user=user)


def resolve_access(request: Request, require_admin: bool = False) -> AccessResult:
    """Run check_access() with the request's cookie and the app's issuer/store."""
    return check_access(
        request.cookies.get(COOKIE_NAME),
        request.app.state.tokens,
        request.app.state.user_store,
        require_admin=require_admin,
    )


def _enforce(request: Request, require_admin: bool) -> User:
    result = resolve_access(request, require_admin=require_admin)
    if not result.allowed:
        raise AuthError(result.message, code=result.reason)
    request.state.user = result.user
    return result.user


def get_current_user(request: Request) -> User:
    """Require a valid session. Raises AuthError (401) otherwise.

    Use as a FastAPI dependency:
        @router.get("/auth/me")
        async def me(user: User = Depends(get_current_user)): ...
    """
    return _enforce(request, require_admin=False)


def require_admin(request: Request) -> User:
    """Require a valid session belonging to an admin. Raises AuthError (401) otherwise.

    Use as a FastAPI dependency:
        @router.delete("/product/{product_id}", dependencies=[Depends(require_admin)])
    """
    return _enforce(request, require_admin=True)
