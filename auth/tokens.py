"""
auth/tokens.py -- Session tokens, the session cookie, and password hashing.

Security design decisions:
  JWT: python-jose with HS256. The payload is {"id": <user id>} plus iat/exp.
       Tokens live 6 days (Settings.token_expire_days). The server keeps no
       session table. A token is valid until it expires, and logout only
       clears the client's cookie.

       Expiry is checked here against an injectable clock rather than inside
       jose.jwt.decode(), so a token issued at T is accepted at exactly
       T + lifetime and rejected strictly after, and tests can pin "now".

  Cookie: name "jwt", httpOnly (JS cannot read it), samesite="lax",
       secure only in production, max_age equal to the token lifetime so
       cookie and token expire together.

  Passwords: bcrypt directly (no passlib wrapper). _DUMMY_HASH lets login
       run bcrypt even for unknown emails so response time does not reveal
       whether an email is registered.

  TokenIssuer holds the signing secret. It is built once from Settings in
  the app factory and read from request.app.state.tokens. There is no
  module-level secret.

Layer rule: no imports from api/, catalog/, or media/. Import from core/
is allowed -- core/ is the kernel and has no reverse dependencies.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

import bcrypt
from fastapi.responses import JSONResponse
from jose import JWTError, jwt

from auth.models import User
from core.config import Settings
from core.errors import ConfigurationError

logger = logging.getLogger("shopadmin.auth")

COOKIE_NAME = "jwt"

_ALGORITHM = "HS256"

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password.

    bcrypt refuses more than 72 bytes; accounts.register() rejects longer
    passwords with a ValidationError before they get here.
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # Malformed hash in the DB, or input bcrypt refuses.
        return False


# Computed once at import so the first login is not measurably slower.
_DUMMY_HASH: str = hash_password("shopadmin_timing_dummy")


def verify_against_dummy(plain: str) -> None:
    """Burn one bcrypt comparison for a login whose email did not match."""
    verify_password(plain, _DUMMY_HASH)


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def public_profile(user: User) -> dict:
    """Return the user as a JSON-ready dict without the password hash."""
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "phone": user.phone,
        "isAdmin": user.is_admin,
        "createdAt": user.created_at,
    }


# ---------------------------------------------------------------------------
# Token issuer
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenIssuer:
    """Issues and verifies session tokens and writes the session cookie.

    Usage:
        tokens = TokenIssuer.from_settings(settings)
        token = tokens.issue(user.id)
        user_id = tokens.decode(token)       # None if invalid or expired
        response = tokens.attach(user, 201)  # cookie + {"status": "success", ...}
    """

    def __init__(
        self,
        secret: str,
        lifetime: timedelta = timedelta(days=6),
        secure_cookies: bool = False,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ConfigurationError("Token signing secret is not configured.")
        self._secret = secret
        self.lifetime = lifetime
        self.secure_cookies = secure_cookies
        self._clock = clock

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenIssuer":
        return cls(
            secret=settings.jwt_secret,
            lifetime=timedelta(days=settings.token_expire_days),
            secure_cookies=settings.is_production,
        )

    # ------------------------------------------------------------------
    # JWT encode / decode
    # ------------------------------------------------------------------

    def issue(self, subject_id: int) -> str:
        """Return a signed token for subject_id that expires after self.lifetime."""
        issued = self._clock()
        payload = {
            "id": subject_id,
            "iat": int(issued.timestamp()),
            "exp": int((issued + self.lifetime).timestamp()),
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def decode(self, token: str) -> int | None:
        """Verify a token and return its subject id, or None on any failure.

        Failures: bad signature, malformed token, missing claims, or expiry
        strictly in the past. Returning None rather than raising keeps the
        guard simple; it turns None into a 401.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                options={"verify_exp": False, "verify_iat": False},
            )
        except JWTError:
            return None
        subject = payload.get("id")
        expires = payload.get("exp")
        if not isinstance(subject, int) or not isinstance(expires, (int, float)):
            return None
        if self._clock().timestamp() > expires:
            return None
        return subject

    # ------------------------------------------------------------------
    # Session cookie
    # ------------------------------------------------------------------

    def set_cookie(self, response, token: str) -> None:
        """Write the token as the httpOnly session cookie on response."""
        response.set_cookie(
            COOKIE_NAME,
            value=token,
            httponly=True,
            samesite="lax",
            secure=self.secure_cookies,
            max_age=int(self.lifetime.total_seconds()),
        )

    def clear(self, response) -> None:
        """Expire the session cookie (empty value, max-age 0)."""
        response.delete_cookie(
            COOKIE_NAME,
            httponly=True,
            samesite="lax",
            secure=self.secure_cookies,
        )

    def attach(self, user: User, status_code: int) -> JSONResponse:
        """Start a session for user and return the response carrying it.

        Issues a token, sets it as the session cookie, and writes
        {"status": "success", "data": <profile without password>} with the
        given status code. Persisted user state is not touched.
        """
        token = self.issue(user.id)
        resp = JSONResponse(
            status_code=status_code,
            content={"status": "success", "data": public_profile(user)},
        )
        self.set_cookie(resp, token)
        resp.headers["Cache-Control"] = "no-store"
        return resp
