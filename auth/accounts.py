"""
auth/accounts.py -- Registration (admin bootstrap) and login.

Registration policy: the first registrant becomes the admin, and every later
registration is refused. register() states that policy up front. It checks
for an existing user before it even looks at the submitted fields, so a
second registration fails with ConflictError no matter what was sent. The
store's bootstrap_admin() then enforces it atomically.

Login keeps the two failure reasons apart ("Invalid email" vs "Invalid
password", codes invalid_email / invalid_password); both are 401. bcrypt
runs in both branches so timing stays equal even though the messages differ.

Layer rule: no imports from api/, catalog/, or media/.
"""

from __future__ import annotations

import logging

from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password, verify_against_dummy, verify_password
from core.errors import AuthError, ConflictError, ValidationError

logger = logging.getLogger("shopadmin.auth")


# bcrypt refuses secrets longer than this many bytes.
MAX_PASSWORD_BYTES = 72

_FIELD_LIMITS = {"name": 255, "email": 255, "phone": 50}


def _blank(value: object) -> bool:
    return not isinstance(value, str) or not value.strip()


def register(
    store: UserStore,
    name: object,
    email: object,
    phone: object,
    password: object,
) -> User:
    """Create the bootstrap admin account and return it.

    Fields arrive exactly as the client sent them (any JSON type), because
    the conflict check must come before any look at their shape. The
    password is used as typed; name, email and phone are trimmed.

    Raises:
        ConflictError:   any user already exists (checked first).
        ValidationError: a required field is missing, blank, not a string,
                         or too long (password: more than 72 UTF-8 bytes).
    """
    if store.has_users():
        raise ConflictError("Admin already exists")
    if _blank(name) or _blank(email) or _blank(phone) or _blank(password):
        raise ValidationError("Please provide all required fields")
    for field, value in (("name", name), ("email", email), ("phone", phone)):
        if len(value.strip()) > _FIELD_LIMITS[field]:
            raise ValidationError(f"{field} must be at most {_FIELD_LIMITS[field]} characters")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

    admin = store.bootstrap_admin(
        User(
            name=name.strip(),
            email=email.strip().lower(),
            phone=phone.strip(),
            hashed_password=hash_password(password),
        )
    )
    logger.info("Bootstrap admin created (user_id=%s)", admin.id)
    return admin


def login(store: UserStore, email: str | None, password: str | None) -> User:
    """Check credentials and return the matching user.

    Raises:
        ValidationError: email or password missing.
        AuthError:       unknown email (code invalid_email) or wrong
                         password (code invalid_password).
    """
    if _blank(email) or not password:
        raise ValidationError("Both email and password are required")

    user = store.get_by_email(email.strip().lower())
    if user is None or user.hashed_password is None:
        verify_against_dummy(password)
        logger.info("Login failed: unknown email")
        raise AuthError("Invalid email", code="invalid_email")
    if not verify_password(password, user.hashed_password):
        logger.info("Login failed: bad password (user_id=%s)", user.id)
        raise AuthError("Invalid password", code="invalid_password")
    return user
