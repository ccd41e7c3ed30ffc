"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Mirrors the approach
in catalog/models.py -- dataclasses own domain shape; stores and routes do
the work.

Layer rule: no imports from api/, catalog/, or media/.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A registered account.

    email and phone are unique across users. hashed_password is the bcrypt
    hash; it is write-only from the API's point of view and never leaves the
    process (see auth.tokens.public_profile).

    Registration creates exactly one user, the bootstrap admin, so is_admin is
    True for that record. Non-admin users only exist when created directly
    through the store.
    """

    name: str
    email: str
    phone: str
    id: int | None = None
    hashed_password: str | None = None
    is_admin: bool = False
    created_at: str | None = None
