"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). The store and the
auth manager do the work; these only own the shape.

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

from dataclasses import dataclass

# The only identity allowed to call the user administration endpoints.
SUPERUSER = "neo4j"


@dataclass
class User:
    """A user record owned by the auth store.

    password_change_required is set for every account created through the
    admin endpoints and for the seeded superuser, so the first login has to
    pick a new password.
    """

    username: str
    hashed_password: str
    password_change_required: bool = True
    id: int | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class Principal:
    """Authenticated identity attached to an inbound request."""

    name: str
