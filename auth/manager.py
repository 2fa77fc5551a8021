"""
auth/manager.py -- The user management capability the admin endpoints call.

AuthManager is the narrow interface the route layer depends on: create a
user, delete a user. Routes receive an instance through app.state and never
know which implementation is behind it, so tests can hand them a
MagicMock(spec=AuthManager).

StoreAuthManager is the production implementation over UserStore. It owns
the rules the endpoints deliberately do not:
  - username syntax (ASCII letters, digits, underscore)
  - uniqueness ("The specified user already exists")
  - password hashing
  - turning database failures into OSError, the I/O failure class the
    endpoints map to 500

Layer rule: no imports from api/ or core/.
"""

from __future__ import annotations

import logging
import re
from abc import ABC, abstractmethod

from sqlalchemy.exc import IntegrityError, OperationalError

from auth.exceptions import IllegalUsernameError
from auth.models import User
from auth.store import UserStore
from auth.tokens import hash_password

logger = logging.getLogger("useradmin.auth")

_USERNAME_RE = re.compile(r"[a-zA-Z0-9_]+")

ILLEGAL_CHARACTERS_MESSAGE = (
    "User name contains illegal characters. Please use simple ascii characters and numbers."
)
USER_EXISTS_MESSAGE = "The specified user already exists"


class AuthManager(ABC):
    """Create and delete users on behalf of the admin endpoints."""

    @abstractmethod
    def new_user(self, username: str, password: str, password_change_required: bool) -> User | None:
        """Create a user and return it.

        Raises:
            OSError: the backing store could not be read or written.
            IllegalUsernameError: the name is malformed or already taken.
        """

    @abstractmethod
    def delete_user(self, username: str) -> bool:
        """Delete a user. Returns True if a record was removed, False if none existed.

        Raises:
            OSError: the backing store could not be read or written.
        """


class StoreAuthManager(AuthManager):
    """AuthManager backed by the SQLAlchemy UserStore."""

    def __init__(self, store: UserStore) -> None:
        self.store = store

    def new_user(self, username: str, password: str, password_change_required: bool) -> User | None:
        if not _USERNAME_RE.fullmatch(username):
            raise IllegalUsernameError(ILLEGAL_CHARACTERS_MESSAGE)
        try:
            if self.store.get_by_username(username) is not None:
                raise IllegalUsernameError(USER_EXISTS_MESSAGE)
            user_id = self.store.create_user(
                User(
                    username=username,
                    hashed_password=hash_password(password),
                    password_change_required=password_change_required,
                )
            )
        except IntegrityError as exc:
            # Lost a race with a concurrent create for the same name
            raise IllegalUsernameError(USER_EXISTS_MESSAGE) from exc
        except OperationalError as exc:
            logger.error("Auth store unavailable while creating user %s: %s", username, exc.orig)
            raise OSError("Unable to write to the auth store.") from exc
        return self.store.get_by_id(user_id)

    def delete_user(self, username: str) -> bool:
        try:
            return self.store.delete_by_username(username)
        except OperationalError as exc:
            logger.error("Auth store unavailable while deleting user %s: %s", username, exc.orig)
            raise OSError("Unable to write to the auth store.") from exc

    def ensure_user(self, username: str, password: str) -> bool:
        """Create username with password_change_required=True unless it already exists.

        Returns True if the account was created. Used at startup to seed the
        superuser so a fresh install has someone who can call the admin
        endpoints.
        """
        if self.store.get_by_username(username) is not None:
            return False
        try:
            self.new_user(username, password, True)
        except IllegalUsernameError:
            # Another worker seeded it first
            return False
        return True
