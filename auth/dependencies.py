"""
auth/dependencies.py -- FastAPI Depends() helper that resolves the caller.

The admin endpoints only need to know WHO is calling, never why a caller
was rejected. get_principal() therefore never raises: a missing, malformed
or wrong credential, or an auth store that cannot be read, yields None,
and the route decides what that means (for the user admin routes: a plain
404).

Credentials are read from an HTTP Basic Authorization header and verified
against the auth store held in app.state.user_store. fastapi.security.HTTPBasic
is not used because it answers a malformed header with a 401 challenge even
when auto_error=False, which would reveal that the endpoint exists.

Layer rule: no imports from api/ or core/.
  auth/dependencies.py may import from fastapi because this module is part
  of the FastAPI dependency injection system.
"""

from __future__ import annotations

import base64
import binascii
import logging

from fastapi import Request
from fastapi.security.utils import get_authorization_scheme_param
from sqlalchemy.exc import SQLAlchemyError

from auth.models import Principal
from auth.tokens import authenticate_user

logger = logging.getLogger("useradmin.auth")


def _read_basic_credentials(request: Request) -> tuple[str, str] | None:
    """Return (username, password) from a Basic Authorization header, or None."""
    scheme, param = get_authorization_scheme_param(request.headers.get("Authorization"))
    if scheme.lower() != "basic" or not param:
        return None
    try:
        decoded = base64.b64decode(param, validate=True).decode("utf-8")
    except (binascii.Error, UnicodeDecodeError):
        return None
    username, separator, password = decoded.partition(":")
    if not separator:
        return None
    return username, password


def get_principal(request: Request) -> Principal | None:
    """Return the authenticated Principal for this request, or None.

    Use as a FastAPI dependency:
        @router.get("/privileged")
        async def route(principal: Principal | None = Depends(get_principal)): ...
    """
    credentials = _read_basic_credentials(request)
    if credentials is None:
        return None
    try:
        user = authenticate_user(request.app.state.user_store, *credentials)
    except SQLAlchemyError as exc:
        # An unreachable store means nobody can be verified, superuser included
        logger.warning("Could not verify credentials against the auth store: %s", exc)
        return None
    if user is None:
        return None
    return Principal(name=user.username)
