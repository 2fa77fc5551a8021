"""
api/routes/v1/users.py -- Privileged user administration endpoints.

Routes (relative to EXTENSION_MOUNT_POINT, default "/"):
  POST /useradd/{username}   -- create a user; body {"password": "<string>"}
  GET  /userdel/{username}   -- delete a user

Auth policy:
  Only the superuser principal ("neo4j") may call either route. Every other
  caller, authenticated or not, receives the same empty 404 an unknown path
  produces, so the endpoints cannot be discovered by guessing paths. Do not
  change this to 401/403 -- clients depend on the 404. The rate limit is
  checked only after the superuser check, for the same reason.

Outcome mapping:
  400  body is not a JSON object                       InvalidFormat
  422  password missing / not a string                  InvalidFormat
  422  password empty                                   Invalid
  429  superuser over USER_ADMIN_RATE_LIMIT            AuthenticationRateLimit (Retry-After)
  500  AuthManager raised OSError or IllegalUsernameError Invalid (message passed through)
  404  caller not superuser, create returned None, delete returned False
  200  empty body

Each request makes at most one AuthManager call and is never retried here.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.formats import BadInputError, read_map
from api.limiter import hit_user_admin_limit
from api.models import ErrorResponse, Status
from auth.dependencies import get_principal
from auth.exceptions import IllegalUsernameError
from auth.manager import AuthManager
from auth.models import SUPERUSER, Principal

logger = logging.getLogger("useradmin.api")
audit_logger = logging.getLogger("useradmin.audit")

PASSWORD = "password"

router = APIRouter()


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _is_superuser(principal: Principal | None) -> bool:
    return principal is not None and principal.name == SUPERUSER


def _not_found() -> HTTPException:
    # No detail dict: the exception handler renders this exactly like the
    # router's own 404 for an unknown path.
    return HTTPException(status_code=404)


def _audit(msg: str, *args: object) -> None:
    """Write an audit record. A failing log handler must not change the response.

    There is no fallback record: a second logger would usually share the
    broken handler through the root logger and raise the same way.
    """
    try:
        audit_logger.info(msg, *args)
    except Exception:  # noqa: BLE001
        return


def _error(status_code: int, code: Status, message: str, headers: dict[str, str] | None = None) -> HTTPException:
    return HTTPException(
        status_code=status_code,
        detail=ErrorResponse(code=code, message=message).model_dump(mode="json"),
        headers=headers,
    )


def _enforce_rate_limit(request: Request, scope: str) -> None:
    # Only called for the superuser; everyone else must keep getting the plain 404
    retry_after = hit_user_admin_limit(request, scope)
    if retry_after is None:
        return
    client = request.client.host if request.client else "unknown"
    logger.warning("Rate limit exceeded on %s from %s", scope, client)
    raise _error(
        429,
        Status.AUTHENTICATION_RATE_LIMIT,
        "Too many requests.",
        headers={"Retry-After": str(retry_after)},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.post("/useradd/{username}", include_in_schema=False)
async def create_user(
    request: Request,
    username: str,
    principal: Principal | None = Depends(get_principal),
) -> Response:
    """Create username with the password from the JSON body.

    The new account always has password_change_required=True; this endpoint
    offers no way to turn it off.
    """
    if not _is_superuser(principal):
        raise _not_found()
    _enforce_rate_limit(request, "useradd")

    try:
        deserialized = read_map(await request.body())
    except BadInputError as exc:
        raise _error(400, Status.REQUEST_INVALID_FORMAT, str(exc)) from exc

    # A JSON null counts as missing
    new_password = deserialized.get(PASSWORD)
    if new_password is None:
        raise _error(422, Status.REQUEST_INVALID_FORMAT, f"Required parameter '{PASSWORD}' is missing.")
    if not isinstance(new_password, str):
        raise _error(422, Status.REQUEST_INVALID_FORMAT, f"Expected '{PASSWORD}' to be a string.")
    if len(new_password) == 0:
        raise _error(422, Status.REQUEST_INVALID, "Password cannot be empty.")

    auth_manager: AuthManager = request.app.state.auth_manager
    try:
        new_user = auth_manager.new_user(username, new_password, True)
    except (OSError, IllegalUsernameError) as exc:
        logger.warning("Creating user %s failed: %s", username, exc)
        raise _error(500, Status.REQUEST_INVALID, str(exc)) from exc

    if new_user is None:
        raise _not_found()

    _audit("User %s was created by %s", username, principal.name)
    return Response(status_code=200)


@router.get("/userdel/{username}", include_in_schema=False)
async def delete_user(
    request: Request,
    username: str,
    principal: Principal | None = Depends(get_principal),
) -> Response:
    """Delete username. 404 if no such user existed."""
    if not _is_superuser(principal):
        raise _not_found()
    _enforce_rate_limit(request, "userdel")

    auth_manager: AuthManager = request.app.state.auth_manager
    try:
        deleted = auth_manager.delete_user(username)
    except OSError as exc:
        logger.warning("Deleting user %s failed: %s", username, exc)
        raise _error(500, Status.REQUEST_INVALID, str(exc)) from exc

    _audit("User %s was deleted by %s: %s", username, principal.name, deleted)

    if not deleted:
        raise _not_found()
    return Response(status_code=200)
