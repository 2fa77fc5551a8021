"""
api/limiter.py -- Shared slowapi rate limiter for the user admin routes.

The routes do not use @limiter.limit(): that decorator counts a request
before the handler runs, so a caller who is not the superuser would see a
429 where an unknown path gives a 404. Routes call hit_user_admin_limit()
instead, after the caller has been identified as the superuser.

Using a single shared instance ensures all routes share the same in-memory
counter store. Set RATE_LIMIT_ENABLED=false to switch limiting off (tests do).
"""

from __future__ import annotations

import time

from fastapi import Request
from limits import parse
from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=get_settings().rate_limit_enabled,
)

user_admin_limit = parse(get_settings().user_admin_rate_limit)


def hit_user_admin_limit(request: Request, scope: str) -> int | None:
    """Count one request against user_admin_limit for the caller's address.

    Returns None while the caller is within the limit, otherwise the number
    of seconds until the current window resets (for Retry-After).
    """
    if not limiter.enabled:
        return None
    key = get_remote_address(request)
    if limiter.limiter.hit(user_admin_limit, key, scope):
        return None
    reset_time, _remaining = limiter.limiter.get_window_stats(user_admin_limit, key, scope)
    return max(1, int(reset_time - time.time()))
