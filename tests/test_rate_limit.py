"""
tests/test_rate_limit.py -- USER_ADMIN_RATE_LIMIT on /useradd and /userdel.

The suite runs with RATE_LIMIT_ENABLED=false (conftest.py), so the
rate_limited fixture switches the shared limiter on with a small limit and
clears its counters around each test.

Covers:
  - the superuser gets 429 AuthenticationRateLimit with Retry-After once over the limit
  - callers who are not the superuser keep getting the plain 404, never 429
  - rejected callers do not use up the superuser's allowance
"""

from __future__ import annotations

from collections.abc import Generator
from unittest.mock import MagicMock

import pytest
from limits import parse

import api.limiter
from api.limiter import limiter
from auth.models import SUPERUSER, Principal

SUPERUSER_PRINCIPAL = Principal(name=SUPERUSER)
BAD_PRINCIPAL = Principal(name="bad")


@pytest.fixture
def rate_limited(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setattr(limiter, "enabled", True)
    monkeypatch.setattr(api.limiter, "user_admin_limit", parse("2/minute"))
    limiter.reset()
    yield
    limiter.reset()


@pytest.mark.usefixtures("rate_limited")
class TestSuperuserLimit:
    def test_create_over_limit_returns_429(self, client_as, auth_manager: MagicMock) -> None:
        auth_manager.new_user.return_value = MagicMock()
        client = client_as(SUPERUSER_PRINCIPAL)

        statuses = [client.post(f"/useradd/u{i}", json={"password": "bar"}).status_code for i in range(3)]

        assert statuses == [200, 200, 429]
        assert auth_manager.new_user.call_count == 2

    def test_delete_over_limit_returns_429_with_retry_after(self, client_as, auth_manager: MagicMock) -> None:
        auth_manager.delete_user.return_value = True
        client = client_as(SUPERUSER_PRINCIPAL)
        client.get("/userdel/foo")
        client.get("/userdel/foo")

        resp = client.get("/userdel/foo")

        assert resp.status_code == 429
        assert resp.json() == {
            "code": "Neo.ClientError.Security.AuthenticationRateLimit",
            "message": "Too many requests.",
        }
        assert 1 <= int(resp.headers["Retry-After"]) <= 60
        assert auth_manager.delete_user.call_count == 2

    def test_routes_are_counted_separately(self, client_as, auth_manager: MagicMock) -> None:
        auth_manager.delete_user.return_value = True
        auth_manager.new_user.return_value = MagicMock()
        client = client_as(SUPERUSER_PRINCIPAL)
        client.get("/userdel/foo")
        client.get("/userdel/foo")

        assert client.post("/useradd/foo", json={"password": "bar"}).status_code == 200


@pytest.mark.usefixtures("rate_limited")
class TestLimitHidden:
    @pytest.mark.parametrize("principal", [None, BAD_PRINCIPAL], ids=["anonymous", "not_superuser"])
    def test_non_superuser_never_sees_429(self, client_as, auth_manager: MagicMock, principal) -> None:
        client = client_as(principal)

        creates = [client.post("/useradd/foo", json={"password": "bar"}).status_code for _ in range(5)]
        deletes = [client.get("/userdel/foo").status_code for _ in range(5)]

        assert creates == [404] * 5
        assert deletes == [404] * 5
        assert auth_manager.mock_calls == []

    def test_rejected_calls_do_not_count_against_superuser(self, client_as, auth_manager: MagicMock) -> None:
        auth_manager.delete_user.return_value = True
        outsider = client_as(BAD_PRINCIPAL)
        for _ in range(5):
            outsider.get("/userdel/foo")

        superuser = client_as(SUPERUSER_PRINCIPAL)

        assert superuser.get("/userdel/foo").status_code == 200
