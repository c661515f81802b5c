import asyncio

import httpx
import pytest
from fastapi import HTTPException

from lifeos.config import Settings
from lifeos.dependencies.auth import ANONYMOUS_OWNER, AuthContext, _bearer, fetch_user, store_for
from lifeos.errors import Unauthenticated
from lifeos.storage.local_store import LocalStore
from lifeos.storage.supabase_rest import SupabaseRestStore

SETTINGS = Settings(supabase_url="https://demo.supabase.co", supabase_anon_key="anon-key")


def test_bearer_parsing():
    assert _bearer("Bearer abc") == "abc"
    assert _bearer("bearer  abc ") == "abc"
    assert _bearer("Basic abc") is None
    assert _bearer("Bearer ") is None
    assert _bearer(None) is None


def test_fetch_user_asks_supabase_with_the_token():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["authorization"]
        return httpx.Response(200, json={"id": "u1", "email": "a@b.c"})

    user = asyncio.run(fetch_user(SETTINGS, "jwt", transport=httpx.MockTransport(handler)))
    assert user["id"] == "u1"
    assert seen == {"path": "/auth/v1/user", "auth": "Bearer jwt"}


def test_rejected_token_is_401():
    transport = httpx.MockTransport(lambda request: httpx.Response(401, json={"msg": "expired"}))
    with pytest.raises(HTTPException) as exc:
        asyncio.run(fetch_user(SETTINGS, "old", transport=transport))
    assert exc.value.status_code == 401


def test_unreachable_auth_is_502():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(HTTPException) as exc:
        asyncio.run(fetch_user(SETTINGS, "jwt", transport=httpx.MockTransport(handler)))
    assert exc.value.status_code == 502


def test_unconfigured_supabase_is_500():
    with pytest.raises(HTTPException) as exc:
        asyncio.run(fetch_user(Settings(), "jwt"))
    assert exc.value.status_code == 500


def test_anonymous_context():
    anon = AuthContext()
    assert anon.owner_id == ANONYMOUS_OWNER
    with pytest.raises(Unauthenticated):
        anon.require_user()
    assert AuthContext(user_id="u1", token="t").owner_id == "u1"


def test_store_follows_the_caller():
    signed_in = store_for(AuthContext(user_id="u1", token="t"), SETTINGS)
    assert isinstance(signed_in, SupabaseRestStore)

    first = store_for(AuthContext(), SETTINGS)
    again = store_for(AuthContext(provider_token="g"), SETTINGS)
    assert isinstance(first, LocalStore)
    assert first is again
