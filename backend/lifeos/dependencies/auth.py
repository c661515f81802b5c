import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends, Header, HTTPException, status

from lifeos.config import Settings, get_settings
from lifeos.errors import Unauthenticated
from lifeos.storage.base import PrimaryStore
from lifeos.storage.local_store import LocalStore
from lifeos.storage.supabase_rest import SupabaseRestStore

logger = logging.getLogger(__name__)

# Owner id used for rows written to the local store while signed out
ANONYMOUS_OWNER = "local"

_local_stores: Dict[str, LocalStore] = {}


@dataclass(frozen=True)
class AuthContext:
    """Who is calling, and with which credentials.

    ``token`` is the Supabase JWT; ``provider_token`` is the Google OAuth
    access token handed over by the client after the Google sign-in.
    """

    user_id: Optional[str] = None
    token: Optional[str] = None
    provider_token: Optional[str] = None
    email: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id and self.token)

    def require_user(self) -> str:
        if not self.is_authenticated:
            raise Unauthenticated()
        return self.user_id

    @property
    def owner_id(self) -> str:
        return self.user_id if self.is_authenticated else ANONYMOUS_OWNER


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.lower().startswith("bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


async def fetch_user(settings: Settings, token: str, *, transport: Optional[httpx.AsyncBaseTransport] = None) -> Dict[str, Any]:
    """Resolve a Supabase JWT to its user object via ``/auth/v1/user``."""
    if not settings.supabase_configured:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Supabase env not configured")
    url = f"{settings.supabase_url}/auth/v1/user"
    headers = {
        "Authorization": f"Bearer {token}",
        "apikey": settings.supabase_anon_key,
    }
    try:
        async with httpx.AsyncClient(timeout=10, transport=transport) as client:
            resp = await client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.warning("[auth] user lookup failed: %s", e)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Could not reach Supabase auth") from e
    if resp.status_code != 200:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    return resp.json()


async def get_auth_context(
    authorization: Optional[str] = Header(default=None),
    x_google_access_token: Optional[str] = Header(default=None),
    settings: Settings = Depends(get_settings),
) -> AuthContext:
    """Optional auth: no bearer token gives an anonymous context."""
    token = _bearer(authorization)
    if token is None:
        return AuthContext(provider_token=x_google_access_token)
    user = await fetch_user(settings, token)
    return AuthContext(
        user_id=user.get("id"),
        token=token,
        provider_token=x_google_access_token,
        email=user.get("email"),
    )


async def get_current_user(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.is_authenticated:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing bearer token")
    return auth


def local_store(settings: Settings) -> LocalStore:
    path = settings.local_store_path
    if path not in _local_stores:
        _local_stores[path] = LocalStore(path or None)
    return _local_stores[path]


def store_for(auth: AuthContext, settings: Settings) -> PrimaryStore:
    """Supabase for signed-in callers, the local store otherwise."""
    if auth.is_authenticated:
        return SupabaseRestStore(settings, auth.token)
    return local_store(settings)


def get_store(
    auth: AuthContext = Depends(get_auth_context),
    settings: Settings = Depends(get_settings),
) -> PrimaryStore:
    return store_for(auth, settings)
