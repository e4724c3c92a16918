"""
Dependency wiring for the FastAPI app.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from fastapi import Depends, Header, Request

from marketplace.auth import AuthClient, InMemoryAuthClient, SupabaseAuthClient
from marketplace.config import Settings, get_settings
from marketplace.errors import (
    forbidden,
    internal,
    invalid_token,
    missing_auth,
    rate_limited,
)
from marketplace.rate_limit import InMemoryRateLimiter, RateLimiter, RedisRateLimiter
from marketplace.security import client_ip, extract_bearer_token, short_id
from marketplace.storage import InMemoryStorageClient, S3StorageClient, StorageClient
from marketplace.store import InMemoryStore, PostgresStore, Store

logger = logging.getLogger(__name__)

_store: Store | None = None
_auth_client: AuthClient | None = None
_storage_client: StorageClient | None = None
_rate_limiter: RateLimiter | None = None


def _require_backend_settings(settings: Settings) -> None:
    missing = settings.missing_backend_settings()
    if missing:
        logger.error("Missing backend configuration: %s", ", ".join(missing))
        raise internal("System configuration error")


def get_store() -> Store:
    """
    Return a singleton store so the connection pool is shared across requests.
    """
    global _store
    if _store:
        return _store

    settings = get_settings()
    if settings.use_in_memory_backends:
        _store = InMemoryStore()
    else:
        _require_backend_settings(settings)
        _store = PostgresStore(settings.database_url)
    return _store


def get_auth_client() -> AuthClient:
    global _auth_client
    if _auth_client:
        return _auth_client

    settings = get_settings()
    if settings.use_in_memory_backends:
        _auth_client = InMemoryAuthClient()
    else:
        _require_backend_settings(settings)
        _auth_client = SupabaseAuthClient(
            url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            service_role_key=settings.supabase_service_role_key,
            timeout=settings.auth_timeout_seconds,
        )
    return _auth_client


def get_storage_client() -> StorageClient:
    global _storage_client
    if _storage_client:
        return _storage_client

    settings = get_settings()
    if settings.use_in_memory_backends or not settings.storage_bucket:
        _storage_client = InMemoryStorageClient()
    else:
        _storage_client = S3StorageClient(
            bucket=settings.storage_bucket,
            region=settings.storage_region or "",
            endpoint=settings.storage_endpoint or "",
            access_key_id=settings.aws_access_key_id or "",
            secret_access_key=settings.aws_secret_access_key or "",
        )
    return _storage_client


def get_rate_limiter() -> RateLimiter:
    """
    Return the process-wide limiter; Redis-backed when REDIS_URL is set.
    """
    global _rate_limiter
    if _rate_limiter:
        return _rate_limiter

    settings = get_settings()
    if settings.redis_url:
        _rate_limiter = RedisRateLimiter(
            url=settings.redis_url,
            window_seconds=settings.rate_limit_window_seconds,
            key_prefix=settings.rate_limit_key_prefix,
        )
    else:
        _rate_limiter = InMemoryRateLimiter(
            window_seconds=settings.rate_limit_window_seconds
        )
    return _rate_limiter


def reset_clients() -> None:
    """Drop cached collaborators so the next request rebuilds them."""
    global _store, _auth_client, _storage_client, _rate_limiter
    _store = None
    _auth_client = None
    _storage_client = None
    _rate_limiter = None


@dataclass
class CurrentUser:
    id: str
    email: Optional[str]
    role: Optional[str]

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def get_current_user(
    authorization: Optional[str] = Header(default=None),
    auth: AuthClient = Depends(get_auth_client),
    store: Store = Depends(get_store),
) -> CurrentUser:
    if not authorization:
        raise missing_auth()
    token = extract_bearer_token(authorization)
    if not token:
        raise invalid_token()
    user = auth.get_user(token)
    if user is None:
        raise invalid_token()
    row = store.first("users", {"id": user.id})
    return CurrentUser(
        id=user.id,
        email=user.email or (row or {}).get("email"),
        role=(row or {}).get("role"),
    )


def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        logger.warning("Non-admin %s denied admin route", short_id(user.id))
        raise forbidden("Admin access required")
    return user


def rate_limit(scope: str, limit: int) -> Callable[..., None]:
    """Dependency counting a request per client IP against ``limit``."""

    def check(
        request: Request, limiter: RateLimiter = Depends(get_rate_limiter)
    ) -> None:
        ip = client_ip(request)
        if limiter.is_limited(f"{scope}:{ip}", limit):
            logger.warning("Rate limit hit on %s", scope)
            raise rate_limited()

    return check
