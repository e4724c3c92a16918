"""
Auth service abstraction for Supabase GoTrue and an in-memory test
implementation.
"""

from __future__ import annotations

import secrets
import uuid
from dataclasses import dataclass, field
from typing import Dict, Optional, Protocol

import requests

from marketplace.errors import BackendError


class AuthServiceError(BackendError):
    """The auth service could not be reached or rejected an admin call."""


@dataclass
class AuthUser:
    id: str
    email: Optional[str] = None


class AuthClient(Protocol):
    """Operations the API needs from the identity provider."""

    def get_user(self, token: str) -> Optional[AuthUser]:
        ...

    def verify_password(self, email: str, password: str) -> bool:
        ...

    def delete_user(self, user_id: str) -> None:
        ...


@dataclass
class SupabaseAuthClient:
    """GoTrue REST client. Admin calls use the service-role key."""

    url: str
    anon_key: str
    service_role_key: str
    timeout: float = 10.0

    def __post_init__(self):
        self.url = self.url.rstrip("/")
        self.session = requests.Session()

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            return self.session.request(
                method, f"{self.url}/auth/v1{path}", timeout=self.timeout, **kwargs
            )
        except requests.RequestException as exc:
            raise AuthServiceError(type(exc).__name__) from exc

    def _admin_headers(self) -> dict:
        return {
            "apikey": self.service_role_key,
            "Authorization": f"Bearer {self.service_role_key}",
        }

    def get_user(self, token: str) -> Optional[AuthUser]:
        response = self._request(
            "GET",
            "/user",
            headers={"apikey": self.anon_key, "Authorization": f"Bearer {token}"},
        )
        if response.status_code in (401, 403, 404):
            return None
        if not response.ok:
            raise AuthServiceError(
                f"user lookup failed with {response.status_code}",
                code=str(response.status_code),
            )
        payload = response.json()
        if not payload.get("id"):
            return None
        return AuthUser(id=payload["id"], email=payload.get("email"))

    def verify_password(self, email: str, password: str) -> bool:
        response = self._request(
            "POST",
            "/token",
            params={"grant_type": "password"},
            headers={"apikey": self.anon_key},
            json={"email": email, "password": password},
        )
        if response.ok:
            return True
        if response.status_code in (400, 401, 422):
            return False
        raise AuthServiceError(
            f"password check failed with {response.status_code}",
            code=str(response.status_code),
        )

    def delete_user(self, user_id: str) -> None:
        response = self._request(
            "DELETE", f"/admin/users/{user_id}", headers=self._admin_headers()
        )
        if not response.ok:
            raise AuthServiceError(
                f"identity deletion failed with {response.status_code}",
                code=str(response.status_code),
            )


@dataclass
class InMemoryAuthClient:
    """Test double issuing opaque JWT-shaped tokens."""

    users: Dict[str, AuthUser] = field(default_factory=dict)
    passwords: Dict[str, str] = field(default_factory=dict)
    tokens: Dict[str, str] = field(default_factory=dict)
    fail_delete: bool = False

    def create_user(self, email: str, password: str = "Secret123!") -> AuthUser:
        user = AuthUser(id=str(uuid.uuid4()), email=email)
        self.users[user.id] = user
        self.passwords[user.id] = password
        return user

    def issue_token(self, user_id: str) -> str:
        token = ".".join(secrets.token_urlsafe(16) for _ in range(3))
        self.tokens[token] = user_id
        return token

    def get_user(self, token: str) -> Optional[AuthUser]:
        user_id = self.tokens.get(token)
        return self.users.get(user_id) if user_id else None

    def verify_password(self, email: str, password: str) -> bool:
        for user in self.users.values():
            if user.email == email:
                return self.passwords.get(user.id) == password
        return False

    def delete_user(self, user_id: str) -> None:
        if self.fail_delete:
            raise AuthServiceError("identity deletion failed")
        self.users.pop(user_id, None)
        self.passwords.pop(user_id, None)
        self.tokens = {t: uid for t, uid in self.tokens.items() if uid != user_id}
