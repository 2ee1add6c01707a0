"""
Identity provider port and adapters.

The portal never stores credentials. A bearer token is exchanged with the
identity provider for a user id, and admin checks re-read the caller's
primary email from the provider on every request.

Adapters:
- HttpIdentityProvider: hosted provider over its REST API (httpx)
- FakeIdentityProvider: in-memory users for tests and local development

The active adapter lives on app.extensions["identity_provider"] and is chosen
by the IDENTITY_PROVIDER config key.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from uuid import uuid4

import httpx
from flask import current_app


class IdentityProviderError(Exception):
    """Transport or server failure talking to the identity provider."""


class IdentityNotFoundError(IdentityProviderError):
    """The provider has no user with the requested id."""


@dataclass(frozen=True)
class IdentityUser:
    """User record as the identity provider reports it."""

    identity_id: str
    email: str | None
    first_name: str | None = None
    last_name: str | None = None
    created_at: int | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def to_dict(self) -> dict:
        return {
            "id": self.identity_id,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "full_name": self.full_name,
            "created_at": self.created_at,
        }


@dataclass(frozen=True)
class IdentityUserPage:
    users: list[IdentityUser]
    total_count: int


class IdentityProvider(ABC):
    """Abstract identity provider interface."""

    @abstractmethod
    def verify_token(self, token: str) -> str | None:
        """Return the identity id a bearer token belongs to, or None if invalid."""
        ...

    @abstractmethod
    def get_user(self, identity_id: str) -> IdentityUser:
        """Fetch a user. Raises IdentityNotFoundError when absent."""
        ...

    @abstractmethod
    def list_users(self, *, limit: int = 10, offset: int = 0, query: str | None = None) -> IdentityUserPage:
        """Page through users, newest first."""
        ...

    @abstractmethod
    def delete_user(self, identity_id: str) -> None:
        """Delete a user. Raises IdentityNotFoundError when absent."""
        ...


def _user_from_payload(payload: dict) -> IdentityUser:
    primary_id = payload.get("primary_email_address_id")
    email = None
    for entry in payload.get("email_addresses") or []:
        if entry.get("id") == primary_id:
            email = entry.get("email_address")
            break
    if email is None and payload.get("email_addresses"):
        email = payload["email_addresses"][0].get("email_address")
    return IdentityUser(
        identity_id=payload["id"],
        email=email.lower() if email else None,
        first_name=payload.get("first_name"),
        last_name=payload.get("last_name"),
        created_at=payload.get("created_at"),
    )


class HttpIdentityProvider(IdentityProvider):
    """Hosted identity provider reached over HTTPS with a secret API key."""

    def __init__(self, base_url: str, secret_key: str, *, timeout: float = 10.0, transport=None):
        self.client = httpx.Client(
            base_url=base_url.rstrip("/"),
            headers={"Authorization": f"Bearer {secret_key}"},
            timeout=timeout,
            transport=transport,
        )

    def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity provider unreachable: {exc}") from exc
        if response.status_code == 404:
            raise IdentityNotFoundError(f"{method} {path}: not found")
        if response.status_code >= 400:
            raise IdentityProviderError(
                f"{method} {path} failed with status {response.status_code}"
            )
        return response

    def verify_token(self, token: str) -> str | None:
        try:
            response = self.client.post("/tokens/verify", json={"token": token})
        except httpx.HTTPError as exc:
            raise IdentityProviderError(f"Identity provider unreachable: {exc}") from exc
        if response.status_code in (400, 401, 403, 404):
            return None
        if response.status_code >= 400:
            raise IdentityProviderError(f"Token verification failed with status {response.status_code}")
        return response.json().get("sub")

    def get_user(self, identity_id: str) -> IdentityUser:
        return _user_from_payload(self._request("GET", f"/users/{identity_id}").json())

    def list_users(self, *, limit: int = 10, offset: int = 0, query: str | None = None) -> IdentityUserPage:
        params = {"limit": limit, "offset": offset, "order_by": "-created_at"}
        if query:
            params["query"] = query
        users = [_user_from_payload(item) for item in self._request("GET", "/users", params=params).json()]

        count_params = {"query": query} if query else {}
        total = self._request("GET", "/users/count", params=count_params).json().get("total_count", len(users))
        return IdentityUserPage(users=users, total_count=total)

    def delete_user(self, identity_id: str) -> None:
        self._request("DELETE", f"/users/{identity_id}")


class FakeIdentityProvider(IdentityProvider):
    """In-memory identity provider with injectable failures."""

    def __init__(self) -> None:
        self.users: dict[str, IdentityUser] = {}
        self.tokens: dict[str, str] = {}
        self.failing_ids: set[str] = set()
        self.unavailable = False
        self.deleted: list[str] = []

    def add_user(
        self,
        email: str,
        *,
        identity_id: str | None = None,
        first_name: str | None = None,
        last_name: str | None = None,
    ) -> IdentityUser:
        identity_id = identity_id or f"user_{uuid4().hex[:12]}"
        user = IdentityUser(
            identity_id=identity_id,
            email=email.lower(),
            first_name=first_name,
            last_name=last_name,
            created_at=len(self.users) + 1,
        )
        self.users[identity_id] = user
        return user

    def issue_token(self, identity_id: str) -> str:
        token = f"tok_{uuid4().hex}"
        self.tokens[token] = identity_id
        return token

    def _check(self, identity_id: str | None = None) -> None:
        if self.unavailable or (identity_id is not None and identity_id in self.failing_ids):
            raise IdentityProviderError("Identity provider unavailable")

    def verify_token(self, token: str) -> str | None:
        self._check()
        return self.tokens.get(token)

    def get_user(self, identity_id: str) -> IdentityUser:
        self._check(identity_id)
        user = self.users.get(identity_id)
        if user is None:
            raise IdentityNotFoundError(f"User {identity_id} not found")
        return user

    def list_users(self, *, limit: int = 10, offset: int = 0, query: str | None = None) -> IdentityUserPage:
        self._check()
        users = sorted(self.users.values(), key=lambda u: u.created_at or 0, reverse=True)
        if query:
            needle = query.lower()
            users = [
                u for u in users
                if needle in (u.email or "") or needle in u.full_name.lower() or needle in u.identity_id
            ]
        return IdentityUserPage(users=users[offset:offset + limit], total_count=len(users))

    def delete_user(self, identity_id: str) -> None:
        self._check(identity_id)
        if identity_id not in self.users:
            raise IdentityNotFoundError(f"User {identity_id} not found")
        del self.users[identity_id]
        self.tokens = {t: uid for t, uid in self.tokens.items() if uid != identity_id}
        self.deleted.append(identity_id)


def build_identity_provider(config) -> IdentityProvider:
    kind = config.get("IDENTITY_PROVIDER", "http")
    if kind == "fake":
        return FakeIdentityProvider()
    if kind == "http":
        return HttpIdentityProvider(
            config["IDENTITY_PROVIDER_URL"],
            config["IDENTITY_PROVIDER_SECRET_KEY"],
            timeout=config.get("IDENTITY_PROVIDER_TIMEOUT", 10.0),
        )
    raise ValueError(f"Unknown IDENTITY_PROVIDER: {kind}")


def get_identity_provider() -> IdentityProvider:
    """Identity provider bound to the current app."""
    return current_app.extensions["identity_provider"]
