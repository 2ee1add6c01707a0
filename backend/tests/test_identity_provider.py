"""
Identity provider adapter tests against a mocked HTTP transport.
"""

import httpx
import pytest

from portal.services.identity_provider import (
    FakeIdentityProvider,
    HttpIdentityProvider,
    IdentityNotFoundError,
    IdentityProviderError,
    build_identity_provider,
)


BASE_URL = "https://idp.test/v1"


def _user_payload(identity_id="user_1", email="Jo@Shop.test"):
    return {
        "id": identity_id,
        "first_name": "Jo",
        "last_name": "Park",
        "created_at": 1700000000000,
        "primary_email_address_id": "idn_2",
        "email_addresses": [
            {"id": "idn_1", "email_address": "old@shop.test"},
            {"id": "idn_2", "email_address": email},
        ],
    }


def _provider(handler) -> HttpIdentityProvider:
    return HttpIdentityProvider(BASE_URL, "sk_test", transport=httpx.MockTransport(handler))


# =============================================================================
# TOKENS
# =============================================================================


class TestVerifyToken:

    def test_valid_token(self):
        seen = {}

        def handler(request):
            seen["path"] = request.url.path
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"sub": "user_1"})

        assert _provider(handler).verify_token("tok") == "user_1"
        assert seen["path"] == "/v1/tokens/verify"
        assert seen["auth"] == "Bearer sk_test"

    def test_rejected_token(self):
        provider = _provider(lambda request: httpx.Response(401, json={"error": "invalid"}))
        assert provider.verify_token("tok") is None

    def test_server_error(self):
        provider = _provider(lambda request: httpx.Response(502))
        with pytest.raises(IdentityProviderError):
            provider.verify_token("tok")


# =============================================================================
# USERS
# =============================================================================


class TestUsers:

    def test_get_user_uses_primary_email(self):
        provider = _provider(lambda request: httpx.Response(200, json=_user_payload()))

        user = provider.get_user("user_1")

        assert user.identity_id == "user_1"
        assert user.email == "jo@shop.test"
        assert user.full_name == "Jo Park"

    def test_get_missing_user(self):
        provider = _provider(lambda request: httpx.Response(404, json={"errors": []}))
        with pytest.raises(IdentityNotFoundError):
            provider.get_user("user_gone")

    def test_list_users(self):
        seen = []

        def handler(request):
            seen.append((request.url.path, dict(request.url.params)))
            if request.url.path.endswith("/count"):
                return httpx.Response(200, json={"total_count": 7})
            return httpx.Response(200, json=[_user_payload("user_2"), _user_payload("user_1")])

        page = _provider(handler).list_users(limit=2, offset=4, query="shop")

        assert [u.identity_id for u in page.users] == ["user_2", "user_1"]
        assert page.total_count == 7
        assert seen[0] == (
            "/v1/users",
            {"limit": "2", "offset": "4", "order_by": "-created_at", "query": "shop"},
        )
        assert seen[1] == ("/v1/users/count", {"query": "shop"})

    def test_delete_user(self):
        seen = {}

        def handler(request):
            seen["method"] = request.method
            seen["path"] = request.url.path
            return httpx.Response(200, json={"deleted": True})

        _provider(handler).delete_user("user_1")
        assert seen == {"method": "DELETE", "path": "/v1/users/user_1"}

    def test_delete_missing_user(self):
        provider = _provider(lambda request: httpx.Response(404))
        with pytest.raises(IdentityNotFoundError):
            provider.delete_user("user_gone")

    def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(IdentityProviderError):
            _provider(handler).delete_user("user_1")


# =============================================================================
# FACTORY / FAKE
# =============================================================================


class TestFactory:

    def test_fake(self):
        assert isinstance(build_identity_provider({"IDENTITY_PROVIDER": "fake"}), FakeIdentityProvider)

    def test_http(self):
        provider = build_identity_provider({
            "IDENTITY_PROVIDER": "http",
            "IDENTITY_PROVIDER_URL": BASE_URL,
            "IDENTITY_PROVIDER_SECRET_KEY": "sk_test",
        })
        assert isinstance(provider, HttpIdentityProvider)

    def test_unknown(self):
        with pytest.raises(ValueError):
            build_identity_provider({"IDENTITY_PROVIDER": "ldap"})

    def test_fake_tokens_die_with_user(self):
        fake = FakeIdentityProvider()
        fake.add_user("a@shop.test", identity_id="user_a")
        token = fake.issue_token("user_a")

        assert fake.verify_token(token) == "user_a"
        fake.delete_user("user_a")
        assert fake.verify_token(token) is None
        assert fake.deleted == ["user_a"]
