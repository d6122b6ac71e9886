"""
Tests for Authentication and Authorization.

Covers:
- Password hashing
- CSRF token generation
- CSRF middleware
- Security headers middleware
- Role policies and the authorization matrix (require_user, require_admin,
  require_super_admin)
- Login / logout endpoints
"""

from __future__ import annotations

import uuid
from unittest.mock import MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.core.auth import (
    ADMIN_POLICY,
    ANY_AUTHENTICATED,
    MEMBER_POLICY,
    SUPERADMIN_POLICY,
    RolePolicy,
    check_role,
    effective_role,
    generate_csrf_token,
    hash_password,
    require_admin,
    require_role,
    require_super_admin,
    require_user,
    verify_password,
)
from app.core.config import get_settings
from app.core.errors import Forbidden
from app.core.middleware import CSRFMiddleware, SecurityHeadersMiddleware, SECURITY_HEADERS
from app.core.sessions import session_storage
from app.core.tenancy import RequestContext
from fundbook_shared.schemas.common import DEFAULT_ALLOWED_ROLES, UserRole
from conftest import PASSWORD, cookie_value, login, set_cookie_headers

settings = get_settings()


# ---------------------------------------------------------------------------
# Unit Tests: Password hashing
# ---------------------------------------------------------------------------

class TestPasswordHashing:
    def test_hash_and_verify(self):
        password = "MySecureP@ssw0rd!"
        hashed = hash_password(password)
        assert hashed != password
        assert verify_password(password, hashed)

    def test_wrong_password_fails(self):
        hashed = hash_password("correct-password")
        assert not verify_password("wrong-password", hashed)

    def test_different_hashes_for_same_password(self):
        """bcrypt uses random salt, so hashes differ."""
        h1 = hash_password("same")
        h2 = hash_password("same")
        assert h1 != h2
        assert verify_password("same", h1)
        assert verify_password("same", h2)


# ---------------------------------------------------------------------------
# Unit Tests: CSRF Token
# ---------------------------------------------------------------------------

class TestCSRFToken:
    def test_generates_unique_tokens(self):
        t1 = generate_csrf_token()
        t2 = generate_csrf_token()
        assert t1 != t2
        assert len(t1) > 20


# ---------------------------------------------------------------------------
# Integration Tests: Middleware
# ---------------------------------------------------------------------------

class TestSecurityHeadersMiddleware:
    def test_headers_present(self):
        app = FastAPI()
        app.add_middleware(SecurityHeadersMiddleware)

        @app.get("/test")
        async def test_endpoint():
            return {"ok": True}

        client = TestClient(app)
        resp = client.get("/test")
        assert resp.status_code == 200
        for header, value in SECURITY_HEADERS.items():
            assert resp.headers.get(header) == value


class TestCSRFMiddleware:
    def _make_app(self) -> FastAPI:
        app = FastAPI()
        app.add_middleware(CSRFMiddleware)

        @app.get("/test")
        async def get_test():
            return {"ok": True}

        @app.post("/test")
        async def post_test():
            return {"ok": True}

        return app

    def test_get_passes_without_csrf(self):
        client = TestClient(self._make_app(), cookies={settings.session_cookie_name: "some-jwt"})
        resp = client.get("/test")
        assert resp.status_code == 200

    def test_post_without_session_cookie_passes(self):
        """No session cookie = nothing to forge, skip CSRF."""
        client = TestClient(self._make_app())
        resp = client.post("/test")
        assert resp.status_code == 200

    def test_post_with_session_but_no_csrf_fails(self):
        client = TestClient(self._make_app(), cookies={settings.session_cookie_name: "some-jwt"})
        resp = client.post("/test")
        assert resp.status_code == 403
        assert "CSRF" in resp.json()["error"]["code"]

    def test_post_with_matching_csrf_passes(self):
        csrf_token = "test-csrf-token"
        client = TestClient(
            self._make_app(),
            cookies={settings.session_cookie_name: "some-jwt", settings.csrf_cookie_name: csrf_token},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": csrf_token})
        assert resp.status_code == 200

    def test_post_with_mismatched_csrf_fails(self):
        client = TestClient(
            self._make_app(),
            cookies={settings.session_cookie_name: "some-jwt", settings.csrf_cookie_name: "token-a"},
        )
        resp = client.post("/test", headers={"X-CSRF-Token": "token-b"})
        assert resp.status_code == 403


# ---------------------------------------------------------------------------
# Unit Tests: Role policies
# ---------------------------------------------------------------------------

def _user(role: UserRole) -> MagicMock:
    user = MagicMock()
    user.id = uuid.uuid4()
    user.role = role.value
    return user


def _membership(role: UserRole) -> MagicMock:
    membership = MagicMock()
    membership.role = role.value
    return membership


class TestRolePolicy:
    def test_empty_role_list_means_baseline_roles(self):
        assert RolePolicy.from_roles(None).required_roles == DEFAULT_ALLOWED_ROLES
        assert RolePolicy.from_roles([]).required_roles == DEFAULT_ALLOWED_ROLES

    def test_explicit_roles(self):
        policy = RolePolicy.from_roles([UserRole.ADMIN])
        assert policy.admits(UserRole.ADMIN)
        assert not policy.admits(UserRole.USER)
        assert policy.allow_superadmin_override

    def test_any_authenticated_admits_everyone(self):
        assert MEMBER_POLICY.required_roles == ANY_AUTHENTICATED
        for role in UserRole:
            assert MEMBER_POLICY.admits(role)


class TestAuthorizationMatrix:
    """
    Verify that role checks enforce correct access levels.

    The per-org membership role is what gets checked; the global role only
    matters as a fallback and for the SUPERADMIN override.
    """

    def test_membership_role_wins_over_global_role(self):
        user = _user(UserRole.ADMIN)
        assert effective_role(user, _membership(UserRole.USER)) == UserRole.USER
        assert effective_role(user, None) == UserRole.ADMIN

    def test_admin_in_org_passes_admin_policy(self):
        role = check_role(_user(UserRole.USER), _membership(UserRole.ADMIN), ADMIN_POLICY)
        assert role == UserRole.ADMIN

    def test_user_in_org_fails_admin_policy(self):
        with pytest.raises(Forbidden):
            check_role(_user(UserRole.ADMIN), _membership(UserRole.USER), ADMIN_POLICY)

    def test_superadmin_override(self):
        role = check_role(_user(UserRole.SUPERADMIN), _membership(UserRole.USER), ADMIN_POLICY)
        assert role == UserRole.SUPERADMIN

    def test_org_superadmin_passes_every_policy(self):
        user = _user(UserRole.USER)
        membership = _membership(UserRole.SUPERADMIN)
        for policy in (ADMIN_POLICY, RolePolicy.from_roles(None), SUPERADMIN_POLICY):
            assert check_role(user, membership, policy) == UserRole.SUPERADMIN

    def test_superadmin_override_can_be_disabled(self):
        policy = RolePolicy(required_roles=frozenset({UserRole.ADMIN}), allow_superadmin_override=False)
        with pytest.raises(Forbidden):
            check_role(_user(UserRole.SUPERADMIN), _membership(UserRole.USER), policy)

    def test_superadmin_policy_rejects_org_admin(self):
        with pytest.raises(Forbidden):
            check_role(_user(UserRole.ADMIN), _membership(UserRole.ADMIN), SUPERADMIN_POLICY)

    def test_baseline_policy_admits_user_and_admin(self):
        policy = RolePolicy.from_roles(None)
        for role in (UserRole.USER, UserRole.ADMIN):
            assert check_role(_user(UserRole.USER), _membership(role), policy) == role

    async def test_dependencies(self):
        def ctx_for(global_role: UserRole, org_role: UserRole) -> RequestContext:
            return RequestContext(
                user=_user(global_role),
                organization_id=uuid.uuid4(),
                membership=_membership(org_role),
            )

        member = ctx_for(UserRole.USER, UserRole.USER)
        admin = ctx_for(UserRole.USER, UserRole.ADMIN)
        root = ctx_for(UserRole.SUPERADMIN, UserRole.USER)

        assert await require_user(member) is member
        assert await require_admin(admin) is admin
        assert await require_admin(root) is root
        assert await require_super_admin(root) is root
        assert await require_role([UserRole.USER])(member) is member

        with pytest.raises(Forbidden):
            await require_admin(member)
        with pytest.raises(Forbidden):
            await require_super_admin(admin)


# ---------------------------------------------------------------------------
# Integration Tests: Login / logout
# ---------------------------------------------------------------------------

class TestLoginEndpoints:
    async def test_login_sets_session_and_csrf_cookies(self, client, make_user):
        user = await make_user("pat@fundbook.dev")

        resp = await login(client, "pat@fundbook.dev", redirect_to="/accounts")

        assert resp.status_code == 303
        assert resp.headers["location"] == "/accounts"
        [session_cookie] = set_cookie_headers(resp, settings.session_cookie_name)
        assert "HttpOnly" in session_cookie
        assert "Max-Age" not in session_cookie
        session = session_storage.read_cookie(cookie_value(session_cookie))
        assert session.get("userId") == str(user.id)
        assert session.get("organizationId") is None
        assert client.cookies.get(settings.csrf_cookie_name)

    async def test_login_username_is_case_insensitive(self, client, make_user):
        await make_user("pat@fundbook.dev")
        resp = await login(client, "Pat@Fundbook.dev")
        assert resp.status_code == 303

    async def test_remember_me_persists_cookie(self, client, make_user):
        await make_user("pat@fundbook.dev")
        resp = await login(client, "pat@fundbook.dev", remember=True)

        [session_cookie] = set_cookie_headers(resp, settings.session_cookie_name)
        assert f"Max-Age={settings.session_remember_days * 24 * 60 * 60}" in session_cookie

    async def test_offsite_redirect_is_ignored(self, client, make_user):
        await make_user("pat@fundbook.dev")
        resp = await login(client, "pat@fundbook.dev", redirect_to="//evil.example")
        assert resp.headers["location"] == "/"

    async def test_wrong_password(self, client, make_user):
        await make_user("pat@fundbook.dev")
        resp = await client.post(
            "/login", json={"username": "pat@fundbook.dev", "password": PASSWORD + "x"}
        )
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"
        assert not set_cookie_headers(resp, settings.session_cookie_name)

    async def test_unknown_user(self, client):
        resp = await login(client, "nobody@fundbook.dev")
        assert resp.status_code == 401
        assert resp.json()["error"]["code"] == "INVALID_CREDENTIALS"

    async def test_user_without_password_cannot_log_in(self, client, make_user):
        await make_user("invited@fundbook.dev", with_password=False)
        resp = await login(client, "invited@fundbook.dev")
        assert resp.status_code == 401

    async def test_logout_clears_cookies(self, client, make_user):
        await make_user("pat@fundbook.dev")
        await login(client, "pat@fundbook.dev")

        resp = await client.post(
            "/logout",
            headers={"X-CSRF-Token": client.cookies.get(settings.csrf_cookie_name)},
        )

        assert resp.status_code == 303
        assert resp.headers["location"] == settings.login_path
        [cleared] = set_cookie_headers(resp, settings.session_cookie_name)
        assert "Max-Age=0" in cleared
        assert client.cookies.get(settings.session_cookie_name) is None

    async def test_logout_requires_csrf_token(self, client, make_user):
        await make_user("pat@fundbook.dev")
        await login(client, "pat@fundbook.dev")

        resp = await client.post("/logout")
        assert resp.status_code == 403
