"""Tests for request authentication."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import HTTPException
from starlette.requests import Request

from intake_portal.api import auth
from intake_portal.models.identity import Identity, RequestContext, Role, UserProfile


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

def make_request(headers: dict[str, str] | None = None) -> Request:
    raw = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "GET", "path": "/", "headers": raw})


@pytest.fixture
def supabase_client():
    client = MagicMock()
    client.auth.get_user.return_value = SimpleNamespace(
        user=SimpleNamespace(id="user-1", email="jane@example.com")
    )
    return client


@pytest.fixture
def mock_profile() -> UserProfile:
    return UserProfile(user_id="user-1", role=Role.FIRM_ADMIN, firm_id="firm-1")


@pytest.fixture
def mock_db(mock_profile):
    db = MagicMock()
    db.get_user_profile = AsyncMock(return_value=mock_profile)
    return db


@pytest.fixture
def resolver():
    mock = MagicMock()
    mock.resolve = AsyncMock(return_value=Identity(user_id="user-1"))
    return mock


# ---------------------------------------------------------------------------
# IdentityResolver
# ---------------------------------------------------------------------------

class TestIdentityResolver:
    """Tests for IdentityResolver.resolve()."""

    @pytest.mark.asyncio
    async def test_valid_token(self, supabase_client):
        identity = await auth.IdentityResolver(supabase_client).resolve("jwt")

        assert identity == Identity(user_id="user-1", email="jane@example.com")
        supabase_client.auth.get_user.assert_called_once_with("jwt")

    @pytest.mark.asyncio
    async def test_no_credential_is_anonymous(self, supabase_client):
        assert await auth.IdentityResolver(supabase_client).resolve(None) is None
        supabase_client.auth.get_user.assert_not_called()

    @pytest.mark.asyncio
    async def test_provider_error_is_anonymous(self, supabase_client):
        supabase_client.auth.get_user.side_effect = RuntimeError("invalid JWT")

        assert await auth.IdentityResolver(supabase_client).resolve("bad") is None

    @pytest.mark.asyncio
    async def test_no_user_is_anonymous(self, supabase_client):
        supabase_client.auth.get_user.return_value = SimpleNamespace(user=None)

        assert await auth.IdentityResolver(supabase_client).resolve("jwt") is None


# ---------------------------------------------------------------------------
# extract_credential
# ---------------------------------------------------------------------------

class TestExtractCredential:
    """Tests for reading the session credential."""

    def test_bearer_header(self):
        assert auth.extract_credential(make_request({"Authorization": "Bearer abc"})) == "abc"

    def test_cookie(self):
        request = make_request({"Cookie": "sb-access-token=from-cookie"})
        assert auth.extract_credential(request) == "from-cookie"

    def test_header_wins_over_cookie(self):
        request = make_request({
            "Authorization": "Bearer from-header",
            "Cookie": "sb-access-token=from-cookie",
        })
        assert auth.extract_credential(request) == "from-header"

    def test_non_bearer_scheme_ignored(self):
        assert auth.extract_credential(make_request({"Authorization": "Basic dXNlcg=="})) is None

    def test_missing(self):
        assert auth.extract_credential(make_request()) is None


# ---------------------------------------------------------------------------
# get_request_context
# ---------------------------------------------------------------------------

class TestGetRequestContext:
    """Tests for the API request context dependency."""

    @pytest.mark.asyncio
    async def test_authenticated_with_profile(self, mock_db, resolver, mock_profile):
        request = make_request({"Authorization": "Bearer abc"})

        ctx = await auth.get_request_context(request, mock_db, resolver)

        assert isinstance(ctx, RequestContext)
        assert ctx.user_id == "user-1"
        assert ctx.role == Role.FIRM_ADMIN
        mock_db.get_user_profile.assert_awaited_once_with("user-1")

    @pytest.mark.asyncio
    async def test_anonymous_401(self, mock_db, resolver):
        resolver.resolve.return_value = None

        with pytest.raises(HTTPException) as exc_info:
            await auth.get_request_context(make_request(), mock_db, resolver)

        assert exc_info.value.status_code == 401
        mock_db.get_user_profile.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_profile_403(self, mock_db, resolver):
        mock_db.get_user_profile.return_value = None

        with pytest.raises(HTTPException) as exc_info:
            await auth.get_request_context(make_request(), mock_db, resolver)

        assert exc_info.value.status_code == 403

    @pytest.mark.asyncio
    async def test_profile_lookup_error_403(self, mock_db, resolver):
        mock_db.get_user_profile.side_effect = ConnectionError("db down")

        with pytest.raises(HTTPException) as exc_info:
            await auth.get_request_context(make_request(), mock_db, resolver)

        assert exc_info.value.status_code == 403


class TestSingletons:
    """Tests for dependency singletons."""

    def test_identity_resolver_uses_db_client(self):
        db = MagicMock()
        auth._db_client = db

        resolver = auth.get_identity_resolver()

        assert resolver is auth.get_identity_resolver()
        assert resolver._client is db.client
