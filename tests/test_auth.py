"""Tests for the Authenticator state machine."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from fakes import json_response
from payloads import user
from wanikani_client import resources
from wanikani_client.auth import (
    Authenticated,
    Authenticator,
    NeedsAdditionalSetup,
    NoSession,
    Unknown,
)
from wanikani_client.credentials import CredentialStore, PasswordCredential, TokenCredential
from wanikani_client.errors import (
    BadCredentials,
    ErrorCategory,
    InvalidToken,
    ProtocolError,
    ServiceUnavailable,
    UnhandledCredentialError,
)
from wanikani_client.login import (
    AccessTokenRequest,
    CookieLoginFlow,
    LoginSuccess,
    NeedsAccessToken,
)
from wanikani_client.retry import RateLimitPolicy

VALID_TOKENS = {"abc123", "fresh-token"}


def api(request):
    """GET /user answers for known tokens and 401 otherwise."""
    token = request.headers.get("Authorization", "").removeprefix("Bearer ")
    if token == "broken":
        return json_response(503, {"error": "Service Unavailable"})
    if token not in VALID_TOKENS:
        return json_response(401, {"error": "Unauthorized. Nice try.", "code": 401})
    if request.url.path == "/v2/summary":
        return json_response(200, {"object": "report", "data": {"lessons": [], "reviews": []}})
    return json_response(200, user(user_id=1, username="metc", level=32))


@pytest.fixture
def store(settings):
    return CredentialStore(settings.credentials_path, settings.credential_domain)


@pytest.fixture
def login_flow():
    flow = MagicMock(spec=CookieLoginFlow)
    flow.login = AsyncMock()
    flow.create_access_token = AsyncMock()
    return flow


@pytest.fixture
def authenticator(make_client, store, login_flow):
    client, transport = make_client(api)
    auth = Authenticator(client, store, login_flow, RateLimitPolicy(sleep=AsyncMock()))
    auth.transport = transport
    return auth


class TestRestoreSession:
    """Tests for restore_session()."""

    @pytest.mark.asyncio
    async def test_starts_unknown(self, authenticator):
        assert isinstance(authenticator.state, Unknown)

    @pytest.mark.asyncio
    async def test_valid_stored_token(self, authenticator, store):
        """Stored abc123 is verified with /user and nothing is written."""
        await store.store(TokenCredential("abc123"))
        store.store = AsyncMock(wraps=store.store)
        store.reset = AsyncMock(wraps=store.reset)

        state = await authenticator.restore_session()

        assert isinstance(state, Authenticated)
        assert state.user.id == 1
        assert state.user.username == "metc"
        assert state.user.level == 32
        assert authenticator.transport.paths() == ["/v2/user"]
        assert authenticator.client.token == "abc123"
        store.store.assert_not_awaited()
        store.reset.assert_not_awaited()
        assert await store.load() == TokenCredential("abc123")

    @pytest.mark.asyncio
    async def test_expired_stored_token(self, authenticator, store):
        """A 401 for the stored token deletes it and ends in NoSession."""
        await store.store(TokenCredential("expired"))

        state = await authenticator.restore_session()

        assert isinstance(state, NoSession)
        assert await store.count() == 0
        assert authenticator.client.token is None

    @pytest.mark.asyncio
    async def test_no_credential(self, authenticator):
        state = await authenticator.restore_session()

        assert isinstance(state, NoSession)
        assert authenticator.transport.requests == []

    @pytest.mark.asyncio
    async def test_service_down_keeps_credential(self, authenticator, store):
        """Transient failures are raised and the credential is kept."""
        await store.store(TokenCredential("broken"))

        with pytest.raises(ProtocolError) as exc_info:
            await authenticator.restore_session()

        assert exc_info.value.category == ErrorCategory.RETRYABLE
        assert isinstance(authenticator.state, NoSession)
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_stored_password_reruns_login(self, authenticator, store, login_flow):
        await store.store(PasswordCredential("metc", "hunter2"))
        login_flow.login.return_value = LoginSuccess("Y", "metc@example.com", "abc123")

        state = await authenticator.restore_session()

        login_flow.login.assert_awaited_once_with("metc", "hunter2")
        assert isinstance(state, Authenticated)
        assert authenticator.client.token == "abc123"
        assert isinstance(await store.load(), PasswordCredential)

    @pytest.mark.asyncio
    async def test_stored_password_rejected(self, authenticator, store, login_flow):
        await store.store(PasswordCredential("metc", "changed"))
        login_flow.login.side_effect = BadCredentials("session cookie unchanged after login")

        state = await authenticator.restore_session()

        assert isinstance(state, NoSession)
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_rejected_token_with_failing_clear(self, authenticator, store):
        """The state still ends at NoSession when the rejected token cannot be removed."""
        await store.store(TokenCredential("expired"))
        store.reset = AsyncMock(side_effect=UnhandledCredentialError(5, "database is locked"))

        with pytest.raises(UnhandledCredentialError):
            await authenticator.restore_session()

        assert isinstance(authenticator.state, NoSession)
        assert authenticator.client.token is None


class TestLogin:
    """Tests for login() with a token."""

    @pytest.mark.asyncio
    async def test_success_stores_token(self, authenticator, store):
        user_model = await authenticator.login("fresh-token")

        assert user_model.username == "metc"
        assert isinstance(authenticator.state, Authenticated)
        assert authenticator.client.token == "fresh-token"
        assert await store.load() == TokenCredential("fresh-token")

    @pytest.mark.asyncio
    async def test_store_false(self, authenticator, store):
        await authenticator.login("fresh-token", store=False)

        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_invalid_token(self, authenticator, store):
        """401 becomes InvalidToken; nothing is stored and the client keeps no token."""
        with pytest.raises(InvalidToken):
            await authenticator.login("nope")

        assert isinstance(authenticator.state, NoSession)
        assert authenticator.client.token is None
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_service_unavailable(self, authenticator):
        with pytest.raises(ServiceUnavailable) as exc_info:
            await authenticator.login("broken")

        assert exc_info.value.category == ErrorCategory.RETRYABLE


class TestPasswordLogin:
    """Tests for login_with_password() and create_access_token()."""

    @pytest.mark.asyncio
    async def test_existing_token(self, authenticator, store, login_flow):
        login_flow.login.return_value = LoginSuccess("Y", "metc@example.com", "abc123")

        state = await authenticator.login_with_password("metc", "hunter2")

        assert isinstance(state, Authenticated)
        assert authenticator.client.token == "abc123"
        assert await store.load() == PasswordCredential("metc", "hunter2")

    @pytest.mark.asyncio
    async def test_needs_token_then_create(self, authenticator, login_flow):
        request = AccessTokenRequest("Y", "metc@example.com")
        login_flow.login.return_value = NeedsAccessToken(request)
        login_flow.create_access_token.return_value = LoginSuccess(
            "Y", "metc@example.com", "fresh-token"
        )

        state = await authenticator.login_with_password("metc", "hunter2")
        assert isinstance(state, NeedsAdditionalSetup)
        assert state.request == request

        state = await authenticator.create_access_token()

        login_flow.create_access_token.assert_awaited_once_with(request)
        assert isinstance(state, Authenticated)
        assert authenticator.client.token == "fresh-token"

    @pytest.mark.asyncio
    async def test_bad_credentials_stores_nothing(self, authenticator, store, login_flow):
        login_flow.login.side_effect = BadCredentials("session cookie unchanged after login")

        with pytest.raises(BadCredentials):
            await authenticator.login_with_password("metc", "wrong")

        assert isinstance(authenticator.state, NoSession)
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_create_without_pending_request(self, authenticator):
        with pytest.raises(ValueError):
            await authenticator.create_access_token()


class TestLogout:
    """Tests for logout()."""

    @pytest.mark.asyncio
    async def test_logout_clears_everything(self, authenticator, store):
        await authenticator.login("abc123")

        await authenticator.logout()

        assert isinstance(authenticator.state, NoSession)
        assert authenticator.client.token is None
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_logout_without_credential(self, authenticator):
        await authenticator.logout()

        assert isinstance(authenticator.state, NoSession)

    @pytest.mark.asyncio
    async def test_failed_clear_still_ends_session(self, authenticator, store):
        """The session ends even when the credential cannot be removed; the error is raised."""
        await authenticator.login("abc123")
        store.reset = AsyncMock(side_effect=UnhandledCredentialError(5, "database is locked"))

        with pytest.raises(UnhandledCredentialError):
            await authenticator.logout()

        assert isinstance(authenticator.state, NoSession)
        assert authenticator.client.token is None


class TestSend:
    """Tests for send()."""

    @pytest.mark.asyncio
    async def test_send_uses_session_token(self, authenticator):
        await authenticator.login("abc123")

        response = await authenticator.send(resources.summary())

        assert response.data.lessons == []
        assert authenticator.transport.requests[-1].headers["Authorization"] == "Bearer abc123"

    @pytest.mark.asyncio
    async def test_rejected_session_logs_out(self, authenticator, store):
        """A 401 on an authenticated call removes the credential and ends the session."""
        await authenticator.login("abc123")
        authenticator.client.token = "revoked"

        with pytest.raises(ProtocolError) as exc_info:
            await authenticator.send(resources.summary())

        assert exc_info.value.status_code == 401
        assert isinstance(authenticator.state, NoSession)
        assert await store.count() == 0

    @pytest.mark.asyncio
    async def test_rejected_session_keeps_error_when_clear_fails(self, authenticator, store):
        """The 401 stays the raised error; the storage failure is its cause."""
        await authenticator.login("abc123")
        authenticator.client.token = "revoked"
        store.reset = AsyncMock(side_effect=UnhandledCredentialError(5, "database is locked"))

        with pytest.raises(ProtocolError) as exc_info:
            await authenticator.send(resources.summary())

        assert exc_info.value.category == ErrorCategory.REQUIRES_REAUTHENTICATION
        assert isinstance(exc_info.value.__cause__, UnhandledCredentialError)
        assert isinstance(authenticator.state, NoSession)
        assert authenticator.client.token is None
