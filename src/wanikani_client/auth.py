"""
Authentication orchestrator.

Authenticator owns the session lifecycle and exposes it as a small state
machine:

    Unknown --restore_session--> Authenticated(user) | NoSession
    NoSession --login--> Authenticated(user)
    NoSession --login_with_password--> Authenticated(user)
                                     | NeedsAdditionalSetup(request)
    NeedsAdditionalSetup --create_access_token--> Authenticated(user)
    Authenticated --logout--> NoSession

Failed logins leave the state at NoSession. The API client's token is
assigned only here, and only after the server has accepted it.
"""

import logging
from dataclasses import dataclass
from typing import Any, Union

from wanikani_client import resources
from wanikani_client.client import WaniKaniClient
from wanikani_client.credentials import (
    Credential,
    CredentialStore,
    PasswordCredential,
    TokenCredential,
)
from wanikani_client.errors import (
    BadCredentials,
    CredentialError,
    ErrorCategory,
    InvalidToken,
    NoCredential,
    ProtocolError,
    ServiceUnavailable,
    WaniKaniError,
)
from wanikani_client.login import (
    AccessTokenRequest,
    CookieLoginFlow,
    LoginSuccess,
    NeedsAccessToken,
)
from wanikani_client.resources import PageOptions, Resource, Response
from wanikani_client.retry import RateLimitPolicy
from wanikani_client.types import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Unknown:
    """Nothing has been restored or attempted yet."""


@dataclass(frozen=True)
class NoSession:
    """No usable credential; a login is required."""


@dataclass(frozen=True)
class NeedsAdditionalSetup:
    """Logged in on the website, but an access token still has to be created."""

    request: AccessTokenRequest


@dataclass(frozen=True)
class Authenticated:
    user: User


AuthenticationState = Union[Unknown, NoSession, NeedsAdditionalSetup, Authenticated]


class Authenticator:
    """
    Drives login, session restore and logout, and sends authenticated requests.

    Example:
        auth = Authenticator(client, CredentialStore(path, domain), CookieLoginFlow(settings))
        state = await auth.restore_session()
        if isinstance(state, NoSession):
            await auth.login("my-token")
        summary = (await auth.send(resources.summary())).data
    """

    def __init__(
        self,
        client: WaniKaniClient,
        credentials: CredentialStore,
        login_flow: CookieLoginFlow,
        policy: RateLimitPolicy | None = None,
    ) -> None:
        self.client = client
        self.credentials = credentials
        self.login_flow = login_flow
        self.policy = policy or RateLimitPolicy()
        self.state: AuthenticationState = Unknown()

    def _transition(self, state: AuthenticationState) -> AuthenticationState:
        if type(state) is not type(self.state):
            logger.info(
                f"Authentication state: {type(self.state).__name__} -> {type(state).__name__}"
            )
        self.state = state
        return state

    async def restore_session(self) -> AuthenticationState:
        """
        Restore the session from the stored credential.

        A stored token is verified with GET /user; a rejected token is
        removed. A stored username and password rerun the website login.
        No credential, or a malformed one, ends in NoSession.

        Raises:
            WaniKaniError: Failures other than a rejected credential, after
                the state has been set to NoSession.
        """
        try:
            credential = await self.credentials.load()
        except NoCredential:
            logger.debug("No stored credential")
            return self._transition(NoSession())
        except CredentialError as e:
            logger.warning(f"Ignoring unusable stored credential: {e}")
            return self._transition(NoSession())

        try:
            return await self._resume(credential)
        except WaniKaniError as e:
            if e.category == ErrorCategory.REQUIRES_REAUTHENTICATION or isinstance(
                e, (InvalidToken, BadCredentials)
            ):
                logger.info(f"Stored credential rejected, removing it: {e}")
                try:
                    await self.credentials.reset()
                finally:
                    self._transition(NoSession())
                return self.state
            self._transition(NoSession())
            raise

    async def _resume(self, credential: Credential) -> AuthenticationState:
        if isinstance(credential, TokenCredential):
            user = await self._verify(credential.token)
            self.client.token = credential.token
            return self._transition(Authenticated(user))

        outcome = await self.login_flow.login(credential.username, credential.password)
        return await self._finish_login(outcome, store=False)

    async def login(self, token: str, store: bool = True) -> User:
        """
        Log in with a personal access token.

        Args:
            token: Token to verify against GET /user.
            store: Persist the token once accepted.

        Raises:
            InvalidToken: The server answered 401.
            ServiceUnavailable: The server answered 500 or 503.
            WaniKaniError: Any other failure; the state stays NoSession.
        """
        try:
            user = await self._verify(token)
        except ProtocolError as e:
            self._transition(NoSession())
            if e.status_code == 401:
                raise InvalidToken(e.message) from e
            if e.status_code in (500, 503):
                raise ServiceUnavailable(e.message) from e
            raise
        except WaniKaniError:
            self._transition(NoSession())
            raise

        if store:
            await self.credentials.store(TokenCredential(token))
        self.client.token = token
        self._transition(Authenticated(user))
        return user

    async def login_with_password(
        self, username: str, password: str, store: bool = True
    ) -> AuthenticationState:
        """
        Log in through the website and pick up this application's token.

        Returns:
            Authenticated when a token already exists, NeedsAdditionalSetup
            when one has to be created with create_access_token().

        Raises:
            AuthenticationError: The website login failed; the state stays
                NoSession and nothing is stored.
        """
        try:
            outcome = await self.login_flow.login(username, password)
        except WaniKaniError:
            self._transition(NoSession())
            raise

        if store:
            await self.credentials.store(PasswordCredential(username, password))
        return await self._finish_login(outcome, store=False)

    async def create_access_token(
        self, request: AccessTokenRequest | None = None
    ) -> AuthenticationState:
        """
        Create this application's token and finish logging in.

        Args:
            request: Defaults to the request held by NeedsAdditionalSetup.
        """
        if request is None:
            if not isinstance(self.state, NeedsAdditionalSetup):
                raise ValueError("No pending access token request")
            request = self.state.request

        try:
            success = await self.login_flow.create_access_token(request)
        except WaniKaniError:
            self._transition(NoSession())
            raise
        return await self._finish_login(success, store=False)

    async def _finish_login(
        self, outcome: LoginSuccess | NeedsAccessToken, store: bool
    ) -> AuthenticationState:
        if isinstance(outcome, NeedsAccessToken):
            return self._transition(NeedsAdditionalSetup(outcome.request))
        await self.login(outcome.access_token, store=store)
        return self.state

    async def logout(self) -> None:
        """
        Forget the session.

        The state becomes NoSession and the client token is cleared even when
        removing the stored credential fails; that failure is then raised.
        """
        try:
            await self.credentials.reset()
        finally:
            self.client.token = None
            self._transition(NoSession())

    async def send(
        self, resource: Resource[Any], page_options: PageOptions | None = None
    ) -> Response[Any]:
        """
        Send a request with the session token, waiting out rate limits.

        A 401 or 403 ends the session: the stored credential is removed, the
        state becomes NoSession and the error is raised. If the credential
        cannot be removed, the same error is raised with the storage failure
        as its cause.
        """
        try:
            return await self.policy.run(lambda: self.client.send(resource, page_options))
        except ProtocolError as e:
            if e.category == ErrorCategory.REQUIRES_REAUTHENTICATION:
                logger.warning(f"Session rejected with {e.status_code}, logging out")
                try:
                    await self.logout()
                except CredentialError as clear_error:
                    logger.warning(f"Could not remove rejected credential: {clear_error}")
                    raise e from clear_error
            raise

    async def _verify(self, token: str) -> User:
        response = await self.policy.run(
            lambda: self.client.send(resources.me(), token=token)
        )
        return response.data
