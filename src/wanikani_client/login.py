"""
Cookie-based login bootstrap.

When no API token is stored, a token is obtained by driving the WaniKani
website like a browser would:

    FETCH_LOGIN_PAGE -> SUBMIT_CREDENTIALS -> FETCH_EMAIL_AND_TOKEN_PAGES
        -> AUTHENTICATED                    (a token for this app exists)
        -> NEEDS_ACCESS_TOKEN               (no token yet; caller decides)
    NEEDS_ACCESS_TOKEN -> CREATE_ACCESS_TOKEN -> AUTHENTICATED

Login success is inferred, not reported: the site answers a failed login
with the same session cookie and no redirect to the dashboard. An unchanged
cookie or a final URL other than the dashboard is treated as bad
credentials. The heuristic is fragile and covered by contract tests.

Normal operation never comes here; a stored token talks to the JSON API
directly.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Union

import httpx

from wanikani_client.config import Settings
from wanikani_client.errors import (
    AccessTokenNotFound,
    BadCredentials,
    CsrfTokenNotFound,
    EmailNotFound,
    ProtocolError,
    SessionCookieNotSet,
)
from wanikani_client.redaction import redactor
from wanikani_client.scraping import PageParser, SoupPageParser
from wanikani_client.transport import (
    FORM_CONTENT_TYPE,
    HTTPTransport,
    RawResponse,
    encode_form,
)

logger = logging.getLogger(__name__)


class LoginStage(str, Enum):
    FETCH_LOGIN_PAGE = "fetch_login_page"
    SUBMIT_CREDENTIALS = "submit_credentials"
    FETCH_EMAIL_AND_TOKEN_PAGES = "fetch_email_and_token_pages"
    NEEDS_ACCESS_TOKEN = "needs_access_token"
    CREATE_ACCESS_TOKEN = "create_access_token"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class AccessTokenPermissions:
    """Write scopes requested for a new personal access token."""

    start_assignments: bool = False
    create_reviews: bool = False
    create_study_materials: bool = False
    update_study_materials: bool = False
    update_user: bool = False

    def form_fields(self) -> list[tuple[str, str]]:
        scopes = [
            (self.start_assignments, "assignments", "start"),
            (self.create_reviews, "reviews", "create"),
            (self.create_study_materials, "study_materials", "create"),
            (self.update_study_materials, "study_materials", "update"),
            (self.update_user, "user", "update"),
        ]
        return [
            (f"personal_access_token[permissions][{resource}][{verb}]", "1")
            for enabled, resource, verb in scopes
            if enabled
        ]


@dataclass(frozen=True)
class AccessTokenRequest:
    """Everything needed to mint a token for an already logged-in session."""

    cookie: str = field(repr=False)
    email_address: str
    permissions: AccessTokenPermissions = field(default_factory=AccessTokenPermissions)


@dataclass(frozen=True)
class NeedsAccessToken:
    """Logged in, but no token labelled for this application exists yet."""

    request: AccessTokenRequest
    stage: LoginStage = LoginStage.NEEDS_ACCESS_TOKEN


@dataclass(frozen=True)
class LoginSuccess:
    """Terminal state: session cookie, account email and API token."""

    cookie: str = field(repr=False)
    email_address: str
    access_token: str = field(repr=False)
    stage: LoginStage = LoginStage.AUTHENTICATED


LoginOutcome = Union[NeedsAccessToken, LoginSuccess]


class CookieLoginFlow:
    """
    Runs the HTML login and token bootstrap against the WaniKani website.

    Each run uses its own httpx.AsyncClient, so cookies never leak between
    attempts or into the JSON API client.

    Example:
        flow = CookieLoginFlow(settings)
        outcome = await flow.login("metc", "hunter2")
        if isinstance(outcome, NeedsAccessToken):
            outcome = await flow.create_access_token(outcome.request)
        print(outcome.access_token)
    """

    def __init__(
        self,
        settings: Settings,
        parser: PageParser | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            settings: Supplies site URLs, cookie name and application label.
            parser: Page structure knowledge; SoupPageParser by default.
            transport: httpx transport override, used by tests.
        """
        self.settings = settings
        self.parser = parser or SoupPageParser()
        self._transport = transport

    def _session(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            follow_redirects=True,
            timeout=self.settings.request_timeout,
        )

    async def login(self, username: str, password: str) -> LoginOutcome:
        """
        Log in with username and password and look for an existing token.

        Returns:
            LoginSuccess if a token labelled with the application label
            exists, NeedsAccessToken otherwise.

        Raises:
            CsrfTokenNotFound: The login page has no anti-forgery token.
            SessionCookieNotSet: The site did not set a session cookie.
            BadCredentials: The login was rejected.
            EmailNotFound: The account page has no email field.
            ProtocolError / TransportError: The site could not be reached.
        """
        async with self._session() as http:
            session = HTTPTransport(http)
            csrf_token, first_cookie = await self._fetch_login_page(session)
            cookie = await self._submit_credentials(
                session, username, password, csrf_token, first_cookie
            )

        self._enter(LoginStage.FETCH_EMAIL_AND_TOKEN_PAGES)
        async with self._session() as http:
            session = HTTPTransport(http)
            email_address, access_token = await asyncio.gather(
                self._fetch_email(session, cookie),
                self._fetch_existing_token(session, cookie),
            )

        if access_token is None:
            self._enter(LoginStage.NEEDS_ACCESS_TOKEN)
            return NeedsAccessToken(AccessTokenRequest(cookie, email_address))

        self._enter(LoginStage.AUTHENTICATED)
        return LoginSuccess(cookie, email_address, access_token)

    async def create_access_token(self, request: AccessTokenRequest) -> LoginSuccess:
        """
        Create a personal access token for a logged-in session.

        Raises:
            CsrfTokenNotFound: The token settings page has no anti-forgery token.
            AccessTokenNotFound: The new token is missing from the result page.
        """
        self._enter(LoginStage.CREATE_ACCESS_TOKEN)
        url = self.settings.access_token_settings_url

        async with self._session() as http:
            session = HTTPTransport(http)
            page = await self._get(session, url, request.cookie)
            csrf_token = self.parser.extract_csrf_token(page.text)
            if csrf_token is None:
                raise CsrfTokenNotFound(url)

            fields = [
                ("personal_access_token[description]", self.settings.app_label),
                ("authenticity_token", csrf_token),
                ("utf8", "✓"),
                *request.permissions.form_fields(),
            ]
            result = await self._post_form(session, url, fields, request.cookie)

        access_token = self.parser.extract_access_token(result.text, self.settings.app_label)
        if access_token is None:
            raise AccessTokenNotFound(url)

        self._enter(LoginStage.AUTHENTICATED)
        return LoginSuccess(request.cookie, request.email_address, access_token)

    # -------------------------------------------------------------------------
    # Stages
    # -------------------------------------------------------------------------

    async def _fetch_login_page(self, session: HTTPTransport) -> tuple[str, str]:
        self._enter(LoginStage.FETCH_LOGIN_PAGE)
        page = await self._get(session, self.settings.login_url)
        csrf_token = self.parser.extract_csrf_token(page.text)
        if csrf_token is None:
            raise CsrfTokenNotFound(self.settings.login_url)
        return csrf_token, self._session_cookie(session)

    async def _submit_credentials(
        self,
        session: HTTPTransport,
        username: str,
        password: str,
        csrf_token: str,
        first_cookie: str,
    ) -> str:
        self._enter(LoginStage.SUBMIT_CREDENTIALS)
        fields = [
            ("user[login]", username),
            ("user[password]", password),
            ("user[remember_me]", "0"),
            ("authenticity_token", csrf_token),
            ("utf8", "✓"),
        ]
        result = await self._post_form(session, self.settings.login_url, fields)
        second_cookie = self._session_cookie(session)

        if second_cookie == first_cookie:
            raise BadCredentials("session cookie unchanged after login")
        if not _same_page(result.url, self.settings.dashboard_url):
            raise BadCredentials(f"login landed on {_strip_query(result.url)}")
        return second_cookie

    async def _fetch_email(self, session: HTTPTransport, cookie: str) -> str:
        url = self.settings.account_settings_url
        page = await self._get(session, url, cookie)
        email_address = self.parser.extract_email(page.text)
        if email_address is None:
            raise EmailNotFound(url)
        return email_address

    async def _fetch_existing_token(self, session: HTTPTransport, cookie: str) -> str | None:
        page = await self._get(session, self.settings.access_token_settings_url, cookie)
        return self.parser.extract_access_token(page.text, self.settings.app_label)

    # -------------------------------------------------------------------------
    # HTTP helpers
    # -------------------------------------------------------------------------

    def _enter(self, stage: LoginStage) -> None:
        logger.debug(f"Login flow: {stage.value}")

    def _cookie_header(self, cookie: str | None) -> dict[str, str]:
        if cookie is None:
            return {}
        return {"Cookie": f"{self.settings.session_cookie_name}={cookie}"}

    async def _get(
        self, session: HTTPTransport, url: str, cookie: str | None = None
    ) -> RawResponse:
        raw = await session.request("GET", url, headers=self._cookie_header(cookie))
        _check(raw)
        return raw

    async def _post_form(
        self,
        session: HTTPTransport,
        url: str,
        fields: list[tuple[str, str]],
        cookie: str | None = None,
    ) -> RawResponse:
        logger.debug(f"POST {url} fields={redactor.redact_pairs(fields)}")
        body = encode_form(fields)
        headers = {
            "Content-Type": FORM_CONTENT_TYPE,
            "Content-Length": str(len(body)),
            **self._cookie_header(cookie),
        }
        raw = await session.request("POST", url, headers=headers, content=body)
        _check(raw)
        return raw

    def _session_cookie(self, session: HTTPTransport) -> str:
        name = self.settings.session_cookie_name
        for cookie in session.cookies.jar:
            if cookie.name == name and cookie.value:
                return cookie.value
        raise SessionCookieNotSet(name)


def _check(raw: RawResponse) -> None:
    if raw.status_code >= 400:
        raise ProtocolError(raw.status_code, _strip_query(raw.url))


def _strip_query(url: str) -> str:
    return str(httpx.URL(url).copy_with(query=None, fragment=None))


def _same_page(actual: str, expected: str) -> bool:
    a, b = httpx.URL(actual), httpx.URL(expected)
    return (a.scheme, a.host, a.path.rstrip("/")) == (b.scheme, b.host, b.path.rstrip("/"))
