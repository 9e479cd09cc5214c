"""
HTTP transport adapter.

HTTPTransport receives an injected httpx.AsyncClient and reduces every
exchange to a RawResponse (status, headers, body bytes, final URL). Network
failures surface as wanikani_client.errors.TransportError; HTTP status codes
are left for the caller to interpret.
"""

from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx

from wanikani_client.errors import TransportError

FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class RawResponse:
    """Undecoded result of one HTTP exchange."""

    status_code: int
    headers: httpx.Headers
    content: bytes
    url: str

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")


@dataclass
class HTTPTransport:
    """
    Thin async HTTP adapter with injected httpx client.

    Attributes:
        http: Pre-configured httpx.AsyncClient. Cookie handling and redirect
            policy are whatever the client was built with.

    Example:
        async with httpx.AsyncClient(base_url="https://api.wanikani.com/v2") as http:
            transport = HTTPTransport(http=http)
            raw = await transport.request("GET", "/user", headers={...})
    """

    http: httpx.AsyncClient

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
        content: bytes | None = None,
        json: Any = None,
    ) -> RawResponse:
        """
        Issue a request and return the raw response.

        Raises:
            TransportError: If no HTTP response was received (DNS, connect,
                TLS, timeout, protocol failures).
        """
        try:
            response = await self.http.request(
                method,
                url,
                headers=headers,
                params=params,
                content=content,
                json=json,
            )
        except httpx.TransportError as e:
            raise TransportError(url, str(e) or type(e).__name__) from e

        return RawResponse(
            status_code=response.status_code,
            headers=response.headers,
            content=response.content,
            url=str(response.url),
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self.http.cookies


def encode_form(fields: list[tuple[str, str]]) -> bytes:
    """
    Encode form fields as application/x-www-form-urlencoded.

    Names and values are percent-encoded so that only RFC 3986 unreserved
    characters (ALPHA / DIGIT / "-" / "." / "_" / "~") remain literal.
    """
    return "&".join(
        f"{quote(name, safe='')}={quote(value, safe='')}" for name, value in fields
    ).encode("ascii")
