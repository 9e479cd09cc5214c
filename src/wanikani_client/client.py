"""
WaniKani API v2 client.

WaniKaniClient sends Resource descriptors through an HTTPTransport whose
httpx.AsyncClient has base_url set to the API root. Responses are decoded
into the resource's declared content type; collections come back as a list
plus a Page descriptor whose `next` continues the walk.

Errors:
- TransportError when no response arrived
- NotModified for 304, RateLimitExceeded for 429, ProtocolError otherwise
- DecodingError when the body does not match the content type
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, AsyncIterator

import httpx
from pydantic import TypeAdapter, ValidationError

from wanikani_client.config import Settings
from wanikani_client.errors import (
    DecodingError,
    NotModified,
    ProtocolError,
    RateLimitExceeded,
)
from wanikani_client.redaction import redactor
from wanikani_client.resources import Page, PageOptions, Resource, Response
from wanikani_client.transport import HTTPTransport, RawResponse
from wanikani_client.types import Collection

logger = logging.getLogger(__name__)


@dataclass
class WaniKaniClient:
    """
    Authenticated WaniKani API client.

    Attributes:
        transport: HTTPTransport whose client has base_url set to the API root.
        settings: Client configuration (revision header, default page size).
        token: Personal access token used when a call passes no override.
            Only the authentication orchestrator assigns it.

    Example:
        async with httpx.AsyncClient(base_url=settings.api_base_url) as http:
            client = WaniKaniClient(HTTPTransport(http), settings, token="…")
            user = (await client.send(resources.me())).data
            async for page in client.pages(resources.assignments(started=True)):
                for assignment in page.data:
                    print(assignment.subject_id, assignment.srs_stage)
    """

    transport: HTTPTransport
    settings: Settings = field(default_factory=Settings)
    token: str | None = None

    @classmethod
    def from_http(
        cls, http: httpx.AsyncClient, settings: Settings, token: str | None = None
    ) -> "WaniKaniClient":
        return cls(transport=HTTPTransport(http), settings=settings, token=token)

    async def send(
        self,
        resource: Resource[Any],
        page_options: PageOptions | None = None,
        *,
        token: str | None = None,
        if_modified_since: datetime | None = None,
    ) -> Response[Any]:
        """
        Send one request described by a resource and decode the reply.

        Args:
            resource: Endpoint descriptor.
            page_options: Continuation for collection resources; ignored for
                single resources.
            token: Request-scoped token override. The client's own token is
                left untouched.
            if_modified_since: Send a conditional request; a 304 reply raises
                NotModified.

        Returns:
            Response with decoded data, plus a Page for collections.

        Raises:
            TransportError: No HTTP response was received.
            NotModified: The server answered 304.
            RateLimitExceeded: The server answered 429.
            ProtocolError: Any other non-2xx status.
            DecodingError: The body does not match the content type.
        """
        params = dict(resource.query)
        if resource.collection:
            if page_options is not None:
                params.update(page_options.to_params())
            if self.settings.page_size is not None and "per_page" not in params:
                params["per_page"] = str(self.settings.page_size)

        headers = self._headers(token if token is not None else self.token)
        if if_modified_since is not None:
            headers["If-Modified-Since"] = format_datetime(
                if_modified_since.astimezone(timezone.utc), usegmt=True
            )

        logger.debug(
            f"{resource.method} {resource.path} params={params} "
            f"headers={redactor.redact_dict(headers)}"
        )
        raw = await self.transport.request(
            resource.method,
            resource.path,
            headers=headers,
            params=params or None,
            json=resource.body,
        )
        self._raise_for_status(raw)
        return self._decode(resource, raw)

    async def pages(
        self,
        resource: Resource[Any],
        start: PageOptions | None = None,
        *,
        token: str | None = None,
    ) -> AsyncIterator[Response[Any]]:
        """
        Walk a collection page by page, following `page.next`.

        Each call starts a fresh walk; nothing is shared between walks.
        """
        page_options = start
        while True:
            response = await self.send(resource, page_options, token=token)
            yield response
            if response.page is None or response.page.next is None:
                return
            page_options = response.page.next

    def _headers(self, token: str | None) -> dict[str, str]:
        headers = {
            "Accept": "application/json",
            "Wanikani-Revision": self.settings.api_revision,
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        return headers

    def _raise_for_status(self, raw: RawResponse) -> None:
        if 200 <= raw.status_code < 300:
            return
        if raw.status_code == 304:
            raise NotModified(raw.url)
        if raw.status_code == 429:
            raise RateLimitExceeded(
                raw.url,
                limit=_int_header(raw.headers, "RateLimit-Limit"),
                remaining=_int_header(raw.headers, "RateLimit-Remaining"),
                reset=_reset_header(raw.headers),
            )
        raise ProtocolError(raw.status_code, raw.url, _error_message(raw))

    def _decode(self, resource: Resource[Any], raw: RawResponse) -> Response[Any]:
        content_name = getattr(resource.content, "__name__", str(resource.content))
        try:
            payload = json.loads(raw.content)
        except ValueError as e:
            logger.warning(f"Response from {raw.url} is not JSON ({len(raw.content)} bytes)")
            raise DecodingError(raw.url, content_name, "<not json>", str(e)) from e

        try:
            if resource.collection:
                envelope = Collection.model_validate(payload)
                items = TypeAdapter(list[resource.content]).validate_python(envelope.data)
                page = Page(
                    next=PageOptions.from_url(envelope.pages.next_url),
                    previous=PageOptions.from_url(envelope.pages.previous_url),
                    per_page=envelope.pages.per_page,
                    total_count=envelope.total_count,
                )
                return Response(data=items, page=page)

            data = TypeAdapter(resource.content).validate_python(payload)
            return Response(data=data)
        except ValidationError as e:
            shape = describe_shape(payload)
            logger.warning(
                f"Could not decode {content_name} from {raw.url}: "
                f"{e.error_count()} errors, payload shape {shape}"
            )
            raise DecodingError(raw.url, content_name, shape, str(e)) from e


def describe_shape(payload: Any, depth: int = 2) -> str:
    """
    Summarize a JSON payload's structure without any of its values.

    Example:
        describe_shape({"object": "collection", "data": [{"id": 1}]})
        # "{object: str, data: list[1]}"
    """
    if isinstance(payload, dict):
        if depth <= 0:
            return "{…}"
        inner = ", ".join(f"{k}: {describe_shape(v, depth - 1)}" for k, v in payload.items())
        return "{" + inner + "}"
    if isinstance(payload, list):
        return f"list[{len(payload)}]"
    if payload is None:
        return "null"
    return type(payload).__name__


def _int_header(headers: httpx.Headers, name: str) -> int | None:
    value = headers.get(name)
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None


def _reset_header(headers: httpx.Headers) -> datetime | None:
    """RateLimit-Reset is the epoch second at which the window resets."""
    reset = _int_header(headers, "RateLimit-Reset")
    if reset is None:
        return None
    return datetime.fromtimestamp(reset, tz=timezone.utc)


def _error_message(raw: RawResponse) -> str:
    try:
        body = json.loads(raw.content)
    except ValueError:
        return ""
    if isinstance(body, dict):
        return str(body.get("error") or "")
    return ""
