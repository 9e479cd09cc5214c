"""
Interfaces shared between the client, the cache and the orchestrator.

ResourceSender is anything that can send a Resource and return a decoded
Response: WaniKaniClient sends directly, Authenticator sends with rate-limit
waits and session invalidation on top. Authenticator is also a
RetryingSender, so callers holding their own policy leave the waiting to it.
"""

from typing import Any, Protocol, runtime_checkable

from wanikani_client.resources import PageOptions, Resource, Response
from wanikani_client.retry import RateLimitPolicy


@runtime_checkable
class ResourceSender(Protocol):
    """Protocol for objects that send typed API requests."""

    async def send(
        self, resource: Resource[Any], page_options: PageOptions | None = None
    ) -> Response[Any]:
        """
        Send one request and decode its response.

        Args:
            resource: Endpoint descriptor.
            page_options: Continuation for collection resources.

        Returns:
            Decoded response; collections carry a Page whose `next` continues
            the walk.
        """
        ...


@runtime_checkable
class RetryingSender(ResourceSender, Protocol):
    """A sender whose send() already waits out rate limits with `policy`."""

    policy: RateLimitPolicy
