"""
Service wiring.

Builds the long-lived collaborators from Settings and owns the shared
httpx.AsyncClient for their lifetime.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator

import httpx

from wanikani_client.auth import Authenticator
from wanikani_client.cache import SubjectCache
from wanikani_client.client import WaniKaniClient
from wanikani_client.config import Settings
from wanikani_client.credentials import CredentialStore
from wanikani_client.login import CookieLoginFlow
from wanikani_client.retry import RateLimitPolicy

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    client: WaniKaniClient
    authenticator: Authenticator
    subjects: SubjectCache


@asynccontextmanager
async def open_services(
    settings: Settings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AsyncIterator[Services]:
    """
    Open the API client, credential store, login flow and subject cache.

    Args:
        settings: Configuration; read from the environment when omitted.
        transport: httpx transport override shared by the API client and the
            login flow, used by tests.

    The subject cache should refresh through `authenticator` so rate limits
    are waited out once and a rejected token ends the session.

    Example:
        async with open_services() as services:
            await services.authenticator.restore_session()
            await services.subjects.update(services.authenticator)
    """
    settings = settings or Settings()
    policy = RateLimitPolicy.from_settings(settings)

    async with httpx.AsyncClient(
        base_url=settings.api_base_url,
        transport=transport,
        timeout=settings.request_timeout,
    ) as http:
        client = WaniKaniClient.from_http(http, settings)
        authenticator = Authenticator(
            client,
            CredentialStore(settings.credentials_path, settings.credential_domain),
            CookieLoginFlow(settings, transport=transport),
            policy,
        )
        subjects = await SubjectCache.load(
            settings.cache_path, settings.subject_freshness, policy
        )
        logger.debug(f"Services ready for {settings.api_base_url}")
        yield Services(settings, client, authenticator, subjects)
