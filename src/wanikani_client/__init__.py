"""
WaniKani API client

Async client core for the WaniKani API v2. This package provides:

- Resource descriptors and pydantic models for every API v2 endpoint
- WaniKaniClient: typed requests with pagination
- RateLimitPolicy: waits out 429 responses and replays the request
- CredentialStore: one stored token or password per credential domain
- CookieLoginFlow: website login that finds or creates an access token
- SubjectCache: local subject map with incremental refresh
- Authenticator: session restore, login and logout
"""

__version__ = "0.1.0"

# Re-export public types for convenient imports
from wanikani_client.auth import (
    Authenticated,
    AuthenticationState,
    Authenticator,
    NeedsAdditionalSetup,
    NoSession,
    Unknown,
)
from wanikani_client.cache import SubjectCache
from wanikani_client.client import WaniKaniClient
from wanikani_client.config import Settings
from wanikani_client.credentials import (
    CredentialStore,
    PasswordCredential,
    TokenCredential,
)
from wanikani_client.errors import ErrorCategory, WaniKaniError, classify_status
from wanikani_client.login import CookieLoginFlow, LoginSuccess, NeedsAccessToken
from wanikani_client.resources import Page, PageOptions, Resource, Response
from wanikani_client.retry import RateLimitPolicy
from wanikani_client.services import Services, open_services
from wanikani_client.subjects import LevelProgress, SubjectGroups
from wanikani_client.types import (
    KanaVocabulary,
    Kanji,
    Radical,
    Subject,
    User,
    Vocabulary,
)

__all__ = [
    "__version__",
    # Client
    "WaniKaniClient",
    "Resource",
    "Response",
    "Page",
    "PageOptions",
    "RateLimitPolicy",
    "Settings",
    # Errors
    "ErrorCategory",
    "WaniKaniError",
    "classify_status",
    # Authentication
    "Authenticator",
    "AuthenticationState",
    "Unknown",
    "NoSession",
    "NeedsAdditionalSetup",
    "Authenticated",
    "CredentialStore",
    "TokenCredential",
    "PasswordCredential",
    "CookieLoginFlow",
    "LoginSuccess",
    "NeedsAccessToken",
    # Subjects
    "SubjectCache",
    "SubjectGroups",
    "LevelProgress",
    "Subject",
    "Radical",
    "Kanji",
    "Vocabulary",
    "KanaVocabulary",
    "User",
    # Wiring
    "Services",
    "open_services",
]
