"""Environment-based configuration for the WaniKani client."""

from datetime import timedelta
from pathlib import Path

from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """WaniKani client configuration.

    All settings can be overridden via environment variables with
    WANIKANI_ prefix. For example:
        WANIKANI_API_BASE_URL=https://api.wanikani.com/v2
        WANIKANI_APP_LABEL=my-study-tool
        WANIKANI_SUBJECT_FRESHNESS_SECONDS=3600
    """

    # JSON API
    api_base_url: str = "https://api.wanikani.com/v2"
    api_revision: str = "20170710"
    request_timeout: float = 30.0
    page_size: int | None = None

    # HTML site used by the cookie login bootstrap
    web_base_url: str = "https://www.wanikani.com"
    session_cookie_name: str = "_wanikani_session"

    # Description used to label and find personal access tokens
    app_label: str = "wanikani-client"

    # Credential storage
    credential_domain: str = "api.wanikani.com"

    # Subject cache
    subject_freshness_seconds: float = 6 * 60 * 60

    # Rate limiting
    rate_limit_max_retries: int = 3
    rate_limit_fallback_seconds: float = 60.0

    # Local files
    data_dir: Path = Path.home() / ".wanikani"
    cache_path: Path | None = None
    credentials_path: Path | None = None

    log_level: str = "WARNING"

    model_config = {"env_prefix": "WANIKANI_"}

    @model_validator(mode="after")
    def _default_paths(self) -> "Settings":
        if self.cache_path is None:
            self.cache_path = self.data_dir / "subjects.json"
        if self.credentials_path is None:
            self.credentials_path = self.data_dir / "credentials.db"
        return self

    @property
    def subject_freshness(self) -> timedelta:
        return timedelta(seconds=self.subject_freshness_seconds)

    @property
    def login_url(self) -> str:
        return f"{self.web_base_url}/login"

    @property
    def dashboard_url(self) -> str:
        return f"{self.web_base_url}/dashboard"

    @property
    def account_settings_url(self) -> str:
        return f"{self.web_base_url}/settings/account"

    @property
    def access_token_settings_url(self) -> str:
        return f"{self.web_base_url}/settings/personal_access_tokens"
