"""
HTML extraction for the WaniKani website.

The cookie login bootstrap depends on the structure of pages WaniKani
renders for humans. Everything that knows about that structure lives behind
the PageParser protocol, so a layout change means swapping the parser, not
touching the login state machine.

Extracted values:
- CSRF token:   <meta name="csrf-token" content="…"> in the document head
- Email:        value of <input id="user_email"> on the account settings page
- Access token: the cell following the <td class="personal-access-token-description">
                whose text equals the application label
"""

from typing import Protocol, runtime_checkable

from bs4 import BeautifulSoup


@runtime_checkable
class PageParser(Protocol):
    """Extracts login-relevant values from rendered WaniKani pages."""

    def extract_csrf_token(self, html: str) -> str | None:
        """Anti-forgery token of the page, or None if absent."""
        ...

    def extract_email(self, html: str) -> str | None:
        """Email address from the account settings page, or None."""
        ...

    def extract_access_token(self, html: str, app_label: str) -> str | None:
        """Personal access token labelled `app_label`, or None."""
        ...


class SoupPageParser:
    """PageParser using BeautifulSoup CSS selectors."""

    def __init__(self, features: str = "html.parser") -> None:
        self.features = features

    def _soup(self, html: str) -> BeautifulSoup:
        return BeautifulSoup(html, self.features)

    def extract_csrf_token(self, html: str) -> str | None:
        meta = self._soup(html).select_one('meta[name="csrf-token"]')
        if meta is None:
            return None
        return meta.get("content") or None

    def extract_email(self, html: str) -> str | None:
        field = self._soup(html).select_one("input#user_email")
        if field is None:
            return None
        return field.get("value") or None

    def extract_access_token(self, html: str, app_label: str) -> str | None:
        for cell in self._soup(html).select("td.personal-access-token-description"):
            if cell.get_text(strip=True) != app_label:
                continue
            token_cell = cell.find_next_sibling("td")
            if token_cell is None:
                return None
            return token_cell.get_text(strip=True) or None
        return None
