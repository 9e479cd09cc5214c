"""
Secret redaction for debug logging.

Request headers, form fields and stored credentials pass through here before
they reach a log record, so API tokens, session cookies and passwords never
end up in log output.

Two detection strategies:
1. Key-based: field names like 'password', 'authorization', 'cookie'
2. Pattern-based: Bearer tokens, session cookie assignments, env-style KEY=value
"""

import re
from typing import Any


class SecretRedactor:
    """
    Redacts secrets from dictionaries and strings.

    Example:
        redactor = SecretRedactor()
        safe = redactor.redact_dict({
            'Authorization': 'Bearer 3c9d…',
            'user[password]': 'hunter2',
            'user[login]': 'metc',
        })
        # {'Authorization': '[REDACTED]', 'user[password]': '[REDACTED]',
        #  'user[login]': 'metc'}
    """

    REDACTED = "[REDACTED]"

    # Sensitive key names (case-insensitive); form keys are matched on
    # their innermost bracketed part, so user[password] counts as password
    SENSITIVE_KEYS = {
        "password",
        "passwd",
        "secret",
        "token",
        "api_key",
        "apikey",
        "api_token",
        "access_token",
        "authenticity_token",
        "authorization",
        "bearer",
        "credential",
        "credentials",
        "cookie",
        "cookies",
        "set-cookie",
        "session",
    }

    ENV_VAR_PATTERN = re.compile(
        r"(API_KEY|APIKEY|TOKEN|PASSWORD|SECRET)=([^\s&]+)", re.IGNORECASE
    )
    BEARER_PATTERN = re.compile(r"Bearer\s+([^\s]+)", re.IGNORECASE)
    COOKIE_PATTERN = re.compile(r"(_[a-z0-9_]*session)=([^\s;]+)", re.IGNORECASE)
    FORM_KEY_PATTERN = re.compile(r"\[([^\[\]]+)\]$")

    def is_sensitive_key(self, key: str) -> bool:
        key = key.lower()
        if key in self.SENSITIVE_KEYS:
            return True
        match = self.FORM_KEY_PATTERN.search(key)
        return bool(match and match.group(1) in self.SENSITIVE_KEYS)

    def redact_dict(self, data: dict[str, Any]) -> dict[str, Any]:
        """
        Redact secrets from a dictionary.

        Recursively processes nested dictionaries and lists.

        Args:
            data: Dictionary potentially containing secrets

        Returns:
            Copy of the dictionary with secrets replaced by '[REDACTED]'
        """
        result: dict[str, Any] = {}
        for key, value in data.items():
            if self.is_sensitive_key(str(key)):
                result[key] = self.REDACTED
            elif isinstance(value, dict):
                result[key] = self.redact_dict(value)
            elif isinstance(value, list):
                result[key] = [
                    self.redact_dict(item) if isinstance(item, dict) else item
                    for item in value
                ]
            elif isinstance(value, str):
                result[key] = self.redact_string(value)
            else:
                result[key] = value
        return result

    def redact_pairs(self, pairs: list[tuple[str, str]]) -> list[tuple[str, str]]:
        """Redact form fields given as (name, value) pairs."""
        return [
            (name, self.REDACTED if self.is_sensitive_key(name) else value)
            for name, value in pairs
        ]

    def redact_string(self, value: str) -> str:
        if not value:
            return value
        result = self.ENV_VAR_PATTERN.sub(rf"\1={self.REDACTED}", value)
        result = self.BEARER_PATTERN.sub(f"Bearer {self.REDACTED}", result)
        result = self.COOKIE_PATTERN.sub(rf"\1={self.REDACTED}", result)
        return result


redactor = SecretRedactor()
