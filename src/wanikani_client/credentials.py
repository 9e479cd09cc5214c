"""
SQLite-backed credential storage.

One record per credential domain, holding `{account?, secret}`:
- a TokenCredential is stored with no account
- a PasswordCredential is stored with the username as account

Operations:
- load: read the single record, validating it
- store: create-or-update (upsert), never appends a second record
- reset: delete the record; deleting nothing is not an error

The database file is created readable by its owner only. Stores for the
same domain are serialized by an asyncio.Lock within the process and by
BEGIN IMMEDIATE transactions across processes.
"""

import asyncio
import logging
import os
import sqlite3
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Union

import aiosqlite

from wanikani_client.errors import (
    NoCredential,
    UnexpectedCredentialData,
    UnhandledCredentialError,
)

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS credentials (
    domain TEXT PRIMARY KEY,
    account TEXT,
    secret BLOB NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);
"""


@dataclass(frozen=True)
class TokenCredential:
    """Long-lived personal access token."""

    token: str

    def __repr__(self) -> str:
        return "TokenCredential(token='[REDACTED]')"


@dataclass(frozen=True)
class PasswordCredential:
    """Username/password pair used to bootstrap a session cookie."""

    username: str
    password: str

    def __repr__(self) -> str:
        return f"PasswordCredential(username={self.username!r}, password='[REDACTED]')"


Credential = Union[TokenCredential, PasswordCredential]


def _status(error: sqlite3.Error) -> int:
    return getattr(error, "sqlite_errorcode", -1)


class CredentialStore:
    """
    Credential store scoped to a single domain.

    Example:
        store = CredentialStore(Path("~/.wanikani/credentials.db"), "api.wanikani.com")
        await store.store(TokenCredential("abc123"))
        credential = await store.load()
        await store.reset()
    """

    def __init__(self, db_path: Path, domain: str) -> None:
        """
        Initialize the store.

        Args:
            db_path: Path to the SQLite database file
            domain: Credential domain; at most one record exists per domain
        """
        self.db_path = db_path
        self.domain = domain
        self._lock = asyncio.Lock()

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        """Open a connection with the schema in place, mapping storage errors."""
        try:
            self._prepare_file()
            async with aiosqlite.connect(self.db_path, isolation_level=None) as conn:
                await conn.executescript(SCHEMA_SQL)
                yield conn
        except sqlite3.Error as e:
            raise UnhandledCredentialError(_status(e), str(e)) from e
        except OSError as e:
            raise UnhandledCredentialError(e.errno or -1, str(e)) from e

    def _prepare_file(self) -> None:
        if self.db_path.exists():
            return
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self.db_path, os.O_CREAT | os.O_WRONLY, 0o600)
        os.close(fd)

    async def load(self) -> Credential:
        """
        Load the credential for this domain.

        Raises:
            NoCredential: No record exists.
            UnexpectedCredentialData: The record lacks a secret, has an empty
                account, or the secret is not UTF-8.
            UnhandledCredentialError: Any other storage failure.
        """
        async with self._connect() as conn:
            async with conn.execute(
                "SELECT account, secret FROM credentials WHERE domain = ?",
                (self.domain,),
            ) as cursor:
                row = await cursor.fetchone()

        if row is None:
            raise NoCredential(self.domain)

        account, secret = row
        if isinstance(secret, str):
            secret = secret.encode("utf-8")
        if not secret:
            raise UnexpectedCredentialData(self.domain, "missing secret")
        try:
            value = bytes(secret).decode("utf-8")
        except UnicodeDecodeError as e:
            raise UnexpectedCredentialData(self.domain, "secret is not UTF-8") from e

        if account is None:
            return TokenCredential(value)
        if not account:
            raise UnexpectedCredentialData(self.domain, "missing account")
        return PasswordCredential(account, value)

    async def store(self, credential: Credential) -> None:
        """
        Create or update the credential for this domain.

        Raises:
            UnhandledCredentialError: On storage failure.
        """
        if isinstance(credential, TokenCredential):
            account, secret = None, credential.token
        else:
            account, secret = credential.username, credential.password

        async with self._lock:
            async with self._connect() as conn:
                await conn.execute("BEGIN IMMEDIATE")
                try:
                    await conn.execute(
                        """
                        INSERT INTO credentials (domain, account, secret, updated_at)
                        VALUES (?, ?, ?, datetime('now'))
                        ON CONFLICT(domain) DO UPDATE SET
                            account = excluded.account,
                            secret = excluded.secret,
                            updated_at = excluded.updated_at
                        """,
                        (self.domain, account, secret.encode("utf-8")),
                    )
                except BaseException:
                    await conn.execute("ROLLBACK")
                    raise
                await conn.execute("COMMIT")
        logger.debug(f"Stored {type(credential).__name__} for {self.domain}")

    async def reset(self) -> None:
        """
        Delete the credential for this domain. Idempotent.

        Raises:
            UnhandledCredentialError: On storage failure.
        """
        async with self._lock:
            async with self._connect() as conn:
                cursor = await conn.execute(
                    "DELETE FROM credentials WHERE domain = ?", (self.domain,)
                )
                deleted = cursor.rowcount
                await cursor.close()
        logger.debug(f"Reset credentials for {self.domain} ({deleted} removed)")

    async def count(self) -> int:
        """Number of records stored for this domain (0 or 1); a diagnostic helper."""
        async with self._connect() as conn:
            async with conn.execute(
                "SELECT COUNT(*) FROM credentials WHERE domain = ?", (self.domain,)
            ) as cursor:
                row = await cursor.fetchone()
        return row[0]
