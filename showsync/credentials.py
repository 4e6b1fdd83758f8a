"""Per-user calendar credentials.

``CredentialProvider`` is what the sync engine consumes: it answers whether a
user has a calendar connected and hands out a token that is valid *now*,
refreshing an expired one on the way.  ``TokenStore`` is where tokens live.

Refresh is lazy and not de-duplicated: two concurrent callers holding the
same expired token may both refresh it.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Callable, Optional

from google.auth.exceptions import RefreshError, TransportError
from google.auth.transport.requests import Request
from google.oauth2.credentials import Credentials
from pydantic import BaseModel, field_validator

from showsync.config import Settings, settings as default_settings
from showsync.dateutils import ensure_aware

log = logging.getLogger("showsync.credentials")


def utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


class Token(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None

    @field_validator("expires_at")
    @classmethod
    def _naive_is_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and now >= self.expires_at


# ── Token storage ─────────────────────────────────────────────────


class TokenStore(ABC):
    """Persistence for per-user OAuth tokens."""

    @abstractmethod
    async def get_token(self, user_id: str) -> Token | None:
        ...

    @abstractmethod
    async def save_token(self, user_id: str, token: Token) -> None:
        ...

    @abstractmethod
    async def clear_token(self, user_id: str) -> None:
        ...


class InMemoryTokenStore(TokenStore):
    def __init__(self, tokens: dict[str, Token] | None = None) -> None:
        self._tokens: dict[str, Token] = dict(tokens or {})

    async def get_token(self, user_id: str) -> Token | None:
        token = self._tokens.get(user_id)
        return token.model_copy() if token else None

    async def save_token(self, user_id: str, token: Token) -> None:
        self._tokens[user_id] = token.model_copy()

    async def clear_token(self, user_id: str) -> None:
        self._tokens.pop(user_id, None)


# ── Provider ──────────────────────────────────────────────────────


class CredentialProvider(ABC):
    """Resolves a user to a currently valid calendar token."""

    @abstractmethod
    async def get_valid_token(self, user_id: str) -> Token | None:
        """Return a non-expired token, refreshing if needed; None if unavailable."""

    @abstractmethod
    async def is_connected(self, user_id: str) -> bool:
        """True if the user has linked a calendar account at all."""


class GoogleCredentialProvider(CredentialProvider):
    """CredentialProvider that refreshes Google OAuth tokens with google-auth."""

    def __init__(
        self,
        token_store: TokenStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._store = token_store
        self._settings = settings or default_settings
        self._clock = clock

    async def is_connected(self, user_id: str) -> bool:
        token = await self._store.get_token(user_id)
        return bool(token and token.access_token)

    async def get_valid_token(self, user_id: str) -> Token | None:
        token = await self._store.get_token(user_id)
        if not token or not token.access_token:
            return None

        if not token.is_expired(self._clock()):
            return token

        log.info("Token for user %s expired, refreshing", user_id)
        refreshed = await self._refresh(token)
        if refreshed is None:
            return None

        await self._store.save_token(user_id, refreshed)
        return refreshed

    async def save_token(self, user_id: str, token: Token) -> None:
        """Connect a calendar account (tokens come from the OAuth callback)."""
        await self._store.save_token(user_id, token)
        log.info("Calendar connected for user %s", user_id)

    async def disconnect(self, user_id: str) -> None:
        await self._store.clear_token(user_id)
        log.info("Calendar disconnected for user %s", user_id)

    async def _refresh(self, token: Token) -> Token | None:
        if not token.refresh_token:
            log.warning("Expired token has no refresh token; user must reconnect")
            return None

        creds = Credentials(
            token=None,
            refresh_token=token.refresh_token,
            token_uri=self._settings.google_token_uri,
            client_id=self._settings.google_client_id,
            client_secret=self._settings.google_client_secret,
        )
        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, creds.refresh, Request())
        except (RefreshError, TransportError) as e:
            log.warning("Failed to refresh calendar token: %s", e)
            return None

        if not creds.token:
            log.warning("Token refresh returned no access token")
            return None

        expires_at = creds.expiry
        if expires_at is not None and expires_at.tzinfo is None:
            # google-auth reports expiry as naive UTC
            expires_at = expires_at.replace(tzinfo=timezone.utc)

        return Token(
            access_token=creds.token,
            refresh_token=creds.refresh_token or token.refresh_token,
            expires_at=expires_at,
        )
