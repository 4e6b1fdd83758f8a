"""Tests for token storage and the Google credential provider."""

from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock, patch

import pytest
from google.auth.exceptions import RefreshError

from fakes import NOW, clock
from showsync.credentials import GoogleCredentialProvider, InMemoryTokenStore, Token


@pytest.fixture
def token_store():
    return InMemoryTokenStore()


@pytest.fixture
def provider(token_store, settings):
    return GoogleCredentialProvider(token_store, settings=settings, clock=clock)


def refreshed_credentials(token="new-access", refresh_token=None, expiry=None):
    creds = MagicMock()
    creds.token = token
    creds.refresh_token = refresh_token
    creds.expiry = expiry
    return creds


# ── Token ───────────────────────────────────────────────────────────


class TestToken:
    def test_no_expiry_never_expires(self):
        assert Token(access_token="a").is_expired(NOW) is False

    def test_expired_at_boundary(self):
        token = Token(access_token="a", expires_at=NOW)
        assert token.is_expired(NOW) is True
        assert token.is_expired(NOW - timedelta(seconds=1)) is False

    def test_naive_expiry_is_treated_as_utc(self):
        token = Token(access_token="a", expires_at=datetime(2024, 5, 1, 12, 0))
        assert token.is_expired(NOW) is True
        assert token.is_expired(NOW - timedelta(minutes=1)) is False


class TestInMemoryTokenStore:
    async def test_round_trip_and_clear(self, token_store):
        await token_store.save_token("u1", Token(access_token="a"))
        assert (await token_store.get_token("u1")).access_token == "a"
        await token_store.clear_token("u1")
        assert await token_store.get_token("u1") is None


# ── GoogleCredentialProvider ────────────────────────────────────────


class TestGoogleCredentialProvider:
    async def test_valid_token_returned_as_is(self, provider, token_store):
        await token_store.save_token(
            "u1", Token(access_token="a", expires_at=NOW + timedelta(hours=1))
        )
        token = await provider.get_valid_token("u1")
        assert token.access_token == "a"

    async def test_unknown_user(self, provider):
        assert await provider.get_valid_token("nobody") is None
        assert await provider.is_connected("nobody") is False

    async def test_expired_token_is_refreshed_and_saved(self, provider, token_store):
        await token_store.save_token(
            "u1",
            Token(access_token="old", refresh_token="r1", expires_at=NOW - timedelta(minutes=1)),
        )
        naive_expiry = datetime(2024, 5, 1, 13, 0)
        creds = refreshed_credentials(expiry=naive_expiry)

        with patch("showsync.credentials.Credentials", return_value=creds) as mock_creds, patch(
            "showsync.credentials.Request"
        ):
            token = await provider.get_valid_token("u1")

        assert mock_creds.call_args.kwargs["refresh_token"] == "r1"
        assert mock_creds.call_args.kwargs["client_secret"] == "client-secret"
        creds.refresh.assert_called_once()
        assert token.access_token == "new-access"
        assert token.refresh_token == "r1"
        assert token.expires_at == naive_expiry.replace(tzinfo=timezone.utc)
        assert (await token_store.get_token("u1")).access_token == "new-access"

    async def test_rotated_refresh_token_is_kept(self, provider, token_store):
        await token_store.save_token(
            "u1", Token(access_token="old", refresh_token="r1", expires_at=NOW)
        )
        creds = refreshed_credentials(refresh_token="r2")

        with patch("showsync.credentials.Credentials", return_value=creds), patch(
            "showsync.credentials.Request"
        ):
            token = await provider.get_valid_token("u1")

        assert token.refresh_token == "r2"

    async def test_refresh_rejected(self, provider, token_store):
        await token_store.save_token(
            "u1", Token(access_token="old", refresh_token="revoked", expires_at=NOW)
        )
        creds = refreshed_credentials()
        creds.refresh.side_effect = RefreshError("invalid_grant")

        with patch("showsync.credentials.Credentials", return_value=creds), patch(
            "showsync.credentials.Request"
        ):
            token = await provider.get_valid_token("u1")

        assert token is None
        assert (await token_store.get_token("u1")).access_token == "old"

    async def test_expired_without_refresh_token(self, provider, token_store):
        await token_store.save_token("u1", Token(access_token="old", expires_at=NOW))

        with patch("showsync.credentials.Credentials") as mock_creds:
            token = await provider.get_valid_token("u1")

        assert token is None
        mock_creds.assert_not_called()

    async def test_connect_and_disconnect(self, provider):
        await provider.save_token("u1", Token(access_token="a"))
        assert await provider.is_connected("u1") is True

        await provider.disconnect("u1")

        assert await provider.is_connected("u1") is False
        assert await provider.get_valid_token("u1") is None

    async def test_expired_user_is_still_connected(self, provider, token_store):
        await token_store.save_token("u1", Token(access_token="a", expires_at=NOW))
        assert await provider.is_connected("u1") is True
