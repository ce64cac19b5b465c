"""
Tests for the sign-in gate.
"""
import base64
import pytest
from unittest.mock import AsyncMock, MagicMock, patch

import requests

from pitwall.auth.identity import (
    AUTH_FAILED_MESSAGE,
    LOAD_FAILED_MESSAGE,
    NO_EMAIL_MESSAGE,
    AuthenticationError,
    ConfigurationError,
    GoogleIdentityProvider,
    IdentityGate,
    IdentityProvider,
    decode_credential,
)
from pitwall.utils.config import AuthSettings

@pytest.fixture
def mock_provider():
    """Create a mock identity provider."""
    mock = MagicMock()
    mock.load = AsyncMock()
    return mock

@pytest.fixture
def gate(auth_settings, mock_provider):
    return IdentityGate(auth_settings, mock_provider)

def test_decode_credential(make_token):
    payload = decode_credential(make_token({"email": "user@example.com", "name": "User"}))
    assert payload == {"email": "user@example.com", "name": "User"}

@pytest.mark.parametrize("credential", [
    None,
    "",
    "not-a-token",
    "a.b.c",
    "eyJhbGciOiJIUzI1NiJ9.!!!.sig",
    # payload is a JSON array, not an object
    "eyJhbGciOiJIUzI1NiJ9." + base64.urlsafe_b64encode(b"[1]").decode().rstrip("=") + ".sig",
])
def test_decode_malformed_credential(credential):
    """Test malformed tokens fail with the generic message."""
    with pytest.raises(AuthenticationError, match=AUTH_FAILED_MESSAGE):
        decode_credential(credential)

def test_authorize_is_case_insensitive(gate, mock_provider, make_token):
    account = gate.authorize(make_token({
        "email": "USER@example.com",
        "name": "Test User",
        "picture": "https://example.com/me.png",
    }))

    assert account.email == "USER@example.com"
    assert account.name == "Test User"
    assert account.picture == "https://example.com/me.png"
    mock_provider.disable_auto_select.assert_called_once()

def test_authorize_defaults_name_and_picture(gate, make_token):
    account = gate.authorize(make_token({"email": "user@example.com"}))
    assert account.name == "user@example.com"
    assert account.picture == ""

def test_authorize_wrong_account(gate, mock_provider, make_token):
    """Test another account is rejected by name and auto-select is cleared."""
    with pytest.raises(AuthenticationError) as exc_info:
        gate.authorize(make_token({"email": "other@example.com"}))

    assert str(exc_info.value) == (
        "This Google account is not authorized for this tracker. "
        "Please sign in with user@example.com."
    )
    mock_provider.disable_auto_select.assert_called_once()

@pytest.mark.parametrize("payload", [{}, {"email": ""}, {"email": 42}, {"name": "No Email"}])
def test_authorize_without_email(gate, payload, make_token):
    with pytest.raises(AuthenticationError, match=NO_EMAIL_MESSAGE):
        gate.authorize(make_token(payload))

@pytest.mark.parametrize("settings", [
    AuthSettings(client_id="", allowed_email="user@example.com"),
    AuthSettings(client_id="client-123", allowed_email="   "),
    AuthSettings(),
])
def test_gate_fails_closed_without_config(settings, make_token):
    gate = IdentityGate(settings)

    assert gate.setup_required
    assert gate.provider is None
    with pytest.raises(ConfigurationError, match="Authentication setup required"):
        gate.authorize(make_token({"email": "user@example.com"}))

@pytest.mark.asyncio
async def test_start_without_config_never_loads(mock_provider):
    gate = IdentityGate(AuthSettings(), mock_provider)

    assert await gate.start() is False
    mock_provider.load.assert_not_called()

@pytest.mark.asyncio
async def test_start_loads_provider_once(gate, mock_provider):
    assert await gate.start() is True
    assert await gate.start() is True

    assert gate.ready
    mock_provider.load.assert_awaited_once()

@pytest.mark.asyncio
async def test_start_load_failure(gate, mock_provider):
    """Test a failed provider load leaves sign-in unavailable."""
    mock_provider.load.side_effect = requests.ConnectionError("offline")

    assert await gate.start() is False
    assert not gate.ready
    assert gate.load_error == LOAD_FAILED_MESSAGE

def test_sign_out_disables_auto_select(gate, mock_provider):
    gate.sign_out()
    mock_provider.disable_auto_select.assert_called_once()

def test_default_provider_is_google(auth_settings):
    gate = IdentityGate(auth_settings)
    assert isinstance(gate.provider, GoogleIdentityProvider)
    assert gate.provider.client_id == auth_settings.client_id

@pytest.mark.asyncio
async def test_google_provider_load():
    """Test the Google client script is fetched."""
    response = MagicMock()
    response.content = b"/* gsi client */"
    with patch("pitwall.auth.identity.requests.get", return_value=response) as mock_get:
        provider = GoogleIdentityProvider("client-123")
        await provider.load()

    mock_get.assert_called_once_with("https://accounts.google.com/gsi/client", timeout=30.0)
    response.raise_for_status.assert_called_once()

@pytest.mark.asyncio
async def test_google_provider_load_error():
    response = MagicMock()
    response.raise_for_status.side_effect = requests.HTTPError("503")
    with patch("pitwall.auth.identity.requests.get", return_value=response):
        with pytest.raises(requests.HTTPError):
            await GoogleIdentityProvider("client-123").load()

def test_google_provider_disable_auto_select():
    provider = GoogleIdentityProvider("client-123")
    provider.disable_auto_select()
    assert provider.auto_select is False

def test_provider_must_implement_every_method():
    """Test a provider missing a method cannot be created."""
    class LoadOnlyProvider(IdentityProvider):
        async def load(self):
            pass

    with pytest.raises(TypeError):
        LoadOnlyProvider()
