"""
Google Sign-In gate restricted to a single allowed account.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import jwt
import requests

from ..storage.models import Account
from ..utils.config import AuthSettings

logger = logging.getLogger(__name__)

GSI_CLIENT_URL = "https://accounts.google.com/gsi/client"

AUTH_FAILED_MESSAGE = "Google authentication failed. Please try again."
NO_EMAIL_MESSAGE = "Unable to read email from Google credential."
LOAD_FAILED_MESSAGE = "Failed to load Google authentication. Check your network connection."

class ConfigurationError(Exception):
    """Raised when sign-in is attempted without the required settings."""

class AuthenticationError(Exception):
    """Raised when a credential cannot be turned into an authorized account."""

class IdentityProvider(ABC):
    """Client side of an external identity provider."""

    @abstractmethod
    async def load(self):
        """Load the provider client. Raises on failure."""

    @abstractmethod
    def disable_auto_select(self):
        """Stop the provider from silently re-using the last session."""

class GoogleIdentityProvider(IdentityProvider):
    """Google Identity Services client."""

    def __init__(self, client_id: str, client_url: str = GSI_CLIENT_URL, timeout: float = 30.0):
        self.client_id = client_id
        self.client_url = client_url
        self.timeout = timeout
        self.auto_select = True

    def _fetch_client(self) -> bytes:
        response = requests.get(self.client_url, timeout=self.timeout)
        response.raise_for_status()
        return response.content

    async def load(self):
        """Fetch the Google Identity Services client script."""
        content = await asyncio.to_thread(self._fetch_client)
        logger.debug("Loaded Google Identity Services client (%d bytes)", len(content))

    def disable_auto_select(self):
        self.auto_select = False

def decode_credential(credential: Optional[str]) -> Dict[str, Any]:
    """Decode the payload of an identity token without checking its signature.

    Args:
        credential: JWT returned by the identity provider

    Returns:
        The decoded payload

    Raises:
        AuthenticationError: If the token is missing or malformed
    """
    if not credential or not isinstance(credential, str):
        raise AuthenticationError(AUTH_FAILED_MESSAGE)
    try:
        return jwt.decode(credential, options={"verify_signature": False})
    except jwt.InvalidTokenError as e:
        logger.warning("Unable to decode Google credential: %s", e)
        raise AuthenticationError(AUTH_FAILED_MESSAGE) from e

class IdentityGate:
    """Turns identity tokens into the one authorized account."""

    def __init__(self, settings: AuthSettings, provider: Optional[IdentityProvider] = None):
        """Initialize the gate.

        Args:
            settings: Client id and allowed email
            provider: Identity provider client; defaults to Google when configured
        """
        self.settings = settings
        if provider is None and settings.configured:
            provider = GoogleIdentityProvider(settings.client_id)
        self.provider = provider
        self.ready = False
        self.load_error = ""

    @property
    def setup_required(self) -> bool:
        return not self.settings.configured

    async def start(self) -> bool:
        """Load the provider client once.

        Returns:
            Whether sign-in is available. A load failure is recorded in
            ``load_error`` and not retried.
        """
        if self.setup_required:
            self.ready = False
            return False
        if self.ready:
            return True
        try:
            await self.provider.load()
        except Exception as e:
            logger.error("Identity provider failed to load: %s", e)
            self.load_error = LOAD_FAILED_MESSAGE
            return False
        self.ready = True
        return True

    def _require_configured(self):
        if self.setup_required:
            raise ConfigurationError(
                "Authentication setup required: set " + " and ".join(self.settings.missing)
            )

    def _disable_auto_select(self):
        if self.provider is not None:
            self.provider.disable_auto_select()

    def authorize(self, credential: Optional[str]) -> Account:
        """Check a credential against the allowed account.

        Args:
            credential: JWT from the provider's sign-in callback

        Returns:
            The signed-in account

        Raises:
            ConfigurationError: If the gate is not configured
            AuthenticationError: If the token is unreadable or for another account
        """
        self._require_configured()
        payload = decode_credential(credential)

        email = payload.get("email")
        if not isinstance(email, str) or not email.strip():
            raise AuthenticationError(NO_EMAIL_MESSAGE)
        email = email.strip()

        if email.lower() != self.settings.allowed_email.lower():
            self._disable_auto_select()
            raise AuthenticationError(
                "This Google account is not authorized for this tracker. "
                f"Please sign in with {self.settings.allowed_email}."
            )

        self._disable_auto_select()
        name = payload.get("name")
        picture = payload.get("picture")
        return Account(
            email=email,
            name=name if isinstance(name, str) and name else email,
            picture=picture if isinstance(picture, str) else "",
        )

    def sign_out(self):
        self._disable_auto_select()
