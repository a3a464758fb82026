"""
GCP service-account token provider.

Exchanges a service-account key for an OAuth2 bearer token through
google-auth. The key file path is read from an environment variable
(GOOGLE_APPLICATION_CREDENTIALS by default); a missing variable is a
configuration error raised before any network traffic.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import os
from typing import Any, Awaitable, Callable, Mapping, Sequence

from google.auth import exceptions as google_auth_exceptions
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from bucketprobe.errors import ConfigurationError, TokenExchangeError
from bucketprobe.transport import DEFAULT_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)

CREDENTIALS_ENV_VAR = "GOOGLE_APPLICATION_CREDENTIALS"
READ_ONLY_SCOPE = "https://www.googleapis.com/auth/devstorage.read_only"

# Anything that turns "no arguments" into a bearer token
TokenProvider = Callable[[], Awaitable[str]]


class ServiceAccountTokenProvider:
    """
    Callable token provider backed by a service-account key file.

    Tokens are cached and refreshed only once they expire, so a scan over
    many buckets performs a single token exchange.
    """

    def __init__(
        self,
        env_var: str = CREDENTIALS_ENV_VAR,
        scopes: Sequence[str] = (READ_ONLY_SCOPE,),
        environ: Mapping[str, str] | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Args:
            env_var: Environment variable holding the key file path
            scopes: OAuth2 scopes requested for the token
            environ: Environment mapping (defaults to os.environ)
            timeout: Token endpoint request timeout in seconds
        """
        self.env_var = env_var
        self.scopes = list(scopes)
        self._environ = environ if environ is not None else os.environ
        self.timeout = timeout
        self._credentials: Any | None = None
        self._lock: asyncio.Lock | None = None

    def credential_path(self) -> str:
        """
        Path of the service-account key file.

        Raises:
            ConfigurationError: If the environment variable is unset or empty
        """
        path = self._environ.get(self.env_var, "").strip()
        if not path:
            raise ConfigurationError(f"{self.env_var} is not set")
        return path

    def load_credentials(self, path: str) -> Any:
        """
        Load service-account credentials from a key file.

        Raises:
            ConfigurationError: If the file is unreadable or not a valid key
        """
        try:
            return service_account.Credentials.from_service_account_file(
                path, scopes=self.scopes
            )
        except OSError as e:
            raise ConfigurationError(f"cannot read service account key {path}: {e}") from e
        except (ValueError, google_auth_exceptions.GoogleAuthError) as e:
            raise ConfigurationError(f"malformed service account key {path}: {e}") from e

    def _refresh(self, credentials: Any) -> None:
        try:
            credentials.refresh(functools.partial(Request(), timeout=self.timeout))
        except (
            google_auth_exceptions.RefreshError,
            google_auth_exceptions.TransportError,
        ) as e:
            raise TokenExchangeError(f"token exchange failed: {e}") from e

    async def __call__(self) -> str:
        """
        Get a valid bearer token.

        Raises:
            ConfigurationError: Missing env var, unreadable or malformed key
            TokenExchangeError: Token endpoint failure
        """
        path = self.credential_path()

        if self._lock is None:
            self._lock = asyncio.Lock()

        async with self._lock:
            if self._credentials is None:
                self._credentials = self.load_credentials(path)
            if not self._credentials.valid:
                logger.debug(f"Exchanging service account key for a token ({path})")
                await asyncio.to_thread(self._refresh, self._credentials)
            return self._credentials.token
