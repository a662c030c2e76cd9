"""
Short-lived Google Cloud access tokens via the default credential chain.
Shared by the Document AI and Vertex AI clients.
"""
import logging
from threading import Lock
from typing import Optional

import google.auth
import google.auth.transport.requests
from google.auth.exceptions import DefaultCredentialsError, RefreshError

from formgen.errors import ConfigurationError

logger = logging.getLogger(__name__)


class GoogleTokenProvider:
    """Lazily resolves application default credentials and refreshes them on demand."""

    SCOPES = ['https://www.googleapis.com/auth/cloud-platform']

    def __init__(self):
        self._credentials = None
        self._project: Optional[str] = None
        self._lock = Lock()

    @property
    def project(self) -> Optional[str]:
        """Project id reported by the credential chain, if any."""
        return self._project

    def get_token(self) -> str:
        """
        Return a valid bearer token, refreshing it when expired.

        Raises:
            ConfigurationError: If no credentials are available or refresh fails
        """
        with self._lock:
            try:
                if self._credentials is None:
                    self._credentials, self._project = google.auth.default(scopes=self.SCOPES)
                    logger.info("Resolved Google application default credentials")
                if not self._credentials.valid:
                    self._credentials.refresh(google.auth.transport.requests.Request())
            except DefaultCredentialsError as e:
                raise ConfigurationError(f"Google credentials not found: {e}") from e
            except RefreshError as e:
                raise ConfigurationError(f"Unable to refresh Google access token: {e}") from e
            token = self._credentials.token

        if not token:
            raise ConfigurationError("Unable to acquire Google access token")
        return token


_token_provider: Optional[GoogleTokenProvider] = None
_token_provider_lock = Lock()


def get_token_provider() -> GoogleTokenProvider:
    """Get or create the process-wide token provider."""
    global _token_provider

    with _token_provider_lock:
        if _token_provider is None:
            _token_provider = GoogleTokenProvider()
    return _token_provider
