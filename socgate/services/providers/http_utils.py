"""
HTTP utilities for provider platforms.

This module wraps a requests session and converts every way a platform call
can go wrong into the provider error taxonomy:

- network failures and timeouts become TransportError
- HTTP 401/403 become AuthError
- any other non-2xx status or an unreadable body becomes PlatformError
"""

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import AuthError, PlatformError, TransportError

logger = logging.getLogger(__name__)


class ProviderHTTPClient:
    """
    Shared HTTP client for all provider implementations.

    One client (and its connection pool) is shared by every provider
    instance the factory creates.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: int = 30,
    ):
        """
        Initialize provider HTTP client.

        Args:
            session: requests session to use (a new one is created if omitted)
            timeout: Request timeout in seconds
        """
        self.timeout = timeout
        self.session = session or self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()

        # Only idempotent requests are retried
        retry_strategy = Retry(
            total=3,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["HEAD", "GET"],
            backoff_factor=1,
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("https://", adapter)
        session.mount("http://", adapter)

        session.headers.update(
            {
                "User-Agent": "SocGate-Publisher/1.0",
                "Accept": "application/json",
            }
        )
        return session

    def request_json(
        self,
        method: str,
        url: str,
        provider: str,
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Make a request and return the decoded JSON object.

        Args:
            method: HTTP method
            url: Request URL
            provider: Provider type tag, used in error messages
            headers: Optional request headers
            params: Optional query parameters
            json_body: Optional JSON request body

        Returns:
            Decoded JSON response body

        Raises:
            TransportError: If the request could not be completed
            AuthError: If the platform rejected the credential
            PlatformError: For other error responses
        """
        try:
            response = self.session.request(
                method,
                url,
                headers=headers,
                params=params,
                json=json_body,
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.warning(f"{provider} request to {self._safe_url(url)} failed: {e}")
            raise TransportError(
                f"{provider} request failed: {type(e).__name__}: {e}", provider
            ) from e

        payload = self._decode(response)
        status_code = response.status_code

        if status_code in (401, 403):
            raise AuthError(
                f"{provider} rejected the access token (HTTP {status_code})"
                + self._describe(payload),
                provider,
            )

        if status_code < 200 or status_code >= 300:
            raise PlatformError(
                f"{provider} API request failed with status {status_code}"
                + self._describe(payload),
                provider,
                status_code=status_code,
            )

        if payload is None:
            raise PlatformError(
                f"{provider} returned a response that is not a JSON object",
                provider,
                status_code=status_code,
            )

        return payload

    @staticmethod
    def _decode(response) -> Optional[Dict[str, Any]]:
        try:
            data = response.json()
        except ValueError:
            return None
        return data if isinstance(data, dict) else None

    @staticmethod
    def _describe(payload: Optional[Dict[str, Any]]) -> str:
        if not payload:
            return ""
        error = payload.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f": {error['message']}"
        if isinstance(error, str):
            return f": {error}"
        return ""

    @staticmethod
    def _safe_url(url: str) -> str:
        """Return URL without query parameters for logging."""
        parsed = urlparse(url)
        return f"{parsed.scheme}://{parsed.netloc}{parsed.path}"
