"""
Graph API Provider base.

Instagram and Facebook both speak the Meta Graph API: the same error payload
shape, the same token semantics and the same object lookup for post status.
This intermediate base holds what they share.
"""

from typing import Any, Dict, Optional

from .base_provider import BaseProvider, PostStatus
from .errors import AuthError, PlatformError

# Graph API error code for an invalid or expired access token
OAUTH_EXCEPTION_CODE = 190


class GraphAPIProvider(BaseProvider):
    """Shared behaviour for Meta Graph API based providers."""

    BASE_URL: str
    PLATFORM_NAME: str
    STATUS_FIELDS: str
    PUBLISHED_MARKER_FIELD: str

    def _account_id(self) -> str:
        return self.credential.platform_user_id or "me"

    def get_status(self, post_id: str) -> PostStatus:
        try:
            data = self.http_client.request_json(
                "GET",
                f"{self.BASE_URL}/{post_id}",
                provider=self.provider_type.value,
                headers=self._auth_headers(),
                params={"fields": self.STATUS_FIELDS},
            )
        except PlatformError as e:
            if e.status_code == 404:
                return PostStatus.DELETED
            raise
        self._raise_for_error(data)

        if data.get("id") and data.get(self.PUBLISHED_MARKER_FIELD):
            return PostStatus.PUBLISHED
        return PostStatus.PENDING

    def _post_id_from(self, data: Dict[str, Any]) -> str:
        post_id = data.get("id")
        if not post_id:
            raise PlatformError(
                f"{self.PLATFORM_NAME} response did not include a post id",
                self.provider_type.value,
            )
        return str(post_id)

    def _raise_for_error(self, data: Dict[str, Any]) -> None:
        error: Optional[Dict[str, Any]] = data.get("error")
        if not isinstance(error, dict) or not error.get("message"):
            return

        code = error.get("code")
        error_type = error.get("type", "")
        message = (
            f"{self.PLATFORM_NAME} API error: {error['message']} "
            f"(type: {error_type}, code: {code})"
        )

        if code == OAUTH_EXCEPTION_CODE or error_type == "OAuthException":
            raise AuthError(message, self.provider_type.value)
        raise PlatformError(
            message,
            self.provider_type.value,
            error_code=str(code) if code is not None else None,
            error_type=error_type or None,
        )
