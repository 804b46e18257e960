"""
Instagram Provider.

Publishes media captions through the Instagram Graph API. Long-lived
Instagram tokens are refreshed in place with the ``ig_refresh_token`` grant,
which needs no client secret.
"""

from .base_provider import ProviderCredential, ProviderType
from .graph_provider import GraphAPIProvider


class InstagramProvider(GraphAPIProvider):
    """Provider implementation for Instagram."""

    provider_type = ProviderType.INSTAGRAM

    BASE_URL = "https://graph.instagram.com"
    PLATFORM_NAME = "Instagram"
    STATUS_FIELDS = "id,media_type,permalink,timestamp"
    PUBLISHED_MARKER_FIELD = "permalink"

    def publish(self, content: str) -> str:
        data = self.http_client.request_json(
            "POST",
            f"{self.BASE_URL}/{self._account_id()}/media",
            provider=self.provider_type.value,
            headers=self._auth_headers(),
            json_body={"caption": content, "media_type": "CAROUSEL_ALBUM"},
        )
        self._raise_for_error(data)

        post_id = self._post_id_from(data)
        self.logger.info(f"Published to Instagram as '{self.credential.name}': {post_id}")
        return post_id

    def refresh_token(self) -> ProviderCredential:
        self._require_refresh_token()

        data = self.http_client.request_json(
            "GET",
            f"{self.BASE_URL}/refresh_access_token",
            provider=self.provider_type.value,
            params={
                "grant_type": "ig_refresh_token",
                "access_token": self.credential.access_token,
            },
        )
        self._raise_for_error(data)

        return self._refreshed_credential(data, data.get("access_token"))
