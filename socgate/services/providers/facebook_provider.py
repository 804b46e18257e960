"""
Facebook Provider.

Publishes feed messages through the Facebook Graph API and extends tokens
with the ``fb_exchange_token`` grant of the configured Facebook application.
"""

from .base_provider import ProviderCredential, ProviderType
from .graph_provider import GraphAPIProvider


class FacebookProvider(GraphAPIProvider):
    """Provider implementation for Facebook."""

    provider_type = ProviderType.FACEBOOK

    BASE_URL = "https://graph.facebook.com"
    PLATFORM_NAME = "Facebook"
    STATUS_FIELDS = "id,message,created_time,status_type"
    PUBLISHED_MARKER_FIELD = "created_time"

    def publish(self, content: str) -> str:
        data = self.http_client.request_json(
            "POST",
            f"{self.BASE_URL}/{self._account_id()}/feed",
            provider=self.provider_type.value,
            headers=self._auth_headers(),
            json_body={"message": content},
        )
        self._raise_for_error(data)

        post_id = self._post_id_from(data)
        self.logger.info(f"Published to Facebook as '{self.credential.name}': {post_id}")
        return post_id

    def refresh_token(self) -> ProviderCredential:
        self._require_refresh_token()
        client = self._require_client_config()

        data = self.http_client.request_json(
            "GET",
            f"{self.BASE_URL}/oauth/access_token",
            provider=self.provider_type.value,
            params={
                "grant_type": "fb_exchange_token",
                "client_id": client.client_id,
                "client_secret": client.client_secret,
                "fb_exchange_token": self.credential.access_token,
            },
        )
        self._raise_for_error(data)

        return self._refreshed_credential(data, data.get("access_token"))
