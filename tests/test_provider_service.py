"""
Tests for the tenant-aware ProviderService.
"""

import json
from datetime import timedelta

import pytest
import requests

from socgate.models import ProviderModel
from socgate.security.credential_encryption import ENCRYPTED_PREFIX
from socgate.services.providers import (
    NoRefreshToken,
    PlatformError,
    PostStatus,
    ProviderNotConfigured,
    ProviderType,
    TransportError,
    UnsupportedProviderType,
)
from socgate.utils.time_utils import utc_now


def _raw_record(db_manager, tenant_id, name):
    with db_manager.get_or_create(tenant_id).session() as db:
        return db.query(ProviderModel).filter(ProviderModel.name == name).first()


class TestCredentialStorage:
    def test_save_and_load_credential(self, provider_service, make_credential):
        expires_at = utc_now().replace(microsecond=0) + timedelta(days=1)
        credential = make_credential(expires_at=expires_at, platform_user_id="tt-user")

        record = provider_service.save_credential("alice", credential)
        loaded = provider_service.get_credential("alice", "tiktok-main")

        assert record.id is not None
        assert record.type == "tiktok"
        assert loaded == credential

    def test_tokens_are_encrypted_at_rest(
        self, provider_service, db_manager, make_credential
    ):
        provider_service.save_credential("alice", make_credential())

        stored = json.loads(_raw_record(db_manager, "alice", "tiktok-main").config)
        assert stored["access_token"].startswith(ENCRYPTED_PREFIX)
        assert stored["refresh_token"].startswith(ENCRYPTED_PREFIX)
        assert stored["scope"] == "video.upload"

    def test_save_updates_existing_record(self, provider_service, make_credential):
        first = provider_service.save_credential("alice", make_credential())
        second = provider_service.save_credential(
            "alice", make_credential(access_token="rotated")
        )

        assert first.id == second.id
        assert provider_service.get_credential("alice", "tiktok-main").access_token == "rotated"

    def test_save_reactivates_disconnected_provider(self, provider_service, make_credential):
        provider_service.save_credential("alice", make_credential())
        provider_service.deactivate_provider("alice", "tiktok-main")

        provider_service.save_credential("alice", make_credential())

        assert provider_service.is_provider_configured("alice", "tiktok-main")

    def test_save_rejects_unknown_type(self, provider_service, make_credential):
        with pytest.raises(UnsupportedProviderType):
            provider_service.save_credential("alice", make_credential(provider_type="myspace"))

    def test_user_info_is_kept(self, provider_service, db_manager, make_credential):
        provider_service.save_credential(
            "alice", make_credential(), user_info={"id": "u-1", "username": "alice_tt"}
        )

        stored = json.loads(_raw_record(db_manager, "alice", "tiktok-main").config)
        assert stored["user_info"] == {"id": "u-1", "username": "alice_tt"}
        assert provider_service.get_credential("alice", "tiktok-main").platform_user_id == "u-1"

    def test_list_and_deactivate(self, provider_service, make_credential):
        provider_service.save_credential("alice", make_credential())
        provider_service.save_credential(
            "alice", make_credential(name="fb-page", provider_type=ProviderType.FACEBOOK)
        )

        assert provider_service.deactivate_provider("alice", "fb-page") is True
        assert provider_service.deactivate_provider("alice", "fb-page") is False

        active = provider_service.list_providers("alice")
        everything = provider_service.list_providers("alice", include_inactive=True)
        assert [p.name for p in active] == ["tiktok-main"]
        assert [p.name for p in everything] == ["fb-page", "tiktok-main"]

    def test_credentials_are_tenant_scoped(self, provider_service, make_credential):
        provider_service.save_credential("alice", make_credential())

        assert provider_service.is_provider_configured("alice", "tiktok-main")
        assert not provider_service.is_provider_configured("bob", "tiktok-main")
        with pytest.raises(ProviderNotConfigured):
            provider_service.get_credential("bob", "tiktok-main")

    def test_supported_providers(self, provider_service):
        assert provider_service.get_supported_providers() == ["tiktok", "instagram", "facebook"]


class TestIsProviderConfigured:
    def test_missing_provider_is_false_not_an_error(self, provider_service):
        assert provider_service.is_provider_configured("alice", "nothing") is False

    def test_inactive_provider_is_false(self, provider_service, make_credential):
        provider_service.save_credential("alice", make_credential())
        provider_service.deactivate_provider("alice", "tiktok-main")

        assert provider_service.is_provider_configured("alice", "tiktok-main") is False

    @pytest.mark.parametrize("tenant_id", ["bad/tenant", "..", "", "a" * 200])
    def test_unusable_tenant_id_is_false(self, provider_service, tenant_id):
        assert provider_service.is_provider_configured(tenant_id, "tiktok-main") is False


class TestPublishContent:
    def test_publish_through_stored_credential(
        self, provider_service, make_credential, mock_session, make_response
    ):
        provider_service.save_credential("alice", make_credential())
        mock_session.request.return_value = make_response(
            200, {"data": {"share_id": "share-9"}}
        )

        assert provider_service.publish_content("alice", "tiktok-main", "hi") == "share-9"

        _, kwargs = mock_session.request.call_args
        assert kwargs["headers"] == {"Authorization": "Bearer tiktok-main-access"}

    def test_provider_type_comes_from_the_record_not_the_name(
        self, provider_service, make_credential, mock_session, make_response
    ):
        provider_service.save_credential(
            "alice", make_credential(name="tiktok-lookalike", provider_type=ProviderType.FACEBOOK)
        )
        mock_session.request.return_value = make_response(200, {"id": "fb-1"})

        provider_service.publish_content("alice", "tiktok-lookalike", "hi")

        args, _ = mock_session.request.call_args
        assert args[1] == "https://graph.facebook.com/me/feed"

    def test_publish_without_provider(self, provider_service, mock_session):
        with pytest.raises(ProviderNotConfigured) as exc_info:
            provider_service.publish_content("alice", "tiktok-main", "hi")

        assert "not found" in str(exc_info.value)
        assert exc_info.value.tenant_id == "alice"
        mock_session.request.assert_not_called()

    def test_publish_to_disconnected_provider(
        self, provider_service, make_credential, mock_session
    ):
        provider_service.save_credential("alice", make_credential())
        provider_service.deactivate_provider("alice", "tiktok-main")

        with pytest.raises(ProviderNotConfigured):
            provider_service.publish_content("alice", "tiktok-main", "hi")

        mock_session.request.assert_not_called()

    def test_platform_error_keeps_type_and_gains_context(
        self, provider_service, make_credential, mock_session, make_response
    ):
        provider_service.save_credential("alice", make_credential())
        mock_session.request.return_value = make_response(500, {"error": "down"})

        with pytest.raises(PlatformError) as exc_info:
            provider_service.publish_content("alice", "tiktok-main", "hi")

        error = exc_info.value
        assert error.status_code == 500
        assert error.tenant_id == "alice"
        assert error.provider_name == "tiktok-main"
        assert error.operation == "publish"
        assert "tiktok-main" in str(error) and "alice" in str(error)

    def test_transport_error_propagates(
        self, provider_service, make_credential, mock_session
    ):
        provider_service.save_credential("alice", make_credential())
        mock_session.request.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(TransportError):
            provider_service.publish_content("alice", "tiktok-main", "hi")

    def test_stored_unknown_type_is_unsupported(
        self, provider_service, db_manager, make_credential
    ):
        provider_service.save_credential("alice", make_credential())
        with db_manager.get_or_create("alice").session() as db:
            db.query(ProviderModel).update({"type": "myspace"})

        with pytest.raises(UnsupportedProviderType):
            provider_service.publish_content("alice", "tiktok-main", "hi")


class TestGetPostStatus:
    def test_status_query(
        self, provider_service, make_credential, mock_session, make_response
    ):
        provider_service.save_credential("alice", make_credential())
        mock_session.request.return_value = make_response(
            200, {"data": {"status": "published"}}
        )

        status = provider_service.get_post_status("alice", "tiktok-main", "share-9")

        assert status is PostStatus.PUBLISHED


class TestRefreshProviderToken:
    def test_refresh_persists_new_credential(
        self, provider_service, db_manager, make_credential, mock_session, make_response
    ):
        provider_service.save_credential(
            "alice", make_credential(), user_info={"id": "tt-user"}
        )
        mock_session.request.return_value = make_response(
            200,
            {
                "data": {
                    "access_token": "fresh-access",
                    "refresh_token": "fresh-refresh",
                    "expires_in": 3600,
                }
            },
        )

        refreshed = provider_service.refresh_provider_token("alice", "tiktok-main")
        stored = provider_service.get_credential("alice", "tiktok-main")

        assert refreshed.access_token == "fresh-access"
        assert stored.access_token == "fresh-access"
        assert stored.refresh_token == "fresh-refresh"
        assert stored.expires_at is not None
        assert stored.platform_user_id == "tt-user"

        # Named client application from the providers config
        _, kwargs = mock_session.request.call_args
        assert kwargs["json"]["client_key"] == "tt-key"
        assert kwargs["json"]["client_secret"] == "tt-secret"

        raw = json.loads(_raw_record(db_manager, "alice", "tiktok-main").config)
        assert raw["access_token"].startswith(ENCRYPTED_PREFIX)

    def test_refresh_without_refresh_token(
        self, provider_service, make_credential, mock_session
    ):
        provider_service.save_credential("alice", make_credential(refresh_token=None))

        with pytest.raises(NoRefreshToken) as exc_info:
            provider_service.refresh_provider_token("alice", "tiktok-main")

        assert exc_info.value.operation == "refresh_token"
        mock_session.request.assert_not_called()

    def test_failed_refresh_keeps_stored_credential(
        self, provider_service, make_credential, mock_session, make_response
    ):
        provider_service.save_credential("alice", make_credential())
        mock_session.request.return_value = make_response(400, {"error": "invalid_grant"})

        with pytest.raises(PlatformError):
            provider_service.refresh_provider_token("alice", "tiktok-main")

        stored = provider_service.get_credential("alice", "tiktok-main")
        assert stored.access_token == "tiktok-main-access"

    def test_refresh_unknown_provider(self, provider_service):
        with pytest.raises(ProviderNotConfigured):
            provider_service.refresh_provider_token("alice", "missing")


class TestEnsureFreshToken:
    def test_refreshes_when_about_to_expire(
        self, provider_service, make_credential, mock_session, make_response
    ):
        provider_service.save_credential(
            "alice", make_credential(expires_at=utc_now() + timedelta(seconds=30))
        )
        mock_session.request.return_value = make_response(
            200, {"data": {"access_token": "fresh-access", "expires_in": 86400}}
        )

        assert provider_service.ensure_fresh_token("alice", "tiktok-main") is True
        assert provider_service.get_credential("alice", "tiktok-main").access_token == "fresh-access"

    def test_no_refresh_when_token_is_valid(
        self, provider_service, make_credential, mock_session
    ):
        provider_service.save_credential(
            "alice", make_credential(expires_at=utc_now() + timedelta(days=10))
        )

        assert provider_service.ensure_fresh_token("alice", "tiktok-main") is False
        mock_session.request.assert_not_called()

    def test_no_refresh_without_refresh_token(
        self, provider_service, make_credential, mock_session
    ):
        provider_service.save_credential(
            "alice",
            make_credential(refresh_token=None, expires_at=utc_now() - timedelta(days=1)),
        )

        assert provider_service.ensure_fresh_token("alice", "tiktok-main") is False
        mock_session.request.assert_not_called()
