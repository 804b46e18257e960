import logging
from unittest.mock import Mock

import pytest

from socgate import create_app
from socgate.db.database import TenantDatabaseManager
from socgate.security.credential_encryption import CredentialEncryption
from socgate.services.post_service import PostService
from socgate.services.provider_service import ProviderService
from socgate.services.providers import (
    ProviderCredential,
    ProviderFactory,
    ProviderHTTPClient,
    ProvidersConfig,
    ProviderType,
)
from socgate.services.providers.base_provider import OAuthClientConfig

logging.basicConfig(level=logging.INFO)

TEST_SECRET_KEY = "test-secret-key-for-credential-encryption"


@pytest.fixture
def make_response():
    """Factory for mocked ``requests`` responses."""

    def _make(status_code=200, json_data=None, invalid_json=False):
        response = Mock()
        response.status_code = status_code
        if invalid_json:
            response.json.side_effect = ValueError("No JSON object could be decoded")
        else:
            response.json.return_value = json_data if json_data is not None else {}
        return response

    return _make


@pytest.fixture
def mock_session():
    return Mock()


@pytest.fixture
def http_client(mock_session):
    return ProviderHTTPClient(session=mock_session, timeout=5)


@pytest.fixture
def db_manager(tmp_path):
    manager = TenantDatabaseManager(str(tmp_path / "data"))
    yield manager
    manager.close_all()


@pytest.fixture
def encryption():
    return CredentialEncryption(TEST_SECRET_KEY)


@pytest.fixture
def providers_config():
    return ProvidersConfig(
        {
            ProviderType.TIKTOK: [
                OAuthClientConfig(
                    name="tiktok-main", client_id="tt-key", client_secret="tt-secret"
                )
            ],
            ProviderType.FACEBOOK: [
                OAuthClientConfig(
                    name="default", client_id="fb-app", client_secret="fb-secret"
                )
            ],
        }
    )


@pytest.fixture
def provider_service(db_manager, http_client, providers_config, encryption):
    return ProviderService(
        db_manager,
        factory=ProviderFactory(http_client=http_client),
        providers_config=providers_config,
        encryption=encryption,
    )


@pytest.fixture
def post_service(db_manager, provider_service):
    return PostService(db_manager, provider_service)


@pytest.fixture
def make_credential():
    """Factory for provider credentials with test defaults."""

    def _make(name="tiktok-main", provider_type=ProviderType.TIKTOK, **overrides):
        fields = {
            "name": name,
            "type": provider_type,
            "access_token": f"{name}-access",
            "refresh_token": f"{name}-refresh",
            "scope": "video.upload",
        }
        fields.update(overrides)
        return ProviderCredential(**fields)

    return _make


@pytest.fixture
def app(tmp_path, mock_session):
    app = create_app(
        {
            "TESTING": True,
            "SECRET_KEY": TEST_SECRET_KEY,
            "DATA_DIR": str(tmp_path / "app-data"),
            "SCHEDULER_ENABLED": False,
            "PROVIDERS_CONFIG_FILE": str(tmp_path / "missing-config.yml"),
        }
    )

    # Route every platform call through the mocked session
    services = app.extensions["socgate"]
    services["provider_service"].factory.http_client.session = mock_session

    yield app

    services["db_manager"].close_all()


@pytest.fixture
def client(app):
    return app.test_client()
