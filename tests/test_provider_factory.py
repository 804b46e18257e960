"""
Tests for the provider factory and registry.
"""

from unittest.mock import Mock

import pytest
from hypothesis import given
from hypothesis import strategies as st

from socgate.services.providers import (
    FacebookProvider,
    InstagramProvider,
    ProviderCredential,
    ProviderFactory,
    ProviderType,
    TikTokProvider,
    UnsupportedProviderType,
)

KNOWN_TAGS = {provider_type.value for provider_type in ProviderType}


def _credential(provider_type=ProviderType.TIKTOK):
    return ProviderCredential(
        name="main", type=provider_type, access_token="token", refresh_token="refresh"
    )


class TestProviderType:
    @pytest.mark.parametrize(
        "tag,expected",
        [
            ("tiktok", ProviderType.TIKTOK),
            ("Instagram", ProviderType.INSTAGRAM),
            ("  FACEBOOK ", ProviderType.FACEBOOK),
            (ProviderType.TIKTOK, ProviderType.TIKTOK),
        ],
    )
    def test_parse(self, tag, expected):
        assert ProviderType.parse(tag) is expected

    def test_parse_unknown(self):
        with pytest.raises(UnsupportedProviderType, match="unsupported provider type: myspace"):
            ProviderType.parse("myspace")

    def test_unsupported_type_is_a_value_error(self):
        with pytest.raises(ValueError):
            ProviderType.parse("myspace")


class TestProviderFactory:
    @pytest.mark.parametrize(
        "provider_type,provider_class",
        [
            (ProviderType.TIKTOK, TikTokProvider),
            (ProviderType.INSTAGRAM, InstagramProvider),
            (ProviderType.FACEBOOK, FacebookProvider),
        ],
    )
    def test_creates_default_providers(self, http_client, provider_type, provider_class):
        factory = ProviderFactory(http_client=http_client)

        provider = factory.create_provider(provider_type.value, _credential(provider_type))

        assert isinstance(provider, provider_class)
        assert provider.http_client is http_client
        assert provider.credential.type is provider_type

    def test_construction_performs_no_network_io(self, http_client, mock_session):
        factory = ProviderFactory(http_client=http_client)

        for provider_type in ProviderType:
            factory.create_provider(provider_type, _credential(provider_type))

        mock_session.request.assert_not_called()

    def test_supported_types(self):
        factory = ProviderFactory()

        assert factory.supported_types() == [
            ProviderType.TIKTOK,
            ProviderType.INSTAGRAM,
            ProviderType.FACEBOOK,
        ]
        assert factory.is_supported("tiktok")
        assert not factory.is_supported("myspace")

    def test_register_replaces_implementation(self, http_client):
        factory = ProviderFactory(http_client=http_client)
        fake_provider = Mock()
        constructor = Mock(return_value=fake_provider)
        credential = _credential()

        factory.register("tiktok", constructor)
        provider = factory.create_provider(ProviderType.TIKTOK, credential)

        assert provider is fake_provider
        constructor.assert_called_once_with(
            credential, http_client=http_client, client_config=None
        )

    def test_register_unknown_type(self):
        factory = ProviderFactory()

        with pytest.raises(UnsupportedProviderType):
            factory.register("myspace", Mock())

    def test_unregistered_type_is_unsupported(self):
        factory = ProviderFactory(register_defaults=False)

        assert factory.supported_types() == []
        with pytest.raises(UnsupportedProviderType):
            factory.create_provider("tiktok", _credential())

    def test_unregister(self):
        factory = ProviderFactory()
        factory.unregister(ProviderType.FACEBOOK)

        assert not factory.is_supported(ProviderType.FACEBOOK)
        assert factory.is_supported(ProviderType.INSTAGRAM)

    @given(
        tag=st.text(max_size=30).filter(lambda t: t.strip().lower() not in KNOWN_TAGS)
    )
    def test_property_unknown_tags_are_rejected(self, tag):
        """Every tag outside the supported set is rejected, never constructed."""
        factory = ProviderFactory(http_client=Mock())

        with pytest.raises(UnsupportedProviderType):
            factory.create_provider(tag, _credential())
