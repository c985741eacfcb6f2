"""Unit tests for external signal providers."""

from unittest.mock import MagicMock

import httpx
import pytest

from conftest import LAGOS, LONDON
from trustgate.common.exceptions import ProviderError
from trustgate.data.schemas.login_attempt import DevicePosture
from trustgate.providers import (
    InMemoryIdentityProvider,
    IpApiGeolocationProvider,
    StaticComplianceProvider,
    StaticGeolocationProvider,
)


def json_response(payload, status_code=200):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = payload
    if status_code >= 400:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            "error", request=MagicMock(), response=response
        )
    return response


class TestIpApiGeolocationProvider:

    @pytest.fixture
    def client(self):
        return MagicMock(spec=httpx.Client)

    @pytest.fixture
    def provider(self, client):
        return IpApiGeolocationProvider(client=client)

    def test_successful_lookup(self, provider, client):
        client.get.return_value = json_response({
            "status": "success",
            "city": "Lagos",
            "country": "Nigeria",
            "lat": 6.5244,
            "lon": 3.3792,
        })

        location = provider.resolve("102.89.1.10")

        assert location == LAGOS
        url = client.get.call_args[0][0]
        assert url == "http://ip-api.com/json/102.89.1.10"
        assert "fields" in client.get.call_args[1]["params"]

    def test_missing_city_is_empty(self, provider, client):
        client.get.return_value = json_response({
            "status": "success", "country": "Nigeria", "lat": 6.5, "lon": 3.4,
        })
        assert provider.resolve("102.89.1.10").city == ""

    def test_unlocatable_ip_returns_none(self, provider, client):
        client.get.return_value = json_response({"status": "fail", "message": "private range"})
        assert provider.resolve("10.0.0.1") is None

    def test_transport_error_raises(self, provider, client):
        client.get.side_effect = httpx.ConnectError("connection refused")

        with pytest.raises(ProviderError) as exc_info:
            provider.resolve("102.89.1.10")
        assert exc_info.value.details == {"ip": "102.89.1.10", "provider": "geolocation"}

    def test_http_status_error_raises(self, provider, client):
        client.get.return_value = json_response({}, status_code=503)
        with pytest.raises(ProviderError):
            provider.resolve("102.89.1.10")

    def test_non_json_body_raises(self, provider, client):
        response = json_response(None)
        response.json.side_effect = ValueError("not json")
        client.get.return_value = response

        with pytest.raises(ProviderError):
            provider.resolve("102.89.1.10")

    def test_out_of_range_coordinates_raise(self, provider, client):
        client.get.return_value = json_response({
            "status": "success", "city": "Nowhere", "country": "X", "lat": 123.0, "lon": 0.0,
        })
        with pytest.raises(ProviderError, match="Malformed"):
            provider.resolve("1.2.3.4")

    def test_close_closes_client(self, provider, client):
        provider.close()
        client.close.assert_called_once()


class TestStaticProviders:

    def test_static_geolocation(self):
        provider = StaticGeolocationProvider({"102.89.1.10": LAGOS}, default=LONDON)

        assert provider.resolve("102.89.1.10") == LAGOS
        assert provider.resolve("8.8.8.8") == LONDON
        assert StaticGeolocationProvider().resolve("8.8.8.8") is None

    def test_static_compliance(self):
        bad = DevicePosture(disk_encrypted=False)
        provider = StaticComplianceProvider({"fp_bad": bad})

        assert provider.posture("alice@company.com", "fp_bad") == bad
        assert provider.posture("alice@company.com", "fp_other") is None

        provider.set_posture("fp_other", DevicePosture())
        assert provider.posture("alice@company.com", "fp_other").failures() == []


class TestInMemoryIdentityProvider:

    def test_verify_normalizes(self):
        provider = InMemoryIdentityProvider([" Alice@Company.com", ""])

        assert provider.verify("alice@company.com") is True
        assert provider.verify("ALICE@company.com ") is True
        assert provider.verify("mallory@company.com") is False
        assert len(provider) == 1

    def test_register(self):
        provider = InMemoryIdentityProvider()
        provider.register("Bob@Company.com")
        assert provider.verify("bob@company.com") is True
