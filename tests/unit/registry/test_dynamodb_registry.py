"""Unit tests for the DynamoDB trust registry."""

import pytest
from decimal import Decimal
from unittest.mock import MagicMock, patch

from botocore.exceptions import ClientError, EndpointConnectionError

from trustgate.common.exceptions import BaselineConflictError, RegistryError
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.registry.dynamodb_registry import DynamoDBTrustRegistry

from conftest import LAGOS, T0


def client_error(code):
    return ClientError({"Error": {"Code": code, "Message": code}}, "PutItem")


class TestDynamoDBTrustRegistry:
    """Test DynamoDB trust registry."""

    @pytest.fixture
    def mock_table(self):
        return MagicMock()

    @pytest.fixture
    def registry(self, mock_table):
        with patch("boto3.resource") as mock_resource:
            mock_resource.return_value.Table.return_value = mock_table
            registry = DynamoDBTrustRegistry(table_name="trustgate-registry")
        return registry

    def test_requires_table_name(self):
        with pytest.raises(ValueError):
            DynamoDBTrustRegistry(table_name="")

    def test_uses_table(self, registry, mock_table):
        assert registry.table is mock_table
        assert registry.region == "us-east-1"

    def test_update_writes_conditional_item(self, registry, mock_table):
        baseline = TrustBaseline(
            principal="alice@company.com",
            trusted_fingerprint="fp_7a9c2e",
            last_location=LAGOS,
            last_seen_at=T0,
            version=3,
        )
        registry.update_baseline("alice@company.com", baseline)

        kwargs = mock_table.put_item.call_args[1]
        item = kwargs["Item"]
        assert item["pk"] == "PRINCIPAL#alice@company.com"
        assert item["version"] == 3
        assert item["latitude"] == Decimal("6.5244")
        assert item["last_seen_at"] == T0.isoformat()
        assert kwargs["ConditionExpression"] == "attribute_not_exists(pk) OR version = :expected"
        assert kwargs["ExpressionAttributeValues"] == {":expected": 2}

    def test_update_without_location_omits_fields(self, registry, mock_table):
        registry.update_baseline(
            "alice@company.com",
            TrustBaseline(principal="alice@company.com", trusted_fingerprint="fp_1", version=1),
        )
        item = mock_table.put_item.call_args[1]["Item"]
        assert "latitude" not in item
        assert "last_seen_at" not in item

    def test_condition_failure_is_conflict(self, registry, mock_table):
        mock_table.put_item.side_effect = client_error("ConditionalCheckFailedException")

        with pytest.raises(BaselineConflictError):
            registry.update_baseline(
                "alice@company.com",
                TrustBaseline(principal="alice@company.com", version=2),
            )

    def test_other_client_error_is_registry_error(self, registry, mock_table):
        mock_table.put_item.side_effect = client_error("ProvisionedThroughputExceededException")

        with pytest.raises(RegistryError) as exc_info:
            registry.update_baseline(
                "alice@company.com",
                TrustBaseline(principal="alice@company.com", version=1),
            )
        assert not isinstance(exc_info.value, BaselineConflictError)

    def test_get_round_trips_item(self, registry, mock_table):
        mock_table.get_item.return_value = {
            "Item": {
                "pk": "PRINCIPAL#alice@company.com",
                "principal": "alice@company.com",
                "trusted_fingerprint": "fp_7a9c2e",
                "city": "Lagos",
                "country": "Nigeria",
                "latitude": Decimal("6.5244"),
                "longitude": Decimal("3.3792"),
                "last_seen_at": T0.isoformat(),
                "version": Decimal("4"),
            }
        }

        baseline = registry.get_baseline("Alice@Company.com")

        assert mock_table.get_item.call_args[1] == {
            "Key": {"pk": "PRINCIPAL#alice@company.com"},
            "ConsistentRead": True,
        }
        assert baseline.last_location == LAGOS
        assert baseline.last_seen_at == T0
        assert baseline.version == 4

    def test_get_missing(self, registry, mock_table):
        mock_table.get_item.return_value = {}
        assert registry.get_baseline("alice@company.com") is None

    def test_get_unavailable_raises(self, registry, mock_table):
        mock_table.get_item.side_effect = EndpointConnectionError(endpoint_url="https://dynamodb")

        with pytest.raises(RegistryError):
            registry.get_baseline("alice@company.com")

    def test_enroll_uses_next_version(self, registry, mock_table):
        mock_table.get_item.return_value = {}
        baseline = registry.enroll("alice@company.com", "fp_7a9c2e")

        assert baseline.version == 1
        assert mock_table.put_item.call_args[1]["ExpressionAttributeValues"] == {":expected": 0}
