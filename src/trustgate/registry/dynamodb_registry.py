"""DynamoDB-backed Trust Registry with optimistic versioning."""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from trustgate.common.exceptions import BaselineConflictError, RegistryError
from trustgate.data.schemas.baseline import TrustBaseline
from trustgate.data.schemas.location import GeoLocation
from trustgate.registry.store import TrustRegistry

logger = logging.getLogger(__name__)


class DynamoDBTrustRegistry(TrustRegistry):
    """One item per principal; writes are conditional on the stored version.

    Item layout:
        pk: PRINCIPAL#<email>
        trusted_fingerprint, city, country, latitude, longitude,
        last_seen_at (ISO-8601), version
    """

    DEFAULT_REGION = "us-east-1"

    def __init__(
        self,
        table_name: str,
        region: Optional[str] = None,
        aws_profile: Optional[str] = None,
    ):
        super().__init__()
        if not table_name:
            raise ValueError("table_name required for DynamoDB trust registry")

        self.table_name = table_name
        self.region = region or self.DEFAULT_REGION

        if aws_profile:
            session = boto3.Session(profile_name=aws_profile)
            self.dynamodb = session.resource("dynamodb", region_name=self.region)
        else:
            self.dynamodb = boto3.resource("dynamodb", region_name=self.region)

        self.table = self.dynamodb.Table(self.table_name)
        logger.info(f"DynamoDB trust registry initialized: {self.table_name} ({self.region})")

    @staticmethod
    def _key(principal: str) -> Dict[str, str]:
        return {"pk": f"PRINCIPAL#{principal.strip().lower()}"}

    def _to_item(self, principal: str, baseline: TrustBaseline) -> Dict[str, Any]:
        item: Dict[str, Any] = {
            **self._key(principal),
            "principal": principal.strip().lower(),
            "version": baseline.version,
        }
        if baseline.trusted_fingerprint is not None:
            item["trusted_fingerprint"] = baseline.trusted_fingerprint
        if baseline.last_location is not None:
            loc = baseline.last_location
            item["city"] = loc.city
            item["country"] = loc.country
            item["latitude"] = Decimal(str(loc.latitude))
            item["longitude"] = Decimal(str(loc.longitude))
        if baseline.last_seen_at is not None:
            item["last_seen_at"] = baseline.last_seen_at.isoformat()
        return item

    @staticmethod
    def _from_item(item: Dict[str, Any]) -> TrustBaseline:
        location = None
        if "latitude" in item and "longitude" in item:
            location = GeoLocation(
                city=item.get("city", ""),
                country=item["country"],
                latitude=float(item["latitude"]),
                longitude=float(item["longitude"]),
            )
        last_seen = item.get("last_seen_at")
        return TrustBaseline(
            principal=item["principal"],
            trusted_fingerprint=item.get("trusted_fingerprint"),
            last_location=location,
            last_seen_at=datetime.fromisoformat(last_seen) if last_seen else None,
            version=int(item.get("version", 0)),
        )

    def get_baseline(self, principal: str) -> Optional[TrustBaseline]:
        try:
            resp = self.table.get_item(Key=self._key(principal), ConsistentRead=True)
        except (ClientError, BotoCoreError) as e:
            logger.error(f"get_baseline failed: {e}")
            raise RegistryError(
                "Trust registry unavailable", details={"principal": principal}
            ) from e

        item = resp.get("Item")
        return self._from_item(item) if item else None

    def update_baseline(self, principal: str, baseline: TrustBaseline) -> None:
        expected = baseline.version - 1
        try:
            self.table.put_item(
                Item=self._to_item(principal, baseline),
                ConditionExpression="attribute_not_exists(pk) OR version = :expected",
                ExpressionAttributeValues={":expected": expected},
            )
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise BaselineConflictError(principal, expected) from e
            logger.error(f"update_baseline failed: {e}")
            raise RegistryError(
                "Trust registry write failed", details={"principal": principal}
            ) from e
        except BotoCoreError as e:
            logger.error(f"update_baseline failed: {e}")
            raise RegistryError(
                "Trust registry write failed", details={"principal": principal}
            ) from e
