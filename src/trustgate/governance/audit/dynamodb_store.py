"""DynamoDB Audit Store - one conditional put per attempt id."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from trustgate.common.constants import DataConstants
from trustgate.common.exceptions import AuditError
from trustgate.governance.audit.store import AuditStore, DuplicateAuditEntryError
from trustgate.governance.schemas import AuditEntry

logger = logging.getLogger(__name__)


class DynamoDBAuditStore(AuditStore):
    """DynamoDB store for audit entries.

    Item layout:
        pk:       ATTEMPT#<attempt_id>
        gsi1_pk:  PRINCIPAL#<email>      gsi1_sk: recorded_at
        gsi2_pk:  AUDIT                  gsi2_sk: recorded_at
        entry:    full JSON entry

    Entries from concurrent writers are not chained; the conditional put
    on pk is what guarantees one entry per attempt.
    """

    DEFAULT_REGION = "us-east-1"
    DEFAULT_TTL_DAYS = 365
    PRINCIPAL_INDEX = "gsi1_pk-gsi1_sk-index"
    RECENCY_INDEX = "gsi2_pk-gsi2_sk-index"
    RECENCY_PARTITION = "AUDIT"

    def __init__(
        self,
        table_name: str,
        region: Optional[str] = None,
        aws_profile: Optional[str] = None,
        enable_ttl: bool = False,
        ttl_days: int = DEFAULT_TTL_DAYS,
    ):
        if not table_name:
            raise ValueError("table_name required for DynamoDB audit storage")

        self.table_name = table_name
        self.region = region or self.DEFAULT_REGION
        self.enable_ttl = enable_ttl
        self.ttl_days = ttl_days

        if aws_profile:
            session = boto3.Session(profile_name=aws_profile)
            self.dynamodb = session.resource("dynamodb", region_name=self.region)
        else:
            self.dynamodb = boto3.resource("dynamodb", region_name=self.region)

        self.table = self.dynamodb.Table(self.table_name)
        logger.info(f"DynamoDB audit store initialized: {self.table_name} ({self.region})")

    @staticmethod
    def _key(attempt_id: str) -> Dict[str, str]:
        return {"pk": f"ATTEMPT#{attempt_id}"}

    def _get_ttl_timestamp(self) -> int:
        future = datetime.now(timezone.utc) + timedelta(days=self.ttl_days)
        return int(future.timestamp())

    def _build_item(self, entry: AuditEntry) -> Dict[str, Any]:
        recorded = entry.recorded_at.isoformat()
        item = {
            **self._key(entry.attempt_id),
            "entry_id": entry.entry_id,
            "principal": entry.principal,
            "decision": entry.decision.decision.value,
            "risk_score": entry.decision.risk_score,
            "recorded_at": recorded,
            "gsi1_pk": f"PRINCIPAL#{entry.principal}",
            "gsi1_sk": recorded,
            "gsi2_pk": self.RECENCY_PARTITION,
            "gsi2_sk": recorded,
            "entry": entry.to_jsonl(),
        }
        if self.enable_ttl:
            item["ttl_timestamp"] = self._get_ttl_timestamp()
        return item

    def append_entry(self, entry: AuditEntry) -> AuditEntry:
        try:
            self.table.put_item(
                Item=self._build_item(entry),
                ConditionExpression="attribute_not_exists(pk)",
            )
            return entry
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException":
                raise DuplicateAuditEntryError(entry.attempt_id) from e
            logger.error(f"append_entry failed: {e}")
            raise AuditError(
                "DynamoDB audit write failed", details={"attempt_id": entry.attempt_id}
            ) from e
        except BotoCoreError as e:
            logger.error(f"append_entry failed: {e}")
            raise AuditError(
                "DynamoDB audit write failed", details={"attempt_id": entry.attempt_id}
            ) from e

    def contains(self, attempt_id: str) -> bool:
        try:
            resp = self.table.get_item(Key=self._key(attempt_id), ProjectionExpression="pk")
            return "Item" in resp
        except (ClientError, BotoCoreError) as e:
            logger.error(f"contains failed: {e}")
            return False

    def get_entries(
        self,
        principal: Optional[str] = None,
        limit: int = DataConstants.DEFAULT_QUERY_LIMIT,
    ) -> List[AuditEntry]:
        if principal:
            index = self.PRINCIPAL_INDEX
            key_cond = "gsi1_pk = :pk"
            pk_value = f"PRINCIPAL#{principal.strip().lower()}"
        else:
            index = self.RECENCY_INDEX
            key_cond = "gsi2_pk = :pk"
            pk_value = self.RECENCY_PARTITION

        try:
            response = self.table.query(
                IndexName=index,
                KeyConditionExpression=key_cond,
                ExpressionAttributeValues={":pk": pk_value},
                Limit=limit,
                ScanIndexForward=False,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Query failed ({index}): {e}")
            return []

        entries = []
        for item in response.get("Items", []):
            try:
                entries.append(AuditEntry.from_jsonl(item["entry"]))
            except (KeyError, ValueError) as e:
                logger.warning(f"Skipped malformed audit item: {e}")
        return entries

    def verify_integrity(self, date: Optional[str] = None) -> bool:
        """Entries are not hash chained in DynamoDB; nothing to verify."""
        return True
