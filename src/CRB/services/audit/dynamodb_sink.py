"""
DynamoDB audit sink for claim decisions.

Table layout (ClaimsAuditTrail):
    ClaimId    (S, partition key)
    Timestamp  (S, sort key, ISO-8601 UTC with microseconds, e.g.
                "2024-05-01T10:30:45.123456Z" so lexical order == time order)
    MatchedClauseIds, DecisionStatus, RetrievalSource, PolicyNumber,
    ClaimAmount, ClaimDescription, Explanation, ConfidenceScore,
    RetrievedClauses (JSON list of {ClauseId, Score})

Records are append-only: put_item is conditioned on the key not existing,
and nothing in this module updates or deletes items.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from CRB.core.exceptions import StorageError
from CRB.core.logging_config import get_logger
from CRB.core.models import AuditRecord, RetrievalSource
from CRB.core.settings import Settings
from CRB.services.aws_session import create_resource

logger = get_logger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def format_timestamp(ts: datetime) -> str:
    """Sort-key representation of a timestamp (naive values are taken as UTC)."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def _to_decimal(value: Optional[float]) -> Optional[Decimal]:
    return None if value is None else Decimal(str(value))


def record_to_item(record: AuditRecord) -> dict[str, Any]:
    """Serialize an AuditRecord into a DynamoDB item (None values omitted)."""
    item = {
        "ClaimId": record.claim_id,
        "Timestamp": format_timestamp(record.timestamp),
        "MatchedClauseIds": list(record.matched_clause_ids),
        "DecisionStatus": record.decision,
        "RetrievalSource": record.retrieval_source.value,
        "PolicyNumber": record.policy_number,
        "ClaimAmount": _to_decimal(record.claim_amount),
        "ClaimDescription": record.claim_description,
        "Explanation": record.explanation,
        "ConfidenceScore": _to_decimal(record.confidence_score),
        "RetrievedClauses": json.dumps(
            [{"ClauseId": clause_id, "Score": score} for clause_id, score in record.clause_scores]
        ),
    }
    return {k: v for k, v in item.items() if v is not None}


def item_to_record(item: dict[str, Any]) -> AuditRecord:
    """Deserialize a DynamoDB item back into an AuditRecord."""
    clause_scores = tuple(
        (entry["ClauseId"], float(entry["Score"]))
        for entry in json.loads(item.get("RetrievedClauses") or "[]")
    )
    amount = item.get("ClaimAmount")
    confidence = item.get("ConfidenceScore")
    return AuditRecord(
        claim_id=item["ClaimId"],
        timestamp=parse_timestamp(item["Timestamp"]),
        matched_clause_ids=tuple(item.get("MatchedClauseIds") or ()),
        decision=item["DecisionStatus"],
        retrieval_source=RetrievalSource(item["RetrievalSource"]),
        policy_number=item.get("PolicyNumber"),
        claim_amount=float(amount) if amount is not None else None,
        claim_description=item.get("ClaimDescription"),
        explanation=item.get("Explanation"),
        confidence_score=float(confidence) if confidence is not None else None,
        clause_scores=clause_scores,
    )


class DynamoDBAuditSink:
    """
    Append-only audit storage in DynamoDB.

    Attributes:
        table_name (str): DynamoDB table name

    Thread Safety:
        boto3 Table resources are not guaranteed thread-safe; the
        BackgroundAuditDispatcher serializes writes through one worker.
    """

    def __init__(self, settings: Settings, table=None):
        self.table_name = settings.dynamodb_audit_table
        self._table = table if table is not None else create_resource("dynamodb", settings).Table(self.table_name)
        logger.info(f"Initialized DynamoDBAuditSink for table '{self.table_name}'")

    def record(self, entry: AuditRecord) -> None:
        """
        Write one audit record (single attempt, no retry).

        Raises:
            StorageError: If the write fails or the key already exists
        """
        item = record_to_item(entry)
        try:
            self._table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(ClaimId)"
            )
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            raise StorageError(
                f"Audit write failed: {error_code}",
                details={
                    "table": self.table_name,
                    "claim_id": entry.claim_id,
                    "timestamp": item["Timestamp"],
                    "error_code": error_code
                }
            )
        except BotoCoreError as e:
            raise StorageError(
                f"Audit write failed: {type(e).__name__}",
                details={"table": self.table_name, "claim_id": entry.claim_id, "error": str(e)}
            )

        logger.info(f"Audit record written for claim {entry.claim_id} at {item['Timestamp']}")

    def history(
        self,
        claim_id: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> list[AuditRecord]:
        """
        Range-read audit records of one claim, oldest first.

        Args:
            claim_id: Partition key
            start: Inclusive lower bound on timestamp
            end: Inclusive upper bound on timestamp

        Raises:
            StorageError: If the query fails
        """
        condition = Key("ClaimId").eq(claim_id)
        if start and end:
            condition = condition & Key("Timestamp").between(format_timestamp(start), format_timestamp(end))
        elif start:
            condition = condition & Key("Timestamp").gte(format_timestamp(start))
        elif end:
            condition = condition & Key("Timestamp").lte(format_timestamp(end))

        records: list[AuditRecord] = []
        kwargs: dict[str, Any] = {"KeyConditionExpression": condition, "ScanIndexForward": True}
        try:
            while True:
                response = self._table.query(**kwargs)
                records.extend(item_to_record(item) for item in response.get("Items", []))
                last_key = response.get("LastEvaluatedKey")
                if not last_key:
                    break
                kwargs["ExclusiveStartKey"] = last_key
        except (ClientError, BotoCoreError) as e:
            raise StorageError(
                "Audit history query failed",
                details={"table": self.table_name, "claim_id": claim_id, "error": str(e)}
            )

        return records
