# lambdas/dead_letter_processor/archiver.py
import json
from datetime import datetime, timezone
from typing import Optional

UNKNOWN = "unknown"


def utc_timestamp(now: datetime) -> str:
    """Formats a datetime as UTC ISO 8601 with milliseconds, e.g. 2024-06-17T13:31:00.000Z."""
    return now.astimezone(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')


def build_archive_key(message: dict, timestamp: str) -> str:
    """
    Builds the S3 key for an archived event:
    failed-events/{date}/{detail-type}/{event-id}-{timestamp}.json
    """
    date = timestamp.split('T')[0]
    event_type = message.get('detail-type') or UNKNOWN
    event_id = message.get('id') or UNKNOWN
    return f"failed-events/{date}/{event_type}/{event_id}-{timestamp}.json"


def build_archive_document(message: dict, sqs_record: dict, timestamp: str) -> dict:
    """The archived JSON: the original event plus the SQS delivery metadata."""
    return {
        "originalEvent": message,
        "sqsMetadata": {
            "messageId": sqs_record.get('messageId'),
            "receiptHandle": sqs_record.get('receiptHandle'),
            "attributes": sqs_record.get('attributes'),
        },
        "processedAt": timestamp,
    }


def build_object_metadata(message: dict) -> dict[str, str]:
    """User metadata attached to the S3 object so archives can be found without opening them."""
    detail = message.get('detail') or {}
    return {
        'event-id': str(message.get('id') or UNKNOWN),
        'event-type': str(message.get('detail-type') or UNKNOWN),
        'user-id': str(detail.get('userId') or UNKNOWN) if isinstance(detail, dict) else UNKNOWN,
    }


def archive_failed_event(s3, bucket: str, message: dict, sqs_record: dict,
                         now: Optional[datetime] = None) -> str:
    """
    Stores a failed event in S3 for later inspection.

    Args:
        s3: A boto3 S3 client.
        bucket: The failed-events bucket name.
        message: The failed EventBridge event.
        sqs_record: The SQS record the event arrived in.
        now: Overrides the archive time; defaults to the current UTC time.

    Returns:
        The S3 key the event was written to.

    Raises:
        ClientError: If the put_object call fails.
    """
    timestamp = utc_timestamp(now or datetime.now(timezone.utc))
    key = build_archive_key(message, timestamp)
    document = build_archive_document(message, sqs_record, timestamp)

    s3.put_object(
        Bucket=bucket,
        Key=key,
        Body=json.dumps(document, indent=2, default=str),
        ContentType='application/json',
        Metadata=build_object_metadata(message),
    )
    print(f"Archived failed event to s3://{bucket}/{key}")
    return key
