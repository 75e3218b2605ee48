# lambdas/dead_letter_processor/app.py
"""
Dead-letter processor.

Triggered by the SQS dead-letter queue of the event bus. Each failed event is
either republished to the bus (transient failures) or archived to S3.
Archived events are counted in CloudWatch, and critical ones raise an alert.
"""
import json
from typing import Any, Dict

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from eventbus_layer.events import build_entry, put_events
from eventbus_layer.metrics import metric_datum, put_metrics
from eventbus_layer.settings import get_settings

from dead_letter_processor.alerts import FailedEventAlert, send_slack_alert, send_sns_alert
from dead_letter_processor.archiver import archive_failed_event
from dead_letter_processor.failure_policy import load_failure_policy

STATUS_REPUBLISHED = "republished"
STATUS_PROCESSED = "processed"
STATUS_RETRY = "retry"
STATUS_ERROR = "error"

# Initialize clients outside of the handler so warm invocations reuse them.
_settings = get_settings()
S3_CLIENT = boto3.client('s3', region_name=_settings.aws_region)
SNS_CLIENT = boto3.client('sns', region_name=_settings.aws_region)
EVENTS_CLIENT = boto3.client('events', region_name=_settings.aws_region)
CLOUDWATCH_CLIENT = boto3.client('cloudwatch', region_name=_settings.aws_region)


class InvalidDeadLetterMessage(ValueError):
    """The SQS body is not a JSON object, so there is no event to recover."""
    pass


def parse_message(record: dict) -> dict:
    try:
        message = json.loads(record.get('body') or '')
    except json.JSONDecodeError as e:
        raise InvalidDeadLetterMessage(f"Body is not valid JSON: {e}") from e
    if not isinstance(message, dict):
        raise InvalidDeadLetterMessage(f"Body is a JSON {type(message).__name__}, expected an object")
    return message


def get_failure_reason(message: dict, sqs_record: dict) -> str:
    """
    Reads why delivery failed. EventBridge puts the reason in the ERROR_MESSAGE
    and ERROR_CODE message attributes of DLQ messages; an explicit
    `failureReason` field in the body wins over both.
    """
    if message.get('failureReason'):
        return str(message['failureReason'])

    attributes = sqs_record.get('messageAttributes') or {}
    for name in ('ERROR_MESSAGE', 'ERROR_CODE'):
        value = (attributes.get(name) or {}).get('stringValue')
        if value:
            return value
    return 'Unknown'


def get_receive_count(sqs_record: dict) -> int:
    attributes = sqs_record.get('attributes') or {}
    try:
        return int(attributes.get('ApproximateReceiveCount', '1'))
    except (TypeError, ValueError):
        return 1


def republish_event(events_client, event_bus_name: str, message: dict) -> str:
    """
    Sends the event back to the bus. Only the routable fields are kept; the
    DLQ-specific fields (failureReason, id, time) are dropped.

    Returns:
        The EventId assigned to the new event.

    Raises:
        PutEventsError: If EventBridge rejected the entry.
    """
    entry = build_entry(
        source=message.get('source'),
        detail_type=message.get('detail-type'),
        detail=message.get('detail') or {},
        event_bus_name=event_bus_name,
    )
    response = put_events(events_client, [entry])
    new_event_id = (response.get('Entries') or [{}])[0].get('EventId')
    print(f"✅ Successfully republished event {message.get('id')} as {new_event_id}")
    return new_event_id


def _event_dimensions(message: dict) -> dict:
    return {"EventType": message.get('detail-type'), "EventSource": message.get('source')}


def process_failed_event(message: dict, sqs_record: dict) -> Dict[str, Any]:
    """
    Processes a single failed event.

    Returns:
        A result dict with the SQS messageId, a status and the event id.
    """
    settings = get_settings()
    policy = load_failure_policy(settings.failure_policy_path)

    failure_reason = get_failure_reason(message, sqs_record)
    receive_count = get_receive_count(sqs_record)
    print(f"Processing failed event: {message.get('id')}, retry count: {receive_count}")

    decision = policy.decide(failure_reason, receive_count, settings.max_retry_attempts)
    print(f" -> Retry decision: {'Republish' if decision else 'Archive'}. Reason: {decision.reason}")

    if decision:
        try:
            republish_event(EVENTS_CLIENT, settings.event_bus_name, message)
        except Exception as e:
            # Fall through to the archive path
            print(f"❌ Failed to republish event {message.get('id')}: {e}")
        else:
            # The event is back on the bus; a metric failure must not send it round again.
            try:
                put_metrics(CLOUDWATCH_CLIENT, settings.dead_letter_metric_namespace, [
                    metric_datum("RepublishedEvents", 1, dimensions=_event_dimensions(message)),
                ])
            except (BotoCoreError, ClientError) as e:
                print(f"⚠️ Could not record RepublishedEvents metric: {e}")
            return {
                "messageId": sqs_record.get('messageId'),
                "status": STATUS_REPUBLISHED,
                "eventId": message.get('id'),
            }

    archive_key = archive_failed_event(S3_CLIENT, settings.failed_events_bucket, message, sqs_record)

    if policy.is_critical(message):
        alert = FailedEventAlert(message, failure_reason, receive_count,
                                 settings.failed_events_bucket, archive_key)
        send_sns_alert(SNS_CLIENT, settings.alert_topic_arn, alert)
        send_slack_alert(settings.slack_webhook_url, alert)

    put_metrics(CLOUDWATCH_CLIENT, settings.dead_letter_metric_namespace, [
        metric_datum("FailedEvents", 1, dimensions=_event_dimensions(message)),
    ])

    return {
        "messageId": sqs_record.get('messageId'),
        "status": STATUS_PROCESSED,
        "eventId": message.get('id'),
        "archived": archive_key,
    }


def process_record(record: dict) -> Dict[str, Any]:
    """
    Wraps process_failed_event so one bad record never stops the batch.
    Unparseable bodies are dropped; anything else is handed back to SQS.
    """
    try:
        message = parse_message(record)
        return process_failed_event(message, record)
    except InvalidDeadLetterMessage as e:
        print(f"❌ Dropping record {record.get('messageId')}: {e}")
        return {"messageId": record.get('messageId'), "status": STATUS_ERROR, "error": str(e)}
    except Exception as e:
        print(f"❌ Error processing record {record.get('messageId')}, returning it to the queue: {e}")
        return {"messageId": record.get('messageId'), "status": STATUS_RETRY, "error": str(e)}


def handler(event: Dict[str, Any], context: object) -> Dict[str, Any]:
    """
    Main Lambda handler, triggered by the dead-letter SQS queue.

    Returns a partial batch response so that only the records marked for
    retry are redelivered by SQS.
    """
    print(f"Processing DLQ event: {json.dumps(event, indent=2, default=str)}")

    results = [process_record(record) for record in event.get('Records', [])]

    summary = {}
    for result in results:
        summary[result["status"]] = summary.get(result["status"], 0) + 1
    print(f"DLQ batch complete: {json.dumps(summary)}")

    return {
        "batchItemFailures": [
            {"itemIdentifier": r["messageId"]} for r in results if r["status"] == STATUS_RETRY
        ]
    }
