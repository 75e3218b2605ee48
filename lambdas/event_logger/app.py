# lambdas/event_logger/app.py
"""
Event logger.

Triggered by a catch-all rule on the event bus. Writes one structured log line
per event for CloudWatch Logs Insights and counts events in CloudWatch metrics.
"""
import json
import math
from datetime import datetime, timezone
from typing import Any, Dict, List

import boto3

from eventbus_layer.metrics import metric_datum, put_metrics
from eventbus_layer.settings import get_settings
from eventbus_layer.structured_log import log_json

UNKNOWN = "unknown"
TRANSCRIPTION_COMPLETED = "Transcription Completed"

_settings = get_settings()
CLOUDWATCH_CLIENT = boto3.client('cloudwatch', region_name=_settings.aws_region)


def build_event_record(event: dict) -> dict:
    """Flattens the EventBridge envelope into the EVENT_RECEIVED log fields."""
    detail = event.get('detail') or {}
    return {
        "eventId": event.get('id'),
        "eventSource": event.get('source') or UNKNOWN,
        "eventType": event.get('detail-type') or UNKNOWN,
        "eventTime": event.get('time') or datetime.now(timezone.utc).isoformat(),
        "userId": detail.get('userId') or UNKNOWN,
        "fileId": detail.get('fileId') or UNKNOWN,
        "status": detail.get('status') or UNKNOWN,
        "metadata": {
            "region": event.get('region'),
            "account": event.get('account'),
            "resources": event.get('resources'),
        },
    }


def _processing_time(detail: dict):
    """Returns transcriptMetadata.processingTime as a float, or None when absent or not a number."""
    transcript_metadata = detail.get('transcriptMetadata') or {}
    processing_time = transcript_metadata.get('processingTime')
    if processing_time is None or isinstance(processing_time, bool):
        return None
    try:
        value = float(processing_time)
    except (TypeError, ValueError):
        value = None
    # CloudWatch rejects NaN and infinities
    if value is None or not math.isfinite(value):
        print(f"⚠️ Ignoring non-numeric processingTime: {processing_time!r}")
        return None
    return value


def build_metric_data(event_source: str, event_type: str, detail: dict) -> List[dict]:
    """
    Builds the metrics for one event: an EventsReceived count for every event,
    plus status and processing time for completed transcriptions.
    """
    metric_data = [
        metric_datum("EventsReceived", 1, dimensions={"EventSource": event_source, "EventType": event_type}),
    ]

    if event_type == TRANSCRIPTION_COMPLETED and detail.get('status'):
        metric_data.append(
            metric_datum("TranscriptionStatus", 1, dimensions={"Status": detail['status']})
        )
        processing_time = _processing_time(detail)
        if processing_time:
            metric_data.append(
                metric_datum("TranscriptionProcessingTime", processing_time, unit="Seconds")
            )

    return metric_data


def build_response(message: str, event_id, error: str = None) -> dict:
    body = {"message": message, "eventId": event_id}
    if error is not None:
        body["error"] = error
    return {"statusCode": 200, "body": json.dumps(body)}


def handler(event: Dict[str, Any], context: object) -> Dict[str, Any]:
    """
    Main Lambda handler, triggered by EventBridge.

    Always answers 200, even when logging fails; EventBridge must not retry
    an event because it could not be logged.
    """
    print(f"Received event: {json.dumps(event, indent=2, default=str)}")

    try:
        settings = get_settings()
        record = build_event_record(event)
        log_json("EVENT_RECEIVED", **record)

        detail = event.get('detail') or {}
        metric_data = build_metric_data(record["eventSource"], record["eventType"], detail)
        put_metrics(CLOUDWATCH_CLIENT, settings.event_metric_namespace, metric_data)

        if detail.get('error'):
            log_json("EVENT_ERROR", eventId=event.get('id'), eventType=record["eventType"], error=detail['error'])

        return build_response("Event logged successfully", event.get('id'))

    except Exception as e:
        print(f"❌ Error processing event: {e}")
        event_id = event.get('id') if isinstance(event, dict) else None
        return build_response("Event logged with errors", event_id, error=str(e))
