# lambdas/dead_letter_processor/alerts.py
import json
from typing import Optional

import requests

# SNS rejects subjects longer than this.
MAX_SUBJECT_LENGTH = 100


class FailedEventAlert:
    """Everything an on-call engineer needs to know about an archived critical event."""
    def __init__(self, message: dict, failure_reason: str, receive_count: int,
                 bucket: str, archive_key: str):
        detail = message.get('detail') or {}
        self.event_id = message.get('id')
        self.event_type = message.get('detail-type')
        self.source = message.get('source')
        self.user_id = detail.get('userId') if isinstance(detail, dict) else None
        self.detail = detail
        self.failure_reason = failure_reason
        self.receive_count = receive_count
        self.location = f"s3://{bucket}/{archive_key}"

    def __repr__(self) -> str:
        return f"FailedEventAlert(event_id='{self.event_id}', event_type='{self.event_type}')"


# Formatting
def format_subject(alert: FailedEventAlert) -> str:
    subject = f"Critical Event Failed: {alert.event_type}"
    return subject[:MAX_SUBJECT_LENGTH]


def format_text_body(alert: FailedEventAlert) -> str:
    """Creates the plain text body of the SNS alert."""
    lines = [
        f"Critical event processing failed after {alert.receive_count} attempts.",
        "",
        "Event Details:",
        f"- Event ID: {alert.event_id}",
        f"- Event Type: {alert.event_type}",
        f"- Source: {alert.source}",
        f"- User ID: {alert.user_id or 'N/A'}",
        f"- Failure Reason: {alert.failure_reason}",
        f"- Archived Location: {alert.location}",
        "",
        "Event Detail:",
        json.dumps(alert.detail, indent=2, default=str),
        "",
        "Please investigate immediately.",
    ]
    return "\n".join(lines)


def format_slack_message(alert: FailedEventAlert) -> dict:
    """Builds a Slack message using Block Kit."""
    fields = [
        f"*Event ID:*\n`{alert.event_id}`",
        f"*Source:*\n{alert.source}",
        f"*User ID:*\n{alert.user_id or 'N/A'}",
        f"*Attempts:*\n{alert.receive_count}",
    ]
    blocks = [
        {"type": "header",
         "text": {"type": "plain_text", "text": f":rotating_light: {format_subject(alert)}", "emoji": True}},
        {"type": "section", "fields": [{"type": "mrkdwn", "text": f} for f in fields]},
        {"type": "section", "text": {"type": "mrkdwn", "text": f"*Failure Reason:*\n>{alert.failure_reason}"}},
        {"type": "divider"},
        {"type": "context", "elements": [{"type": "mrkdwn", "text": f"Archived at `{alert.location}`"}]},
    ]
    return {"blocks": blocks}


# Delivery
def send_sns_alert(sns, topic_arn: Optional[str], alert: FailedEventAlert) -> Optional[str]:
    """
    Publishes the alert to SNS.

    Returns:
        The SNS MessageId, or None when no topic is configured.
    """
    if not topic_arn:
        print("⚠️ ALERT_TOPIC_ARN not set. Skipping alert.")
        return None

    response = sns.publish(
        TopicArn=topic_arn,
        Subject=format_subject(alert),
        Message=format_text_body(alert),
        MessageAttributes={
            'eventType': {'DataType': 'String', 'StringValue': alert.event_type or 'unknown'},
            'eventId': {'DataType': 'String', 'StringValue': alert.event_id or 'unknown'},
        },
    )
    print(f"Alert sent for critical event: {alert.event_id}")
    return response.get('MessageId')


def send_slack_alert(webhook_url: Optional[str], alert: FailedEventAlert) -> bool:
    """Posts the alert to a Slack webhook. Network errors are logged, not raised."""
    if not webhook_url:
        print("ℹ️ SLACK_WEBHOOK_URL not set. Skipping Slack notification.")
        return False

    try:
        response = requests.post(webhook_url, json=format_slack_message(alert), timeout=10)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        print(f"⚠️ Could not send Slack notification due to a network error: {e}")
        return False
    print(f"Slack alert sent for critical event: {alert.event_id}")
    return True
