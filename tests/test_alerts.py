# tests/test_alerts.py
import unittest
from unittest.mock import patch, MagicMock

import requests

from dead_letter_processor.alerts import (
    MAX_SUBJECT_LENGTH,
    FailedEventAlert,
    format_slack_message,
    format_subject,
    format_text_body,
    send_slack_alert,
    send_sns_alert,
)

SAMPLE_MESSAGE = {
    "id": "evt-123",
    "detail-type": "User Registered",
    "source": "custom.identity-service",
    "detail": {"userId": "user-42", "plan": "pro"},
}


def _alert(message=None) -> FailedEventAlert:
    return FailedEventAlert(message or SAMPLE_MESSAGE, "Timeout", 3,
                            "failed-bucket", "failed-events/2024-06-17/User Registered/evt-123.json")


class TestAlertFormatting(unittest.TestCase):

    def test_text_body_lists_event_details(self):
        body = format_text_body(_alert())

        self.assertTrue(body.startswith("Critical event processing failed after 3 attempts."))
        self.assertIn("- Event ID: evt-123", body)
        self.assertIn("- Source: custom.identity-service", body)
        self.assertIn("- User ID: user-42", body)
        self.assertIn("- Failure Reason: Timeout", body)
        self.assertIn("- Archived Location: s3://failed-bucket/failed-events/2024-06-17/User Registered/evt-123.json", body)
        self.assertIn('"plan": "pro"', body)
        self.assertTrue(body.endswith("Please investigate immediately."))

    def test_missing_user_id_is_reported_as_na(self):
        body = format_text_body(_alert({**SAMPLE_MESSAGE, "detail": {}}))
        self.assertIn("- User ID: N/A", body)

    def test_subject_respects_sns_limit(self):
        alert = _alert({**SAMPLE_MESSAGE, "detail-type": "X" * 200})
        self.assertEqual(len(format_subject(alert)), MAX_SUBJECT_LENGTH)
        self.assertEqual(format_subject(_alert()), "Critical Event Failed: User Registered")

    def test_slack_message_uses_block_kit(self):
        message = format_slack_message(_alert())

        block_types = [b["type"] for b in message["blocks"]]
        self.assertEqual(block_types[0], "header")
        self.assertIn("context", block_types)
        self.assertIn("Critical Event Failed: User Registered", message["blocks"][0]["text"]["text"])


class TestAlertDelivery(unittest.TestCase):

    def test_sns_alert_is_published_with_attributes(self):
        sns = MagicMock()
        sns.publish.return_value = {"MessageId": "m-1"}

        message_id = send_sns_alert(sns, "arn:aws:sns:us-east-1:123456789012:alerts", _alert())

        self.assertEqual(message_id, "m-1")
        publish_args = sns.publish.call_args.kwargs
        self.assertEqual(publish_args["MessageAttributes"]["eventType"]["StringValue"], "User Registered")
        self.assertEqual(publish_args["MessageAttributes"]["eventId"]["StringValue"], "evt-123")

    def test_sns_attributes_never_empty(self):
        sns = MagicMock()
        send_sns_alert(sns, "arn:aws:sns:us-east-1:123456789012:alerts", _alert({"detail": {}}))

        attributes = sns.publish.call_args.kwargs["MessageAttributes"]
        self.assertEqual(attributes["eventType"]["StringValue"], "unknown")
        self.assertEqual(attributes["eventId"]["StringValue"], "unknown")

    def test_sns_alert_skipped_without_topic(self):
        sns = MagicMock()
        self.assertIsNone(send_sns_alert(sns, None, _alert()))
        sns.publish.assert_not_called()

    @patch('dead_letter_processor.alerts.requests.post')
    def test_slack_network_error_is_not_raised(self, mock_post):
        mock_post.side_effect = requests.exceptions.ConnectionError("connection refused")

        self.assertFalse(send_slack_alert("https://hooks.slack.com/services/T/B/X", _alert()))
        mock_post.assert_called_once()

    @patch('dead_letter_processor.alerts.requests.post')
    def test_slack_skipped_without_webhook(self, mock_post):
        self.assertFalse(send_slack_alert(None, _alert()))
        mock_post.assert_not_called()


if __name__ == '__main__':
    unittest.main()
