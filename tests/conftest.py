# tests/conftest.py
import os
import json
import copy

import pytest

from eventbus_layer.settings import get_settings
from dead_letter_processor.failure_policy import load_failure_policy

SAMPLE_EVENTS_DIR = os.path.join(os.path.dirname(__file__), 'sample_events')

# Every variable the handlers read; cleared before each test so a developer's
# shell or .env cannot leak into the results.
HANDLER_ENV_VARS = [
    "ALERT_TOPIC_ARN",
    "SLACK_WEBHOOK_URL",
    "FAILED_EVENTS_BUCKET",
    "EVENT_BUS_NAME",
    "MAX_RETRY_ATTEMPTS",
    "FAILURE_POLICY_PATH",
    "DEAD_LETTER_METRIC_NAMESPACE",
    "EVENT_METRIC_NAMESPACE",
]


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Resets env-driven settings and the cached failure policy around every test."""
    for name in HANDLER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("AWS_REGION", "us-east-1")
    get_settings.cache_clear()
    load_failure_policy.cache_clear()
    yield
    get_settings.cache_clear()
    load_failure_policy.cache_clear()


@pytest.fixture
def set_env(monkeypatch):
    """Sets env vars and makes sure the next get_settings() call sees them."""
    def _set_env(**values):
        for name, value in values.items():
            monkeypatch.setenv(name, str(value))
        get_settings.cache_clear()
    return _set_env


@pytest.fixture
def load_sample_event():
    """Loads a sample EventBridge event from tests/sample_events/ (fresh copy per call)."""
    def _load(name: str) -> dict:
        path = os.path.join(SAMPLE_EVENTS_DIR, f"{name}.json")
        if not os.path.exists(path):
            pytest.fail(f"Sample event not found at: {path}")
        with open(path, 'r') as f:
            return copy.deepcopy(json.load(f))
    return _load


def make_sqs_record(message, message_id: str = "msg-1", receive_count: int = 1,
                    message_attributes: dict = None) -> dict:
    """Wraps a message the way SQS delivers it to Lambda."""
    body = message if isinstance(message, str) else json.dumps(message)
    return {
        "messageId": message_id,
        "receiptHandle": f"receipt-{message_id}",
        "body": body,
        "attributes": {
            "ApproximateReceiveCount": str(receive_count),
            "SentTimestamp": "1718633460000",
        },
        "messageAttributes": message_attributes or {},
        "eventSource": "aws:sqs",
        "eventSourceARN": "arn:aws:sqs:us-east-1:123456789012:eventbridge-dlq",
        "awsRegion": "us-east-1",
    }


@pytest.fixture
def sqs_record():
    return make_sqs_record
