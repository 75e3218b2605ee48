# lambdas/eventbus_layer/settings.py
"""
Environment-driven settings shared by the event bus handlers.
"""
from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """
    Manages env vars using Pydantic BaseSettings.
    Reads a .env file too when one is present, which helps local runs.
    """
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        extra='ignore',
        populate_by_name=True,
    )

    aws_region: str = Field("us-east-1", alias='AWS_REGION')

    # Dead-letter processor
    alert_topic_arn: Optional[str] = Field(None, alias='ALERT_TOPIC_ARN')
    slack_webhook_url: Optional[str] = Field(None, alias='SLACK_WEBHOOK_URL')
    failed_events_bucket: str = Field("eventbridge-failed-events", alias='FAILED_EVENTS_BUCKET')
    event_bus_name: str = Field("default", alias='EVENT_BUS_NAME')
    max_retry_attempts: int = Field(3, alias='MAX_RETRY_ATTEMPTS')
    failure_policy_path: Optional[str] = Field(None, alias='FAILURE_POLICY_PATH')
    dead_letter_metric_namespace: str = Field("EventBridge/DeadLetter", alias='DEAD_LETTER_METRIC_NAMESPACE')

    # Event logger
    event_metric_namespace: str = Field("EventBridge/Events", alias='EVENT_METRIC_NAMESPACE')


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Returns the process-wide settings, read once per Lambda container."""
    return AppSettings()
