# lambdas/eventbus_layer/events.py
import json


class PutEventsError(RuntimeError):
    """Raised when EventBridge rejects one or more entries of a PutEvents call."""

    def __init__(self, failed_entry_count: int, entries: list[dict]):
        self.failed_entry_count = failed_entry_count
        self.entries = entries
        super().__init__(f"{failed_entry_count} event(s) failed to publish: {json.dumps(entries)}")


def build_entry(source: str, detail_type: str, detail, event_bus_name: str) -> dict:
    """
    Builds a PutEvents request entry.

    The Detail field must be a JSON string, so dict details are encoded here.
    """
    if not isinstance(detail, str):
        detail = json.dumps(detail if detail is not None else {})
    return {
        "Source": source,
        "DetailType": detail_type,
        "Detail": detail,
        "EventBusName": event_bus_name,
    }


def put_events(events_client, entries: list[dict]) -> dict:
    """
    Sends entries to EventBridge.

    Returns:
        The PutEvents response.

    Raises:
        PutEventsError: If the response reports any failed entry.
        ClientError: If the boto3 call itself fails.
    """
    response = events_client.put_events(Entries=entries)
    failed_count = response.get("FailedEntryCount", 0)
    if failed_count > 0:
        raise PutEventsError(failed_count, response.get("Entries", []))
    return response
