# cli/publish_event.py
import os
import json
import uuid
import argparse
from datetime import datetime, timezone

import boto3
from botocore.exceptions import BotoCoreError, ClientError
from dotenv import load_dotenv

from eventbus_layer.events import PutEventsError, build_entry, put_events

# Load environment variables from a .env file for local testing
load_dotenv()

UPLOAD_SOURCE = "custom.upload-service"
TRANSCRIPTION_SOURCE = "custom.transcription-service"

# PutEvents accepts at most 10 entries per request
MAX_ENTRIES_PER_REQUEST = 10


def audio_uploaded_entry(event_bus_name: str, user_id: str = "test-user-123") -> dict:
    """Builds an 'Audio Uploaded' PutEvents entry."""
    return build_entry(UPLOAD_SOURCE, "Audio Uploaded", {
        "userId": user_id,
        "fileId": str(uuid.uuid4()),
        "s3Location": {
            "bucket": "test-audio-bucket",
            "key": f"{user_id}/test-file.mp3",
        },
        "metadata": {
            "format": "mp3",
            "size": 1024000,
            "contentType": "audio/mpeg",
        },
    }, event_bus_name)


def document_uploaded_entry(event_bus_name: str, user_id: str = "test-user-456") -> dict:
    """Builds a 'Document Uploaded' PutEvents entry."""
    return build_entry(UPLOAD_SOURCE, "Document Uploaded", {
        "userId": user_id,
        "fileId": str(uuid.uuid4()),
        "s3Location": {
            "bucket": "test-document-bucket",
            "key": f"{user_id}/test-document.pdf",
        },
        "metadata": {
            "format": "pdf",
            "size": 2048000,
            "contentType": "application/pdf",
        },
    }, event_bus_name)


def transcription_completed_entry(event_bus_name: str, user_id: str = "test-user-789") -> dict:
    """Builds a 'Transcription Completed' PutEvents entry."""
    return build_entry(TRANSCRIPTION_SOURCE, "Transcription Completed", {
        "userId": user_id,
        "fileId": str(uuid.uuid4()),
        "jobId": str(uuid.uuid4()),
        "status": "completed",
        "sourceAudio": {
            "bucket": "test-audio-bucket",
            "key": f"{user_id}/audio-file.mp3",
        },
        "transcriptLocation": {
            "bucket": "test-transcript-bucket",
            "textKey": f"{user_id}/transcript.txt",
            "jsonKey": f"{user_id}/transcript.json",
        },
        "transcriptMetadata": {
            "language": "en",
            "duration": 180,
            "wordCount": 450,
            "model": "whisper-large-v3",
        },
        "completedAt": datetime.now(timezone.utc).isoformat(),
    }, event_bus_name)


def invalid_entry(event_bus_name: str) -> dict:
    """Builds an entry that is missing every field consumers expect."""
    return build_entry(UPLOAD_SOURCE, "Invalid Event", {"invalidField": "test"}, event_bus_name)


ENTRY_BUILDERS = {
    "audio": audio_uploaded_entry,
    "document": document_uploaded_entry,
    "transcription": transcription_completed_entry,
    "invalid": invalid_entry,
}


def publish(events_client, entries: list[dict]) -> list[str]:
    """
    Publishes entries in batches that respect the PutEvents limit.

    Returns:
        The EventIds assigned by EventBridge, in order.

    Raises:
        PutEventsError: If any entry in a batch was rejected.
    """
    event_ids = []
    for start_index in range(0, len(entries), MAX_ENTRIES_PER_REQUEST):
        batch = entries[start_index:start_index + MAX_ENTRIES_PER_REQUEST]
        response = put_events(events_client, batch)
        event_ids.extend(e.get("EventId") for e in response.get("Entries", []))
    return event_ids


def main(argv=None) -> int:
    # --- Set up the command-line argument parser ---
    parser = argparse.ArgumentParser(
        description="Publishes sample events to an EventBridge event bus."
    )
    parser.add_argument('--type', choices=[*ENTRY_BUILDERS, 'all'], default='all',
                        help='Which sample event to publish.')
    parser.add_argument('--count', type=int, default=1,
                        help='How many copies of each event to publish.')
    parser.add_argument('--bus', default=os.environ.get("EVENT_BUS_NAME", "default"),
                        help='Target event bus name (defaults to $EVENT_BUS_NAME).')
    args = parser.parse_args(argv)

    builders = list(ENTRY_BUILDERS.values()) if args.type == 'all' else [ENTRY_BUILDERS[args.type]]
    entries = [build(args.bus) for _ in range(args.count) for build in builders]

    events_client = boto3.client('events', region_name=os.environ.get("AWS_REGION", "us-east-1"))
    print(f"--- Publishing {len(entries)} event(s) to bus '{args.bus}' ---")
    try:
        event_ids = publish(events_client, entries)
    except PutEventsError as e:
        print(f"❌ Some events were rejected: {e}")
        return 1
    except (BotoCoreError, ClientError) as e:
        print(f"❌ Failed to publish events: {e}")
        return 1

    for entry, event_id in zip(entries, event_ids):
        print(f"✅ {entry['DetailType']}: {event_id}")
    print(json.dumps({"published": len(event_ids)}))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
