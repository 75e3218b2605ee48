# lambdas/eventbus_layer/structured_log.py
import json


def log_json(log_type: str, **fields) -> dict:
    """
    Prints a single-line JSON record that CloudWatch Logs Insights can query
    by its `logType` field. Returns the record that was written.
    """
    record = {"logType": log_type, **fields}
    print(json.dumps(record, default=str))
    return record
