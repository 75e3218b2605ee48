# lambdas/eventbus_layer/metrics.py
from datetime import datetime, timezone
from typing import Optional

UNKNOWN = "unknown"


def metric_datum(name: str, value: float, unit: str = "Count",
                 dimensions: Optional[dict] = None,
                 timestamp: Optional[datetime] = None) -> dict:
    """
    Builds a single CloudWatch MetricData entry.

    Args:
        name: The metric name.
        value: The metric value.
        unit: A CloudWatch unit, e.g. "Count" or "Seconds".
        dimensions: Dimension name -> value. CloudWatch rejects empty
            dimension values, so missing ones are reported as "unknown".
        timestamp: Defaults to the current UTC time.
    """
    datum = {
        "MetricName": name,
        "Value": value,
        "Unit": unit,
        "Timestamp": timestamp or datetime.now(timezone.utc),
    }
    if dimensions:
        datum["Dimensions"] = [
            {"Name": dim_name, "Value": UNKNOWN if dim_value is None or dim_value == "" else str(dim_value)}
            for dim_name, dim_value in dimensions.items()
        ]
    return datum


def put_metrics(cloudwatch, namespace: str, metric_data: list[dict]) -> None:
    """Sends the given metric entries to CloudWatch in a single call."""
    if not metric_data:
        return
    cloudwatch.put_metric_data(Namespace=namespace, MetricData=metric_data)
    print(f"Sent {len(metric_data)} metric(s) to namespace '{namespace}'.")
