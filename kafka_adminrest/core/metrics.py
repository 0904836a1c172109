"""Prometheus instruments shared by the provisioning services."""
from prometheus_client import Counter

OPERATIONS = Counter(
    "kafka_adminrest_operations",
    "Provisioning operations by outcome",
    ["operation", "outcome"],
)


def record(operation: str, ok: bool) -> None:
    OPERATIONS.labels(operation=operation, outcome="ok" if ok else "failed").inc()
