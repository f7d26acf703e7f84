"""Prometheus metrics for NoteHub."""

from prometheus_client import Counter, Gauge

uploads_total = Counter(
    "notehub_uploads_total",
    "Total resource submissions",
    ["kind", "outcome"]  # outcome: accepted|duplicate|invalid|storage_error|metadata_error
)

moderation_decisions_total = Counter(
    "notehub_moderation_decisions_total",
    "Total moderation decisions",
    ["action", "outcome"]  # action: approve|reject, outcome: success|conflict|invalid|error
)

ban_events_total = Counter(
    "notehub_ban_events_total",
    "Total ban and unban operations",
    ["action"]  # action: ban|unban|ban_email|unban_email|session_blocked
)

storage_soft_failures_total = Counter(
    "notehub_storage_soft_failures_total",
    "Blob deletions that failed but did not abort the operation",
    ["operation"]
)

reconciliation_orphan_blobs = Gauge(
    "notehub_reconciliation_orphan_blobs",
    "Blobs without a metadata row at the last reconciliation"
)

reconciliation_dangling_rows = Gauge(
    "notehub_reconciliation_dangling_rows",
    "Metadata rows without a blob at the last reconciliation"
)
