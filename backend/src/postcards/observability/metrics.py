"""Prometheus metrics for the postcard inbox.

Defines operational metrics for submissions, reviews, store scans and exports.
"""

from prometheus_client import Counter, Histogram

# Submission metrics
submissions_total = Counter(
    "postcards_submissions_total",
    "Total postcard submissions",
    ["outcome"]  # outcome: accepted|rejected
)

submission_rejections_total = Counter(
    "postcards_submission_rejections_total",
    "Rejected submissions by reason",
    ["reason"]  # reason: form|files|content|size|allocation|storage
)

# Review metrics
status_transitions_total = Counter(
    "postcards_status_transitions_total",
    "Status changes applied by reviewers",
    ["status"]  # target status
)

# Store metrics
store_scan_duration_seconds = Histogram(
    "postcards_store_scan_duration_seconds",
    "Time spent enumerating the entry store in seconds",
    buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0]
)

store_scan_skipped_total = Counter(
    "postcards_store_scan_skipped_total",
    "Entry directories skipped during scans (missing or unparsable metadata)"
)

# Export metrics
exports_total = Counter(
    "postcards_exports_total",
    "Exports rendered",
    ["format"]  # format: csv|json|zip
)
