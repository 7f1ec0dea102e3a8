"""Observability module: structured logging, metrics, request IDs and health checks."""

from .logging_config import configure_logging, get_logger
from .metrics import (
    submissions_total,
    submission_rejections_total,
    status_transitions_total,
    store_scan_duration_seconds,
    store_scan_skipped_total,
    exports_total,
)
from .request_id import request_id_var, get_request_id, set_request_id, generate_request_id
from .health import HealthStatus, ComponentHealth

__all__ = [
    "configure_logging",
    "get_logger",
    "submissions_total",
    "submission_rejections_total",
    "status_transitions_total",
    "store_scan_duration_seconds",
    "store_scan_skipped_total",
    "exports_total",
    "request_id_var",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    "HealthStatus",
    "ComponentHealth",
]
