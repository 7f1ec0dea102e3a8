"""Health check utilities.

Provides health and readiness checks for the entry store.
"""

import os
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def check_store_health(root: Path) -> ComponentHealth:
    """Check that the store root exists and is writable.

    The message never contains the path itself.
    """
    start = time.time()
    if not root.is_dir():
        logger.error(f"Entry store root missing: {root}")
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message="Store root missing")

    if not os.access(root, os.R_OK | os.W_OK | os.X_OK):
        logger.error(f"Entry store root not writable: {root}")
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message="Store root not writable")

    latency_ms = (time.time() - start) * 1000
    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message="Store root OK",
        latency_ms=round(latency_ms, 2),
    )


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall health from component statuses."""
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY

    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY

    return HealthStatus.DEGRADED
