"""
Job tracker component - polling state machine for regeneration jobs.
"""

from .component import (
    DEFAULT_POLL_INTERVAL_SECONDS,
    JobCallback,
    JobTracker,
    create_job_tracker,
)
from .models import TrackerSnapshot, TrackerState
from .ports import CatalogRefreshPort, JobStatusPort

__all__ = [
    # Service
    "JobTracker",
    "create_job_tracker",
    # Configuration
    "DEFAULT_POLL_INTERVAL_SECONDS",
    "JobCallback",
    # Models
    "TrackerSnapshot",
    "TrackerState",
    # Ports
    "CatalogRefreshPort",
    "JobStatusPort",
]
