"""
Apply component - three-phase commit of pending font changes.
"""

from .component import (
    DURATION_NOTICE,
    ApplyOrchestrator,
    build_confirmation,
    create_apply_orchestrator,
    run_deletions,
    run_uploads,
    trigger_regeneration,
)
from .models import (
    ApplyOutput,
    ConfirmationPrompt,
    ItemFailure,
    PhaseReport,
)
from .ports import ApplyApiPort, ConfirmPort, JobObserverPort

__all__ = [
    # Service
    "ApplyOrchestrator",
    "create_apply_orchestrator",
    # Phases
    "run_deletions",
    "run_uploads",
    "trigger_regeneration",
    # Helpers
    "DURATION_NOTICE",
    "build_confirmation",
    # Models
    "ApplyOutput",
    "ConfirmationPrompt",
    "ItemFailure",
    "PhaseReport",
    # Ports
    "ApplyApiPort",
    "ConfirmPort",
    "JobObserverPort",
]
