"""
Pending component - local batch of uncommitted font changes.
"""

from .component import PendingChangeSet
from .models import PendingSnapshot

__all__ = [
    "PendingChangeSet",
    "PendingSnapshot",
]
