"""
Catalog component - fetched view of the server font catalog.
"""

from .component import (
    CatalogService,
    custom_names,
    filter_resources,
    find_resource,
    resolve_file_ids,
)
from .models import ResolvedDeletion
from .ports import CatalogSourcePort

__all__ = [
    # Service
    "CatalogService",
    # Functional core
    "custom_names",
    "filter_resources",
    "find_resource",
    "resolve_file_ids",
    # Models
    "ResolvedDeletion",
    # Ports
    "CatalogSourcePort",
]
