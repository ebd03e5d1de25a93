"""Identity reconciliation core.

Flow for one fragment:
1) match stored contacts by email OR phone
2) expand matches to their full clusters
3) keep the oldest primary, demote and flatten the others
4) record the fragment when it adds a new email or phone
5) build the consolidated view from the refreshed cluster
"""

from __future__ import annotations

from .cluster import (
    Fragment,
    cluster_roots,
    has_new_information,
    normalize_fragment,
    resolve_primary,
    split_cluster,
)
from .engine import ReconciliationEngine, UnitOfWorkFactory, reconcile_identity
from .errors import (
    InconsistentClusterError,
    InvalidInputError,
    ReconciliationError,
    StoreUnavailableError,
)
from .view import ConsolidatedView, build_view

__all__ = [
    "ConsolidatedView",
    "Fragment",
    "InconsistentClusterError",
    "InvalidInputError",
    "ReconciliationEngine",
    "ReconciliationError",
    "StoreUnavailableError",
    "UnitOfWorkFactory",
    "build_view",
    "cluster_roots",
    "has_new_information",
    "normalize_fragment",
    "reconcile_identity",
    "resolve_primary",
    "split_cluster",
]
