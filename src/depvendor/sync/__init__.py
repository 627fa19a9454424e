"""
Vendor sync -- plan, prune, and converge dependencies.

Local paths are linked. Git sources are cloned on first sight and
hard-reset to their branch, tag, or revision on every later run.
"""

from .planner import PlannedDependency, SyncPlanner
from .refs import ensure_ref, select_ref
from .urls import derive_url

__all__ = ["PlannedDependency", "SyncPlanner", "derive_url", "ensure_ref", "select_ref"]
