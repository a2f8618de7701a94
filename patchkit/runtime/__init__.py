"""
Runtime package for scoping and aggregation.

Architecture:
- PatchRegistry tracks live PatchSets per owner
- Views project registered patches into applied, known, toggle and lazy maps
- ScopedToggle applies a PatchSet for the duration of a block

Cross-cutting:
- Registry bookkeeping guarded by a reentrant lock
- Owner mutation stays single-threaded
"""

from .toggle import ScopedToggle, ToggleState
from .views import LazyView, ScopedViews
from .registry import PatchRegistry, default_registry

__all__ = ["ScopedToggle", "ToggleState", "LazyView", "ScopedViews", "PatchRegistry", "default_registry"]
