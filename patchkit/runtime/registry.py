import builtins
import logging
import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List

from patchkit.core.tables import owner_name
from patchkit.runtime import views
from patchkit.runtime.views import LazyView, ScopedViews

if TYPE_CHECKING:
    from patchkit.core.patch_set import PatchSet

logger = logging.getLogger(__name__)


@dataclass
class _OwnerRecord:
    owner: Any
    patch_sets: List["PatchSet"] = field(default_factory=list)


class PatchRegistry:
    """
    Tracks every live PatchSet, grouped by the owner it patches.

    Owners are keyed by identity, so unhashable owners such as plain dicts
    are supported. The registry keeps a strong reference to an owner while at
    least one PatchSet for it is registered; releasing the last one drops the
    owner's record.

    Registration and lookup are guarded by a reentrant lock. Enabling or
    disabling patches runs outside the lock on a copy of the owner's list.
    """

    def __init__(self) -> None:
        self._records: Dict[int, _OwnerRecord] = {}
        self._lock = threading.RLock()

    def register_for(self, owner: Any) -> List["PatchSet"]:
        """Return the live list of PatchSets for an owner, creating it if needed."""
        with self._lock:
            record = self._records.get(id(owner))
            if record is None:
                record = _OwnerRecord(owner)
                self._records[id(owner)] = record
            return record.patch_sets

    def register(self, patch_set: "PatchSet") -> None:
        with self._lock:
            self.register_for(patch_set.owner).append(patch_set)
        logger.debug("Registered %r", patch_set)

    def release(self, patch_set: "PatchSet") -> bool:
        """
        Forget a PatchSet. The owner's record is dropped once its list is empty.

        Returns:
            True if the PatchSet was registered
        """
        with self._lock:
            record = self._records.get(id(patch_set.owner))
            if record is None:
                return False
            for index, candidate in enumerate(record.patch_sets):
                if candidate is patch_set:
                    del record.patch_sets[index]
                    break
            else:
                return False
            if not record.patch_sets:
                del self._records[id(patch_set.owner)]
                logger.debug("Released last patch set for %s", owner_name(patch_set.owner))
        logger.debug("Released %r", patch_set)
        return True

    def patches_for(self, owner: Any) -> List["PatchSet"]:
        """Snapshot of the PatchSets registered for an owner, in registration order."""
        with self._lock:
            record = self._records.get(id(owner))
            return list(record.patch_sets) if record else []

    def owners(self) -> List[Any]:
        with self._lock:
            return [record.owner for record in self._records.values()]

    def enable_all_for(self, owner: Any) -> None:
        """Apply every PatchSet registered for an owner, in registration order."""
        for patch_set in self.patches_for(owner):
            patch_set.apply()

    def disable_all_for(self, owner: Any) -> None:
        """Revert every PatchSet registered for an owner, in registration order."""
        for patch_set in self.patches_for(owner):
            patch_set.revert()

    def applied_view(self, owner: Any = builtins) -> Dict[str, Any]:
        return views.applied_view(self.patches_for(owner))

    def known_view(self, owner: Any = builtins) -> Dict[str, Any]:
        return views.known_view(self.patches_for(owner))

    def toggle_view(self, owner: Any = builtins) -> Dict[str, Callable[[Callable[..., Any]], Any]]:
        return views.toggle_view(self.patches_for(owner))

    def lazy_view(self, owner: Any = builtins) -> LazyView:
        return views.lazy_view(self.patches_for(owner))

    def scoped_to(self, owner: Any = builtins) -> ScopedViews:
        """Bundle the four views for one owner.

        Example:
            views = registry.scoped_to(MyClass)
            views.applied["helper"]
        """
        return ScopedViews(self, owner)

    def __contains__(self, owner: Any) -> bool:
        with self._lock:
            return id(owner) in self._records

    def __repr__(self) -> str:
        with self._lock:
            counts = ", ".join(f"{owner_name(r.owner)}: {len(r.patch_sets)}" for r in self._records.values())
        return f"{type(self).__name__}({counts})"


default_registry = PatchRegistry()


def enable_all_for(owner: Any) -> None:
    default_registry.enable_all_for(owner)


def disable_all_for(owner: Any) -> None:
    default_registry.disable_all_for(owner)


def scoped_to(owner: Any = builtins) -> ScopedViews:
    return default_registry.scoped_to(owner)


def applied(owner: Any = builtins) -> Dict[str, Any]:
    return default_registry.applied_view(owner)


def known(owner: Any = builtins) -> Dict[str, Any]:
    return default_registry.known_view(owner)


def use(owner: Any = builtins) -> Dict[str, Callable[[Callable[..., Any]], Any]]:
    return default_registry.toggle_view(owner)


def lazy(owner: Any = builtins) -> LazyView:
    return default_registry.lazy_view(owner)
