"""
Patch lifecycle management.

Architecture:
- PatchSet captures a payload of properties for one owner
- Conflicting originals are snapshotted once, at construction
- apply() and revert() walk entries in payload order and verify every write
- Results are reported through metrics callbacks instead of exceptions
- Every PatchSet registers itself with a PatchRegistry

Design Patterns:
- Memento Pattern: Conflict entries restore the owner on revert
- Command Pattern: apply/revert as repeatable operations
- Observer Pattern: Metrics callbacks

Responsibilities:
1. Construction
   - Per-key snapshot of payload properties
   - Per-key snapshot of conflicting owner properties
   - Partial-failure tolerance (bad keys are logged and skipped)
   - Registry membership

2. Application
   - Activation conditions (global and per key)
   - Descriptor installation through the owner's property table
   - Post-write verification
   - Applied/unapplied bookkeeping

3. Reversion
   - Removal of installed properties
   - Restoration of conflicting originals
   - Verification of restored properties

Cross-cutting:
- Soft failures are accumulated in metrics, never raised
- Diagnostics go to the module logger
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple, Union

from patchkit.core.descriptors import equal_descriptors
from patchkit.core.entry import PropertyEntry
from patchkit.core.errors import ApplyError, RevertError
from patchkit.core.metrics import ApplyMetrics, RevertMetrics
from patchkit.core.tables import PropertyTable, owner_name, table_for
from patchkit.runtime.registry import PatchRegistry, default_registry
from patchkit.runtime.toggle import ScopedToggle

logger = logging.getLogger(__name__)

Condition = Callable[[], bool]

# Errors a property table raises when a write is refused
_WRITE_ERRORS = (TypeError, AttributeError, ValueError)


@dataclass
class PatchOptions:
    """Activation options for a PatchSet.

    Attributes:
        condition: Global condition applied to every entry without its own
        conditions: Per-key conditions, taking precedence over the global one
    """

    condition: Optional[Condition] = None
    conditions: Dict[str, Condition] = field(default_factory=dict)

    @classmethod
    def coerce(cls, options: Union["PatchOptions", Mapping, None]) -> "PatchOptions":
        """Build options from None, a PatchOptions, or a mapping with the same keys.

        Raises:
            ValueError: If a mapping carries unknown option names
            TypeError: If options is of any other type
        """
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        if isinstance(options, Mapping):
            unknown = set(options) - {"condition", "conditions"}
            if unknown:
                raise ValueError(f"Unknown patch options: {', '.join(sorted(map(str, unknown)))}")
            return cls(condition=options.get("condition"), conditions=dict(options.get("conditions") or {}))
        raise TypeError(f"Patch options must be a PatchOptions or a mapping, got {type(options).__name__}")

    def condition_for(self, key: str) -> Optional[Condition]:
        """Per-key condition if one is present, else the global condition."""
        if key in self.conditions:
            return self.conditions[key]
        return self.condition


def _error(error_type: type, message: str, cause: Optional[BaseException] = None) -> Exception:
    error = error_type(message)
    error.__cause__ = cause
    return error


class PatchSet:
    """Applies and reverts a batch of properties on one owner.

    Class Invariants:
    1. patch_count equals the number of patch entries
    2. After apply(), patches_applied equals the number of entries in the
       applied state
    3. is_fully_patched holds exactly when patch_count == patches_applied
    4. Conflict entries are captured once, before anything is applied, so
       revert() restores the owner as it was at construction

    Threading/Concurrency Guarantees:
    None. A PatchSet and its owner are expected to be mutated from a single
    logical thread of control.

    Example:
        owner = SimpleNamespace(x=1)
        patch = PatchSet(owner, {"x": 2, "greet": lambda: "hi"})
        patch.apply()      # owner.x == 2, owner.greet() == "hi"
        patch.revert()     # owner.x == 1, no greet attribute
    """

    def __init__(
        self,
        owner: Any,
        payload: Any,
        options: Union[PatchOptions, Mapping, None] = None,
        registry: Optional[PatchRegistry] = None,
    ) -> None:
        """Snapshot the payload and the conflicting owner properties.

        Args:
            owner: Object the patches are applied to
            payload: Mapping or object whose own properties are the patches
            options: PatchOptions, or a mapping with ``condition`` and/or
                ``conditions``
            registry: Registry to join; defaults to the process-wide registry

        Raises:
            InvalidOwnerError: If owner or payload cannot hold properties
        """
        self.owner = owner
        self.patches_owner = payload
        self.options = PatchOptions.coerce(options)
        self.registry = registry if registry is not None else default_registry

        self.patch_entries: Dict[str, PropertyEntry] = {}
        self.patch_conflicts: Dict[str, PropertyEntry] = {}
        self.patch_state: Dict[PropertyEntry, bool] = {}
        self.patch_count = 0
        self.patches_applied = 0
        self._installed: Set[PropertyEntry] = set()

        owner_table = table_for(owner)
        for key in table_for(payload).raw_keys():
            try:
                self.patch_entries[key] = PropertyEntry.from_payload(key, payload, self.options.condition_for(key))
                self.patch_count += 1
            except Exception:
                logger.exception("Failed to process patch for %s", key)

            if isinstance(key, str) and owner_table.has(key):
                try:
                    self.patch_conflicts[key] = PropertyEntry(key, owner)
                except Exception:
                    logger.exception("Cannot capture conflicting patch key %s", key)

        self.registry.register(self)

    @property
    def entries(self) -> List[Tuple[str, PropertyEntry]]:
        """All patch entries as (key, entry) pairs, in payload order."""
        return list(self.patch_entries.items())

    @property
    def applied_entries(self) -> List[Tuple[str, PropertyEntry]]:
        return [(key, entry) for key, entry in self.patch_entries.items() if self.patch_state.get(entry) is True]

    @property
    def unapplied_entries(self) -> List[Tuple[str, PropertyEntry]]:
        """Entries not currently applied, including those never evaluated."""
        return [(key, entry) for key, entry in self.patch_entries.items() if not self.patch_state.get(entry, False)]

    @property
    def patches(self) -> Dict[str, Any]:
        """Key to computed value for every patch, read at call time.

        Example:
            greet = patch.patches["greet"]
        """
        return {key: entry.computed for key, entry in self.entries}

    @property
    def applied_patches(self) -> Dict[str, Any]:
        return {key: entry.computed for key, entry in self.applied_entries}

    @property
    def unapplied_patches(self) -> Dict[str, Any]:
        return {key: entry.computed for key, entry in self.unapplied_entries}

    @property
    def patch_keys(self) -> List[str]:
        return list(self.patch_entries)

    @property
    def conflicts(self) -> List[Tuple[str, PropertyEntry]]:
        """Snapshots of owner properties the patches override, as (key, entry) pairs."""
        return list(self.patch_conflicts.items())

    @property
    def applied(self) -> bool:
        """True if at least one patch is applied."""
        return self.patches_applied > 0

    @property
    def is_partially_patched(self) -> bool:
        """Synonym for applied."""
        return self.applied

    @property
    def is_fully_patched(self) -> bool:
        return self.patch_count == self.patches_applied

    def apply(self, on_metrics: Optional[Callable[[ApplyMetrics], None]] = None) -> None:
        """Apply every allowed patch to the owner.

        Each entry whose condition passes is defined on the owner, then read
        back and compared with what was written. Entries whose condition fails
        are left unapplied without being counted as errors. Calling apply()
        again re-evaluates every condition; already applied entries are simply
        rewritten.

        Args:
            on_metrics: Optional callback receiving ApplyMetrics. A fully
                successful call has applied == patches, no errors and
                not_applied == 0.
        """
        entries = self.entries
        metrics = ApplyMetrics(patches=len(entries), not_applied=len(entries))
        owner_table = table_for(self.owner)

        self.patch_state.clear()

        for key, entry in entries:
            try:
                allowed = entry.is_allowed
            except Exception as error:
                metrics.errors.append((entry, _error(ApplyError, f"Condition for patch {key} raised {error!r}", error)))
                self.patch_state[entry] = False
                continue

            if not allowed:
                logger.debug("Patch %s on %s is gated by its condition", key, owner_name(self.owner))
                self.patch_state[entry] = False
                continue

            try:
                owner_table.define(key, entry.descriptor)
            except _WRITE_ERRORS as error:
                metrics.errors.append((entry, _error(ApplyError, f"Could not apply patch for key {key}: {error}", error)))
                self.patch_state[entry] = False
                continue

            self._installed.add(entry)

            if equal_descriptors(self._read(owner_table, key), entry.descriptor):
                metrics.applied += 1
                metrics.not_applied -= 1
                self.patch_state[entry] = True
                logger.debug("Applied patch %s on %s", key, owner_name(self.owner))
            else:
                metrics.errors.append((entry, ApplyError(f"Could not apply patch for key {key}")))
                self.patch_state[entry] = False

        self.patches_applied = metrics.applied

        if metrics.errors:
            logger.warning(
                "%r applied %d of %d patches with %d error(s)",
                self,
                metrics.applied,
                metrics.patches,
                len(metrics.errors),
            )

        if callable(on_metrics):
            on_metrics(metrics)

    def revert(self, on_metrics: Optional[Callable[[RevertMetrics], None]] = None) -> None:
        """Remove installed patches and restore the conflicting originals.

        Does nothing when no patch is applied and nothing this PatchSet wrote
        is still installed. Otherwise every property this PatchSet installed
        is deleted from the owner, including entries a later apply() gated or
        failed to verify, then every conflict entry captured at construction
        is defined again and verified.

        Args:
            on_metrics: Optional callback receiving RevertMetrics. A fully
                successful call has no errors, still_applied == 0 and
                restored == conflicts.
        """
        if not self.applied and not self._installed:
            return

        entries = self.entries
        conflicts = self.conflicts
        metrics = RevertMetrics(patches=len(entries), conflicts=len(conflicts))
        owner_table = table_for(self.owner)

        for key, entry in entries:
            if entry not in self._installed:
                continue

            if owner_table.delete(key):
                self._installed.discard(entry)
                if self.patch_state.get(entry):
                    self.patches_applied -= 1
                self.patch_state[entry] = False
                metrics.reverted += 1
                logger.debug("Reverted patch %s on %s", key, owner_name(self.owner))
            else:
                metrics.errors.append((entry, RevertError(f"Failed to revert patch {key}")))

        for key, conflict in conflicts:
            try:
                owner_table.define(key, conflict.descriptor)
            except _WRITE_ERRORS as error:
                metrics.errors.append(
                    (conflict, _error(RevertError, f"Failed to restore original {key}: {error}", error))
                )
                continue

            if equal_descriptors(conflict.descriptor, self._read(owner_table, key)):
                metrics.restored += 1
            else:
                metrics.errors.append((conflict, RevertError(f"Failed to restore original {key}")))

        metrics.still_applied = self.patches_applied

        if metrics.errors:
            logger.warning("%r reverted with %d error(s)", self, len(metrics.errors))

        if callable(on_metrics):
            on_metrics(metrics)

    def create_toggle(self, prevent_revert: bool = False) -> ScopedToggle:
        """Wrap this PatchSet in a ScopedToggle.

        Args:
            prevent_revert: If True, stopping the toggle never reverts the patch

        Returns:
            A new ScopedToggle around this PatchSet

        Example:
            with patch.create_toggle():
                ...
        """
        return ScopedToggle(self, prevent_revert)

    def release(self) -> None:
        """Stop tracking this PatchSet in its registry."""
        self.registry.release(self)

    @staticmethod
    def _read(table: PropertyTable, key: str):
        return table.describe(key) if table.has(key) else None

    def __iter__(self) -> Iterator[Tuple[str, PropertyEntry]]:
        return iter(self.entries)

    def __repr__(self) -> str:
        name = owner_name(self.owner)
        return f"{type(self).__name__}[{name}] {{ {', '.join(self.patch_keys)} }}"
