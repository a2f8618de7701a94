from dataclasses import dataclass, field, fields
from typing import TYPE_CHECKING, Any, Dict, List, Tuple

if TYPE_CHECKING:
    from patchkit.core.entry import PropertyEntry

ErrorPair = Tuple["PropertyEntry", Exception]


@dataclass
class ApplyMetrics:
    """Counts reported by PatchSet.apply.

    Attributes:
        patches: Number of patch entries tracked
        applied: Entries installed and verified by this call
        errors: (entry, error) pairs for entries that were allowed but failed
        not_applied: Entries left unapplied, gated ones included
    """

    patches: int = 0
    applied: int = 0
    errors: List[ErrorPair] = field(default_factory=list)
    not_applied: int = 0

    @property
    def succeeded(self) -> bool:
        return not self.errors and self.not_applied == 0 and self.applied == self.patches

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class RevertMetrics:
    """Counts reported by PatchSet.revert.

    Attributes:
        patches: Number of patch entries tracked
        reverted: Entries removed from the owner
        restored: Conflicting originals reinstalled and verified
        conflicts: Conflicting originals expected to be restored
        errors: (entry, error) pairs for removals or restorations that failed
        still_applied: Applied count left after the call; above zero means
            something went wrong
    """

    patches: int = 0
    reverted: int = 0
    restored: int = 0
    conflicts: int = 0
    errors: List[ErrorPair] = field(default_factory=list)
    still_applied: int = 0

    @property
    def succeeded(self) -> bool:
        return not self.errors and self.still_applied == 0 and self.restored == self.conflicts

    def as_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}
