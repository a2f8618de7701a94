import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from patchkit.core.tables import owner_name

if TYPE_CHECKING:
    from patchkit.core.patch_set import PatchSet

logger = logging.getLogger(__name__)


@dataclass
class ToggleState:
    """Decisions a ScopedToggle takes when it starts.

    Attributes:
        needs_application: The patch was not applied, so start() applied it
        needs_reversion: stop() must revert the patch
    """

    needs_application: bool = False
    needs_reversion: bool = False


class ScopedToggle:
    """Applies a PatchSet for the duration of a block.

    start() only applies the patch if nobody else already did, and stop()
    only reverts what start() applied. A toggle can be started and stopped
    any number of times in sequence, but is not reentrant: two overlapping
    scopes must use two toggles.

    Example:
        toggle = patch.create_toggle()
        with toggle:
            ...  # patch is applied here
        # patch is reverted, unless it was applied before the block
    """

    def __init__(self, patch: "PatchSet", prevent_revert: bool = False) -> None:
        """Wrap a PatchSet.

        Args:
            patch: The PatchSet to toggle
            prevent_revert: If True, stop() never reverts the patch
        """
        self.patch = patch
        self.prevent_revert = prevent_revert
        self.started = False
        self.state = ToggleState()
        self.patch_name = owner_name(patch.owner)

    def start(self) -> "ScopedToggle":
        """Apply the wrapped patch unless it is already applied.

        Does nothing if the toggle is already started.

        Returns:
            This toggle, for chaining
        """
        if self.started:
            return self

        already_applied = self.patch.applied
        self.state.needs_application = not already_applied
        self.state.needs_reversion = not already_applied and not self.prevent_revert
        self.started = True

        if self.state.needs_application:
            logger.debug("%r applying %r", self, self.patch)
            self.patch.apply()

        return self

    def stop(self) -> "ScopedToggle":
        """Revert the wrapped patch if start() applied it.

        Does nothing if the toggle is not started. Resets the toggle so it can
        be started again.

        Returns:
            This toggle, for chaining
        """
        if not self.started:
            return self

        if self.state.needs_reversion:
            logger.debug("%r reverting %r", self, self.patch)
            self.patch.revert()

        self.state = ToggleState()
        self.started = False
        return self

    def __enter__(self) -> "ScopedToggle":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}:{self.patch_name} "
            f"(started: {self.started} needed: {self.state.needs_application})"
        )
