from typing import Any, List, Tuple


def _type_of(owner: Any) -> str:
    return getattr(owner, "__name__", None) or type(owner).__name__


class PatchKitError(Exception):
    """
    Base exception class for errors raised by the patch lifecycle engine.
    """


class InvalidKeyError(PatchKitError, TypeError):
    """
    Raised when a property key is missing or is not a non-empty string.
    """


class InvalidOwnerError(PatchKitError, TypeError):
    """
    Raised when an owner cannot hold properties (no attribute dictionary and
    not a mapping).
    """


class InvalidDescriptorError(PatchKitError, ValueError):
    """
    Raised when a descriptor cannot describe a property, such as an accessor
    without a getter or a setter.
    """


class MissingPropertyError(PatchKitError, LookupError):
    """
    Raised when a property entry is snapshotted for a key its owner does not have.
    """

    def __init__(self, owner: Any, key: str) -> None:
        super().__init__(f"{_type_of(owner)} has no own property named '{key}'.")
        self.owner = owner
        self.key = key


class MissingTargetError(PatchKitError):
    """
    Raised when an extension cannot resolve the key and value it should install.
    """

    def __init__(self, owner: Any, key: Any) -> None:
        super().__init__(f"{_type_of(owner)} does not have a property named '{key}'.")
        self.owner = owner
        self.key = key


class CannotExtendError(PatchKitError):
    """
    Raised when an extension would shadow a slot that is read-only on its owner.
    """

    def __init__(self, owner: Any, key: str) -> None:
        super().__init__(f"{_type_of(owner)} cannot be extended with '{key}': the existing slot is read-only.")
        self.owner = owner
        self.key = key


class ApplyError(PatchKitError):
    """
    Describes an entry that could not be installed. Reported through apply
    metrics, never raised by PatchSet.apply.
    """


class RevertError(PatchKitError):
    """
    Describes an entry that could not be removed or restored. Reported through
    revert metrics, never raised by PatchSet.revert.
    """


class ExtensionGroupError(PatchKitError):
    """
    Raised after an extension group attempted every member and at least one
    member failed.
    """

    def __init__(self, name: str, action: str, errors: List[Tuple[Any, BaseException]]) -> None:
        super().__init__(f"Extension group '{name}' failed to {action} {len(errors)} member(s).")
        self.name = name
        self.action = action
        self.errors = errors
