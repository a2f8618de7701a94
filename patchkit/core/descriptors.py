"""
Property descriptor model.

A descriptor is the captured shape of one property: either a data property
holding a value, or an accessor property made of a getter and/or setter. Both
kinds share the enumerable and configurable flags.

Design:
- Tagged union: DataDescriptor | AccessorDescriptor
- Frozen dataclasses, so a captured snapshot cannot drift
- Identity comparison of values and accessor functions during verification
"""

import weakref
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Optional

from patchkit.core.errors import InvalidDescriptorError


@dataclass(frozen=True)
class Descriptor:
    """Shared flags of every descriptor kind."""

    enumerable: bool = True
    configurable: bool = True

    @property
    def is_data(self) -> bool:
        return False

    @property
    def is_accessor(self) -> bool:
        return False

    @property
    def is_read_only(self) -> bool:
        return not self.configurable

    def with_flags(self, **flags: bool) -> "Descriptor":
        """Return a copy of this descriptor with the given flags replaced."""
        return replace(self, **flags)


@dataclass(frozen=True)
class DataDescriptor(Descriptor):
    """A property holding a plain value."""

    value: Any = None
    writable: bool = True

    @property
    def is_data(self) -> bool:
        return True

    @property
    def is_read_only(self) -> bool:
        return not self.configurable or not self.writable


@dataclass(frozen=True)
class AccessorDescriptor(Descriptor):
    """
    A property computed through a getter and/or assigned through a setter.

    ``deleter`` and ``doc`` complete the captured property. ``raw`` holds the
    property object the descriptor was read from, so an unchanged accessor is
    reinstalled as that very object.
    """

    getter: Optional[Callable[..., Any]] = None
    setter: Optional[Callable[..., None]] = None
    deleter: Optional[Callable[..., None]] = None
    doc: Optional[str] = None
    raw: Any = field(default=None, compare=False, repr=False)

    def __post_init__(self) -> None:
        if self.getter is None and self.setter is None:
            raise InvalidDescriptorError("Accessor descriptors need a getter, a setter, or both")
        for name, func in (("getter", self.getter), ("setter", self.setter), ("deleter", self.deleter)):
            if func is not None and not callable(func):
                raise InvalidDescriptorError(f"Accessor {name} must be callable, got {type(func).__name__}")

    @property
    def is_accessor(self) -> bool:
        return True

    def bound_to(self, owner: Any) -> "AccessorDescriptor":
        """Return a copy whose functions always receive ``owner`` as their receiver.

        Args:
            owner: The object the accessor was captured from

        Returns:
            A new AccessorDescriptor wrapping the getter and setter
        """
        return replace(
            self,
            getter=_ReceiverBound(self.getter, owner) if self.getter else None,
            setter=_ReceiverBound(self.setter, owner) if self.setter else None,
            deleter=_ReceiverBound(self.deleter, owner) if self.deleter else None,
            raw=None,
        )


class _ReceiverBound:
    """
    Internal callable invoking an accessor function on a fixed receiver,
    whatever object the accessor is later read through.

    The receiver is held weakly when the owner supports weak references.
    """

    def __init__(self, func: Callable[..., Any], receiver: Any) -> None:
        self.func = func
        try:
            self._receiver_ref = weakref.ref(receiver)
        except TypeError:
            self._receiver_ref = lambda: receiver

    @property
    def receiver(self) -> Any:
        receiver = self._receiver_ref()
        if receiver is None:
            raise ReferenceError("the original owner of this accessor no longer exists")
        return receiver

    def __call__(self, _instance: Any = None, *args: Any) -> Any:
        return self.func(self.receiver, *args)

    def __repr__(self) -> str:
        name = getattr(self.func, "__name__", repr(self.func))
        return f"<bound accessor {name} of {type(self.receiver).__name__}>"


def equal_descriptors(left: Optional[Descriptor], right: Optional[Descriptor]) -> bool:
    """
    Compare two descriptors structurally.

    Flags are compared by value; values and accessor functions by identity, so
    an equal-but-distinct value counts as a different property.
    """
    if left is None or right is None:
        return False

    if left.configurable != right.configurable or left.enumerable != right.enumerable:
        return False

    if isinstance(left, DataDescriptor) and isinstance(right, DataDescriptor):
        return left.value is right.value and left.writable == right.writable

    if isinstance(left, AccessorDescriptor) and isinstance(right, AccessorDescriptor):
        return left.getter is right.getter and left.setter is right.setter and left.deleter is right.deleter

    return False
