from typing import Any, Callable, Optional

from patchkit.core.descriptors import AccessorDescriptor, DataDescriptor, Descriptor
from patchkit.core.errors import InvalidKeyError, MissingPropertyError
from patchkit.core.tables import table_for


class PropertyEntry:
    """
    Maps one property key, its captured descriptor and the owner it was
    captured from. A PatchSet creates one entry per payload key, and one per
    conflicting key on its owner, so the property can be applied and later
    restored.

    The descriptor is read once, at construction. Entries never re-snapshot;
    build a new entry to capture a newer state.
    """

    def __init__(self, key: str, owner: Any, condition: Optional[Callable[[], bool]] = None) -> None:
        """
        Snapshot ``key`` on ``owner``.

        :param key: The property name to capture.
        :param owner: The object the descriptor is read from.
        :param condition: Optional zero-argument callable deciding whether this
            entry may be applied. Non-callables are ignored.
        :raises InvalidKeyError: If key is not a non-empty string.
        :raises InvalidOwnerError: If owner cannot hold properties.
        :raises MissingPropertyError: If owner has no own property named key.
        """
        if not isinstance(key, str) or not key:
            raise InvalidKeyError(f"Property key must be a non-empty string, got {type(key).__name__}")

        table = table_for(owner)
        if not table.has(key):
            raise MissingPropertyError(owner, key)

        self.key = key
        self.owner = owner
        self.descriptor: Descriptor = table.describe(key)
        self.condition = condition if callable(condition) else None

    @classmethod
    def from_payload(cls, key: str, payload: Any, condition: Optional[Callable[[], bool]] = None) -> "PropertyEntry":
        """
        Snapshot a payload key as a patch to install.

        The payload container's own mutability says nothing about the property
        being installed, so captured flags are reset to writable and
        configurable. A payload value that is itself a Descriptor is used as
        the descriptor to install, flags included.
        """
        entry = cls(key, payload, condition)
        descriptor = entry.descriptor
        if isinstance(descriptor, DataDescriptor) and isinstance(descriptor.value, Descriptor):
            entry.descriptor = descriptor.value
        elif isinstance(descriptor, DataDescriptor):
            entry.descriptor = descriptor.with_flags(writable=True, configurable=True)
        else:
            entry.descriptor = descriptor.with_flags(configurable=True)
        return entry

    @property
    def is_data(self) -> bool:
        return self.descriptor.is_data

    @property
    def is_accessor(self) -> bool:
        return self.descriptor.is_accessor

    @property
    def is_read_only(self) -> bool:
        """True when the property is not configurable, or is a data property that is not writable."""
        return self.descriptor.is_read_only

    @property
    def is_allowed(self) -> bool:
        """Result of the entry's condition, or True when it has none."""
        if self.condition is None:
            return True
        return bool(self.condition())

    @property
    def computed(self) -> Any:
        """The live value: the data value, or the getter invoked on the original owner."""
        descriptor = self.descriptor
        if isinstance(descriptor, AccessorDescriptor):
            if descriptor.getter is None:
                return None
            return descriptor.getter(self.owner)
        return descriptor.value

    def apply_to(self, target: Any, bind_accessors: bool = False) -> None:
        """
        Define a copy of this entry's descriptor on another object.

        :param target: The object receiving the property.
        :param bind_accessors: If True, accessor functions keep operating on
            this entry's original owner instead of whatever object they are
            read through.
        """
        descriptor = self.descriptor
        if bind_accessors and isinstance(descriptor, AccessorDescriptor):
            descriptor = descriptor.bound_to(self.owner)
        table_for(target).define(self.key, descriptor)

    def __repr__(self) -> str:
        kind = "Data" if self.is_data else "Accessor"
        read_only = " [ReadOnly]" if self.is_read_only else ""
        return f"PropertyEntry<{self.key} {kind}{read_only}>"
