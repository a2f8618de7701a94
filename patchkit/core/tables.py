"""
Property tables: the read/write surface the engine uses on an owner.

Architecture:
- One adapter per owner kind, created through table_for()
- AttributeTable wraps objects with an attribute dictionary (classes,
  modules, instances)
- MappingTable wraps mappings (dicts, namespaces exposed as mappings)

Responsibilities:
1. Enumerating own keys in insertion order
2. Describing an own key as a Descriptor snapshot
3. Defining a descriptor under a key
4. Deleting a key and reporting whether it succeeded

Flags are derived from the owner: names starting with an underscore are not
enumerable, and every key of an owner that cannot be mutated (immutable types,
frozen dataclass instances, read-only mappings) is neither writable nor
configurable.
"""

import dataclasses
from collections.abc import Mapping, MutableMapping
from typing import Any, List

from patchkit.core.descriptors import AccessorDescriptor, DataDescriptor, Descriptor
from patchkit.core.errors import InvalidDescriptorError, InvalidOwnerError

# Type flags from CPython's object.h
_TPFLAGS_IMMUTABLETYPE = 1 << 8
_TPFLAGS_HEAPTYPE = 1 << 9

# Interpreter bookkeeping stored in class namespaces; never treated as properties
_BOOKKEEPING_NAMES = frozenset(
    {
        "__dict__",
        "__weakref__",
        "__module__",
        "__qualname__",
        "__doc__",
        "__annotations__",
        "__annotate__",
        "__firstlineno__",
        "__static_attributes__",
        "__orig_bases__",
        "__parameters__",
        "__slots__",
        "__type_params__",
    }
)


def owner_name(owner: Any) -> str:
    """Short human readable name for an owner, used in reprs and log lines."""
    return getattr(owner, "__name__", None) or type(owner).__name__


def is_enumerable(key: str) -> bool:
    return not key.startswith("_")


def _is_immutable_type(cls: type) -> bool:
    flags = getattr(cls, "__flags__", 0)
    return bool(flags & _TPFLAGS_IMMUTABLETYPE) or not flags & _TPFLAGS_HEAPTYPE


def _property_for(descriptor: AccessorDescriptor) -> property:
    raw = descriptor.raw
    if (
        isinstance(raw, property)
        and raw.fget is descriptor.getter
        and raw.fset is descriptor.setter
        and raw.fdel is descriptor.deleter
    ):
        return raw
    return property(descriptor.getter, descriptor.setter, descriptor.deleter, descriptor.doc)


class PropertyTable:
    """
    Base adapter over one owner's own properties.

    Subclasses implement keys, describe, define and delete. Failed writes raise
    TypeError, AttributeError or ValueError; failed deletes return False.
    """

    def __init__(self, owner: Any) -> None:
        self.owner = owner

    @property
    def read_only(self) -> bool:
        raise NotImplementedError

    def raw_keys(self) -> List[Any]:
        """Every own key in insertion order, including keys that are not strings."""
        raise NotImplementedError

    def keys(self) -> List[str]:
        return [key for key in self.raw_keys() if isinstance(key, str)]

    def has(self, key: str) -> bool:
        return key in self.keys()

    def describe(self, key: str) -> Descriptor:
        raise NotImplementedError

    def define(self, key: str, descriptor: Descriptor) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError

    def _check_definable(self, key: str, descriptor: Descriptor) -> None:
        if self.read_only:
            raise TypeError(f"cannot define '{key}' on read-only {owner_name(self.owner)}")
        if descriptor.is_read_only:
            raise ValueError(f"{type(self).__name__} cannot hold read-only property '{key}'")

    def __repr__(self) -> str:
        return f"{type(self).__name__}({owner_name(self.owner)})"


class AttributeTable(PropertyTable):
    """
    Property table over an object's attribute dictionary.

    Classes are written through setattr/delattr so the type machinery sees the
    change; other owners are written straight into their ``__dict__`` so class
    level descriptors and ``__setattr__`` overrides are not triggered.
    Accessors are stored as ``property`` objects and only behave as accessors
    when the owner is a class.
    """

    @property
    def read_only(self) -> bool:
        owner = self.owner
        if isinstance(owner, type):
            return _is_immutable_type(owner)
        if dataclasses.is_dataclass(owner):
            return owner.__dataclass_params__.frozen
        return False

    def raw_keys(self) -> List[Any]:
        return [key for key in vars(self.owner) if key not in _BOOKKEEPING_NAMES]

    def has(self, key: str) -> bool:
        return key in vars(self.owner) and key not in _BOOKKEEPING_NAMES

    def describe(self, key: str) -> Descriptor:
        raw = vars(self.owner)[key]
        writable = not self.read_only
        if isinstance(raw, property) and (raw.fget is not None or raw.fset is not None):
            return AccessorDescriptor(
                getter=raw.fget,
                setter=raw.fset,
                deleter=raw.fdel,
                doc=raw.__doc__,
                raw=raw,
                enumerable=is_enumerable(key),
                configurable=writable,
            )
        return DataDescriptor(
            value=raw,
            writable=writable,
            enumerable=is_enumerable(key),
            configurable=writable,
        )

    def define(self, key: str, descriptor: Descriptor) -> None:
        self._check_definable(key, descriptor)
        if isinstance(descriptor, AccessorDescriptor):
            raw = _property_for(descriptor)
        elif isinstance(descriptor, DataDescriptor):
            raw = descriptor.value
        else:
            raise InvalidDescriptorError(f"Unsupported descriptor type {type(descriptor).__name__}")

        if isinstance(self.owner, type):
            setattr(self.owner, key, raw)
        else:
            vars(self.owner)[key] = raw

    def delete(self, key: str) -> bool:
        if self.read_only:
            return False
        if key not in vars(self.owner):
            return True
        try:
            if isinstance(self.owner, type):
                delattr(self.owner, key)
            else:
                del vars(self.owner)[key]
        except (AttributeError, TypeError, KeyError):
            return False
        return True


class MappingTable(PropertyTable):
    """
    Property table over a mapping's string keys. Mappings only hold data
    properties; read-only mappings report every key as read-only.
    """

    @property
    def read_only(self) -> bool:
        return not isinstance(self.owner, MutableMapping)

    def raw_keys(self) -> List[Any]:
        return list(self.owner)

    def has(self, key: str) -> bool:
        return isinstance(key, str) and key in self.owner

    def describe(self, key: str) -> Descriptor:
        writable = not self.read_only
        return DataDescriptor(
            value=self.owner[key],
            writable=writable,
            enumerable=is_enumerable(key),
            configurable=writable,
        )

    def define(self, key: str, descriptor: Descriptor) -> None:
        self._check_definable(key, descriptor)
        if not isinstance(descriptor, DataDescriptor):
            raise TypeError(f"mapping owners cannot hold accessor property '{key}'")
        self.owner[key] = descriptor.value

    def delete(self, key: str) -> bool:
        if self.read_only:
            return False
        try:
            self.owner.pop(key, None)
        except (TypeError, KeyError):
            return False
        return True


def table_for(owner: Any) -> PropertyTable:
    """Create the property table matching an owner.

    Args:
        owner: Object whose own properties should be read or written

    Returns:
        A MappingTable for mappings, an AttributeTable for anything with an
        attribute dictionary

    Raises:
        InvalidOwnerError: If the owner can hold neither items nor attributes
    """
    if isinstance(owner, Mapping):
        return MappingTable(owner)
    try:
        vars(owner)
    except TypeError:
        raise InvalidOwnerError(
            f"Cannot create a property table for {type(owner).__name__}: it has no attribute dictionary"
        ) from None
    return AttributeTable(owner)
