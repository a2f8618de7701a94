"""
Single-key extensions of shared owners.

Architecture:
- ExtensionSet is a PatchSet whose payload is derived from one function,
  class or named value
- The default owner is the builtins module
- ExtensionGroup bundles several extensions under one name

Design Patterns:
- Template Method: PatchSet lifecycle reused unchanged
- Composite Pattern: ExtensionGroup over ExtensionSets

Responsibilities:
1. Key/value resolution from a callable's __name__ or an explicit name
2. Refusing to shadow read-only slots before anything is touched
3. Describing the kind of extension (function, class, primitive, object)
4. Applying and reverting groups, reporting every failing member at once
"""

import builtins
import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Tuple, Union

from patchkit.core.errors import CannotExtendError, ExtensionGroupError, MissingTargetError
from patchkit.core.patch_set import PatchOptions, PatchSet
from patchkit.core.tables import table_for
from patchkit.runtime.registry import PatchRegistry

logger = logging.getLogger(__name__)

_PRIMITIVES = (type(None), bool, int, float, complex, str, bytes)


class _Unset:
    def __repr__(self) -> str:
        return "<unset>"


_UNSET: Any = _Unset()


@dataclass
class ExtensionInput:
    """Resolved key and value of an extension.

    Attributes:
        key: Name the extension is installed under
        extension: Value installed under key
        valid: True when both key and value could be resolved
        is_class: The value is a class
        is_function: The value is a function
    """

    key: Optional[str] = None
    extension: Any = None
    valid: bool = False
    is_class: bool = False
    is_function: bool = False


class ExtensionSet(PatchSet):
    """
    A PatchSet installing exactly one property on its owner.

    The key and value come from a function or class (its ``__name__`` and the
    object itself) or from an explicit name and value. Owners default to the
    builtins module.

    Example:
        def shout(text):
            return text.upper()

        extension = ExtensionSet(shout)
        extension.apply()      # shout is now a builtin
        extension.revert()
    """

    def __init__(
        self,
        name_or_callable: Union[str, Callable[..., Any]],
        value: Any = _UNSET,
        owner: Any = builtins,
        options: Union[PatchOptions, Mapping, None] = None,
        registry: Optional[PatchRegistry] = None,
    ) -> None:
        """
        Resolve the extension and register it.

        Raises:
            MissingTargetError: If no valid key or no value can be resolved
            CannotExtendError: If the owner already holds a read-only property
                under the resolved key
        """
        resolved = self.determine_input(name_or_callable, value)
        if not resolved.valid:
            raise MissingTargetError(owner, resolved.key)

        owner_table = table_for(owner)
        if owner_table.has(resolved.key) and owner_table.describe(resolved.key).is_read_only:
            raise CannotExtendError(owner, resolved.key)

        self.key: str = resolved.key
        self.value = resolved.extension
        self.is_class = resolved.is_class
        self.is_function = resolved.is_function

        super().__init__(owner, {self.key: self.value}, options, registry)

    @staticmethod
    def determine_input(name_or_callable: Any, value: Any = _UNSET) -> ExtensionInput:
        """
        Resolve the key and value an extension would install.

        A function or class supplies its own ``__name__`` and, unless an
        explicit value is given, itself as the value; the name must be a valid
        identifier, so lambdas do not resolve. A string is the key and needs an
        explicit value, which may be falsy.
        """
        if isinstance(name_or_callable, str):
            key: Optional[str] = name_or_callable or None
            extension = None if value is _UNSET else value
            valid = key is not None and value is not _UNSET
        elif callable(name_or_callable):
            key = getattr(name_or_callable, "__name__", None)
            extension = name_or_callable if value is _UNSET else value
            valid = isinstance(key, str) and key.isidentifier()
        else:
            return ExtensionInput()

        return ExtensionInput(
            key=key,
            extension=extension,
            valid=valid,
            is_class=inspect.isclass(extension),
            is_function=_is_function(extension),
        )

    @property
    def is_primitive(self) -> bool:
        return isinstance(self.value, _PRIMITIVES)

    @property
    def is_object(self) -> bool:
        return not self.is_primitive

    @classmethod
    def of_many(cls, name: str, *items: Union["ExtensionSet", Callable[..., Any]]) -> "ExtensionGroup":
        return ExtensionGroup(name, *items)

    def __repr__(self) -> str:
        if self.is_function or self.is_class:
            shown = self.value.__name__
        else:
            shown = repr(self.value)
        return f"{type(self).__name__}[{self.key}:{shown}]"


def _is_function(value: Any) -> bool:
    return inspect.isfunction(value) or inspect.iscoroutinefunction(value) or inspect.isbuiltin(value)


class ExtensionGroup:
    """
    Named collection of extensions applied and reverted together.

    Every member is attempted even when an earlier one fails; failures are
    raised afterwards as a single ExtensionGroupError.
    """

    def __init__(self, name: str, *items: Union[ExtensionSet, Callable[..., Any]]) -> None:
        self.name = name
        self.members: List[ExtensionSet] = []
        for item in items:
            if isinstance(item, ExtensionSet):
                self.members.append(item)
            elif callable(item):
                self.members.append(ExtensionSet(item))
            else:
                raise TypeError(f"Extension group members must be ExtensionSets or callables, got {type(item).__name__}")

    def apply(self) -> None:
        self._each("apply", lambda member: member.apply())

    def revert(self) -> None:
        self._each("revert", lambda member: member.revert())

    @property
    def applied(self) -> bool:
        return any(member.applied for member in self.members)

    def _each(self, action: str, step: Callable[[ExtensionSet], None]) -> None:
        errors: List[Tuple[ExtensionSet, Exception]] = []
        for member in self.members:
            try:
                step(member)
            except Exception as error:
                logger.error("Extension %r in group %s failed to %s: %s", member, self.name, action, error)
                errors.append((member, error))

        logger.info("Extension group %s: %s attempted on %d member(s)", self.name, action, len(self.members))
        if errors:
            raise ExtensionGroupError(self.name, action, errors)

    def __iter__(self):
        return iter(self.members)

    def __len__(self) -> int:
        return len(self.members)

    def __repr__(self) -> str:
        return f"{type(self).__name__}[{self.name}] {{ {', '.join(m.key for m in self.members)} }}"
