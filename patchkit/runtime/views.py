"""
Aggregated read-only views over the patches registered for one owner.

Every view walks the owner's PatchSets in registration order; when two
PatchSets patch the same key, the later one wins.

- applied_view: key -> value, currently applied entries only
- known_view: key -> value, every entry
- toggle_view: key -> function running a callback with the patch applied
- lazy_view: mapping whose reads apply the owning PatchSet first

In applied and known views, accessor entries are projected as functions
installing the accessor on a target object.
"""

import inspect
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, Dict, Iterable, Iterator, List, Tuple

if TYPE_CHECKING:
    from patchkit.core.entry import PropertyEntry
    from patchkit.core.patch_set import PatchSet
    from patchkit.runtime.registry import PatchRegistry

Source = Tuple["PatchSet", "PropertyEntry"]


def _sources(patch_sets: Iterable["PatchSet"], only_applied: bool) -> Dict[str, Source]:
    sources: Dict[str, Source] = {}
    for patch_set in patch_sets:
        for key, entry in patch_set.entries:
            if only_applied and patch_set.patch_state.get(entry) is not True:
                continue
            sources[key] = (patch_set, entry)
    return sources


def _accessor_applier(entry: "PropertyEntry") -> Callable[[Any], Any]:
    def apply_accessor(target: Any) -> Any:
        entry.apply_to(target)
        return target

    apply_accessor.__name__ = f"apply_accessor_for_{entry.key}"
    return apply_accessor


def _project(patch_sets: Iterable["PatchSet"], only_applied: bool) -> Dict[str, Any]:
    view: Dict[str, Any] = {}
    for key, (_, entry) in _sources(patch_sets, only_applied).items():
        view[key] = _accessor_applier(entry) if entry.is_accessor else entry.computed
    return view


def applied_view(patch_sets: Iterable["PatchSet"]) -> Dict[str, Any]:
    """Project the currently applied entries of the given PatchSets."""
    return _project(patch_sets, only_applied=True)


def known_view(patch_sets: Iterable["PatchSet"]) -> Dict[str, Any]:
    """Project every entry of the given PatchSets, applied or not."""
    return _project(patch_sets, only_applied=False)


async def _use_async(patch_set: "PatchSet", entry: "PropertyEntry", usage: Callable[..., Any]) -> Any:
    with patch_set.create_toggle():
        return await usage(entry.computed, entry)


def _toggle_user(patch_set: "PatchSet", entry: "PropertyEntry") -> Callable[[Callable[..., Any]], Any]:
    def use(usage: Callable[..., Any]) -> Any:
        if not callable(usage):
            return None
        if inspect.iscoroutinefunction(usage):
            return _use_async(patch_set, entry, usage)
        with patch_set.create_toggle():
            return usage(entry.computed, entry)

    use.__name__ = f"use_{entry.key}"
    return use


def toggle_view(patch_sets: Iterable["PatchSet"]) -> Dict[str, Callable[[Callable[..., Any]], Any]]:
    """
    Map every key to a function ``use(usage)``.

    ``use`` applies the owning PatchSet through a ScopedToggle, calls
    ``usage(value, entry)`` and stops the toggle, returning what usage
    returned. A coroutine function ``usage`` makes ``use`` return an awaitable
    that keeps the patch applied until the coroutine finishes.
    """
    return {key: _toggle_user(patch_set, entry) for key, (patch_set, entry) in _sources(patch_sets, False).items()}


class LazyView(Mapping):
    """
    Read-only mapping over registered patches that applies a patch when one
    of its keys is read.

    Reading a key, by item or by attribute, applies the owning PatchSet if
    that entry is not already applied, then returns the entry's value.
    Membership tests, iteration and len() do not apply anything.
    """

    def __init__(self, sources: Dict[str, Source]) -> None:
        self._sources = sources

    def __getitem__(self, key: str) -> Any:
        patch_set, entry = self._sources[key]
        if patch_set.patch_state.get(entry) is not True:
            patch_set.apply()
        return entry.computed

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        try:
            return self[name]
        except KeyError:
            raise AttributeError(f"No patch named '{name}'") from None

    def __contains__(self, key: object) -> bool:
        return key in self._sources

    def __iter__(self) -> Iterator[str]:
        return iter(self._sources)

    def __len__(self) -> int:
        return len(self._sources)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({', '.join(self._sources)})"


def lazy_view(patch_sets: Iterable["PatchSet"]) -> LazyView:
    return LazyView(_sources(patch_sets, only_applied=False))


class ScopedViews:
    """Views bound to one owner of one registry."""

    def __init__(self, registry: "PatchRegistry", owner: Any) -> None:
        self.registry = registry
        self.owner = owner

    @property
    def applied(self) -> Dict[str, Any]:
        return self.registry.applied_view(self.owner)

    @property
    def known(self) -> Dict[str, Any]:
        return self.registry.known_view(self.owner)

    @property
    def use(self) -> Dict[str, Callable[[Callable[..., Any]], Any]]:
        return self.registry.toggle_view(self.owner)

    @property
    def lazy(self) -> LazyView:
        return self.registry.lazy_view(self.owner)

    def patches(self) -> List["PatchSet"]:
        return self.registry.patches_for(self.owner)
