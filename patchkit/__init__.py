"""patchkit: reversible patching of shared Python objects

This package adds or overrides attributes on existing objects (the builtins
module, classes, modules, instances, mappings), keeps track of every change
and reverses it exactly.

Responsibilities:
    - Property-level snapshots of payloads and of the values they override
    - Batched, verified application and reversion with metrics
    - Single-key extensions of shared owners
    - Temporary activation for the duration of a block
    - Per-owner aggregation of every registered patch

Interactions:
    - Client code through public API
    - Python attribute model through property tables
    - Logging system for diagnostics

Cross-cutting Concerns:
    Thread Safety:
        - Registry bookkeeping is guarded by a lock
        - Owners are mutated from a single thread of control

    Error Handling:
        - Structured error hierarchy rooted at PatchKitError
        - Soft failures reported through metrics callbacks

    Logging:
        - One logger per module under the ``patchkit`` namespace
        - No handlers configured by the library
"""

from .core import (
    AccessorDescriptor,
    ApplyMetrics,
    CannotExtendError,
    DataDescriptor,
    ExtensionGroupError,
    InvalidDescriptorError,
    InvalidKeyError,
    InvalidOwnerError,
    MissingPropertyError,
    MissingTargetError,
    PatchKitError,
    PatchOptions,
    PatchSet,
    PropertyEntry,
    RevertMetrics,
)
from .runtime import LazyView, PatchRegistry, ScopedToggle, ScopedViews, default_registry
from .runtime.registry import applied, disable_all_for, enable_all_for, known, lazy, scoped_to, use
from .extensions import ExtensionGroup, ExtensionSet

__version__ = "0.1.0"

__all__ = [
    "AccessorDescriptor",
    "ApplyMetrics",
    "CannotExtendError",
    "DataDescriptor",
    "ExtensionGroup",
    "ExtensionGroupError",
    "ExtensionSet",
    "InvalidDescriptorError",
    "InvalidKeyError",
    "InvalidOwnerError",
    "LazyView",
    "MissingPropertyError",
    "MissingTargetError",
    "PatchKitError",
    "PatchOptions",
    "PatchRegistry",
    "PatchSet",
    "PropertyEntry",
    "RevertMetrics",
    "ScopedToggle",
    "ScopedViews",
    "applied",
    "default_registry",
    "disable_all_for",
    "enable_all_for",
    "known",
    "lazy",
    "scoped_to",
    "use",
]
