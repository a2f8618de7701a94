"""
Core package providing the patch lifecycle engine.

Architecture:
- Descriptors capture the shape of one property
- Property tables read and write an owner's own properties
- PropertyEntry snapshots one key on one owner
- PatchSet applies, verifies and reverts a batch of entries

Design Patterns:
- Adapter Pattern for owner kinds
- Memento Pattern for conflict restoration
- Observer Pattern for metrics callbacks

Cross-cutting:
- Soft failures reported through metrics
- Construction failures logged per key
"""

# Import order matters to avoid circular dependencies
from .errors import (
    PatchKitError,
    InvalidKeyError,
    InvalidOwnerError,
    InvalidDescriptorError,
    MissingPropertyError,
    MissingTargetError,
    CannotExtendError,
    ApplyError,
    RevertError,
    ExtensionGroupError,
)
from .descriptors import Descriptor, DataDescriptor, AccessorDescriptor, equal_descriptors
from .tables import PropertyTable, AttributeTable, MappingTable, table_for
from .entry import PropertyEntry
from .metrics import ApplyMetrics, RevertMetrics
from .patch_set import PatchOptions, PatchSet

__all__ = [
    # Errors
    "PatchKitError",
    "InvalidKeyError",
    "InvalidOwnerError",
    "InvalidDescriptorError",
    "MissingPropertyError",
    "MissingTargetError",
    "CannotExtendError",
    "ApplyError",
    "RevertError",
    "ExtensionGroupError",
    # Property model
    "Descriptor",
    "DataDescriptor",
    "AccessorDescriptor",
    "equal_descriptors",
    "PropertyTable",
    "AttributeTable",
    "MappingTable",
    "table_for",
    # Lifecycle
    "PropertyEntry",
    "ApplyMetrics",
    "RevertMetrics",
    "PatchOptions",
    "PatchSet",
]
