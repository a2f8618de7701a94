"""
Extensions package: single-key patches of shared owners.

Architecture:
- ExtensionSet derives its payload from one function, class or named value
- ExtensionGroup applies and reverts several extensions together
"""

from .extension import ExtensionGroup, ExtensionInput, ExtensionSet

__all__ = ["ExtensionSet", "ExtensionGroup", "ExtensionInput"]
