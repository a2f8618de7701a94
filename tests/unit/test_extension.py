import builtins
import unittest
from types import MappingProxyType, SimpleNamespace
from unittest.mock import patch as mock_patch

from patchkit.core.errors import CannotExtendError, ExtensionGroupError, MissingTargetError
from patchkit.core.patch_set import PatchSet
from patchkit.extensions.extension import ExtensionGroup, ExtensionInput, ExtensionSet
from patchkit.runtime.registry import PatchRegistry, default_registry


def shout(text):
    return text.upper()


async def fetch():
    return "fetched"


class Helper:
    pass


class TestDetermineInput(unittest.TestCase):
    """Test cases for ExtensionSet.determine_input.

    Tests verify:
    1. Functions and classes supply their own name
    2. Strings need an explicit value
    3. Unresolvable inputs are flagged invalid
    """

    def test_function(self):
        resolved = ExtensionSet.determine_input(shout)
        self.assertEqual(resolved, ExtensionInput(key="shout", extension=shout, valid=True, is_function=True))

    def test_class(self):
        resolved = ExtensionSet.determine_input(Helper)
        self.assertTrue(resolved.valid)
        self.assertTrue(resolved.is_class)
        self.assertFalse(resolved.is_function)
        self.assertEqual(resolved.key, "Helper")

    def test_coroutine_and_builtin_functions(self):
        self.assertTrue(ExtensionSet.determine_input(fetch).is_function)
        self.assertTrue(ExtensionSet.determine_input(len).is_function)

    def test_explicit_value_overrides_callable(self):
        def replacement(text):
            return text

        resolved = ExtensionSet.determine_input(shout, replacement)
        self.assertEqual(resolved.key, "shout")
        self.assertIs(resolved.extension, replacement)
        self.assertTrue(resolved.valid)

        resolved = ExtensionSet.determine_input(Helper, 7)
        self.assertEqual(resolved.key, "Helper")
        self.assertEqual(resolved.extension, 7)
        self.assertFalse(resolved.is_class)
        self.assertFalse(resolved.is_function)

    def test_lambda_is_invalid(self):
        self.assertFalse(ExtensionSet.determine_input(lambda: None).valid)

    def test_string_needs_value(self):
        self.assertFalse(ExtensionSet.determine_input("answer").valid)
        resolved = ExtensionSet.determine_input("answer", 42)
        self.assertTrue(resolved.valid)
        self.assertEqual(resolved.extension, 42)

    def test_falsy_value_counts(self):
        for value in (0, False, "", None):
            with self.subTest(value=value):
                resolved = ExtensionSet.determine_input("flag", value)
                self.assertTrue(resolved.valid)
                self.assertIs(resolved.extension, value)

    def test_other_inputs_are_invalid(self):
        self.assertEqual(ExtensionSet.determine_input(42), ExtensionInput())
        self.assertFalse(ExtensionSet.determine_input("").valid)


class TestExtensionSet(unittest.TestCase):
    """Test cases for ExtensionSet.

    Tests verify:
    1. Single-key patching through the PatchSet lifecycle
    2. Precondition errors before any mutation
    3. Kind flags
    4. Representation
    """

    def setUp(self):
        self.registry = PatchRegistry()
        self.owner = SimpleNamespace()

    def make(self, *args, **kwargs):
        kwargs.setdefault("owner", self.owner)
        kwargs.setdefault("registry", self.registry)
        return ExtensionSet(*args, **kwargs)

    def test_function_extension(self):
        extension = self.make(shout)

        self.assertIsInstance(extension, PatchSet)
        self.assertEqual(extension.key, "shout")
        self.assertIs(extension.value, shout)
        self.assertEqual(extension.patch_keys, ["shout"])

        extension.apply()
        self.assertEqual(self.owner.shout("hi"), "HI")
        extension.revert()
        self.assertFalse(hasattr(self.owner, "shout"))

    def test_callable_with_replacement_value(self):
        """Test overriding the value of a named callable.

        Verifies:
        1. The key comes from the callable
        2. The explicit value is what gets installed
        3. Kind flags describe the installed value
        """
        replacement = Helper()
        extension = self.make(shout, replacement)

        self.assertEqual(extension.key, "shout")
        self.assertIs(extension.value, replacement)
        self.assertFalse(extension.is_function)
        self.assertTrue(extension.is_object)

        extension.apply()
        self.assertIs(self.owner.shout, replacement)

    def test_callable_with_falsy_replacement(self):
        extension = self.make(shout, 0)
        extension.apply()
        self.assertEqual(self.owner.shout, 0)

    def test_falsy_value_is_installed(self):
        extension = self.make("flag", False)
        extension.apply()
        self.assertIs(self.owner.flag, False)

    def test_overrides_and_restores(self):
        self.owner.answer = 1
        extension = self.make("answer", 42)
        extension.apply()
        self.assertEqual(self.owner.answer, 42)
        extension.revert()
        self.assertEqual(self.owner.answer, 1)

    def test_missing_target(self):
        """Test unresolvable extensions.

        Verifies:
        1. Lambdas are rejected
        2. Strings without value are rejected
        3. Nothing is registered
        """
        with self.assertRaises(MissingTargetError) as ctx:
            self.make(lambda: None)
        self.assertIs(ctx.exception.owner, self.owner)
        self.assertEqual(ctx.exception.key, "<lambda>")

        with self.assertRaises(MissingTargetError):
            self.make("answer")

        self.assertEqual(self.registry.owners(), [])

    def test_cannot_extend_read_only_slot(self):
        """Test read-only slots.

        Verifies:
        1. Immutable type attributes cannot be shadowed
        2. Read-only mapping keys cannot be shadowed
        3. Owners are untouched and nothing is registered
        """
        with self.assertRaises(CannotExtendError) as ctx:
            self.make("real", 5, owner=int)
        self.assertIs(ctx.exception.owner, int)
        self.assertEqual(ctx.exception.key, "real")
        self.assertEqual((1).real, 1)

        proxy = MappingProxyType({"k": 1})
        with self.assertRaises(CannotExtendError):
            self.make("k", 2, owner=proxy)
        self.assertEqual(proxy["k"], 1)

        self.assertEqual(self.registry.owners(), [])

    def test_new_key_on_read_only_owner_is_allowed(self):
        extension = self.make("other", 2, owner=MappingProxyType({"k": 1}))
        metrics = []
        extension.apply(metrics.append)
        self.assertEqual(len(metrics[0].errors), 1)

    def test_kind_flags(self):
        function_extension = self.make(shout)
        self.assertTrue(function_extension.is_function)
        self.assertFalse(function_extension.is_class)
        self.assertTrue(function_extension.is_object)

        class_extension = self.make(Helper)
        self.assertTrue(class_extension.is_class)
        self.assertFalse(class_extension.is_function)

        primitive = self.make("answer", 42)
        self.assertTrue(primitive.is_primitive)
        self.assertFalse(primitive.is_object)

        self.assertTrue(self.make("nothing", None).is_primitive)
        self.assertTrue(self.make("config", {"a": 1}).is_object)

    def test_repr(self):
        self.assertEqual(repr(self.make(shout)), "ExtensionSet[shout:shout]")
        self.assertEqual(repr(self.make(Helper)), "ExtensionSet[Helper:Helper]")
        self.assertEqual(repr(self.make("answer", 42)), "ExtensionSet[answer:42]")

    def test_defaults_to_builtins_and_process_registry(self):
        extension = ExtensionSet("patchkit_test_marker", "marker")
        try:
            self.assertIs(extension.owner, builtins)
            self.assertIn(extension, default_registry.patches_for(builtins))
            extension.apply()
            self.assertEqual(builtins.patchkit_test_marker, "marker")
        finally:
            extension.revert()
            extension.release()
        self.assertFalse(hasattr(builtins, "patchkit_test_marker"))


class TestExtensionGroup(unittest.TestCase):
    """Test cases for ExtensionGroup."""

    def setUp(self):
        self.registry = PatchRegistry()
        self.owner = SimpleNamespace()

    def member(self, *args):
        return ExtensionSet(*args, owner=self.owner, registry=self.registry)

    def test_apply_and_revert_all(self):
        group = ExtensionSet.of_many("text", self.member(shout), self.member("answer", 42))

        self.assertIsInstance(group, ExtensionGroup)
        self.assertEqual(len(group), 2)
        self.assertEqual(repr(group), "ExtensionGroup[text] { shout, answer }")

        group.apply()
        self.assertTrue(group.applied)
        self.assertEqual(self.owner.answer, 42)
        self.assertIs(self.owner.shout, shout)

        group.revert()
        self.assertFalse(group.applied)
        self.assertEqual(vars(self.owner), {})

    def test_failures_collected(self):
        """Test member failures.

        Verifies:
        1. Every member is attempted
        2. One error carries every failure
        """
        failing = self.member("broken", 1)
        working = self.member(shout)
        group = ExtensionGroup("text", failing, working)

        with mock_patch.object(failing, "apply", side_effect=RuntimeError("boom")):
            with self.assertRaises(ExtensionGroupError) as ctx:
                group.apply()

        self.assertEqual(ctx.exception.action, "apply")
        self.assertEqual(len(ctx.exception.errors), 1)
        self.assertIs(ctx.exception.errors[0][0], failing)
        self.assertIs(self.owner.shout, shout)

    def test_callables_wrapped(self):
        group = ExtensionGroup("builtins", shout)
        try:
            member = list(group)[0]
            self.assertIsInstance(member, ExtensionSet)
            self.assertIs(member.owner, builtins)
        finally:
            for member in group:
                member.release()

    def test_rejects_other_members(self):
        with self.assertRaises(TypeError):
            ExtensionGroup("bad", 42)


if __name__ == "__main__":
    unittest.main()
