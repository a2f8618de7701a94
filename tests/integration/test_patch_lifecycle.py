"""Integration tests walking complete patch lifecycles across owners, toggles and views."""

import unittest
from types import SimpleNamespace

from patchkit import ExtensionSet, PatchRegistry, PatchSet


class TestPatchLifecycle(unittest.TestCase):
    """End-to-end scenarios.

    Tests verify:
    1. Add then remove a method on a plain object
    2. Override then restore a value
    3. Stacked patch sets unwinding in reverse order
    4. Toggles, views and extensions sharing one registry
    """

    def setUp(self):
        self.registry = PatchRegistry()

    def test_add_and_remove(self):
        owner = SimpleNamespace()
        patch = PatchSet(owner, {"greet": lambda: "hi"}, registry=self.registry)

        patch.apply()
        self.assertEqual(owner.greet(), "hi")
        patch.revert()
        self.assertFalse(hasattr(owner, "greet"))

    def test_override_and_restore(self):
        owner = SimpleNamespace(x=1)
        patch = PatchSet(owner, {"x": 2}, registry=self.registry)

        patch.apply()
        self.assertEqual(owner.x, 2)
        patch.revert()
        self.assertEqual(owner.x, 1)

    def test_stacked_patch_sets_unwind(self):
        """Test two generations of patches on one key.

        Verifies the second PatchSet captured the first one's value as its
        conflict, so reverting in reverse order restores each layer.
        """

        class Service:
            def describe(self):
                return "base"

        base = Service.__dict__["describe"]
        first = PatchSet(Service, {"describe": lambda self: "first"}, registry=self.registry)
        first.apply()
        second = PatchSet(Service, {"describe": lambda self: "second"}, registry=self.registry)
        second.apply()
        self.assertEqual(Service().describe(), "second")

        second.revert()
        self.assertEqual(Service().describe(), "first")
        first.revert()
        self.assertIs(Service.__dict__["describe"], base)
        self.assertEqual(Service().describe(), "base")

    def test_inherited_attribute_reappears(self):
        class Base:
            label = "base"

        class Child(Base):
            pass

        patch = PatchSet(Child, {"label": "child"}, registry=self.registry)
        patch.apply()
        self.assertEqual(Child.label, "child")
        self.assertEqual(patch.conflicts, [])
        patch.revert()
        self.assertEqual(Child.label, "base")
        self.assertNotIn("label", vars(Child))

    def test_toggle_inside_applied_patch(self):
        owner = SimpleNamespace()
        outer = PatchSet(owner, {"mode": "outer"}, registry=self.registry)
        outer.apply()

        with outer.create_toggle():
            self.assertEqual(owner.mode, "outer")
        self.assertEqual(owner.mode, "outer")

        outer.revert()
        self.assertFalse(hasattr(owner, "mode"))

    def test_views_follow_lifecycle(self):
        owner = SimpleNamespace()
        extension = ExtensionSet("answer", 42, owner=owner, registry=self.registry)
        patch = PatchSet(owner, {"question": "?"}, registry=self.registry)
        views = self.registry.scoped_to(owner)

        self.assertEqual(views.known, {"answer": 42, "question": "?"})
        self.assertEqual(views.applied, {})

        self.assertEqual(views.lazy.answer, 42)
        self.assertEqual(views.applied, {"answer": 42})

        result = views.use["question"](lambda value, entry: owner.question + value)
        self.assertEqual(result, "??")
        self.assertFalse(hasattr(owner, "question"))
        self.assertTrue(extension.applied)

        self.registry.disable_all_for(owner)
        self.assertEqual(vars(owner), {})
        self.assertFalse(patch.applied)

    def test_apply_revert_cycles(self):
        owner = SimpleNamespace(x="original")
        patch = PatchSet(owner, {"x": "patched", "y": "new"}, registry=self.registry)
        before = dict(vars(owner))

        for _ in range(3):
            patch.apply()
            patch.apply()
            self.assertTrue(patch.is_fully_patched)
            patch.revert()
            self.assertEqual(vars(owner), before)
            self.assertEqual(patch.patches_applied, 0)


if __name__ == "__main__":
    unittest.main()
