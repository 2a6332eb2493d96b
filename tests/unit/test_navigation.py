"""Unit tests for milkshake.pages.navigation."""

import pytest

from milkshake.errors import TreeCycleError


class TestTreeNavigator:
    """Test cases for TreeNavigator on a well-formed tree."""

    def test_level(self, navigator, about_tree):
        """Roots are level 1 and each generation adds one."""
        assert navigator.level(about_tree["about"]) == 1
        assert navigator.level(about_tree["team"]) == 2
        assert navigator.level(about_tree["leadership"]) == 3

    def test_ancestors_nearest_first(self, navigator, about_tree):
        """ancestors starts with the parent and ends with the root."""
        ancestors = navigator.ancestors(about_tree["leadership"])

        assert [page.id for page in ancestors] == [about_tree["team"].id, about_tree["about"].id]

    def test_ancestors_length_matches_level(self, navigator, about_tree):
        """A page has level - 1 ancestors."""
        for page in about_tree.values():
            assert len(navigator.ancestors(page)) == navigator.level(page) - 1

    def test_root(self, navigator, about_tree):
        """root walks to the top of the tree."""
        assert navigator.root(about_tree["leadership"]).id == about_tree["about"].id
        assert navigator.root(about_tree["contact"]).id == about_tree["contact"].id

    def test_parent(self, navigator, about_tree):
        """parent resolves the id reference through the store."""
        assert navigator.parent(about_tree["team"]).id == about_tree["about"].id
        assert navigator.parent(about_tree["about"]) is None

    def test_children_and_has_children(self, navigator, about_tree):
        """children lists direct descendants only."""
        assert [page.id for page in navigator.children(about_tree["about"])] == [about_tree["team"].id]
        assert navigator.has_children(about_tree["about"]) is True
        assert navigator.has_children(about_tree["leadership"]) is False

    def test_siblings_and_self_and_siblings(self, store, navigator):
        """self_and_siblings includes the page, siblings does not."""
        parent = store.create(title="Parent")
        first = store.create(title="First", parent_id=parent.id)
        second = store.create(title="Second", parent_id=parent.id)

        assert [page.id for page in navigator.self_and_siblings(first)] == [first.id, second.id]
        assert [page.id for page in navigator.siblings(first)] == [second.id]

    def test_roots_are_siblings_of_each_other(self, navigator, about_tree):
        """Root pages share the empty parent."""
        ids = [page.id for page in navigator.self_and_siblings(about_tree["contact"])]
        assert ids == [about_tree["about"].id, about_tree["contact"].id]

    def test_descendants_depth_first(self, store, navigator):
        """descendants visits each subtree fully before the next sibling."""
        root = store.create(title="Root")
        a = store.create(title="A", parent_id=root.id)
        a1 = store.create(title="A1", parent_id=a.id)
        b = store.create(title="B", parent_id=root.id)
        b1 = store.create(title="B1", parent_id=b.id)

        assert [page.id for page in navigator.descendants(root)] == [a.id, a1.id, b.id, b1.id]

    def test_deep_tree_does_not_recurse(self, store, navigator):
        """Walking a very deep chain must not hit the recursion limit."""
        page = store.create(title="Level 0")
        for depth in range(1, 1200):
            page = store.create(title="n", parent_id=page.id)

        assert navigator.level(page) == 1200
        assert len(navigator.ancestors(page)) == 1199


class TestOrphansAndCycles:
    """Test cases for malformed trees."""

    def test_orphan_behaves_like_root(self, store, navigator, about_tree):
        """A dangling parent reference is treated as no parent."""
        store.delete(about_tree["about"])
        orphan = store.get(about_tree["team"].id)

        assert navigator.parent(orphan) is None
        assert navigator.level(orphan) == 1
        assert navigator.ancestors(orphan) == []
        assert navigator.root(orphan).id == orphan.id

    def test_grandchild_of_deleted_page(self, store, navigator, about_tree):
        """Deeper pages still resolve up to the orphaned page."""
        store.delete(about_tree["about"])
        leadership = store.get(about_tree["leadership"].id)

        assert navigator.level(leadership) == 2
        assert navigator.root(leadership).id == about_tree["team"].id

    def test_cycle_raises(self, store, navigator):
        """A parent loop is reported instead of walked forever."""
        first = store.create(title="First")
        second = store.create(title="Second", parent_id=first.id)
        # Corrupt the arena directly; the store itself refuses cycles.
        store._pages[first.id].parent_id = second.id

        with pytest.raises(TreeCycleError):
            navigator.level(second)
        with pytest.raises(TreeCycleError):
            navigator.ancestors(first)
