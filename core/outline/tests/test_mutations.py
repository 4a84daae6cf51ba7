# core/outline/tests/test_mutations.py
"""Tests for path-addressed outline edits."""

import pytest

from core.outline.flattener import project_outline
from core.outline.mutations import (
    can_add_child,
    delete_at,
    insert_child,
    insert_root,
    move_sibling,
    sort_outline,
    update_content,
)
from core.outline.renumber import renumber_group
from core.outline.tree import (
    InvalidPathError,
    MaxDepthError,
    NodeDraft,
    OutlineTree,
    check_invariants,
)


def titles(tree: OutlineTree, ids) -> list[str]:
    return [tree.nodes[i].title for i in ids]


class TestMoveSibling:
    def test_move_second_chapter_up(self, two_chapters):
        """[A, B] -> move [1] up -> [B, A], folder indices unchanged."""
        moved = move_sibling(two_chapters, (1,), "up")

        assert titles(moved, moved.roots) == ["B", "A"]
        assert moved.node_at((0,)).order == 1
        assert moved.node_at((1,)).order == 2
        assert moved.node_at((0,)).folder_index == 1
        assert moved.node_at((1,)).folder_index == 0

    def test_move_first_up_is_noop(self, two_chapters):
        assert move_sibling(two_chapters, (0,), "up") is two_chapters

    def test_move_last_down_is_noop(self, course_tree):
        assert move_sibling(course_tree, (0, 1), "down") is course_tree

    def test_move_nested_sibling_only_touches_its_group(self, course_tree):
        moved = move_sibling(course_tree, (0, 0), "down")

        assert titles(moved, moved.node_at((0,)).children) == ["Configure", "Install"]
        assert moved.roots == course_tree.roots
        # Untouched nodes are shared with the original snapshot
        assert moved.nodes[4] is course_tree.nodes[4]
        assert moved.nodes[3] is course_tree.nodes[3]
        assert check_invariants(moved) == []

    def test_subtree_moves_with_its_root(self, course_tree):
        moved = move_sibling(course_tree, (0, 1), "up")
        assert moved.node_at((0, 0, 0)).title == "Env vars"

    def test_original_tree_is_unchanged(self, two_chapters):
        move_sibling(two_chapters, (1,), "up")
        assert titles(two_chapters, two_chapters.roots) == ["A", "B"]

    def test_invalid_direction_raises(self, two_chapters):
        with pytest.raises(ValueError):
            move_sibling(two_chapters, (0,), "sideways")

    def test_invalid_path_raises(self, two_chapters):
        with pytest.raises(InvalidPathError):
            move_sibling(two_chapters, (4,), "up")


class TestInsert:
    def test_insert_root_appends_with_next_order(self, two_chapters):
        tree = insert_root(two_chapters, NodeDraft("C", "c"))

        new = tree.node_at((2,))
        assert new.title == "C"
        assert new.order == 3
        assert new.folder_index == 2
        assert tree.next_folder_index == 3

    def test_subchapter_under_first_chapter(self, two_chapters):
        """Adding "Intro" under A adds one flat record at depth 1 under A."""
        before = project_outline(two_chapters)
        tree = insert_child(two_chapters, (0,), NodeDraft("Intro", "Welcome"))
        after = project_outline(tree)

        assert len(after) == len(before) + 1
        intro = next(r for r in after if r.node.title == "Intro")
        parent = next(r for r in after if r.node.title == "A")
        assert intro.depth == 1
        assert intro.parent_flat_index == parent.flat_index

    def test_insert_at_max_depth_raises(self, course_tree):
        with pytest.raises(MaxDepthError) as exc_info:
            insert_child(course_tree, (0, 1, 0), NodeDraft("Too deep", "x"))
        assert exc_info.value.parent_path == (0, 1, 0)

    def test_insert_at_depth_one_parent_is_allowed(self, course_tree):
        tree = insert_child(course_tree, (1, 0), NodeDraft("Sharding", "x"))
        assert tree.node_at((1, 0, 0)).title == "Sharding"
        assert check_invariants(tree) == []

    def test_insert_child_under_missing_parent_raises(self, two_chapters):
        with pytest.raises(InvalidPathError):
            insert_child(two_chapters, (7,), NodeDraft("X", "x"))

    def test_insert_child_with_empty_parent_raises(self, two_chapters):
        with pytest.raises(InvalidPathError):
            insert_child(two_chapters, (), NodeDraft("X", "x"))

    def test_insert_into_empty_tree(self):
        tree = insert_root(OutlineTree(), NodeDraft("First", "x"))
        assert tree.node_at((0,)).order == 1
        assert tree.node_at((0,)).folder_index == 0

    def test_folder_indices_are_not_reused_after_delete(self, two_chapters):
        tree = delete_at(two_chapters, (1,))
        tree = insert_root(tree, NodeDraft("C", "c"))
        assert tree.node_at((1,)).folder_index == 2


class TestCanAddChild:
    def test_root_and_depth_one(self, course_tree):
        assert can_add_child(course_tree, (0,))
        assert can_add_child(course_tree, (0, 1))

    def test_grandchild_can_be_created(self, make_lesson):
        tree = OutlineTree.from_nested([make_lesson("A", 0, 1, [make_lesson("A1", 1, 1)])])

        assert can_add_child(tree, (0, 0))
        tree = insert_child(tree, (0, 0), NodeDraft("Grandchild", "x"))
        assert tree.node_at((0, 0, 0)).title == "Grandchild"
        assert not can_add_child(tree, (0, 0, 0))

    def test_depth_two_cannot(self, course_tree):
        assert not can_add_child(course_tree, (0, 1, 0))

    def test_unknown_path_cannot(self, course_tree):
        assert not can_add_child(course_tree, (9,))
        assert not can_add_child(course_tree, ())


class TestDelete:
    def test_delete_chapter_with_two_subchapters(self):
        tree = OutlineTree.from_nested(
            [
                {
                    "title": "A",
                    "order": 1,
                    "folderIndex": 0,
                    "sublessons": [
                        {"title": "A1", "order": 1, "folderIndex": 1},
                        {"title": "A2", "order": 2, "folderIndex": 2},
                    ],
                },
                {"title": "B", "order": 2, "folderIndex": 3},
            ]
        )
        before = project_outline(tree)

        result = delete_at(tree, (0,))
        after = project_outline(result)

        assert len(after) == len(before) - 3
        assert result.node_at((0,)).title == "B"
        assert result.node_at((0,)).order == 1
        assert set(result.nodes) == {3}

    def test_delete_renumbers_only_the_affected_group(self, course_tree):
        result = delete_at(course_tree, (0, 0))

        assert result.node_at((0, 0)).title == "Configure"
        assert result.node_at((0, 0)).order == 1
        # Roots group was not rewritten
        assert result.nodes[4] is course_tree.nodes[4]
        assert result.nodes[6] is course_tree.nodes[6]
        assert check_invariants(result) == []

    def test_delete_last_node_leaves_empty_tree(self, two_chapters):
        tree = delete_at(delete_at(two_chapters, (0,)), (0,))
        assert len(tree) == 0
        assert project_outline(tree) == []
        assert tree.next_folder_index == 2

    def test_delete_invalid_path_raises(self, two_chapters):
        with pytest.raises(InvalidPathError):
            delete_at(two_chapters, (0, 0))


class TestUpdateContent:
    def test_updates_only_the_target(self, course_tree):
        result = update_content(course_tree, (1, 0), "Scaling out", "New body")

        node = result.node_at((1, 0))
        assert node.title == "Scaling out"
        assert node.content == "New body"
        assert node.order == 1
        assert node.folder_index == 5
        for folder_index in (0, 1, 2, 3, 4, 6):
            assert result.nodes[folder_index] is course_tree.nodes[folder_index]

    def test_unchanged_values_return_same_tree(self, course_tree):
        node = course_tree.node_at((2,))
        assert update_content(course_tree, (2,), node.title, node.content) is course_tree


class TestSortOutline:
    def test_sorts_each_group_by_order(self):
        from dataclasses import replace

        tree = OutlineTree.from_nested(
            [
                {"title": "A", "order": 1, "folderIndex": 0},
                {"title": "B", "order": 2, "folderIndex": 1},
            ]
        )
        nodes = dict(tree.nodes)
        nodes[0] = replace(nodes[0], order=2)
        nodes[1] = replace(nodes[1], order=1)
        unsorted = OutlineTree(nodes=nodes, roots=tree.roots, next_folder_index=2)

        result = sort_outline(unsorted)
        assert titles(result, result.roots) == ["B", "A"]

    def test_sorted_tree_is_returned_as_is(self, course_tree):
        assert sort_outline(course_tree) is course_tree


class TestRenumberGroup:
    def test_fills_gaps_and_reports_changes(self, course_tree):
        from dataclasses import replace

        nodes = dict(course_tree.nodes)
        nodes[4] = replace(nodes[4], order=5)
        nodes[6] = replace(nodes[6], order=9)

        changed = renumber_group(nodes, course_tree.roots)

        assert changed == 2
        assert [nodes[i].order for i in course_tree.roots] == [1, 2, 3]
        assert nodes[0] is course_tree.nodes[0]
