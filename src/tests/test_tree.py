"""Tests for assembling flat entity lists into a deterministic forest."""

from __future__ import annotations

import random
import uuid

from django.test import SimpleTestCase

from entities.models import EntityType
from entities.store import ListItem
from entities.tree import build_tree


def _item(name, parent=None, entity_type=EntityType.DEPARTMENT, entity_id=None):
    return ListItem(
        id=entity_id or uuid.uuid4(),
        type=entity_type,
        name=name,
        parent_id=parent.id if parent else None,
    )


def _shape(forest):
    return [(node.item.name, _shape(node.children)) for node in forest]


class BuildTreeTests(SimpleTestCase):
    def test_empty_input_gives_empty_forest(self):
        self.assertEqual(build_tree([]), [])

    def test_nests_children_under_parents(self):
        eng = _item("Eng")
        team = _item("Team", parent=eng)
        doc = _item("Doc", parent=team, entity_type=EntityType.ARTICLE)

        forest = build_tree([doc, eng, team])

        self.assertEqual(_shape(forest), [("Eng", [("Team", [("Doc", [])])])])

    def test_items_with_missing_parent_become_roots(self):
        hidden_parent = _item("Hidden")
        orphan = _item("Orphan", parent=hidden_parent)
        root = _item("Root")

        forest = build_tree([orphan, root])

        self.assertEqual([node.item.name for node in forest], ["Orphan", "Root"])

    def test_siblings_sorted_by_name_then_id(self):
        root = _item("Root")
        low_id = uuid.UUID(int=1)
        high_id = uuid.UUID(int=2)
        items = [
            root,
            _item("b", parent=root),
            _item("a", parent=root, entity_id=high_id),
            _item("a", parent=root, entity_id=low_id),
        ]

        children = build_tree(items)[0].children

        self.assertEqual([(c.item.name, c.item.id) for c in children][:2], [("a", low_id), ("a", high_id)])
        self.assertEqual(children[2].item.name, "b")

    def test_output_independent_of_input_order(self):
        root = _item("Root")
        a = _item("A", parent=root)
        b = _item("B", parent=root)
        c = _item("C", parent=a, entity_type=EntityType.ARTICLE)
        other = _item("Other")
        items = [root, a, b, c, other]

        expected = _shape(build_tree(items))
        rng = random.Random(7)
        for _ in range(5):
            shuffled = items[:]
            rng.shuffle(shuffled)
            self.assertEqual(_shape(build_tree(shuffled)), expected)

    def test_rebuilding_from_flattened_output_is_idempotent(self):
        root = _item("Root")
        child = _item("Child", parent=root)
        first = build_tree([child, root])

        flattened = []
        stack = list(first)
        while stack:
            node = stack.pop()
            flattened.append(node.item)
            stack.extend(node.children)

        self.assertEqual(_shape(build_tree(flattened)), _shape(first))

    def test_to_dict_renders_nested_payload(self):
        root = _item("Root")
        child = _item("Doc", parent=root, entity_type=EntityType.ARTICLE)

        payload = build_tree([root, child])[0].to_dict()

        self.assertEqual(payload["name"], "Root")
        self.assertIsNone(payload["parent_id"])
        self.assertEqual(payload["children"][0]["type"], "article")
        self.assertEqual(payload["children"][0]["parent_id"], str(root.id))
        self.assertEqual(payload["children"][0]["children"], [])
