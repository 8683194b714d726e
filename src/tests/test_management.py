"""Tests for the seed command and the hierarchy configuration checks."""

from __future__ import annotations

from io import StringIO

from django.core.management import call_command
from django.test import SimpleTestCase, TestCase, override_settings

from access_control.models import Role, UserRole
from entities.checks import hierarchy_limits_are_positive
from entities.models import Entity


class SeedHierarchyCommandTests(TestCase):
    def test_seed_creates_demo_tree_and_grants(self):
        call_command("seed_hierarchy", stdout=StringIO())

        onboarding = Entity.objects.get(name="Onboarding")
        self.assertEqual(onboarding.parent.name, "Platform")
        self.assertEqual(onboarding.parent.parent.name, "Engineering")
        self.assertTrue(UserRole.objects.filter(user__email="admin@example.com", role=Role.ADMIN).exists())
        self.assertTrue(UserRole.objects.filter(user__email="reader@example.com", role=Role.READ).exists())

    def test_seed_is_idempotent(self):
        call_command("seed_hierarchy", stdout=StringIO())
        call_command("seed_hierarchy", stdout=StringIO())

        self.assertEqual(Entity.objects.count(), 3)
        self.assertEqual(UserRole.objects.count(), 3)

    def test_reset_recreates_demo_data(self):
        call_command("seed_hierarchy", stdout=StringIO())
        first_ids = set(Entity.objects.values_list("id", flat=True))

        call_command("seed_hierarchy", "--reset", stdout=StringIO())

        self.assertEqual(Entity.objects.count(), 3)
        self.assertFalse(first_ids & set(Entity.all_objects.values_list("id", flat=True)))


class HierarchyChecksTests(SimpleTestCase):
    def test_valid_limits_pass(self):
        self.assertEqual(hierarchy_limits_are_positive(None), [])

    @override_settings(MAX_HIERARCHY_DEPTH=0, MAX_NAME_LENGTH=-5)
    def test_non_positive_limits_are_reported(self):
        ids = [error.id for error in hierarchy_limits_are_positive(None)]

        self.assertEqual(ids, ["entities.E001", "entities.E002"])
