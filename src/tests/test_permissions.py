"""Tests for the role hierarchy, direct grant resolution and effective sets."""

from __future__ import annotations

import uuid

from django.db import IntegrityError, transaction
from django.test import SimpleTestCase, TestCase

from access_control.models import Role, UserRole
from access_control.permissions import (
    DirectPermissions,
    EffectivePermissionSet,
    PermissionResolver,
    resolve_effective_permissions,
)
from core.context import ExecutionContext
from core.errors import Forbidden, Unauthenticated, ValidationFailed
from entities.models import EntityType
from entities.store import HierarchyStore
from tests.utils import create_user, ctx_for, grant, make_entity


class RoleHierarchyTests(SimpleTestCase):
    def test_read_is_satisfied_by_every_role(self):
        self.assertEqual(Role.READ.hierarchy(), {Role.ADMIN, Role.WRITE, Role.READ})

    def test_write_is_satisfied_by_write_and_admin(self):
        self.assertEqual(Role.WRITE.hierarchy(), {Role.ADMIN, Role.WRITE})

    def test_admin_is_satisfied_only_by_admin(self):
        self.assertEqual(Role.ADMIN.hierarchy(), {Role.ADMIN})

    def test_only_read_expands_to_ancestors(self):
        self.assertTrue(Role.READ.expands_ancestors)
        self.assertFalse(Role.WRITE.expands_ancestors)


class EffectivePermissionSetCheckTests(SimpleTestCase):
    def test_unrestricted_set_allows_everything(self):
        perms = EffectivePermissionSet(unrestricted=True)

        self.assertTrue(perms.check_id(uuid.uuid4()))
        self.assertTrue(perms.check_parent_ids([None, uuid.uuid4()]))

    def test_null_parent_requires_unrestricted_actor(self):
        allowed = uuid.uuid4()
        perms = EffectivePermissionSet(entity_ids=frozenset({allowed}))

        self.assertTrue(perms.check_parent_ids([allowed]))
        self.assertFalse(perms.check_parent_ids([None]))
        self.assertFalse(perms.check_parent_ids([allowed, None]))

    def test_ensure_raises_forbidden(self):
        perms = EffectivePermissionSet()

        with self.assertRaises(Forbidden):
            perms.ensure_id(uuid.uuid4())
        with self.assertRaises(Forbidden):
            perms.ensure_parent_ids([None])

    def test_admin_expansion_skips_the_store(self):
        class ExplodingStore:
            def get_hierarchy(self, *args, **kwargs):
                raise AssertionError("admin expansion must not traverse")

        perms = EffectivePermissionSet.expand(
            ExecutionContext(), DirectPermissions(is_admin=True), True, store=ExplodingStore()
        )

        self.assertTrue(perms.unrestricted)


class PermissionResolutionTests(TestCase):
    @classmethod
    def setUpTestData(cls):
        cls.admin = create_user("admin@example.com")
        grant(cls.admin, Role.ADMIN)
        cls.reader = create_user("reader@example.com")
        cls.writer = create_user("writer@example.com")
        cls.nobody = create_user("nobody@example.com")

        cls.eng = make_entity(cls.admin, EntityType.DEPARTMENT, "Eng")
        cls.team = make_entity(cls.admin, EntityType.DEPARTMENT, "Team", parent=cls.eng)
        cls.doc = make_entity(cls.admin, EntityType.ARTICLE, "Doc", parent=cls.team)
        cls.other = make_entity(cls.admin, EntityType.DEPARTMENT, "Other")

        grant(cls.reader, Role.READ, cls.team)
        grant(cls.writer, Role.WRITE, cls.team)

    def setUp(self):
        self.resolver = PermissionResolver()

    def test_admin_is_unrestricted_without_ids(self):
        direct = self.resolver.get_direct_permissions(ctx_for(self.admin), Role.READ)

        self.assertTrue(direct.is_admin)
        self.assertEqual(direct.entity_ids, frozenset())

    def test_admin_grant_short_circuits_scoped_grants(self):
        grant(self.admin, Role.WRITE, self.team)

        direct = self.resolver.get_direct_permissions(ctx_for(self.admin), Role.WRITE)

        self.assertTrue(direct.is_admin)
        self.assertEqual(direct.entity_ids, frozenset())

    def test_write_grant_satisfies_read(self):
        direct = self.resolver.get_direct_permissions(ctx_for(self.writer), Role.READ)

        self.assertEqual(direct, DirectPermissions(entity_ids=frozenset({self.team.id})))

    def test_read_grant_does_not_satisfy_write(self):
        direct = self.resolver.get_direct_permissions(ctx_for(self.reader), Role.WRITE)

        self.assertFalse(direct.is_admin)
        self.assertEqual(direct.entity_ids, frozenset())

    def test_is_admin(self):
        self.assertTrue(self.resolver.is_admin(ctx_for(self.admin)))
        self.assertFalse(self.resolver.is_admin(ctx_for(self.writer)))

    def test_missing_actor_is_unauthenticated(self):
        with self.assertRaises(Unauthenticated):
            self.resolver.get_direct_permissions(ExecutionContext(), Role.READ)

    def test_unknown_level_is_rejected(self):
        with self.assertRaises(ValidationFailed):
            self.resolver.get_direct_permissions(ctx_for(self.reader), "owner")

    def test_read_expands_to_descendants_and_ancestors(self):
        perms = resolve_effective_permissions(ctx_for(self.reader), Role.READ)

        self.assertEqual(perms.entity_ids, {self.eng.id, self.team.id, self.doc.id})
        self.assertFalse(perms.check_id(self.other.id))

    def test_write_expands_to_descendants_only(self):
        perms = resolve_effective_permissions(ctx_for(self.writer), Role.WRITE)

        self.assertEqual(perms.entity_ids, {self.team.id, self.doc.id})
        self.assertFalse(perms.check_id(self.eng.id))

    def test_no_grants_gives_empty_set(self):
        perms = resolve_effective_permissions(ctx_for(self.nobody), Role.READ)

        self.assertFalse(perms.unrestricted)
        self.assertEqual(perms.entity_ids, frozenset())

    def test_expansion_reflects_current_store_state(self):
        extra = make_entity(self.admin, EntityType.ARTICLE, "Late", parent=self.team)

        perms = EffectivePermissionSet.expand(
            ctx_for(self.writer),
            DirectPermissions(entity_ids=frozenset({self.team.id})),
            expand_ancestors=False,
            store=HierarchyStore(),
            max_depth=10,
        )

        self.assertIn(extra.id, perms.entity_ids)

    def test_scoped_role_without_entity_violates_constraint(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            UserRole.objects.create(user=self.nobody, role=Role.READ, entity=None)
