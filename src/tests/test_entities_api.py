"""HTTP tests for the entity endpoints: tree visibility, CRUD and error mapping."""

from __future__ import annotations

import uuid
from unittest import mock

from django.test import TestCase
from rest_framework.test import APIClient

from access_control.models import Role
from authentication.services import TokenService
from core.context import DeadlineExceeded
from entities.models import Entity, EntityType
from entities.services import EntityService
from tests.utils import FakeRedis, create_user, grant, make_entity


class EntityApiTests(TestCase):
    @classmethod
    def setUpClass(cls):
        """Patch Redis clients to use the in-memory fake."""
        super().setUpClass()
        cls.fake_redis = FakeRedis()
        cls.patchers = [
            mock.patch("core.redis_client.get_redis_client", return_value=cls.fake_redis),
            mock.patch("authentication.services.get_redis_client", return_value=cls.fake_redis),
        ]
        for patcher in cls.patchers:
            patcher.start()

    @classmethod
    def tearDownClass(cls):
        for patcher in cls.patchers:
            patcher.stop()
        super().tearDownClass()

    @classmethod
    def setUpTestData(cls):
        cls.admin = create_user("admin@example.com")
        grant(cls.admin, Role.ADMIN)
        cls.reader = create_user("reader@example.com")
        cls.writer = create_user("writer@example.com")
        cls.outsider = create_user("outsider@example.com")

        cls.eng = make_entity(cls.admin, EntityType.DEPARTMENT, "Eng")
        cls.team = make_entity(cls.admin, EntityType.DEPARTMENT, "Team", parent=cls.eng)
        cls.doc = make_entity(cls.admin, EntityType.ARTICLE, "Doc", parent=cls.team)
        cls.other = make_entity(cls.admin, EntityType.DEPARTMENT, "Other")

        grant(cls.reader, Role.READ, cls.eng)
        grant(cls.writer, Role.WRITE, cls.team)

    @staticmethod
    def auth_client(user):
        """Return an APIClient authenticated with a fresh access token."""
        token, _ = TokenService.generate_tokens(user)
        client = APIClient()
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")
        return client

    @staticmethod
    def _names(nodes):
        return [(node["name"], EntityApiTests._names(node["children"])) for node in nodes]

    # Tree

    def test_reader_sees_granted_subtree(self):
        response = self.auth_client(self.reader).get("/entities/")
        body = response.json()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["errors"], [])
        self.assertEqual(self._names(body["data"]), [("Eng", [("Team", [("Doc", [])])])])

    def test_grant_on_inner_node_exposes_ancestors_but_not_siblings(self):
        sibling = make_entity(self.admin, EntityType.DEPARTMENT, "Sibling", parent=self.eng)
        viewer = create_user("viewer@example.com")
        grant(viewer, Role.READ, self.team)

        body = self.auth_client(viewer).get("/entities/").json()

        self.assertEqual(self._names(body["data"]), [("Eng", [("Team", [("Doc", [])])])])
        self.assertNotIn(sibling.name, str(body["data"]))

    def test_admin_sees_everything_sorted(self):
        body = self.auth_client(self.admin).get("/entities/").json()

        self.assertEqual([node["name"] for node in body["data"]], ["Eng", "Other"])

    def test_user_without_grants_gets_empty_forest(self):
        response = self.auth_client(self.outsider).get("/entities/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["data"], [])

    def test_anonymous_request_is_unauthorized(self):
        response = APIClient().get("/entities/")

        self.assertEqual(response.status_code, 401)
        self.assertIsNone(response.json()["data"])

    # Reads

    def test_retrieve_entity(self):
        response = self.auth_client(self.reader).get(f"/entities/{self.doc.id}/")
        data = response.json()["data"]

        self.assertEqual(response.status_code, 200)
        self.assertEqual(data["id"], str(self.doc.id))
        self.assertEqual(data["parent_id"], str(self.team.id))
        self.assertEqual(data["status"], "published")
        self.assertEqual(data["current_version"], 1)

    def test_retrieve_outside_grants_is_forbidden(self):
        response = self.auth_client(self.reader).get(f"/entities/{self.other.id}/")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "core/forbidden")

    def test_admin_retrieve_missing_entity_is_not_found(self):
        response = self.auth_client(self.admin).get(f"/entities/{uuid.uuid4()}/")

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "entity/not_found")

    def test_versions_listing_and_detail(self):
        client = self.auth_client(self.writer)
        update = client.put(
            f"/entities/{self.doc.id}/",
            {"name": "Doc v2", "parent_id": str(self.team.id)},
            format="json",
        )
        self.assertEqual(update.status_code, 204)

        listing = client.get(f"/entities/{self.doc.id}/versions/").json()["data"]
        self.assertEqual([v["version"] for v in listing], [2, 1])

        detail = client.get(f"/entities/{self.doc.id}/versions/1/")
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["data"]["name"], "Doc")

    def test_version_zero_is_a_validation_error(self):
        response = self.auth_client(self.reader).get(f"/entities/{self.doc.id}/versions/0/")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "core/validation_failed")

    def test_unknown_version_is_not_found(self):
        response = self.auth_client(self.reader).get(f"/entities/{self.doc.id}/versions/9/")

        self.assertEqual(response.status_code, 404)

    # Mutations

    def test_writer_creates_article_under_granted_department(self):
        response = self.auth_client(self.writer).post(
            "/entities/",
            {"type": "article", "name": "Runbook", "parent_id": str(self.team.id)},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        new_id = response.json()["data"]["id"]
        self.assertTrue(response["Location"].endswith(f"/entities/{new_id}/"))
        entity = Entity.objects.get(id=new_id)
        self.assertEqual((entity.created_by_id, entity.parent_id), (self.writer.id, self.team.id))

    def test_writer_cannot_create_root(self):
        response = self.auth_client(self.writer).post(
            "/entities/", {"type": "department", "name": "Rogue"}, format="json"
        )

        self.assertEqual(response.status_code, 403)

    def test_reader_cannot_write(self):
        response = self.auth_client(self.reader).post(
            "/entities/",
            {"type": "article", "name": "Nope", "parent_id": str(self.team.id)},
            format="json",
        )

        self.assertEqual(response.status_code, 403)

    def test_writer_cannot_move_out_of_granted_subtree(self):
        response = self.auth_client(self.writer).put(
            f"/entities/{self.doc.id}/",
            {"name": "Doc", "parent_id": str(self.eng.id)},
            format="json",
        )

        self.assertEqual(response.status_code, 403)

    def test_admin_create_article_without_parent_is_rejected(self):
        response = self.auth_client(self.admin).post(
            "/entities/", {"type": "article", "name": "Loose"}, format="json"
        )
        body = response.json()

        self.assertEqual(response.status_code, 400)
        self.assertEqual(body["code"], "entity/parent_required")
        self.assertEqual(body["violations"], [{"field": "parent_id", "rule": "required"}])

    def test_admin_create_under_missing_parent_is_not_found(self):
        response = self.auth_client(self.admin).post(
            "/entities/",
            {"type": "department", "name": "Lost", "parent_id": str(uuid.uuid4())},
            format="json",
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["code"], "entity/parent_not_found")

    def test_type_incompatible_move_is_bad_request(self):
        response = self.auth_client(self.admin).put(
            f"/entities/{self.team.id}/",
            {"name": "Team", "parent_id": str(self.doc.id)},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "entity/parent_type_incompatible")

    def test_cycle_is_bad_request(self):
        response = self.auth_client(self.admin).put(
            f"/entities/{self.eng.id}/",
            {"name": "Eng", "parent_id": str(self.team.id)},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "entity/parent_cycle")

    def test_blank_name_is_bad_request(self):
        response = self.auth_client(self.admin).post(
            "/entities/", {"type": "department", "name": "   "}, format="json"
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["violations"][0]["field"], "name")

    def test_malformed_body_is_bad_request(self):
        response = self.auth_client(self.admin).post("/entities/", {"type": "folder"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertIsNone(response.json()["data"])

    def test_draft_with_children_is_bad_request(self):
        response = self.auth_client(self.writer).put(
            f"/entities/{self.team.id}/",
            {"name": "Team", "parent_id": str(self.eng.id), "is_draft": True},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "entity/cannot_draft_with_children")

    def test_create_under_draft_is_bad_request(self):
        drafted = make_entity(self.admin, EntityType.DEPARTMENT, "Drafted", is_draft=True)

        response = self.auth_client(self.admin).post(
            "/entities/",
            {"type": "article", "name": "Doc", "parent_id": str(drafted.id)},
            format="json",
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "entity/parent_is_draft")
        self.assertEqual(response.json()["violations"][0]["field"], "parent_id")

    def test_writer_deletes_subtree(self):
        response = self.auth_client(self.writer).delete(f"/entities/{self.team.id}/")

        self.assertEqual(response.status_code, 204)
        self.assertFalse(Entity.objects.filter(id__in=[self.team.id, self.doc.id]).exists())
        self.assertTrue(Entity.objects.filter(id=self.eng.id).exists())

    def test_writer_cannot_delete_ancestor(self):
        response = self.auth_client(self.writer).delete(f"/entities/{self.eng.id}/")

        self.assertEqual(response.status_code, 403)

    # Infrastructure failures

    def test_deadline_exceeded_is_a_generic_internal_error(self):
        with mock.patch.object(EntityService, "get_tree", side_effect=DeadlineExceeded("too slow")):
            response = self.auth_client(self.reader).get("/entities/")

        body = response.json()
        self.assertEqual(response.status_code, 500)
        self.assertEqual(body["errors"], ["Internal server error."])
        self.assertNotIn("too slow", str(body))

    def test_schema_is_served(self):
        response = APIClient().get("/schema/", HTTP_ACCEPT="application/vnd.oai.openapi+json")

        self.assertEqual(response.status_code, 200)
