"""Seed demo users, role grants, and a small content hierarchy."""

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand
from django.db import transaction

from access_control.models import Role, UserRole
from authentication.managers import UserManager
from core.context import ExecutionContext
from entities.lifecycle import CreateEntityRequest, EntityLifecycle
from entities.models import Entity, EntityType

DEMO_USERS = {
    "admin": ("admin@example.com", "adminpass", "Admin"),
    "editor": ("editor@example.com", "editorpass", "Editor"),
    "reader": ("reader@example.com", "readerpass", "Reader"),
}

# (key, type, name, parent key)
DEMO_TREE = [
    ("engineering", EntityType.DEPARTMENT, "Engineering", None),
    ("platform", EntityType.DEPARTMENT, "Platform", "engineering"),
    ("onboarding", EntityType.ARTICLE, "Onboarding", "platform"),
]


def create_seed_users() -> dict:
    """Create the demo users if missing and return a key->User map."""
    User = get_user_model()
    users = {}
    for key, (email, password, first_name) in DEMO_USERS.items():
        user, _ = User.objects.get_or_create(
            email=email,
            defaults={"first_name": first_name, "password": UserManager.hash_password(password)},
        )
        users[key] = user
    UserRole.objects.get_or_create(user=users["admin"], role=Role.ADMIN, entity=None)
    return users


def create_seed_tree(author, lifecycle: EntityLifecycle | None = None) -> dict:
    """Create Engineering -> Platform -> Onboarding once; return a key->Entity map."""
    lifecycle = lifecycle or EntityLifecycle()
    ctx = ExecutionContext.for_actor(author.id)
    entities: dict = {}
    for key, entity_type, name, parent_key in DEMO_TREE:
        parent = entities.get(parent_key)
        existing = Entity.objects.filter(type=entity_type, name=name, parent=parent).first()
        if existing is None:
            entity_id = lifecycle.create(
                ctx,
                CreateEntityRequest(
                    type=entity_type,
                    name=name,
                    content=f"{name} demo content.",
                    parent_id=parent.id if parent else None,
                    user_id=author.id,
                ),
            )
            existing = Entity.objects.get(id=entity_id)
        entities[key] = existing
    return entities


def grant_seed_roles(users: dict, entities: dict) -> None:
    UserRole.objects.get_or_create(user=users["editor"], role=Role.WRITE, entity=entities["engineering"])
    UserRole.objects.get_or_create(user=users["reader"], role=Role.READ, entity=entities["platform"])


class Command(BaseCommand):
    """Management command to seed demo users, grants and entities."""

    help = (
        "Seed an admin, an editor and a reader plus the demo hierarchy "
        "Engineering -> Platform -> Onboarding. Use --reset to clear the demo data first."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--reset",
            action="store_true",
            help="Remove the demo users and every entity they authored before seeding.",
        )

    def handle(self, *args, **options):
        with transaction.atomic():
            if options.get("reset"):
                self._reset_seeded_data()

            self.stdout.write("Seeding hierarchy data...")
            users = create_seed_users()
            entities = create_seed_tree(users["admin"])
            grant_seed_roles(users, entities)
        self.stdout.write(self.style.SUCCESS("Hierarchy seed completed."))

    def _reset_seeded_data(self) -> None:
        self.stdout.write("Resetting previously seeded data...")
        emails = [email for email, _, _ in DEMO_USERS.values()]
        # Versions and grants go with their entities; users are protected until then.
        Entity.all_objects.filter(created_by__email__in=emails).delete()
        get_user_model().objects.filter(email__in=emails).delete()
        self.stdout.write(self.style.WARNING("Seeded data cleared."))
