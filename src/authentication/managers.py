"""User manager handling bcrypt hashing and verification."""

import logging
import uuid

import bcrypt
from django.contrib.auth.base_user import BaseUserManager
from django.db import transaction

logger = logging.getLogger(__name__)


class UserManager(BaseUserManager):
    """Create users with bcrypt password hashes."""

    use_in_migrations = True

    def _create_user(self, email: str, password: str, **extra_fields):
        if not email:
            raise ValueError("The Email must be set")
        email = self.normalize_email(email)
        user = self.model(id=uuid.uuid4(), email=email, **extra_fields)
        user.password = self.hash_password(password)
        user.save(using=self._db)
        return user

    def create_user(self, email: str, password: str | None = None, **extra_fields):
        """Create a user with no role grants."""
        if password is None:
            raise ValueError("Password must be provided")
        return self._create_user(email, password, **extra_fields)

    def create_superuser(self, email: str, password: str, **extra_fields):
        """Create a user holding the unrestricted Admin grant."""
        from access_control.models import Role, UserRole

        extra_fields.setdefault("is_active", True)
        with transaction.atomic(using=self._db):
            user = self._create_user(email, password, **extra_fields)
            UserRole.objects.create(user=user, role=Role.ADMIN, entity=None)
        logger.info("Created admin user %s", user.id)
        return user

    @staticmethod
    def hash_password(raw_password: str) -> str:
        """Hash a raw password using bcrypt and return the utf-8 string."""
        hashed = bcrypt.hashpw(raw_password.encode(), bcrypt.gensalt())
        return hashed.decode()

    @staticmethod
    def verify_password(user, raw_password: str) -> bool:
        if not user.password:
            return False
        return bcrypt.checkpw(raw_password.encode(), user.password.encode("utf-8"))


__all__ = ["UserManager"]
