import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = [
        ("entities", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="UserRole",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "role",
                    models.CharField(
                        choices=[("read", "Read"), ("write", "Write"), ("admin", "Admin")], max_length=20
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                (
                    "entity",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="grants",
                        to="entities.entity",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="roles",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "indexes": [models.Index(fields=["user", "role"], name="user_roles_user_role_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("user", "role", "entity"), name="user_roles_unique_scoped_grant"
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("entity__isnull", True)),
                        fields=("user", "role"),
                        name="user_roles_unique_global_grant",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("entity__isnull", True), ("role", "admin")),
                            models.Q(("role__in", ["read", "write"]), ("entity__isnull", False)),
                            _connector="OR",
                        ),
                        name="user_roles_scope_matches_role",
                    ),
                ],
            },
        ),
    ]
