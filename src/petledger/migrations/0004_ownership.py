# Adds the ownership join table. ``Pet.owner`` is kept until the
# typed-pet-multi-owner cutover has been verified.

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("petledger", "0003_pet_migrationrun"),
    ]

    operations = [
        migrations.CreateModel(
            name="Ownership",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("added_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("is_primary", models.BooleanField(default=False)),
                (
                    "pet",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ownerships",
                        to="petledger.pet",
                    ),
                ),
                (
                    "user",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="ownerships",
                        to="petledger.user",
                    ),
                ),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("pet", "user"), name="petledger_ownership_unique_owner"),
                    models.UniqueConstraint(
                        condition=models.Q(("is_primary", True)),
                        fields=("pet",),
                        name="petledger_ownership_one_primary",
                    ),
                ],
            },
        ),
    ]
