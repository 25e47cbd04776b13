# Adds the typed pet table next to the cat table. Rows are copied by
# ``manage.py petledger_migrate copy``; the cat table stays in place.

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models


GENERATION_CHOICES = [
    ("single-owner-cat", "Cats with one owner"),
    ("typed-pet-single-owner", "Typed pets with one owner"),
    ("typed-pet-multi-owner", "Typed pets with shared owners"),
]


class Migration(migrations.Migration):

    dependencies = [
        ("petledger", "0002_user_name"),
    ]

    operations = [
        migrations.CreateModel(
            name="Pet",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100)),
                ("description", models.TextField()),
                ("pet_type", models.CharField(db_index=True, max_length=30)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "owner",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="owned_pets",
                        to="petledger.user",
                    ),
                ),
            ],
        ),
        migrations.CreateModel(
            name="MigrationRun",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("source", models.CharField(choices=GENERATION_CHOICES, max_length=40)),
                ("target", models.CharField(choices=GENERATION_CHOICES, max_length=40, unique=True)),
                ("copied_at", models.DateTimeField(blank=True, null=True)),
                ("copied_rows", models.PositiveIntegerField(default=0)),
                ("verified_at", models.DateTimeField(blank=True, null=True)),
                ("cutover_at", models.DateTimeField(blank=True, null=True)),
                ("last_error", models.TextField(blank=True, default="")),
            ],
        ),
    ]
