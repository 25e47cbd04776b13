# A user who still owns pets cannot be deleted. Ownership has to move to
# other users first, so no pet loses its primary owner.

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("petledger", "0004_ownership"),
    ]

    operations = [
        migrations.AlterField(
            model_name="pet",
            name="owner",
            field=models.ForeignKey(
                blank=True,
                null=True,
                on_delete=django.db.models.deletion.PROTECT,
                related_name="owned_pets",
                to="petledger.user",
            ),
        ),
        migrations.AlterField(
            model_name="ownership",
            name="user",
            field=models.ForeignKey(
                on_delete=django.db.models.deletion.PROTECT,
                related_name="ownerships",
                to="petledger.user",
            ),
        ),
    ]
