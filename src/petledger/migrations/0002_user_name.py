from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ("petledger", "0001_initial"),
    ]

    operations = [
        migrations.AddField(
            model_name="user",
            name="name",
            field=models.CharField(blank=True, default="", max_length=100),
        ),
    ]
