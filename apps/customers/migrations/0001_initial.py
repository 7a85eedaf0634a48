import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Customer",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("name", models.CharField(max_length=255)),
                ("phone", models.CharField(blank=True, default="", max_length=50)),
                ("notes", models.TextField(blank=True, default="")),
                ("date_added", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("sequence", models.PositiveBigIntegerField(editable=False, unique=True)),
            ],
            options={
                "ordering": ["sequence"],
                "indexes": [models.Index(fields=["name"], name="customer_name_idx")],
            },
        ),
    ]
