import uuid

import django.utils.timezone
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Sale",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("amount", models.DecimalField(decimal_places=2, editable=False, max_digits=12)),
                ("customer_id", models.UUIDField(blank=True, editable=False, null=True)),
                ("points_earned", models.PositiveIntegerField(default=0, editable=False)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now, editable=False)),
                ("sequence", models.PositiveBigIntegerField(editable=False, unique=True)),
            ],
            options={
                "ordering": ["sequence"],
                "indexes": [
                    models.Index(fields=["customer_id", "created_at"], name="sale_customer_created_idx"),
                    models.Index(fields=["created_at"], name="sale_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(condition=models.Q(amount__gt=0), name="sale_amount_gt_zero"),
                ],
            },
        ),
    ]
