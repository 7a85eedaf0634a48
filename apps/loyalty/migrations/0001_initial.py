from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="LoyaltySettings",
            fields=[
                ("id", models.PositiveSmallIntegerField(default=1, editable=False, primary_key=True, serialize=False)),
                ("points_per_unit", models.IntegerField(default=1000)),
                ("reward_threshold", models.IntegerField(default=50)),
                ("updated_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "verbose_name": "loyalty settings",
                "verbose_name_plural": "loyalty settings",
            },
        ),
    ]
