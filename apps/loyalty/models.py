from django.db import models

DEFAULT_POINTS_PER_UNIT = 1000
DEFAULT_REWARD_THRESHOLD = 50
SETTINGS_PK = 1


class LoyaltySettings(models.Model):
    id = models.PositiveSmallIntegerField(primary_key=True, default=SETTINGS_PK, editable=False)
    points_per_unit = models.IntegerField(default=DEFAULT_POINTS_PER_UNIT)
    reward_threshold = models.IntegerField(default=DEFAULT_REWARD_THRESHOLD)
    updated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        verbose_name = "loyalty settings"
        verbose_name_plural = "loyalty settings"

    def __str__(self):
        return f"1 point / {self.points_per_unit}, reward at {self.reward_threshold}"
