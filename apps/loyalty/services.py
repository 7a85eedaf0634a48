import logging
from collections.abc import Mapping

from django.db import transaction
from django.utils import timezone

from apps.audit.services import record_audit
from apps.common.exceptions import ValidationError
from apps.loyalty.models import (
    DEFAULT_POINTS_PER_UNIT,
    DEFAULT_REWARD_THRESHOLD,
    SETTINGS_PK,
    LoyaltySettings,
)

logger = logging.getLogger(__name__)

SETTING_DEFAULTS = {
    "points_per_unit": DEFAULT_POINTS_PER_UNIT,
    "reward_threshold": DEFAULT_REWARD_THRESHOLD,
}


def coerce_setting(value):
    """Return ``value`` as an int when it is a whole number >= 1, otherwise ``None``.

    Integral floats such as ``50.0`` count as whole numbers; bools and strings do not.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int) and value >= 1:
        return value
    return None


def is_valid_setting(value):
    return coerce_setting(value) is not None


def default_settings():
    return LoyaltySettings(**SETTING_DEFAULTS, updated_at=None)


def get_settings():
    """Current settings, falling back to defaults for anything missing or invalid.

    The returned instance is unsaved whenever a default had to be substituted, so
    reading never repairs the stored row behind the caller's back.
    """
    stored = LoyaltySettings.objects.filter(pk=SETTINGS_PK).first()
    if stored is None:
        return default_settings()

    invalid = [field for field in SETTING_DEFAULTS if not is_valid_setting(getattr(stored, field))]
    if not invalid:
        return stored

    logger.warning("Stored loyalty settings have invalid %s; using defaults for them", ", ".join(invalid))
    return LoyaltySettings(
        points_per_unit=DEFAULT_POINTS_PER_UNIT if "points_per_unit" in invalid else stored.points_per_unit,
        reward_threshold=DEFAULT_REWARD_THRESHOLD if "reward_threshold" in invalid else stored.reward_threshold,
        updated_at=stored.updated_at,
    )


def save_settings(candidate, *, actor=None, now=None):
    if not isinstance(candidate, Mapping):
        logger.warning("Rejected loyalty settings: expected a mapping, got %s", type(candidate).__name__)
        raise ValidationError("Settings must be a mapping.")

    values = {}
    for field in SETTING_DEFAULTS:
        values[field] = coerce_setting(candidate.get(field))
        if values[field] is None:
            logger.warning("Rejected loyalty settings: invalid %s=%r", field, candidate.get(field))
            raise ValidationError(f"{field} must be an integer >= 1", field=field)
    values["updated_at"] = now or timezone.now()

    with transaction.atomic():
        saved, _ = LoyaltySettings.objects.update_or_create(pk=SETTINGS_PK, defaults=values)
        record_audit(
            actor=actor,
            action="loyalty.settings.update",
            entity_type="loyalty_settings",
            entity_id=saved.pk,
            payload={
                "points_per_unit": saved.points_per_unit,
                "reward_threshold": saved.reward_threshold,
            },
        )

    logger.info(
        "Loyalty settings saved: points_per_unit=%s reward_threshold=%s",
        saved.points_per_unit,
        saved.reward_threshold,
    )
    return saved
