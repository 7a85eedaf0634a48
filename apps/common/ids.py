import uuid

from django.db.models import Max


def parse_uuid(value):
    """Return ``value`` as a UUID, or ``None`` when it is not a well-formed id."""
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


def next_sequence(model):
    top = model.objects.aggregate(top=Max("sequence"))["top"]
    return (top or 0) + 1
