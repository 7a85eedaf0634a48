import logging

from apps.audit.models import AuditLog

logger = logging.getLogger(__name__)


def _actor_or_none(actor):
    # Library and CLI callers have no user; anonymous request users are not rows either.
    if actor is None or not getattr(actor, "is_authenticated", False):
        return None
    return actor


def record_audit(*, actor, action, entity_type, entity_id, payload=None):
    entry = AuditLog.objects.create(
        actor=_actor_or_none(actor),
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        payload=payload or {},
    )
    logger.debug("audit %s %s:%s", action, entity_type, entity_id)
    return entry
