import logging

from django.db import transaction
from django.utils import timezone

from apps.audit.services import record_audit
from apps.common.exceptions import NotFoundError, ValidationError
from apps.common.ids import next_sequence, parse_uuid
from apps.customers.models import Customer

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("name", "phone", "notes")


def _clean_text(value):
    return str(value or "").strip()


def _snapshot(customer):
    return {field: getattr(customer, field) for field in EDITABLE_FIELDS}


def add_customer(*, name=None, phone="", notes="", actor=None, now=None):
    name = _clean_text(name)
    if not name:
        logger.warning("Rejected customer: name is required")
        raise ValidationError("name is required", field="name")

    with transaction.atomic():
        customer = Customer.objects.create(
            name=name,
            phone=_clean_text(phone),
            notes=_clean_text(notes),
            date_added=now or timezone.now(),
            sequence=next_sequence(Customer),
        )
        record_audit(
            actor=actor,
            action="customer.create",
            entity_type="customer",
            entity_id=customer.id,
            payload=_snapshot(customer),
        )

    logger.info("Customer %s added", customer.id)
    return customer


def list_customers():
    return list(Customer.objects.order_by("sequence"))


def get_customer(customer_id):
    pk = parse_uuid(customer_id)
    customer = Customer.objects.filter(pk=pk).first() if pk else None
    if customer is None:
        raise NotFoundError(f"Customer with id {customer_id} not found")
    return customer


def update_customer(customer_id, patch, *, actor=None):
    """Merge ``name``, ``phone`` and ``notes`` from ``patch``; other keys are ignored."""
    patch = patch or {}
    with transaction.atomic():
        customer = get_customer(customer_id)
        before = _snapshot(customer)
        changes = {field: _clean_text(patch[field]) for field in EDITABLE_FIELDS if field in patch}
        if "name" in changes and not changes["name"]:
            logger.warning("Rejected update of customer %s: name is required", customer.id)
            raise ValidationError("name is required", field="name")

        for field, value in changes.items():
            setattr(customer, field, value)
        if changes:
            customer.save(update_fields=list(changes))

        record_audit(
            actor=actor,
            action="customer.update",
            entity_type="customer",
            entity_id=customer.id,
            payload={"before": before, "after": _snapshot(customer)},
        )

    logger.info("Customer %s updated: %s", customer.id, ", ".join(changes) or "no changes")
    return customer


def delete_customer(customer_id, *, actor=None):
    # Sales referencing the customer are left untouched.
    with transaction.atomic():
        customer = get_customer(customer_id)
        record_audit(
            actor=actor,
            action="customer.delete",
            entity_type="customer",
            entity_id=customer.id,
            payload=_snapshot(customer),
        )
        customer.delete()

    logger.info("Customer %s deleted", customer_id)
