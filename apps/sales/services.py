import logging
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.utils import timezone

from apps.audit.services import record_audit
from apps.common.exceptions import ValidationError
from apps.common.ids import next_sequence, parse_uuid
from apps.loyalty.services import get_settings
from apps.sales.models import Sale

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal("9999999999.99")


def coerce_amount(amount):
    if amount is None or isinstance(amount, bool) or str(amount).strip() == "":
        raise ValidationError("amount is required", field="amount")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as exc:
        raise ValidationError("amount must be a valid number", field="amount") from exc
    if not value.is_finite():
        raise ValidationError("amount must be a valid number", field="amount")
    if value <= 0:
        raise ValidationError("amount must be greater than 0", field="amount")
    if value > MAX_AMOUNT:
        raise ValidationError("amount is too large", field="amount")
    if value != value.quantize(CENT):
        raise ValidationError("amount must have at most 2 decimal places", field="amount")
    return value.quantize(CENT)


def points_for(amount, customer_id, settings):
    # Anonymous sales never earn points, whatever the amount.
    if customer_id is None:
        return 0
    return int(amount // settings.points_per_unit)


def _resolve_customer_id(customer_id):
    if customer_id is None or customer_id == "":
        return None
    parsed = parse_uuid(customer_id)
    if parsed is None:
        raise ValidationError("customer_id is not a valid id", field="customer_id")
    return parsed


def record_sale(*, amount=None, customer_id=None, description="", settings=None, actor=None, now=None):
    """Append a sale, stamping the points it earns under the settings in effect right now.

    ``points_earned`` is never recomputed afterwards, so later settings changes leave
    recorded sales untouched.
    """
    try:
        amount = coerce_amount(amount)
        customer_id = _resolve_customer_id(customer_id)
    except ValidationError as exc:
        logger.warning("Rejected sale: %s", exc.message)
        raise

    with transaction.atomic():
        settings = settings or get_settings()
        sale = Sale.objects.create(
            amount=amount,
            customer_id=customer_id,
            points_earned=points_for(amount, customer_id, settings),
            description=str(description or "").strip(),
            created_at=now or timezone.now(),
            sequence=next_sequence(Sale),
        )
        record_audit(
            actor=actor,
            action="sale.create",
            entity_type="sale",
            entity_id=sale.id,
            payload={
                "amount": str(sale.amount),
                "customer_id": str(sale.customer_id) if sale.customer_id else None,
                "points_earned": sale.points_earned,
                "points_per_unit": settings.points_per_unit,
            },
        )

    logger.info("Sale %s recorded: amount=%s points=%s", sale.id, sale.amount, sale.points_earned)
    return sale


def list_sales():
    return list(Sale.objects.order_by("sequence"))
