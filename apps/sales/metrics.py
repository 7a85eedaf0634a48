"""Dashboard figures derived from customer and sale snapshots.

Every function takes the records it works on rather than querying, and accepts
``now`` so callers (and tests) can pin the clock. ``now`` is resolved once per
call; day and month windows are compared in the project's local time zone.
"""

from decimal import ROUND_HALF_UP, Decimal

from django.utils import timezone

from apps.loyalty.calculator import is_reward_available, points_by_customer
from apps.loyalty.services import get_settings

ZERO = Decimal("0.00")
CENT = Decimal("0.01")
DEFAULT_TOP_LIMIT = 5


def _local(ts):
    if timezone.is_naive(ts):
        ts = timezone.make_aware(ts)
    return timezone.localtime(ts)


def _resolve_now(now):
    return _local(now or timezone.now())


def is_today(ts, now=None):
    ts, now = _local(ts), _resolve_now(now)
    return ts.date() == now.date()


def is_current_month(ts, now=None):
    ts, now = _local(ts), _resolve_now(now)
    return (ts.year, ts.month) == (now.year, now.month)


def _within(sales, window, now):
    return [sale for sale in (sales or []) if window(sale.created_at, now)]


def _revenue(sales):
    return sum((Decimal(sale.amount) for sale in sales), ZERO)


def today_revenue(sales, now=None):
    return _revenue(_within(sales, is_today, _resolve_now(now)))


def today_transactions(sales, now=None):
    return len(_within(sales, is_today, _resolve_now(now)))


def monthly_revenue(sales, now=None):
    return _revenue(_within(sales, is_current_month, _resolve_now(now)))


def monthly_transactions(sales, now=None):
    return len(_within(sales, is_current_month, _resolve_now(now)))


def average_sale(sales, now=None):
    monthly = _within(sales, is_current_month, _resolve_now(now))
    if not monthly:
        return ZERO
    return (_revenue(monthly) / len(monthly)).quantize(CENT, rounding=ROUND_HALF_UP)


def rewards_pending_count(customers, sales, settings=None):
    if not customers or not sales:
        return 0
    settings = settings or get_settings()
    totals = points_by_customer(sales)
    return sum(1 for customer in customers if is_reward_available(totals.get(str(customer.id), 0), settings))


def top_customers(customers, sales, limit=DEFAULT_TOP_LIMIT):
    """Customers ranked by total points, highest first.

    Sales pointing at ids missing from ``customers`` are ignored, as are
    customers without points. Equal totals keep the order of ``customers``.
    """
    if not customers or not sales:
        return []
    totals = points_by_customer(sales)
    ranked = [
        {"customer": customer, "total_points": totals[str(customer.id)]}
        for customer in customers
        if totals.get(str(customer.id), 0) > 0
    ]
    ranked.sort(key=lambda row: row["total_points"], reverse=True)
    return ranked[:limit]


def dashboard_summary(customers, sales, *, now=None, settings=None, top_limit=DEFAULT_TOP_LIMIT):
    now = _resolve_now(now)
    settings = settings or get_settings()
    return {
        "today_revenue": today_revenue(sales, now),
        "today_transactions": today_transactions(sales, now),
        "monthly_revenue": monthly_revenue(sales, now),
        "monthly_transactions": monthly_transactions(sales, now),
        "average_sale": average_sale(sales, now),
        "rewards_pending": rewards_pending_count(customers, sales, settings),
        "reward_threshold": settings.reward_threshold,
        "top_customers": top_customers(customers, sales, top_limit),
        "generated_at": now,
    }
