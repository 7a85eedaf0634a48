from apps.loyalty.services import get_settings


def _id_key(value):
    if value is None or value == "":
        return None
    return str(value)


def total_points(customer_id, sales):
    key = _id_key(customer_id)
    if key is None:
        return 0
    return sum(sale.points_earned for sale in (sales or []) if _id_key(sale.customer_id) == key)


def points_by_customer(sales):
    totals = {}
    for sale in sales or []:
        key = _id_key(sale.customer_id)
        if key is None:
            continue
        totals[key] = totals.get(key, 0) + sale.points_earned
    return totals


def is_reward_available(total, settings=None):
    settings = settings or get_settings()
    return total >= settings.reward_threshold


def sales_for_customer(customer_id, sales):
    """Sales of one customer, most recent first. Equal timestamps keep no guaranteed order."""
    key = _id_key(customer_id)
    if key is None:
        return []
    matching = [sale for sale in (sales or []) if _id_key(sale.customer_id) == key]
    return sorted(matching, key=lambda sale: sale.created_at, reverse=True)
