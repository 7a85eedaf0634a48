from django.conf import settings as django_settings
from django.core.management.base import BaseCommand, CommandError

from apps.customers.services import list_customers
from apps.loyalty.services import get_settings
from apps.sales.metrics import dashboard_summary
from apps.sales.services import list_sales


class Command(BaseCommand):
    help = "Print today's and this month's sales figures plus the top loyalty customers."

    def add_arguments(self, parser):
        parser.add_argument("--top", type=int, default=django_settings.DASHBOARD_TOP_CUSTOMERS_LIMIT)

    def handle(self, *args, **options):
        if options["top"] < 1:
            raise CommandError("--top must be at least 1")

        loyalty = get_settings()
        summary = dashboard_summary(list_customers(), list_sales(), settings=loyalty, top_limit=options["top"])

        self.stdout.write(f"Today: {summary['today_revenue']} in {summary['today_transactions']} sales")
        self.stdout.write(f"Month: {summary['monthly_revenue']} in {summary['monthly_transactions']} sales")
        self.stdout.write(f"Average sale: {summary['average_sale']}")
        self.stdout.write(
            f"Rewards pending: {summary['rewards_pending']} (threshold {loyalty.reward_threshold} pts, "
            f"1 pt per {loyalty.points_per_unit})"
        )
        if not summary["top_customers"]:
            self.stdout.write("No customers with points yet")
            return
        for position, row in enumerate(summary["top_customers"], start=1):
            self.stdout.write(f"{position}. {row['customer'].name}: {row['total_points']} pts")
        self.stdout.write(self.style.SUCCESS("Done"))
