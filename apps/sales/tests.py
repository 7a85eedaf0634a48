import uuid
from datetime import datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal
from io import StringIO

from django.contrib import admin
from django.contrib.auth import get_user_model
from django.core.management import CommandError, call_command
from django.test import RequestFactory, SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.common.exceptions import ValidationError
from apps.customers.models import Customer
from apps.customers.services import add_customer, delete_customer, list_customers
from apps.loyalty.calculator import total_points
from apps.loyalty.models import LoyaltySettings
from apps.loyalty.services import get_settings, save_settings
from apps.sales.metrics import (
    average_sale,
    dashboard_summary,
    is_current_month,
    is_today,
    monthly_revenue,
    monthly_transactions,
    rewards_pending_count,
    today_revenue,
    today_transactions,
    top_customers,
)
from apps.sales.models import Sale
from apps.sales.services import list_sales, record_sale

User = get_user_model()

NOW = timezone.make_aware(datetime(2026, 3, 15, 12, 0))
DEFAULTS = LoyaltySettings(points_per_unit=1000, reward_threshold=50)


def local(*args):
    return timezone.make_aware(datetime(*args))


def make_sale(amount, customer=None, points=0, at=NOW):
    customer_id = customer.id if isinstance(customer, Customer) else customer
    return Sale(amount=Decimal(amount), customer_id=customer_id, points_earned=points, created_at=at)


class SaleLedgerTests(TestCase):
    def setUp(self):
        self.customer = add_customer(name="Carla")

    def test_customer_sale_earns_floored_points(self):
        sale = record_sale(amount=5500, customer_id=self.customer.id)
        self.assertEqual(sale.points_earned, 5)

    def test_points_follow_points_per_unit(self):
        save_settings({"points_per_unit": 300, "reward_threshold": 50})
        sale = record_sale(amount="1000", customer_id=self.customer.id)
        self.assertEqual(sale.points_earned, 3)

    def test_below_one_unit_earns_nothing(self):
        sale = record_sale(amount="999.99", customer_id=self.customer.id)
        self.assertEqual(sale.points_earned, 0)

    def test_anonymous_sale_never_earns_points(self):
        for customer_id in (None, ""):
            with self.subTest(customer_id=customer_id):
                sale = record_sale(amount="1000000", customer_id=customer_id)
                self.assertIsNone(sale.customer_id)
                self.assertEqual(sale.points_earned, 0)

    def test_two_sales_add_up(self):
        record_sale(amount=15000, customer_id=self.customer.id)
        record_sale(amount=8000, customer_id=self.customer.id)

        points = total_points(self.customer.id, list_sales())
        self.assertEqual(points, 23)
        self.assertFalse(get_settings().reward_threshold <= points)

    def test_settings_change_is_not_retroactive(self):
        first = record_sale(amount="5000", customer_id=self.customer.id)
        save_settings({"points_per_unit": 100, "reward_threshold": 10})
        second = record_sale(amount="5000", customer_id=self.customer.id)

        stored = {sale.id: sale.points_earned for sale in list_sales()}
        self.assertEqual(stored[first.id], 5)
        self.assertEqual(stored[second.id], 50)

    def test_injected_settings_snapshot_is_used(self):
        snapshot = LoyaltySettings(points_per_unit=10, reward_threshold=5)
        sale = record_sale(amount="95", customer_id=self.customer.id, settings=snapshot)
        self.assertEqual(sale.points_earned, 9)

    def test_numeric_strings_are_coerced(self):
        sale = record_sale(amount=" 1250.5 ", description="  Lunch ")
        self.assertEqual(sale.amount, Decimal("1250.50"))
        self.assertEqual(sale.description, "Lunch")
        self.assertEqual(Sale.objects.get(pk=sale.pk).amount, Decimal("1250.50"))

    def test_invalid_amounts_are_rejected(self):
        for amount in (None, "", "abc", 0, "0", -5, "-0.01", "0.001", True, "NaN", "Infinity", "1e12"):
            with self.subTest(amount=amount):
                with self.assertRaises(ValidationError) as ctx:
                    record_sale(amount=amount, customer_id=self.customer.id)
                self.assertEqual(ctx.exception.field, "amount")
        self.assertEqual(Sale.objects.count(), 0)

    def test_sub_cent_amounts_are_rejected_not_rounded(self):
        for amount in ("999.995", "0.004"):
            with self.subTest(amount=amount):
                with self.assertRaises(ValidationError) as ctx:
                    record_sale(amount=amount, customer_id=self.customer.id)
                self.assertEqual(ctx.exception.field, "amount")
                self.assertEqual(ctx.exception.message, "amount must have at most 2 decimal places")
        self.assertEqual(Sale.objects.count(), 0)

    def test_trailing_zero_decimals_are_accepted(self):
        sale = record_sale(amount="999.9900", customer_id=self.customer.id)
        self.assertEqual(sale.amount, Decimal("999.99"))
        self.assertEqual(sale.points_earned, 0)

    def test_malformed_customer_id_is_rejected(self):
        with self.assertRaises(ValidationError) as ctx:
            record_sale(amount="100", customer_id="not-an-id")
        self.assertEqual(ctx.exception.field, "customer_id")

    def test_list_is_in_insertion_order(self):
        first = record_sale(amount="10", now=NOW)
        second = record_sale(amount="20", now=NOW - timedelta(days=1))
        third = record_sale(amount="30", now=NOW)
        self.assertEqual([sale.id for sale in list_sales()], [first.id, second.id, third.id])

    def test_description_defaults_to_empty(self):
        sale = record_sale(amount="10")
        self.assertEqual(sale.description, "")

    def test_sale_is_audited(self):
        sale = record_sale(amount="2500", customer_id=self.customer.id)
        entry = AuditLog.objects.get(action="sale.create", entity_id=str(sale.id))
        self.assertEqual(entry.payload["points_earned"], 2)
        self.assertEqual(entry.payload["points_per_unit"], 1000)


class TimeWindowTests(SimpleTestCase):
    def test_same_local_day(self):
        self.assertTrue(is_today(local(2026, 3, 15, 0, 1), now=NOW))
        self.assertTrue(is_today(local(2026, 3, 15, 23, 59), now=NOW))
        self.assertFalse(is_today(local(2026, 3, 14, 23, 59), now=NOW))

    def test_day_is_judged_in_local_time(self):
        # 20:00 local on the 14th is already the 15th in UTC.
        evening = local(2026, 3, 14, 20, 0)
        self.assertNotEqual(evening.astimezone(dt_timezone.utc).date(), evening.date())
        self.assertFalse(is_today(evening, now=NOW))

    def test_current_month(self):
        self.assertTrue(is_current_month(local(2026, 3, 1, 0, 0), now=NOW))
        self.assertFalse(is_current_month(local(2026, 2, 28, 23, 59), now=NOW))
        self.assertFalse(is_current_month(local(2025, 3, 15, 12, 0), now=NOW))


class MetricsTests(SimpleTestCase):
    def setUp(self):
        self.ana = Customer(name="Ana")
        self.beto = Customer(name="Beto")
        self.ciro = Customer(name="Ciro")
        self.dora = Customer(name="Dora")
        self.customers = [self.ana, self.beto, self.ciro, self.dora]

    def test_today_and_month_figures_include_anonymous_sales(self):
        sales = [
            make_sale("100.00", self.ana, 0, at=NOW - timedelta(hours=2)),
            make_sale("50.50", None, 0, at=NOW - timedelta(hours=1)),
            make_sale("200.00", self.beto, 0, at=local(2026, 3, 2, 9, 0)),
            make_sale("999.00", self.beto, 0, at=local(2026, 2, 27, 9, 0)),
        ]
        self.assertEqual(today_revenue(sales, now=NOW), Decimal("150.50"))
        self.assertEqual(today_transactions(sales, now=NOW), 2)
        self.assertEqual(monthly_revenue(sales, now=NOW), Decimal("350.50"))
        self.assertEqual(monthly_transactions(sales, now=NOW), 3)

    def test_missing_input_yields_zero(self):
        for func in (today_revenue, today_transactions, monthly_revenue, monthly_transactions, average_sale):
            with self.subTest(func=func.__name__):
                self.assertEqual(func(None, now=NOW), 0)
                self.assertEqual(func([], now=NOW), 0)

    def test_average_sale_rounds_to_cents(self):
        sales = [
            make_sale("100.00", at=NOW),
            make_sale("200.00", at=NOW),
            make_sale("33.33", at=NOW),
            make_sale("5000.00", at=local(2026, 2, 1, 9, 0)),
        ]
        self.assertEqual(average_sale(sales, now=NOW), Decimal("111.11"))

    def test_average_sale_rounds_half_up(self):
        sales = [make_sale("0.01", at=NOW), make_sale("0.02", at=NOW)]
        self.assertEqual(average_sale(sales, now=NOW), Decimal("0.02"))

    def test_average_sale_without_monthly_sales(self):
        sales = [make_sale("80.00", at=local(2026, 1, 10, 9, 0))]
        self.assertEqual(average_sale(sales, now=NOW), 0)

    def test_rewards_pending_count(self):
        sales = [
            make_sale("50000", self.ana, 50),
            make_sale("30000", self.beto, 30),
            make_sale("25000", self.beto, 25),
            make_sale("90000", None, 0),
            make_sale("99000", uuid.uuid4(), 99),
        ]
        self.assertEqual(rewards_pending_count(self.customers, sales, DEFAULTS), 2)
        strict = LoyaltySettings(points_per_unit=1000, reward_threshold=60)
        self.assertEqual(rewards_pending_count(self.customers, sales, strict), 0)

    def test_rewards_pending_count_with_missing_input(self):
        self.assertEqual(rewards_pending_count(None, [make_sale("10", self.ana, 60)], DEFAULTS), 0)
        self.assertEqual(rewards_pending_count(self.customers, None, DEFAULTS), 0)

    def test_top_customers_ranking(self):
        stranger = uuid.uuid4()
        sales = [
            make_sale("10000", self.ana, 10),
            make_sale("30000", self.beto, 30),
            make_sale("30000", self.dora, 30),
            make_sale("900000", stranger, 900),
            make_sale("500000", None, 0),
        ]
        ranked = top_customers(self.customers, sales)
        self.assertEqual([row["customer"] for row in ranked], [self.beto, self.dora, self.ana])
        self.assertEqual([row["total_points"] for row in ranked], [30, 30, 10])

        self.assertEqual([row["customer"] for row in top_customers(self.customers, sales, limit=2)], [self.beto, self.dora])

    def test_top_customers_truncates_to_five_by_default(self):
        customers = [Customer(name=f"C{i}") for i in range(7)]
        sales = [make_sale("1000", customer, i + 1) for i, customer in enumerate(customers)]
        ranked = top_customers(customers, sales)
        self.assertEqual(len(ranked), 5)
        self.assertEqual(ranked[0]["customer"], customers[-1])

    def test_top_customers_empty(self):
        self.assertEqual(top_customers(self.customers, [make_sale("500", self.ana, 0)]), [])
        self.assertEqual(top_customers(None, None), [])

    def test_dashboard_summary_uses_one_snapshot(self):
        sales = [
            make_sale("15000", self.ana, 15, at=NOW),
            make_sale("8000", self.ana, 8, at=NOW - timedelta(days=3)),
            make_sale("60000", self.beto, 60, at=local(2026, 2, 10, 9, 0)),
        ]
        summary = dashboard_summary(self.customers, sales, now=NOW, settings=DEFAULTS)
        self.assertEqual(summary["today_revenue"], Decimal("15000"))
        self.assertEqual(summary["today_transactions"], 1)
        self.assertEqual(summary["monthly_revenue"], Decimal("23000"))
        self.assertEqual(summary["monthly_transactions"], 2)
        self.assertEqual(summary["average_sale"], Decimal("11500.00"))
        self.assertEqual(summary["rewards_pending"], 1)
        self.assertEqual([row["customer"] for row in summary["top_customers"]], [self.beto, self.ana])
        self.assertEqual(summary["generated_at"], NOW)


class DeletedCustomerMetricsTests(TestCase):
    def test_deleted_customer_keeps_revenue_but_leaves_rankings(self):
        gone = add_customer(name="Gone")
        stays = add_customer(name="Stays")
        record_sale(amount="70000", customer_id=gone.id, now=NOW)
        record_sale(amount="3000", customer_id=stays.id, now=NOW)
        delete_customer(gone.id)

        summary = dashboard_summary(list_customers(), list_sales(), now=NOW)
        self.assertEqual(summary["monthly_revenue"], Decimal("73000.00"))
        self.assertEqual(summary["rewards_pending"], 0)
        self.assertEqual([row["customer"].id for row in summary["top_customers"]], [stays.id])


class SalesApiTests(APITestCase):
    def setUp(self):
        User.objects.create_user(username="admin_sal", password="admin123", role="ADMIN")
        User.objects.create_user(username="cashier_sal", password="cashier123", role="CASHIER")
        self.customer = add_customer(name="Carla")

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_cashier_records_customer_and_anonymous_sales(self):
        self.auth_as("cashier_sal", "cashier123")
        linked = self.client.post(
            "/api/v1/sales/",
            {"amount": "5500", "customer_id": str(self.customer.id), "description": "Groceries"},
            format="json",
        )
        self.assertEqual(linked.status_code, 201)
        self.assertEqual(linked.data["points_earned"], 5)
        self.assertEqual(linked.data["amount"], "5500.00")
        self.assertEqual(linked.data["customer_id"], str(self.customer.id))

        anonymous = self.client.post("/api/v1/sales/", {"amount": 12000}, format="json")
        self.assertEqual(anonymous.status_code, 201)
        self.assertEqual(anonymous.data["points_earned"], 0)
        self.assertIsNone(anonymous.data["customer_id"])

        listed = self.client.get("/api/v1/sales/")
        self.assertEqual(listed.data["count"], 2)
        self.assertEqual(listed.data["results"][0]["id"], linked.data["id"])

        filtered = self.client.get("/api/v1/sales/", {"customer": str(self.customer.id)})
        self.assertEqual(filtered.data["count"], 1)

    def test_invalid_amount_is_rejected(self):
        self.auth_as("cashier_sal", "cashier123")
        for amount in ("0", "-10", "abc"):
            with self.subTest(amount=amount):
                response = self.client.post("/api/v1/sales/", {"amount": amount}, format="json")
                self.assertEqual(response.status_code, 400)
                self.assertIn("amount", response.data["fields"])
        self.assertEqual(Sale.objects.count(), 0)

    def test_sales_cannot_be_changed_or_deleted(self):
        self.auth_as("admin_sal", "admin123")
        sale = record_sale(amount="100", customer_id=self.customer.id)
        self.assertEqual(self.client.patch(f"/api/v1/sales/{sale.id}/", {"amount": "1"}, format="json").status_code, 405)
        self.assertEqual(self.client.delete(f"/api/v1/sales/{sale.id}/").status_code, 405)
        self.assertEqual(self.client.get(f"/api/v1/sales/{sale.id}/").status_code, 200)

    def test_dashboard_for_admin_only(self):
        self.auth_as("cashier_sal", "cashier123")
        self.assertEqual(self.client.get("/api/v1/metrics/dashboard/").status_code, 403)

        record_sale(amount="60000", customer_id=self.customer.id)
        record_sale(amount="40")
        self.auth_as("admin_sal", "admin123")
        response = self.client.get("/api/v1/metrics/dashboard/", {"top_limit": 3})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["today_transactions"], 2)
        self.assertEqual(response.data["today_revenue"], "60040.00")
        self.assertEqual(response.data["average_sale"], "30020.00")
        self.assertEqual(response.data["rewards_pending"], 1)
        self.assertEqual(response.data["top_customers"][0]["name"], "Carla")
        self.assertEqual(response.data["top_customers"][0]["total_points"], 60)

    def test_dashboard_rejects_bad_limit(self):
        self.auth_as("admin_sal", "admin123")
        response = self.client.get("/api/v1/metrics/dashboard/", {"top_limit": 0})
        self.assertEqual(response.status_code, 400)
        self.assertIn("top_limit", response.data["fields"])


class DashboardCommandTests(TestCase):
    def test_prints_summary(self):
        customer = add_customer(name="Carla")
        record_sale(amount="60000", customer_id=customer.id)

        out = StringIO()
        call_command("loyalty_dashboard", stdout=out)
        output = out.getvalue()
        self.assertIn("Rewards pending: 1", output)
        self.assertIn("1. Carla: 60 pts", output)

    def test_prints_empty_state(self):
        out = StringIO()
        call_command("loyalty_dashboard", stdout=out)
        self.assertIn("No customers with points yet", out.getvalue())

    def test_top_must_be_positive(self):
        customer = add_customer(name="Carla")
        record_sale(amount="60000", customer_id=customer.id)

        for top in ("0", "-2"):
            with self.subTest(top=top):
                out = StringIO()
                with self.assertRaises(CommandError):
                    call_command("loyalty_dashboard", "--top", top, stdout=out)
                self.assertNotIn("No customers with points yet", out.getvalue())

    def test_top_limits_ranking(self):
        first = add_customer(name="Carla")
        second = add_customer(name="Diego")
        record_sale(amount="60000", customer_id=first.id)
        record_sale(amount="3000", customer_id=second.id)

        out = StringIO()
        call_command("loyalty_dashboard", "--top", "1", stdout=out)
        self.assertIn("1. Carla: 60 pts", out.getvalue())
        self.assertNotIn("Diego", out.getvalue())


class SaleAdminTests(TestCase):
    def setUp(self):
        self.admin_user = User.objects.create_superuser(
            username="root_sal", email="root@example.com", password="root12345", role="ADMIN"
        )
        self.client.force_login(self.admin_user)
        self.sale = record_sale(amount="1500", description="Counter")

    def test_recorded_sale_is_read_only(self):
        model_admin = admin.site._registry[Sale]
        request = RequestFactory().get("/admin/sales/sale/")
        request.user = self.admin_user
        self.assertFalse(model_admin.has_add_permission(request))
        self.assertFalse(model_admin.has_change_permission(request, self.sale))
        self.assertFalse(model_admin.has_delete_permission(request, self.sale))
        self.assertIn("description", model_admin.get_readonly_fields(request, self.sale))

    def test_change_form_post_does_not_edit_sale(self):
        response = self.client.post(
            f"/admin/sales/sale/{self.sale.id}/change/",
            {"description": "Edited"},
        )
        self.assertEqual(response.status_code, 403)
        self.assertEqual(Sale.objects.get(pk=self.sale.pk).description, "Counter")
