import uuid
from datetime import datetime, timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.common.exceptions import ValidationError
from apps.loyalty.calculator import is_reward_available, points_by_customer, sales_for_customer, total_points
from apps.loyalty.models import LoyaltySettings
from apps.loyalty.services import get_settings, save_settings
from apps.sales.models import Sale

User = get_user_model()

NOW = timezone.make_aware(datetime(2026, 3, 15, 12, 0))


def sale(points, customer_id=None, at=NOW, amount="1000.00"):
    return Sale(amount=Decimal(amount), customer_id=customer_id, points_earned=points, created_at=at)


class SettingsStoreTests(TestCase):
    def test_defaults_when_nothing_saved(self):
        settings = get_settings()
        self.assertEqual(settings.points_per_unit, 1000)
        self.assertEqual(settings.reward_threshold, 50)
        self.assertIsNone(settings.updated_at)

    def test_save_stamps_updated_at_and_persists(self):
        saved = save_settings({"points_per_unit": 500, "reward_threshold": 20}, now=NOW)
        self.assertEqual(saved.updated_at, NOW)

        current = get_settings()
        self.assertEqual(current.points_per_unit, 500)
        self.assertEqual(current.reward_threshold, 20)
        self.assertEqual(current.updated_at, NOW)
        self.assertTrue(AuditLog.objects.filter(action="loyalty.settings.update").exists())

    def test_save_overwrites_whole_record(self):
        save_settings({"points_per_unit": 500, "reward_threshold": 20})
        save_settings({"points_per_unit": 250, "reward_threshold": 75})
        self.assertEqual(LoyaltySettings.objects.count(), 1)
        current = get_settings()
        self.assertEqual((current.points_per_unit, current.reward_threshold), (250, 75))

    def test_invalid_save_leaves_prior_settings_untouched(self):
        save_settings({"points_per_unit": 800, "reward_threshold": 40})

        with self.assertRaises(ValidationError) as ctx:
            save_settings({"points_per_unit": 0, "reward_threshold": 50})
        self.assertEqual(ctx.exception.field, "points_per_unit")

        current = get_settings()
        self.assertEqual((current.points_per_unit, current.reward_threshold), (800, 40))

    def test_invalid_save_with_nothing_stored_keeps_defaults(self):
        with self.assertRaises(ValidationError):
            save_settings({"points_per_unit": 1000, "reward_threshold": -3})
        self.assertFalse(LoyaltySettings.objects.exists())
        self.assertEqual(get_settings().reward_threshold, 50)

    def test_rejects_non_integer_values(self):
        for bad in (1.5, "10", True, None):
            with self.subTest(value=bad):
                with self.assertRaises(ValidationError) as ctx:
                    save_settings({"points_per_unit": 1000, "reward_threshold": bad})
                self.assertEqual(ctx.exception.field, "reward_threshold")

    def test_integral_floats_are_accepted_as_ints(self):
        saved = save_settings({"points_per_unit": 500.0, "reward_threshold": 50.0})
        self.assertEqual((saved.points_per_unit, saved.reward_threshold), (500, 50))
        self.assertIsInstance(saved.points_per_unit, int)

        stored = LoyaltySettings.objects.get()
        self.assertEqual((stored.points_per_unit, stored.reward_threshold), (500, 50))

    def test_rejects_non_mapping_candidate(self):
        with self.assertRaises(ValidationError):
            save_settings([1000, 50])

    def test_corrupt_stored_field_falls_back_per_field(self):
        stamp = NOW - timedelta(days=2)
        LoyaltySettings.objects.create(points_per_unit=0, reward_threshold=30, updated_at=stamp)

        current = get_settings()
        self.assertEqual(current.points_per_unit, 1000)
        self.assertEqual(current.reward_threshold, 30)
        self.assertEqual(current.updated_at, stamp)
        self.assertEqual(LoyaltySettings.objects.get().points_per_unit, 0)


class LoyaltyCalculatorTests(SimpleTestCase):
    def setUp(self):
        self.customer_id = uuid.uuid4()
        self.other_id = uuid.uuid4()

    def test_total_points_sums_only_that_customer(self):
        sales = [
            sale(15, self.customer_id),
            sale(8, self.customer_id),
            sale(40, self.other_id),
            sale(0, None, amount="90000.00"),
        ]
        self.assertEqual(total_points(self.customer_id, sales), 23)

    def test_total_points_matches_string_ids(self):
        sales = [sale(3, self.customer_id)]
        self.assertEqual(total_points(str(self.customer_id), sales), 3)

    def test_total_points_empty_input(self):
        self.assertEqual(total_points(self.customer_id, []), 0)
        self.assertEqual(total_points(self.customer_id, None), 0)

    def test_total_points_for_anonymous_is_zero(self):
        self.assertEqual(total_points(None, [sale(5, None)]), 0)

    def test_points_by_customer_skips_anonymous(self):
        totals = points_by_customer([sale(2, self.customer_id), sale(7, None), sale(1, self.customer_id)])
        self.assertEqual(totals, {str(self.customer_id): 3})

    def test_reward_availability_uses_given_threshold(self):
        settings = LoyaltySettings(points_per_unit=1000, reward_threshold=50)
        self.assertFalse(is_reward_available(23, settings))
        self.assertFalse(is_reward_available(49, settings))
        self.assertTrue(is_reward_available(50, settings))

    def test_sales_for_customer_most_recent_first(self):
        oldest = sale(1, self.customer_id, at=NOW - timedelta(days=3))
        newest = sale(2, self.customer_id, at=NOW)
        middle = sale(3, self.customer_id, at=NOW - timedelta(days=1))
        foreign = sale(4, self.other_id, at=NOW)

        result = sales_for_customer(self.customer_id, [oldest, newest, foreign, middle])
        self.assertEqual(result, [newest, middle, oldest])


class RewardThresholdTests(TestCase):
    def test_threshold_change_applies_to_existing_totals(self):
        self.assertFalse(is_reward_available(40))
        save_settings({"points_per_unit": 1000, "reward_threshold": 30})
        self.assertTrue(is_reward_available(40))


class LoyaltySettingsApiTests(APITestCase):
    def setUp(self):
        User.objects.create_user(username="admin_loy", password="admin123", role="ADMIN")
        User.objects.create_user(username="cashier_loy", password="cashier123", role="CASHIER")

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_requires_authentication(self):
        response = self.client.get("/api/v1/loyalty-settings/")
        self.assertEqual(response.status_code, 401)

    def test_get_returns_defaults(self):
        self.auth_as("cashier_loy", "cashier123")
        response = self.client.get("/api/v1/loyalty-settings/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["points_per_unit"], 1000)
        self.assertEqual(response.data["reward_threshold"], 50)
        self.assertIsNone(response.data["updated_at"])

    def test_admin_can_save(self):
        self.auth_as("admin_loy", "admin123")
        response = self.client.put(
            "/api/v1/loyalty-settings/",
            {"points_per_unit": 500, "reward_threshold": 25},
            format="json",
        )
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["points_per_unit"], 500)
        self.assertIsNotNone(response.data["updated_at"])
        self.assertEqual(get_settings().reward_threshold, 25)

        entry = AuditLog.objects.get(action="loyalty.settings.update")
        self.assertEqual(entry.actor.username, "admin_loy")

    def test_cashier_cannot_save(self):
        self.auth_as("cashier_loy", "cashier123")
        response = self.client.put(
            "/api/v1/loyalty-settings/",
            {"points_per_unit": 500, "reward_threshold": 25},
            format="json",
        )
        self.assertEqual(response.status_code, 403)
        self.assertFalse(LoyaltySettings.objects.exists())

    def test_invalid_value_is_rejected_with_field(self):
        self.auth_as("admin_loy", "admin123")
        response = self.client.put(
            "/api/v1/loyalty-settings/",
            {"points_per_unit": 0, "reward_threshold": 50},
            format="json",
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("points_per_unit", response.data["fields"])
        self.assertFalse(LoyaltySettings.objects.exists())
