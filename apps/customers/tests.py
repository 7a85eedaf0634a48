import uuid
from datetime import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from apps.audit.models import AuditLog
from apps.common.exceptions import NotFoundError, ValidationError
from apps.customers.models import Customer
from apps.customers.services import add_customer, delete_customer, get_customer, list_customers, update_customer
from apps.loyalty.services import save_settings
from apps.sales.models import Sale
from apps.sales.services import record_sale

User = get_user_model()


class CustomerLedgerTests(TestCase):
    def test_add_customer_with_all_fields(self):
        customer = add_customer(name="John Doe", phone="555-1234", notes="VIP")
        self.assertIsInstance(customer.id, uuid.UUID)
        self.assertEqual(customer.name, "John Doe")
        self.assertEqual(customer.phone, "555-1234")
        self.assertEqual(customer.notes, "VIP")
        self.assertIsNotNone(customer.date_added)
        self.assertTrue(AuditLog.objects.filter(action="customer.create", entity_id=str(customer.id)).exists())

    def test_phone_and_notes_are_optional(self):
        customer = add_customer(name="No Contact")
        self.assertEqual(customer.phone, "")
        self.assertEqual(customer.notes, "")

    def test_name_is_required(self):
        for name in (None, "", "   "):
            with self.subTest(name=name):
                with self.assertRaises(ValidationError) as ctx:
                    add_customer(name=name, phone="555-1234")
                self.assertEqual(ctx.exception.field, "name")
        self.assertEqual(Customer.objects.count(), 0)

    def test_ids_are_unique(self):
        first = add_customer(name="Customer 1")
        second = add_customer(name="Customer 2")
        self.assertNotEqual(first.id, second.id)

    def test_list_keeps_insertion_order_even_with_earlier_timestamps(self):
        first = add_customer(name="First", now=timezone.make_aware(datetime(2026, 3, 10, 9, 0)))
        second = add_customer(name="Second", now=timezone.make_aware(datetime(2026, 3, 1, 9, 0)))
        self.assertEqual([c.id for c in list_customers()], [first.id, second.id])

    def test_added_customer_round_trips_through_list(self):
        add_customer(name="Alice", phone="111-1111")
        added = add_customer(name="Bob", phone="222-2222", notes="weekends")

        listed = list_customers()[1]
        self.assertEqual(listed.pk, added.pk)
        for field in ("name", "phone", "notes", "date_added"):
            self.assertEqual(getattr(listed, field), getattr(added, field))

    def test_update_merges_patch(self):
        customer = add_customer(name="Old Name", phone="555-1234", notes="keep me")
        updated = update_customer(customer.id, {"name": "New Name", "phone": "555-5678"})
        self.assertEqual(updated.name, "New Name")
        self.assertEqual(updated.phone, "555-5678")
        self.assertEqual(updated.notes, "keep me")

        stored = get_customer(customer.id)
        self.assertEqual(stored.name, "New Name")

    def test_update_ignores_immutable_fields(self):
        customer = add_customer(name="Test")
        original_id, original_date = customer.id, customer.date_added

        update_customer(
            customer.id,
            {"id": uuid.uuid4(), "date_added": timezone.now(), "sequence": 99, "name": "Updated"},
        )
        stored = get_customer(original_id)
        self.assertEqual(stored.name, "Updated")
        self.assertEqual(stored.date_added, original_date)
        self.assertEqual(stored.sequence, customer.sequence)

    def test_update_cannot_blank_name(self):
        customer = add_customer(name="Keep")
        with self.assertRaises(ValidationError):
            update_customer(customer.id, {"name": " "})
        self.assertEqual(get_customer(customer.id).name, "Keep")

    def test_update_unknown_customer(self):
        with self.assertRaises(NotFoundError):
            update_customer("nonexistent", {"name": "Test"})
        with self.assertRaises(NotFoundError):
            update_customer(uuid.uuid4(), {"name": "Test"})

    def test_delete_removes_only_that_customer(self):
        keep = add_customer(name="Keep")
        gone = add_customer(name="Delete")
        delete_customer(gone.id)
        self.assertEqual([c.id for c in list_customers()], [keep.id])
        self.assertTrue(AuditLog.objects.filter(action="customer.delete", entity_id=str(gone.id)).exists())

    def test_delete_unknown_customer(self):
        with self.assertRaises(NotFoundError):
            delete_customer("nonexistent")

    def test_delete_does_not_touch_sales(self):
        customer = add_customer(name="Leaving")
        sale = record_sale(amount="15000", customer_id=customer.id)

        delete_customer(customer.id)

        stored = Sale.objects.get(pk=sale.pk)
        self.assertEqual(stored.customer_id, customer.id)
        self.assertEqual(stored.points_earned, 15)


class CustomersApiTests(APITestCase):
    def setUp(self):
        User.objects.create_user(username="cashier_cus", password="cashier123", role="CASHIER")
        self.auth_as("cashier_cus", "cashier123")

    def auth_as(self, username, password):
        token = self.client.post(
            "/api/v1/auth/token/",
            {"username": username, "password": password},
            format="json",
        ).data["access"]
        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {token}")

    def test_crud_flow(self):
        created = self.client.post(
            "/api/v1/customers/",
            {"name": "Ana", "phone": "555-0001", "notes": ""},
            format="json",
        )
        self.assertEqual(created.status_code, 201)
        customer_id = created.data["id"]

        updated = self.client.patch(f"/api/v1/customers/{customer_id}/", {"notes": "prefers cash"}, format="json")
        self.assertEqual(updated.status_code, 200)
        self.assertEqual(updated.data["notes"], "prefers cash")
        self.assertEqual(updated.data["name"], "Ana")

        listed = self.client.get("/api/v1/customers/")
        self.assertEqual(listed.status_code, 200)
        self.assertEqual(listed.data["count"], 1)

        deleted = self.client.delete(f"/api/v1/customers/{customer_id}/")
        self.assertEqual(deleted.status_code, 204)
        self.assertFalse(Customer.objects.exists())

    def test_create_without_name_is_rejected(self):
        response = self.client.post("/api/v1/customers/", {"phone": "555-1234"}, format="json")
        self.assertEqual(response.status_code, 400)
        self.assertIn("name", response.data["fields"])
        self.assertEqual(response.data["code"], "invalid")

    def test_unknown_customer_returns_404(self):
        for method in ("get", "patch", "delete"):
            with self.subTest(method=method):
                response = getattr(self.client, method)(f"/api/v1/customers/{uuid.uuid4()}/", {}, format="json")
                self.assertEqual(response.status_code, 404)
                self.assertEqual(response.data["code"], "not_found")

    def test_list_includes_points_and_reward_flag(self):
        save_settings({"points_per_unit": 1000, "reward_threshold": 20})
        rich = add_customer(name="Rich")
        add_customer(name="New")
        record_sale(amount="15000", customer_id=rich.id)
        record_sale(amount="8000", customer_id=rich.id)
        record_sale(amount="99000")

        response = self.client.get("/api/v1/customers/")
        rows = {row["name"]: row for row in response.data["results"]}
        self.assertEqual(rows["Rich"]["total_points"], 23)
        self.assertTrue(rows["Rich"]["reward_available"])
        self.assertEqual(rows["New"]["total_points"], 0)
        self.assertFalse(rows["New"]["reward_available"])

    def test_search_by_name_or_phone(self):
        add_customer(name="Maria Lopez", phone="555-1000")
        add_customer(name="Pedro", phone="555-2000")

        by_name = self.client.get("/api/v1/customers/", {"q": "lopez"})
        self.assertEqual(by_name.data["count"], 1)
        by_phone = self.client.get("/api/v1/customers/", {"q": "2000"})
        self.assertEqual(by_phone.data["results"][0]["name"], "Pedro")

    def test_detail_lists_sales_most_recent_first(self):
        customer = add_customer(name="History")
        older = record_sale(amount="5500", customer_id=customer.id, now=timezone.make_aware(datetime(2026, 3, 1, 10, 0)))
        newer = record_sale(amount="2000", customer_id=customer.id, now=timezone.make_aware(datetime(2026, 3, 5, 10, 0)))
        record_sale(amount="7000")

        response = self.client.get(f"/api/v1/customers/{customer.id}/")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.data["total_points"], 7)
        self.assertFalse(response.data["reward_available"])
        self.assertEqual([row["id"] for row in response.data["sales"]], [str(newer.id), str(older.id)])
        self.assertEqual(Decimal(response.data["sales"][1]["amount"]), Decimal("5500.00"))


class RejectedCustomerLoggingTests(TestCase):
    def test_rejected_add_is_logged(self):
        with self.assertLogs("apps.customers.services", level="WARNING") as logs:
            with self.assertRaises(ValidationError):
                add_customer(name="  ")
        self.assertIn("name is required", logs.output[0])

    def test_rejected_update_is_logged(self):
        customer = add_customer(name="Keep")
        with self.assertLogs("apps.customers.services", level="WARNING") as logs:
            with self.assertRaises(ValidationError):
                update_customer(customer.id, {"name": ""})
        self.assertIn(str(customer.id), logs.output[0])


class CustomerAdminTests(TestCase):
    def setUp(self):
        self.admin_user = User.objects.create_superuser(
            username="root_cus", email="root@example.com", password="root12345", role="ADMIN"
        )
        self.client.force_login(self.admin_user)

    def test_admin_add_goes_through_ledger(self):
        response = self.client.post(
            "/admin/customers/customer/add/",
            {"name": "  Ana Ruiz ", "phone": " 555-0101 ", "notes": ""},
        )
        self.assertEqual(response.status_code, 302)

        customer = Customer.objects.get()
        self.assertEqual(customer.name, "Ana Ruiz")
        self.assertEqual(customer.phone, "555-0101")
        self.assertEqual(customer.sequence, 1)
        entry = AuditLog.objects.get(action="customer.create", entity_id=str(customer.id))
        self.assertEqual(entry.actor, self.admin_user)

    def test_admin_change_is_audited(self):
        customer = add_customer(name="Old", phone="555-0000")
        response = self.client.post(
            f"/admin/customers/customer/{customer.id}/change/",
            {"name": "New", "phone": "555-0000", "notes": "moved"},
        )
        self.assertEqual(response.status_code, 302)

        stored = get_customer(customer.id)
        self.assertEqual((stored.name, stored.notes), ("New", "moved"))
        entry = AuditLog.objects.get(action="customer.update", entity_id=str(customer.id))
        self.assertEqual(entry.payload["before"]["name"], "Old")
        self.assertEqual(entry.actor, self.admin_user)

    def test_admin_delete_is_audited(self):
        customer = add_customer(name="Gone")
        response = self.client.post(f"/admin/customers/customer/{customer.id}/delete/", {"post": "yes"})
        self.assertEqual(response.status_code, 302)

        self.assertFalse(Customer.objects.exists())
        self.assertTrue(AuditLog.objects.filter(action="customer.delete", entity_id=str(customer.id)).exists())
