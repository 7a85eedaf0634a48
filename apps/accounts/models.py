from django.contrib.auth.models import AbstractUser
from django.db import models


class UserRole(models.TextChoices):
    ADMIN = "ADMIN", "Admin"
    CASHIER = "CASHIER", "Cashier"


class User(AbstractUser):
    role = models.CharField(max_length=20, choices=UserRole.choices, default=UserRole.CASHIER)

    def resolve_role(self):
        # Group membership wins over the stored role so admins can promote from the admin site.
        group_names = set(self.groups.values_list("name", flat=True))
        for role in (UserRole.ADMIN, UserRole.CASHIER):
            if role in group_names:
                return role
        return self.role
