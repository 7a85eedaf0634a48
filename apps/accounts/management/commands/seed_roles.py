from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.core.management.base import BaseCommand

from apps.accounts.models import UserRole


class Command(BaseCommand):
    help = "Create the role groups and place every user in the group matching its role."

    def handle(self, *args, **options):
        groups = {}
        for role in UserRole.values:
            group, created = Group.objects.get_or_create(name=role)
            groups[role] = group
            self.stdout.write(self.style.SUCCESS(f"{group.name}: {'created' if created else 'exists'}"))

        synced = 0
        for user in get_user_model().objects.all():
            group = groups.get(user.role)
            if group is None:
                continue
            user.groups.add(group)
            synced += 1
        self.stdout.write(self.style.SUCCESS(f"Users synced: {synced}"))
