from django.core.management.base import BaseCommand
from django.contrib.auth.models import Group, Permission
from django.contrib.contenttypes.models import ContentType
from django.contrib.auth import get_user_model

from escrow.models import Escrow, EscrowTransaction
from disputes.permissions import MODERATORS_GROUP

User = get_user_model()

class Command(BaseCommand):
    help = "Creates the 'Moderators' group that arbitrates escrow disputes. Optionally assign a user."

    def add_arguments(self, parser):
        parser.add_argument('--email', type=str, help='Email of user to assign to Moderators group')

    def handle(self, *args, **options):
        group, created = Group.objects.get_or_create(name=MODERATORS_GROUP)

        if created:
            self.stdout.write(self.style.SUCCESS(f"Created group: {MODERATORS_GROUP}"))
        else:
            self.stdout.write(f"Group '{MODERATORS_GROUP}' already exists.")

        content_types = ContentType.objects.get_for_models(Escrow, EscrowTransaction).values()
        perms = Permission.objects.filter(
            content_type__in=content_types,
            codename__in=["view_escrow", "view_escrowtransaction"],
        )
        group.permissions.add(*perms)

        self.stdout.write(self.style.SUCCESS("Assigned escrow view permissions to Moderators group."))

        email = options['email']
        if email:
            try:
                user = User.objects.get(email=email)
                user.groups.add(group)
                self.stdout.write(self.style.SUCCESS(f"User {email} added to Moderators group."))
            except User.DoesNotExist:
                self.stdout.write(self.style.ERROR(f"User with email {email} does not exist."))
