from django.core.management.base import BaseCommand
from django.utils import timezone
from users.models import User


class Command(BaseCommand):
    help = "Clear phone verification codes whose expiry has passed."

    def handle(self, *args, **options):
        now = timezone.now()
        # Code and expiry are always cleared together
        count = User.objects.filter(phone_verification_expiry__lte=now).update(
            phone_verification_code=None,
            phone_verification_expiry=None,
        )
        self.stdout.write(self.style.SUCCESS(f"Expired verification codes cleared: {count}"))
