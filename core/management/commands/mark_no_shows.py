from django.core.management.base import BaseCommand

from core.services.appointments import mark_no_shows


class Command(BaseCommand):
    help = "Mark past, unattended appointments as no-shows."

    def handle(self, *args, **options):
        count = mark_no_shows()
        self.stdout.write(self.style.SUCCESS(f"Marked {count} appointment(s) as no-show"))
