from django.core.cache import cache
from django.core.management.base import BaseCommand
from django.utils import timezone

from core.services import assessments, referrals
from core.services.realtime import broadcast


class Command(BaseCommand):
    help = "Warm the statistics caches and broadcast a WebSocket refresh event."

    def handle(self, *args, **options):
        now = timezone.now()
        keys_refreshed = []
        for module in (referrals, assessments):
            cache.delete(module.STATS_CACHE_KEY)
            module.statistics()
            keys_refreshed.append(module.STATS_CACHE_KEY)

        broadcast("caches.refreshed", keys=keys_refreshed)
        self.stdout.write(self.style.SUCCESS(f"Refreshed {len(keys_refreshed)} keys at {now}"))
