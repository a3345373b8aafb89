from django.core.cache import cache
from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from hms.models import Hospital
from hms.services import analytics
from hms.services.realtime import notify_hospital


class Command(BaseCommand):
    help = "Warm the patient analytics cache per hospital; broadcast a WebSocket refresh event."

    def add_arguments(self, parser):
        parser.add_argument("--range", dest="time_range", default="1year", choices=sorted(analytics.TIME_RANGE_DAYS))

    def handle(self, *args, **options):
        now = timezone.now()
        keys_refreshed = []
        for hospital in Hospital.objects.filter(status="active"):
            data = analytics.patient_analytics(hospital, time_range=options["time_range"], now=now)
            ck = analytics.cache_key(hospital.id, None, options["time_range"])
            cache.set(ck, {"ok": True, "data": data}, settings.ANALYTICS_CACHE_TTL)
            keys_refreshed.append(ck)
            notify_hospital(hospital.id, "analytics")

        self.stdout.write(self.style.SUCCESS(f"Refreshed {len(keys_refreshed)} keys at {now}"))
