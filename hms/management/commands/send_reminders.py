import json
import logging

from django.core.management.base import BaseCommand

from hms.services.reminders import send_appointment_reminders

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Send WhatsApp reminders for appointments starting in about 24 hours."

    def add_arguments(self, parser):
        parser.add_argument("--manual", action="store_true", help="Record the run as manually triggered.")

    def handle(self, *args, **options):
        triggered_by = "manual" if options["manual"] else "cron"
        result = send_appointment_reminders(triggered_by=triggered_by)
        summary = result["summary"]
        logger.info("reminder run (%s): %s", triggered_by, summary)
        self.stdout.write(json.dumps(summary))
        style = self.style.WARNING if summary["totalErrors"] else self.style.SUCCESS
        self.stdout.write(style(result["message"]))
