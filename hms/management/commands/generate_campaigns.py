import logging

from django.core.management.base import BaseCommand, CommandError

from hms.services import awareness

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Generate awareness-day campaigns for every active hospital."

    def add_arguments(self, parser):
        parser.add_argument("--check", choices=["today", "tomorrow"], default="today")
        parser.add_argument("--draft", action="store_true", help="Leave generated campaigns unpublished.")
        parser.add_argument("--send-whatsapp", action="store_true", help="Broadcast to patients after publishing.")

    def handle(self, *args, **options):
        try:
            result = awareness.generate_campaigns(
                check=options["check"],
                publish=not options["draft"],
                send_whatsapp=options["send_whatsapp"],
                triggered_by="cron",
            )
        except awareness.GenerationError as e:
            raise CommandError(str(e)) from e
        for campaign in result["campaigns"]:
            self.stdout.write(f"{campaign['hospitalId']}: {campaign['title']} ({campaign['status']})")
        for error in result["errors"]:
            self.stdout.write(self.style.WARNING(str(error)))
        self.stdout.write(self.style.SUCCESS(result["message"]))
