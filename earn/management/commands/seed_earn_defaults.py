from django.core.management.base import BaseCommand
from django.db import transaction

from earn.models import AppSettings, Task, TaskCategory

DEFAULT_TASKS = [
    {"title": "Follow on Twitter", "description": "Follow our official handle for news.",
     "category": TaskCategory.TWITTER, "reward": 50, "link": "https://twitter.com"},
    {"title": "Join Telegram", "description": "Stay updated with our community.",
     "category": TaskCategory.TELEGRAM, "reward": 75, "link": "https://t.me"},
    {"title": "Watch YouTube Video", "description": "Learn how to maximize your earnings.",
     "category": TaskCategory.YOUTUBE, "reward": 100, "link": "https://youtube.com"},
]


class Command(BaseCommand):
    help = "Seed the settings row and the starter tasks (idempotent)."

    def add_arguments(self, parser):
        parser.add_argument("--no-tasks", action="store_true", help="Only ensure the settings row exists")

    @transaction.atomic
    def handle(self, *args, **options):
        AppSettings.load()
        created = 0
        if not options["no_tasks"]:
            for row in DEFAULT_TASKS:
                _, was_created = Task.objects.get_or_create(
                    title=row["title"],
                    defaults={k: v for k, v in row.items() if k != "title"},
                )
                created += int(was_created)
        self.stdout.write(self.style.SUCCESS(f"Settings ready. {created} task(s) created."))
