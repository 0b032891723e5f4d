from django.core.management.base import BaseCommand
from django.db.models import BigIntegerField, OuterRef, Subquery, Sum, Value
from django.db.models.functions import Coalesce

from earn.models import LedgerEntry, UserProfile


class Command(BaseCommand):
    help = "Report profiles whose balance differs from the sum of their ledger entries (read-only)."

    def add_arguments(self, parser):
        parser.add_argument("--limit", type=int, default=50, help="Max rows to print")

    def handle(self, *args, **options):
        booked = (
            LedgerEntry.objects.filter(user=OuterRef("pk"))
            .order_by()
            .values("user")
            .annotate(total=Sum("amount"))
            .values("total")
        )
        qs = UserProfile.objects.annotate(booked=Coalesce(Subquery(booked), Value(0), output_field=BigIntegerField()))

        mismatched = [p for p in qs.iterator() if p.booked != p.coins]
        for p in mismatched[: options["limit"]]:
            self.stdout.write(f"{p.client_id}: coins={p.coins} ledger={p.booked} diff={p.coins - p.booked}")

        if mismatched:
            self.stdout.write(self.style.WARNING(f"{len(mismatched)} profile(s) out of balance."))
        else:
            self.stdout.write(self.style.SUCCESS("All balances match the ledger."))
