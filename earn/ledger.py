# ledger.py
"""
The only code that changes `UserProfile.coins`.

Callers run inside `transaction.atomic()` and hold the profile row lock
(`lock_profile`) for the whole read-validate-mutate sequence, which serialises
ledger mutations per user. The balance itself is always moved with an `F()`
update so a stale in-memory profile can never overwrite a newer value.
"""
from __future__ import annotations

import logging
from typing import Optional

from django.db import transaction
from django.db.models import F, Sum

from .models import LedgerEntry, LedgerKind, UserProfile

log = logging.getLogger(__name__)


class AlreadyBooked(Exception):
    """Raised by callers to roll back when `credit` refused a booked reference."""
    pass


def lock_profile(user_id) -> Optional[UserProfile]:
    """Fetch and row-lock a profile. Must be called inside an atomic block."""
    return UserProfile.objects.select_for_update().filter(pk=user_id).first()


def _already_booked(profile: UserProfile, external_ref: str) -> bool:
    return bool(external_ref) and LedgerEntry.objects.filter(user=profile, external_ref=external_ref).exists()


def credit(profile: UserProfile, amount: int, *, kind: str = LedgerKind.ADJUST, memo: str = "",
           external_ref: str = "") -> bool:
    """
    Increase the balance by `amount`.
      - Negative amounts are refused (returns False, nothing written).
      - If `external_ref` was already booked for this user, do nothing (False).
      - Zero is accepted as a no-op.
    """
    amount = int(amount or 0)
    if amount < 0:
        log.warning("Refused negative credit of %s for profile %s", amount, profile.pk)
        return False
    if amount == 0:
        return True

    with transaction.atomic():
        if _already_booked(profile, external_ref):
            return False

        UserProfile.objects.filter(pk=profile.pk).update(coins=F("coins") + amount)
        profile.refresh_from_db(fields=["coins"])

        LedgerEntry.objects.create(
            user=profile,
            amount=amount,
            kind=kind,
            memo=memo[:255],
            external_ref=external_ref or "",
            balance_after=profile.coins,
        )

    log.info("Credited %s coins to %s (%s) -> %s", amount, profile.client_id, kind, profile.coins)
    return True


def debit(profile: UserProfile, amount: int, *, kind: str = LedgerKind.ADJUST, memo: str = "",
          external_ref: str = "") -> bool:
    """
    Decrease the balance by `amount`. Fails without mutating when the balance
    is too small, the amount is negative, or `external_ref` was already booked.
    """
    amount = int(amount or 0)
    if amount < 0:
        log.warning("Refused negative debit of %s for profile %s", amount, profile.pk)
        return False
    if amount == 0:
        return True

    with transaction.atomic():
        if _already_booked(profile, external_ref):
            return False

        # Conditional update keeps coins >= 0 even without the row lock.
        updated = (
            UserProfile.objects
            .filter(pk=profile.pk, coins__gte=amount)
            .update(coins=F("coins") - amount)
        )
        if not updated:
            profile.refresh_from_db(fields=["coins"])
            log.debug("Insufficient balance for %s: wants %s, has %s", profile.client_id, amount, profile.coins)
            return False

        profile.refresh_from_db(fields=["coins"])
        LedgerEntry.objects.create(
            user=profile,
            amount=-amount,
            kind=kind,
            memo=memo[:255],
            external_ref=external_ref or "",
            balance_after=profile.coins,
        )

    log.info("Debited %s coins from %s (%s) -> %s", amount, profile.client_id, kind, profile.coins)
    return True


def balance_from_entries(profile: UserProfile) -> int:
    """Sum of all ledger rows; equals `coins` when the books are consistent."""
    return LedgerEntry.objects.filter(user=profile).aggregate(total=Sum("amount"))["total"] or 0
