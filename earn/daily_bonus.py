# daily_bonus.py
"""
Daily bonus on a rolling window: a claim is allowed once
EARN_DAILY_BONUS_INTERVAL_HOURS (24 by default) have passed since the last
one. Calendar-day comparison is not used.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from . import ledger
from .models import AppSettings, LedgerKind, UserProfile
from .results import Outcome, Reason

log = logging.getLogger(__name__)


def interval() -> timedelta:
    return timedelta(hours=int(getattr(settings, "EARN_DAILY_BONUS_INTERVAL_HOURS", 24)))


def _ext_bonus(user_id, when: datetime) -> str:
    return f"DAILY:U{user_id}:{when.isoformat()}"


# =======================
# Public state
# =======================
@dataclass
class BonusState:
    can_claim: bool
    reason: str
    amount: int
    last_claim_at: Optional[datetime]
    next_claim_at: Optional[datetime]   # None when claimable now

    def as_dict(self) -> dict:
        return {
            "can_claim": self.can_claim,
            "reason": self.reason,
            "amount": self.amount,
            "last_claim_at": self.last_claim_at.isoformat() if self.last_claim_at else None,
            "next_claim_at": self.next_claim_at.isoformat() if self.next_claim_at else None,
        }


def compute_state(profile: UserProfile, now: Optional[datetime] = None) -> BonusState:
    now = now or timezone.now()
    amount = AppSettings.current().daily_bonus_amount
    last = profile.last_daily_bonus

    if last is not None:
        next_at = last + interval()
        if now < next_at:
            return BonusState(
                can_claim=False,
                reason=Reason.BONUS_ON_COOLDOWN.label,
                amount=amount,
                last_claim_at=last,
                next_claim_at=next_at,
            )

    return BonusState(can_claim=True, reason="", amount=amount, last_claim_at=last, next_claim_at=None)


# =======================
# Claim action
# =======================
@transaction.atomic
def claim(user_id) -> Outcome:
    profile = ledger.lock_profile(user_id)
    if profile is None:
        return Outcome.rejected(Reason.NOT_FOUND, "User not found.")
    if profile.is_blocked:
        return Outcome.rejected(Reason.BLOCKED)

    now = timezone.now()
    state = compute_state(profile, now)
    if not state.can_claim:
        return Outcome.rejected(Reason.BONUS_ON_COOLDOWN, obj=state)

    ledger.credit(
        profile,
        state.amount,
        kind=LedgerKind.DAILY_BONUS,
        memo="Daily bonus",
        external_ref=_ext_bonus(profile.pk, now),
    )
    UserProfile.objects.filter(pk=profile.pk).update(last_daily_bonus=now)
    profile.last_daily_bonus = now

    return Outcome.accepted(
        f"Daily bonus of {state.amount} coins claimed!",
        amount=state.amount,
        obj=compute_state(profile, now),
    )
