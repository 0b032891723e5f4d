# registry.py
from __future__ import annotations

import logging
from typing import Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from . import ledger
from .models import AppSettings, LedgerKind, UserProfile, WelcomedClient

log = logging.getLogger(__name__)


def normalize_referral_code(raw: Optional[str]) -> str:
    return (raw or "").strip().upper()


def _ext_referral(referred: UserProfile) -> str:
    return f"REFERRAL:U{referred.pk}"


def _attribute_referral(profile: UserProfile, code: str) -> bool:
    """
    Link a brand-new profile to the owner of `code` and pay the referrer.
    Self-referral and unknown codes are ignored silently.
    """
    referrer = (
        UserProfile.objects.select_for_update()
        .filter(referral_code=code)
        .exclude(pk=profile.pk)
        .first()
    )
    if referrer is None or referrer.client_id == profile.client_id:
        log.debug("Referral code %r ignored for %s", code, profile.client_id)
        return False

    profile.referred_by = code
    profile.save(update_fields=["referred_by"])

    UserProfile.objects.filter(pk=referrer.pk).update(total_referrals=F("total_referrals") + 1)
    bonus = AppSettings.current().referral_bonus_amount
    ledger.credit(
        referrer,
        bonus,
        kind=LedgerKind.REFERRAL,
        memo=f"Referral of {profile.client_id}",
        external_ref=_ext_referral(profile),
    )
    log.info("Referral attributed: %s -> %s (+%s)", profile.client_id, referrer.client_id, bonus)
    return True


@transaction.atomic
def resolve(client_id: str, referral_code: Optional[str] = None) -> Tuple[UserProfile, bool]:
    """
    Return (profile, created) for a visiting client.

    A profile is created on first visit with the initial grant and a fresh
    referral code. `referral_code` is only honoured at creation; repeat visits
    never re-attribute or re-pay.
    """
    client_id = (client_id or "").strip()
    if not client_id:
        raise ValueError("client_id is required")

    now = timezone.now()
    existing = UserProfile.objects.filter(client_id=client_id).first()
    if existing is not None:
        UserProfile.objects.filter(pk=existing.pk).update(last_seen_at=now)
        existing.last_seen_at = now
        return existing, False

    try:
        with transaction.atomic():
            profile = UserProfile.objects.create(
                client_id=client_id,
                referral_code=UserProfile.new_referral_code(),
                joined_at=now,
                last_seen_at=now,
            )
    except IntegrityError:
        # created concurrently by another request for the same client
        return UserProfile.objects.get(client_id=client_id), False

    initial = int(getattr(settings, "EARN_INITIAL_COINS", 0) or 0)
    if initial > 0:
        ledger.credit(profile, initial, kind=LedgerKind.INITIAL, memo="Welcome grant",
                      external_ref=f"INITIAL:U{profile.pk}")

    code = normalize_referral_code(referral_code)
    if code:
        _attribute_referral(profile, code)

    log.info("New profile %s (referred_by=%s)", profile.client_id, profile.referred_by)
    return profile, True


def mark_welcomed(client_id: str) -> bool:
    """True the first time a client is seen by the onboarding prompt."""
    _, created = WelcomedClient.objects.get_or_create(client_id=client_id)
    return created


def is_welcomed(client_id: str) -> bool:
    return WelcomedClient.objects.filter(client_id=client_id).exists()


def referral_stats(profile: UserProfile) -> dict:
    bonus = AppSettings.current().referral_bonus_amount
    return {
        "referral_code": profile.referral_code,
        "total_referrals": profile.total_referrals,
        "estimated_earned": profile.total_referrals * bonus,
        "bonus_per_referral": bonus,
    }
