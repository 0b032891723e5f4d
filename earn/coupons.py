# coupons.py
from __future__ import annotations

import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from . import ledger
from .models import Coupon, CouponClaim, LedgerKind
from .results import Outcome, Reason

log = logging.getLogger(__name__)


def _ext_coupon(coupon: Coupon) -> str:
    return f"COUPON:{coupon.pk}"


@transaction.atomic
def redeem(user_id, raw_code: str) -> Outcome:
    """
    Apply a coupon code for a user.

    Checks run in this order against locked rows of both the profile and the
    coupon: unknown code, usage limit reached, expired, already claimed by
    this user. On success the coupon's use count, the user's claim set and the
    balance move together.
    """
    code = Coupon.normalize_code(raw_code)

    profile = ledger.lock_profile(user_id)
    if profile is None:
        return Outcome.rejected(Reason.NOT_FOUND, "User not found.")
    if profile.is_blocked:
        return Outcome.rejected(Reason.BLOCKED)

    coupon = Coupon.objects.select_for_update().filter(code=code).first() if code else None
    if coupon is None:
        return Outcome.rejected(Reason.NOT_FOUND, "Incorrect or expired coupon.")
    if coupon.is_exhausted:
        return Outcome.rejected(Reason.COUPON_EXHAUSTED, obj=coupon)

    now = timezone.now()
    if coupon.is_expired(now):
        return Outcome.rejected(Reason.COUPON_EXPIRED, obj=coupon)
    if CouponClaim.objects.filter(user=profile, coupon=coupon).exists():
        return Outcome.rejected(Reason.COUPON_ALREADY_CLAIMED, obj=coupon)

    try:
        with transaction.atomic():
            Coupon.objects.filter(pk=coupon.pk).update(used_count=F("used_count") + 1)
            CouponClaim.objects.create(user=profile, coupon=coupon, reward=coupon.reward, claimed_at=now)
            paid = ledger.credit(
                profile,
                coupon.reward,
                kind=LedgerKind.COUPON,
                memo=f"Coupon {coupon.code}",
                external_ref=_ext_coupon(coupon),
            )
            if not paid:
                raise ledger.AlreadyBooked()
    except ledger.AlreadyBooked:
        log.warning("Coupon %s already credited to %s; claim rolled back", coupon.code, profile.client_id)
        return Outcome.rejected(Reason.ALREADY_CREDITED, obj=coupon)

    coupon.refresh_from_db(fields=["used_count"])

    log.info("Coupon %s redeemed by %s (%s/%s)", coupon.code, profile.client_id,
             coupon.used_count, coupon.usage_limit)
    return Outcome.accepted(f"Success! {coupon.reward} coins added.", amount=coupon.reward, obj=coupon)
