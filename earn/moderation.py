# moderation.py
"""
Privileged operations. Callers pass the `is_admin` capability they obtained
elsewhere (staff login); nothing here checks credentials.
"""
from __future__ import annotations

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from django.core.exceptions import PermissionDenied, ValidationError
from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from . import withdrawals
from .models import (
    AppSettings,
    Coupon,
    LedgerEntry,
    LedgerKind,
    Task,
    UserProfile,
    WithdrawalRequest,
    WithdrawalStatus,
)
from .results import Outcome, Reason

log = logging.getLogger(__name__)

SETTINGS_FIELDS = ("daily_bonus_amount", "referral_bonus_amount", "min_withdrawal",
                   "is_withdrawal_enabled", "ad_codes")
TASK_FIELDS = ("title", "description", "category", "reward", "link", "is_active")

EARNING_KINDS = (
    LedgerKind.INITIAL, LedgerKind.TASK, LedgerKind.COUPON, LedgerKind.DAILY_BONUS,
    LedgerKind.GAME, LedgerKind.REFERRAL,
)


def require_admin(is_admin: bool) -> None:
    if not is_admin:
        raise PermissionDenied("Administrator capability required.")


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------

@transaction.atomic
def set_blocked(user_id, blocked: Optional[bool] = None, *, is_admin: bool) -> Outcome:
    """Set (or toggle, when `blocked` is None) a user's blocked flag."""
    require_admin(is_admin)
    profile = UserProfile.objects.select_for_update().filter(pk=user_id).first()
    if profile is None:
        return Outcome.rejected(Reason.NOT_FOUND, "User not found.")

    profile.is_blocked = (not profile.is_blocked) if blocked is None else bool(blocked)
    profile.save(update_fields=["is_blocked"])
    log.info("Profile %s %s", profile.client_id, "blocked" if profile.is_blocked else "unblocked")
    return Outcome.accepted("Blocked." if profile.is_blocked else "Unblocked.", obj=profile)


def toggle_block(user_id, *, is_admin: bool) -> Outcome:
    return set_blocked(user_id, None, is_admin=is_admin)


# ---------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------

@transaction.atomic
def update_settings(*, is_admin: bool, **changes) -> AppSettings:
    """
    Apply a partial update to the global settings. Unknown keys are refused;
    values are validated by the model (ValidationError on bad input).
    """
    require_admin(is_admin)
    unknown = set(changes) - set(SETTINGS_FIELDS)
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    s = AppSettings.load()
    for field, value in changes.items():
        setattr(s, field, value)
    if not isinstance(s.ad_codes, dict):
        raise ValidationError({"ad_codes": "Must be a mapping of placement to content blocks."})
    s.full_clean()
    s.save()
    log.info("Settings updated: %s", ", ".join(sorted(changes)) or "(nothing)")
    return s


# ---------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------

def save_task(*, is_admin: bool, task_id=None, **fields) -> Task:
    require_admin(is_admin)
    unknown = set(fields) - set(TASK_FIELDS)
    if unknown:
        raise ValueError(f"Unknown task fields: {', '.join(sorted(unknown))}")

    task = Task.objects.get(pk=task_id) if task_id is not None else Task()
    for field, value in fields.items():
        setattr(task, field, value)
    task.full_clean()
    task.save()
    return task


def delete_task(task_id, *, is_admin: bool) -> Outcome:
    require_admin(is_admin)
    deleted, _ = Task.objects.filter(pk=task_id).delete()
    if not deleted:
        return Outcome.rejected(Reason.NOT_FOUND, "Task not found.")
    return Outcome.accepted("Task deleted.")


# ---------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------

def coerce_expiry(value) -> datetime:
    """A bare date expires at the end of that day (current timezone)."""
    if isinstance(value, datetime):
        return value if timezone.is_aware(value) else timezone.make_aware(value)
    if isinstance(value, date):
        return timezone.make_aware(datetime.combine(value, time.max))
    raise ValueError("expiry_date must be a date or datetime")


def create_coupon(*, is_admin: bool, reward: int, usage_limit: int, expiry_date, code: str = "") -> Coupon:
    require_admin(is_admin)
    code = Coupon.normalize_code(code)
    if not code:
        code = Coupon.generate_code()
        while Coupon.objects.filter(code=code).exists():
            code = Coupon.generate_code()

    coupon = Coupon(code=code, reward=reward, usage_limit=usage_limit, expiry_date=coerce_expiry(expiry_date))
    coupon.full_clean()
    coupon.save()
    log.info("Coupon %s created (%s coins x %s)", coupon.code, coupon.reward, coupon.usage_limit)
    return coupon


def delete_coupon(coupon_id, *, is_admin: bool) -> Outcome:
    require_admin(is_admin)
    deleted, _ = Coupon.objects.filter(pk=coupon_id).delete()
    if not deleted:
        return Outcome.rejected(Reason.NOT_FOUND, "Coupon not found.")
    return Outcome.accepted("Coupon deleted.")


# ---------------------------------------------------------------------
# Withdrawals
# ---------------------------------------------------------------------

def decide_withdrawal(request_id, approve: bool, *, is_admin: bool, decided_by: str = "") -> Outcome:
    return withdrawals.decide(request_id, approve, is_admin=is_admin, decided_by=decided_by)


# ---------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------

def dashboard_stats(*, is_admin: bool, days: int = 7) -> dict:
    require_admin(is_admin)
    issued = (
        LedgerEntry.objects.filter(kind__in=EARNING_KINDS)
        .aggregate(total=Sum("amount"))["total"] or 0
    )
    withdrawn = (
        WithdrawalRequest.objects.filter(status=WithdrawalStatus.APPROVED)
        .aggregate(total=Sum("amount"))["total"] or 0
    )

    # users with any ledger movement per day, oldest first
    today = timezone.localdate()
    active = []
    for offset in range(days - 1, -1, -1):
        day = today - timedelta(days=offset)
        active.append({
            "date": day.isoformat(),
            "users": LedgerEntry.objects.filter(created_at__date=day).order_by().values("user").distinct().count(),
        })

    return {
        "total_users": UserProfile.objects.count(),
        "blocked_users": UserProfile.objects.filter(is_blocked=True).count(),
        "total_coins_held": UserProfile.objects.aggregate(total=Sum("coins"))["total"] or 0,
        "total_coins_issued": issued,
        "total_coins_withdrawn": withdrawn,
        "pending_withdrawals": WithdrawalRequest.objects.filter(status=WithdrawalStatus.PENDING).count(),
        "daily_active_users": active,
    }
