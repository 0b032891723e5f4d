# models.py
from __future__ import annotations

import math
from typing import Optional

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Q
from django.utils import timezone
from django.utils.crypto import get_random_string


REFERRAL_PREFIX = "REF-"
CODE_CHARS = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def default_ad_codes() -> dict:
    return {"main": [], "tasks": [], "games": [], "daily": []}


# =======================
# Profiles
# =======================

class UserProfile(models.Model):
    """
    One visiting client. `client_id` is whatever the identity resolver returns
    (an IP, a session token...); the ledger only relies on it being stable.
    """
    client_id = models.CharField(max_length=128, unique=True, db_index=True)

    # Authoritative balance. Only earn.ledger writes it.
    coins = models.BigIntegerField(default=0)

    referral_code = models.CharField(max_length=32, unique=True, db_index=True)
    referred_by = models.CharField(max_length=32, blank=True, null=True)
    total_referrals = models.PositiveIntegerField(default=0)

    is_blocked = models.BooleanField(default=False)
    last_daily_bonus = models.DateTimeField(blank=True, null=True)

    joined_at = models.DateTimeField(default=timezone.now)
    last_seen_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ("-joined_at",)
        constraints = [
            models.CheckConstraint(condition=Q(coins__gte=0), name="earn_profile_coins_non_negative"),
        ]

    def __str__(self):
        status = " [BLOCKED]" if self.is_blocked else ""
        return f"{self.client_id} ({self.coins} coins){status}"

    @staticmethod
    def generate_referral_code(length: int = 7) -> str:
        return REFERRAL_PREFIX + get_random_string(length, allowed_chars=CODE_CHARS)

    @classmethod
    def new_referral_code(cls) -> str:
        code = cls.generate_referral_code()
        while cls.objects.filter(referral_code=code).exists():
            code = cls.generate_referral_code()
        return code

    @property
    def tasks_completed(self) -> set:
        return set(self.completions.values_list("task_id", flat=True))

    @property
    def coupons_claimed(self) -> set:
        return set(self.coupon_claims.values_list("coupon_id", flat=True))


class WelcomedClient(models.Model):
    """Clients that already dismissed the onboarding prompt."""
    client_id = models.CharField(max_length=128, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return self.client_id


# =======================
# Ledger rows
# =======================

class LedgerKind(models.TextChoices):
    INITIAL = "INITIAL", "Initial grant"
    TASK = "TASK", "Task reward"
    COUPON = "COUPON", "Coupon"
    DAILY_BONUS = "DAILY_BONUS", "Daily bonus"
    GAME = "GAME", "Game reward"
    REFERRAL = "REFERRAL", "Referral bonus"
    WITHDRAW = "WITHDRAW", "Withdrawal"
    REFUND = "REFUND", "Withdrawal refund"
    ADJUST = "ADJUST", "Adjustment"


class LedgerEntry(models.Model):
    """
    Audit row for a balance movement.
    Positive amount = credit, negative = debit.
    """
    user = models.ForeignKey(UserProfile, on_delete=models.CASCADE, related_name="ledger_entries")
    amount = models.BigIntegerField()
    kind = models.CharField(max_length=20, choices=LedgerKind.choices, default=LedgerKind.ADJUST)
    memo = models.CharField(max_length=255, blank=True)

    # Idempotency key, unique per user when non-blank.
    external_ref = models.CharField(max_length=96, blank=True, default="", db_index=True)

    balance_after = models.BigIntegerField(default=0)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        ordering = ("-created_at", "-id")
        verbose_name_plural = "ledger entries"
        indexes = [
            models.Index(fields=["user", "-created_at"], name="earn_ledger_user_created_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "external_ref"],
                name="earn_uniq_user_external_ref",
                condition=~Q(external_ref=""),
            )
        ]

    def __str__(self):
        sign = "+" if self.amount >= 0 else "-"
        return f"{self.user.client_id} {self.kind} {sign}{abs(self.amount)}"


# =======================
# Tasks
# =======================

class TaskCategory(models.TextChoices):
    YOUTUBE = "YouTube", "YouTube"
    TELEGRAM = "Telegram", "Telegram"
    TWITTER = "Twitter", "Twitter"
    WEBSITE = "Website", "Website"
    OTHER = "Other", "Other"


class Task(models.Model):
    title = models.CharField(max_length=140)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=20, choices=TaskCategory.choices, default=TaskCategory.OTHER)
    reward = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    link = models.URLField(max_length=500)
    is_active = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("id",)

    def __str__(self):
        return f"{self.title} (+{self.reward})"


class TaskCompletion(models.Model):
    user = models.ForeignKey(UserProfile, on_delete=models.CASCADE, related_name="completions")
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="completions")
    reward = models.PositiveIntegerField(default=0)
    completed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "task"], name="earn_uniq_task_completion"),
        ]

    def __str__(self):
        return f"{self.user.client_id} completed task #{self.task_id}"


class TaskVerification(models.Model):
    """
    The single in-flight task of a user: the external link was opened and the
    countdown runs until `ready_at`. Deleted on finalize or abandon.
    """
    user = models.OneToOneField(UserProfile, on_delete=models.CASCADE, related_name="pending_task")
    task = models.ForeignKey(Task, on_delete=models.CASCADE, related_name="verifications")
    started_at = models.DateTimeField(default=timezone.now)
    ready_at = models.DateTimeField()

    def __str__(self):
        return f"{self.user.client_id} verifying task #{self.task_id}"

    def seconds_left(self, now=None) -> int:
        now = now or timezone.now()
        left = (self.ready_at - now).total_seconds()
        return max(0, math.ceil(left))

    def is_ready(self, now=None) -> bool:
        now = now or timezone.now()
        return now >= self.ready_at


# =======================
# Coupons
# =======================

class Coupon(models.Model):
    code = models.CharField(max_length=64, unique=True, db_index=True)
    reward = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    usage_limit = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    used_count = models.PositiveIntegerField(default=0)
    expiry_date = models.DateTimeField()

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        constraints = [
            models.CheckConstraint(
                condition=Q(used_count__lte=F("usage_limit")),
                name="earn_coupon_used_within_limit",
            ),
        ]

    def __str__(self):
        return f"{self.code} ({self.used_count}/{self.usage_limit})"

    @staticmethod
    def normalize_code(raw: Optional[str]) -> str:
        return (raw or "").strip().upper()

    @staticmethod
    def generate_code(length: int = 8) -> str:
        return get_random_string(length, allowed_chars=CODE_CHARS)

    @property
    def is_exhausted(self) -> bool:
        return self.used_count >= self.usage_limit

    def is_expired(self, now=None) -> bool:
        now = now or timezone.now()
        return self.expiry_date < now

    def clean(self):
        super().clean()
        if self.usage_limit is not None and self.usage_limit < (self.used_count or 0):
            raise ValidationError({
                "usage_limit": f"Usage limit cannot be lower than the {self.used_count} uses already made.",
            })

    def save(self, *args, **kwargs):
        self.code = self.normalize_code(self.code)
        super().save(*args, **kwargs)


class CouponClaim(models.Model):
    user = models.ForeignKey(UserProfile, on_delete=models.CASCADE, related_name="coupon_claims")
    coupon = models.ForeignKey(Coupon, on_delete=models.CASCADE, related_name="claims")
    reward = models.PositiveIntegerField(default=0)
    claimed_at = models.DateTimeField(default=timezone.now)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["user", "coupon"], name="earn_uniq_coupon_claim"),
        ]

    def __str__(self):
        return f"{self.user.client_id} claimed {self.coupon.code}"


# =======================
# Withdrawals
# =======================

class WithdrawalStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    APPROVED = "approved", "Approved"
    REJECTED = "rejected", "Rejected"


class WithdrawalRequest(models.Model):
    user = models.ForeignKey(UserProfile, on_delete=models.CASCADE, related_name="withdrawals")
    amount = models.PositiveBigIntegerField(validators=[MinValueValidator(1)])
    wallet_address = models.CharField(max_length=128)
    status = models.CharField(
        max_length=20,
        choices=WithdrawalStatus.choices,
        default=WithdrawalStatus.PENDING,
        db_index=True,
    )
    created_at = models.DateTimeField(default=timezone.now)
    decided_at = models.DateTimeField(blank=True, null=True)
    decided_by = models.CharField(max_length=150, blank=True)

    class Meta:
        ordering = ("-created_at", "-id")

    def __str__(self):
        return f"#{self.pk} {self.user.client_id} {self.amount} ({self.status})"

    @property
    def is_pending(self) -> bool:
        return self.status == WithdrawalStatus.PENDING


# =======================
# Settings (single row)
# =======================

class _SingletonModel(models.Model):
    class Meta:
        abstract = True

    def save(self, *args, **kwargs):
        # always a single row at pk=1
        self.pk = 1
        super().save(*args, **kwargs)

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(pk=1)
        return obj


class AppSettings(_SingletonModel):
    """Global knobs read by every ledger component. Last write wins."""
    daily_bonus_amount = models.PositiveIntegerField(default=20)
    referral_bonus_amount = models.PositiveIntegerField(default=100)
    min_withdrawal = models.PositiveIntegerField(default=1000)
    is_withdrawal_enabled = models.BooleanField(default=False)

    # placement name -> list of opaque content blocks
    ad_codes = models.JSONField(default=default_ad_codes, blank=True)

    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "App Settings"
        verbose_name_plural = "App Settings"

    def __str__(self):
        return "Global App Settings"

    @classmethod
    def current(cls) -> "AppSettings":
        return cls.load()

    def to_dict(self) -> dict:
        return {
            "daily_bonus_amount": self.daily_bonus_amount,
            "referral_bonus_amount": self.referral_bonus_amount,
            "min_withdrawal": self.min_withdrawal,
            "is_withdrawal_enabled": self.is_withdrawal_enabled,
            "ad_codes": self.ad_codes or default_ad_codes(),
        }

