from datetime import timedelta

from django.utils import timezone

from earn import ledger, registry
from earn.models import AppSettings, Coupon, LedgerKind, Task


def make_profile(client_id="203.0.113.10", coins=0, **kwargs):
    profile, _ = registry.resolve(client_id, **kwargs)
    if coins:
        ledger.credit(profile, coins, kind=LedgerKind.ADJUST, memo="test funding")
        profile.refresh_from_db()
    return profile


def make_task(title="Follow on Twitter", reward=50, **kwargs):
    kwargs.setdefault("link", "https://twitter.com")
    return Task.objects.create(title=title, reward=reward, **kwargs)


def make_coupon(code="WELCOME100", reward=100, usage_limit=10, expires_in=timedelta(days=7), **kwargs):
    return Coupon.objects.create(
        code=code,
        reward=reward,
        usage_limit=usage_limit,
        expiry_date=timezone.now() + expires_in,
        **kwargs,
    )


def enable_withdrawals(min_withdrawal=1000):
    s = AppSettings.load()
    s.is_withdrawal_enabled = True
    s.min_withdrawal = min_withdrawal
    s.save()
    return s
