from datetime import date, timedelta

from django.core.exceptions import PermissionDenied, ValidationError
from django.test import TestCase
from django.utils import timezone

from earn import moderation, withdrawals
from earn.models import AppSettings, Coupon, Task, UserProfile
from earn.results import Reason
from earn.tests.utils import enable_withdrawals, make_profile, make_task


class BlockTests(TestCase):
    def setUp(self):
        self.profile = make_profile()

    def test_toggle_block(self):
        self.assertTrue(moderation.toggle_block(self.profile.pk, is_admin=True).obj.is_blocked)
        self.assertFalse(moderation.toggle_block(self.profile.pk, is_admin=True).obj.is_blocked)

    def test_set_blocked_explicitly(self):
        moderation.set_blocked(self.profile.pk, True, is_admin=True)
        moderation.set_blocked(self.profile.pk, True, is_admin=True)
        self.assertTrue(UserProfile.objects.get(pk=self.profile.pk).is_blocked)

    def test_unknown_user(self):
        self.assertEqual(moderation.toggle_block(424242, is_admin=True).reason, Reason.NOT_FOUND)

    def test_requires_admin_capability(self):
        with self.assertRaises(PermissionDenied):
            moderation.toggle_block(self.profile.pk, is_admin=False)


class SettingsTests(TestCase):
    def test_defaults(self):
        data = AppSettings.current().to_dict()
        self.assertEqual(data["daily_bonus_amount"], 20)
        self.assertEqual(data["referral_bonus_amount"], 100)
        self.assertEqual(data["min_withdrawal"], 1000)
        self.assertFalse(data["is_withdrawal_enabled"])
        self.assertEqual(set(data["ad_codes"]), {"main", "tasks", "games", "daily"})

    def test_partial_update(self):
        moderation.update_settings(is_admin=True, daily_bonus_amount=50)
        s = AppSettings.current()
        self.assertEqual(s.daily_bonus_amount, 50)
        self.assertEqual(s.referral_bonus_amount, 100)
        self.assertEqual(AppSettings.objects.count(), 1)

    def test_unknown_key_is_refused(self):
        with self.assertRaises(ValueError):
            moderation.update_settings(is_admin=True, jackpot=1)

    def test_ad_codes_must_be_mapping(self):
        with self.assertRaises(ValidationError):
            moderation.update_settings(is_admin=True, ad_codes=["<div/>"])

    def test_requires_admin_capability(self):
        with self.assertRaises(PermissionDenied):
            moderation.update_settings(is_admin=False, daily_bonus_amount=50)


class CatalogueTests(TestCase):
    def test_save_and_delete_task(self):
        task = moderation.save_task(is_admin=True, title="Watch YouTube Video", reward=100,
                                    link="https://youtube.com", category="YouTube")
        moderation.save_task(is_admin=True, task_id=task.pk, reward=120)
        self.assertEqual(Task.objects.get(pk=task.pk).reward, 120)

        self.assertTrue(moderation.delete_task(task.pk, is_admin=True).ok)
        self.assertEqual(moderation.delete_task(task.pk, is_admin=True).reason, Reason.NOT_FOUND)

    def test_task_reward_must_be_positive(self):
        with self.assertRaises(ValidationError):
            moderation.save_task(is_admin=True, title="Free", reward=0, link="https://example.com")

    def test_create_coupon_generates_code(self):
        coupon = moderation.create_coupon(is_admin=True, reward=10, usage_limit=5,
                                          expiry_date=date.today() + timedelta(days=1))
        self.assertEqual(len(coupon.code), 8)
        self.assertEqual(coupon.code, coupon.code.upper())

    def test_date_expiry_lasts_whole_day(self):
        today = timezone.localdate()
        coupon = moderation.create_coupon(is_admin=True, code="today", reward=10, usage_limit=1, expiry_date=today)

        self.assertEqual(coupon.code, "TODAY")
        self.assertFalse(coupon.is_expired())
        self.assertEqual(timezone.localtime(coupon.expiry_date).date(), today)

    def test_delete_coupon(self):
        coupon = moderation.create_coupon(is_admin=True, reward=10, usage_limit=1,
                                          expiry_date=date.today() + timedelta(days=1))
        self.assertTrue(moderation.delete_coupon(coupon.pk, is_admin=True).ok)
        self.assertFalse(Coupon.objects.exists())


class DashboardTests(TestCase):
    def test_stats(self):
        rich = make_profile("203.0.113.1", coins=1500)
        make_profile("203.0.113.2", coins=40)
        enable_withdrawals()
        wr = withdrawals.request_withdrawal(rich.pk, 1000, "0xabc").obj
        withdrawals.decide(wr.pk, True, is_admin=True)
        moderation.toggle_block(rich.pk, is_admin=True)

        stats = moderation.dashboard_stats(is_admin=True)

        self.assertEqual(stats["total_users"], 2)
        self.assertEqual(stats["blocked_users"], 1)
        self.assertEqual(stats["total_coins_held"], 540)
        self.assertEqual(stats["total_coins_withdrawn"], 1000)
        self.assertEqual(stats["pending_withdrawals"], 0)
        self.assertEqual(len(stats["daily_active_users"]), 7)
        self.assertEqual(stats["daily_active_users"][-1]["users"], 2)

    def test_requires_admin_capability(self):
        with self.assertRaises(PermissionDenied):
            moderation.dashboard_stats(is_admin=False)
