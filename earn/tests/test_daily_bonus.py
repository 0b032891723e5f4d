from datetime import datetime, timedelta, timezone as dt_timezone
from unittest.mock import patch

from django.test import TestCase

from earn import daily_bonus
from earn.models import AppSettings, LedgerEntry, LedgerKind
from earn.results import Reason
from earn.tests.utils import make_profile


class DailyBonusTests(TestCase):
    def setUp(self):
        self.profile = make_profile()
        self.t0 = datetime(2026, 3, 1, 23, 59, tzinfo=dt_timezone.utc)

    def _at(self, when):
        return patch("django.utils.timezone.now", return_value=when)

    def test_fresh_profile_can_claim(self):
        state = daily_bonus.compute_state(self.profile, self.t0)
        self.assertTrue(state.can_claim)
        self.assertEqual(state.amount, 20)
        self.assertIsNone(state.next_claim_at)

    def test_claim_credits_configured_amount(self):
        with self._at(self.t0):
            outcome = daily_bonus.claim(self.profile.pk)

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.amount, 20)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 20)
        self.assertEqual(self.profile.last_daily_bonus, self.t0)
        self.assertTrue(LedgerEntry.objects.filter(user=self.profile, kind=LedgerKind.DAILY_BONUS).exists())

    def test_second_claim_within_window_is_refused(self):
        with self._at(self.t0):
            daily_bonus.claim(self.profile.pk)
        with self._at(self.t0 + timedelta(hours=23, minutes=59)):
            outcome = daily_bonus.claim(self.profile.pk)

        self.assertEqual(outcome.reason, Reason.BONUS_ON_COOLDOWN)
        self.assertEqual(outcome.obj.next_claim_at, self.t0 + timedelta(hours=24))
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 20)

    def test_window_is_rolling_not_calendar(self):
        with self._at(self.t0):
            daily_bonus.claim(self.profile.pk)
        # two minutes later it is already the next calendar day
        with self._at(self.t0 + timedelta(minutes=2)):
            outcome = daily_bonus.claim(self.profile.pk)
        self.assertFalse(outcome.ok)

    def test_claim_allowed_after_window(self):
        with self._at(self.t0):
            daily_bonus.claim(self.profile.pk)
        with self._at(self.t0 + timedelta(hours=24)):
            outcome = daily_bonus.claim(self.profile.pk)

        self.assertTrue(outcome.ok)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 40)

    def test_amount_follows_settings(self):
        s = AppSettings.load()
        s.daily_bonus_amount = 35
        s.save()
        with self._at(self.t0):
            outcome = daily_bonus.claim(self.profile.pk)
        self.assertEqual(outcome.amount, 35)

    def test_blocked_user(self):
        self.profile.is_blocked = True
        self.profile.save()
        self.assertEqual(daily_bonus.claim(self.profile.pk).reason, Reason.BLOCKED)
