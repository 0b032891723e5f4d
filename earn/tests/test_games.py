from django.test import TestCase

from earn import games
from earn.models import LedgerEntry, LedgerKind
from earn.results import Reason
from earn.tests.utils import make_profile


class RewardFormulaTests(TestCase):
    def test_memory_reward_grows_with_time(self):
        self.assertEqual(games.reward_for("memory", 8, 0), 20)
        self.assertEqual(games.reward_for("memory", 8, 95), 29)

    def test_memory_reward_is_capped(self):
        self.assertEqual(games.reward_for("memory", 8, 5000), 100)

    def test_clicker_reward(self):
        self.assertEqual(games.reward_for("clicker", 30, 10), 30)
        self.assertEqual(games.reward_for("clicker", 200, 10), 50)

    def test_unknown_game(self):
        self.assertIsNone(games.reward_for("chess", 1, 1))


class SettleTests(TestCase):
    def setUp(self):
        self.profile = make_profile()

    def test_settle_credits_reward(self):
        outcome = games.settle(self.profile.pk, "clicker", 42, 10)

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.amount, 42)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 42)
        self.assertTrue(LedgerEntry.objects.filter(user=self.profile, kind=LedgerKind.GAME).exists())

    def test_every_session_pays(self):
        games.settle(self.profile.pk, "memory", 8, 0)
        games.settle(self.profile.pk, "memory", 8, 0)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 40)

    def test_unknown_game_is_not_found(self):
        self.assertEqual(games.settle(self.profile.pk, "chess", 1, 1).reason, Reason.NOT_FOUND)

    def test_negative_score_is_invalid(self):
        outcome = games.settle(self.profile.pk, "clicker", -1, 10)
        self.assertEqual(outcome.reason, Reason.INVALID_SCORE)
        self.assertTrue(outcome.is_validation_error)

    def test_blocked_user(self):
        self.profile.is_blocked = True
        self.profile.save()
        self.assertEqual(games.settle(self.profile.pk, "clicker", 5, 5).reason, Reason.BLOCKED)
