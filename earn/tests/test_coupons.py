from datetime import timedelta

from django.core.exceptions import ValidationError
from django.test import TestCase

from earn import coupons
from earn.models import Coupon, CouponClaim
from earn.results import Reason
from earn.tests.utils import make_coupon, make_profile


class RedeemTests(TestCase):
    def setUp(self):
        self.profile = make_profile()

    def test_redeem_credits_and_counts_use(self):
        coupon = make_coupon("WELCOME100", reward=100, usage_limit=10)

        outcome = coupons.redeem(self.profile.pk, "  welcome100 ")

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.amount, 100)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 100)
        self.assertEqual(self.profile.coupons_claimed, {coupon.pk})
        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 1)

    def test_same_user_cannot_claim_twice(self):
        make_coupon("WELCOME100", reward=100)
        coupons.redeem(self.profile.pk, "WELCOME100")

        outcome = coupons.redeem(self.profile.pk, "WELCOME100")

        self.assertEqual(outcome.reason, Reason.COUPON_ALREADY_CLAIMED)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 100)

    def test_usage_limit_is_enforced(self):
        coupon = make_coupon("ONCE", reward=30, usage_limit=1)
        other = make_profile("198.51.100.7")
        coupons.redeem(self.profile.pk, "ONCE")

        outcome = coupons.redeem(other.pk, "ONCE")

        self.assertEqual(outcome.reason, Reason.COUPON_EXHAUSTED)
        coupon.refresh_from_db()
        self.assertEqual(coupon.used_count, 1)
        other.refresh_from_db()
        self.assertEqual(other.coins, 0)

    def test_expired_coupon(self):
        make_coupon("OLD", expires_in=timedelta(days=-1))
        outcome = coupons.redeem(self.profile.pk, "OLD")
        self.assertEqual(outcome.reason, Reason.COUPON_EXPIRED)
        self.assertFalse(CouponClaim.objects.exists())

    def test_exhausted_is_reported_before_expired(self):
        make_coupon("DONE", usage_limit=1, used_count=1, expires_in=timedelta(days=-1))
        self.assertEqual(coupons.redeem(self.profile.pk, "DONE").reason, Reason.COUPON_EXHAUSTED)

    def test_unknown_code(self):
        outcome = coupons.redeem(self.profile.pk, "NOPE")
        self.assertEqual(outcome.reason, Reason.NOT_FOUND)
        self.assertEqual(outcome.message, "Incorrect or expired coupon.")

    def test_blocked_user(self):
        make_coupon("WELCOME100")
        self.profile.is_blocked = True
        self.profile.save()
        self.assertEqual(coupons.redeem(self.profile.pk, "WELCOME100").reason, Reason.BLOCKED)

    def test_codes_are_stored_uppercase(self):
        coupon = make_coupon(" mixed ")
        self.assertEqual(coupon.code, "MIXED")
        self.assertTrue(Coupon.objects.filter(code="MIXED").exists())

    def test_reclaim_after_claim_row_removed_is_rolled_back(self):
        coupon = make_coupon("AGAIN", reward=50, usage_limit=10)
        coupons.redeem(self.profile.pk, "AGAIN")
        CouponClaim.objects.filter(user=self.profile, coupon=coupon).delete()

        outcome = coupons.redeem(self.profile.pk, "AGAIN")

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.reason, Reason.ALREADY_CREDITED)
        self.profile.refresh_from_db()
        coupon.refresh_from_db()
        self.assertEqual(self.profile.coins, 50)
        self.assertEqual(coupon.used_count, 1)
        self.assertFalse(CouponClaim.objects.exists())


class CouponValidationTests(TestCase):
    def test_usage_limit_cannot_drop_below_uses(self):
        coupon = make_coupon("BUSY", usage_limit=5, used_count=3)
        coupon.usage_limit = 2

        with self.assertRaises(ValidationError) as ctx:
            coupon.full_clean()

        self.assertIn("usage_limit", ctx.exception.message_dict)
