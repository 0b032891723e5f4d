from datetime import timedelta
from unittest.mock import patch

from django.test import TestCase
from django.utils import timezone

from earn import task as task_flow
from earn.models import TaskCompletion, TaskVerification
from earn.results import Reason
from earn.tests.utils import make_profile, make_task


class TaskFlowTests(TestCase):
    def setUp(self):
        self.profile = make_profile()
        self.task = make_task(reward=50)
        self.t0 = timezone.now()

    def _at(self, seconds):
        return patch("django.utils.timezone.now", return_value=self.t0 + timedelta(seconds=seconds))

    def test_start_opens_verification_window(self):
        with self._at(0):
            outcome = task_flow.start(self.profile.pk, self.task.pk)

        self.assertTrue(outcome.ok)
        pending = TaskVerification.objects.get(user=self.profile)
        self.assertEqual(pending.task_id, self.task.pk)
        self.assertEqual(pending.ready_at, self.t0 + timedelta(seconds=20))

    def test_finalize_before_timer_pays_nothing(self):
        with self._at(0):
            task_flow.start(self.profile.pk, self.task.pk)
        with self._at(5):
            outcome = task_flow.finalize(self.profile.pk)

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.reason, Reason.TIMER_RUNNING)
        self.assertEqual(outcome.obj.seconds_left(self.t0 + timedelta(seconds=5)), 15)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 0)
        self.assertTrue(TaskVerification.objects.filter(user=self.profile).exists())

    def test_finalize_after_timer_credits_once(self):
        with self._at(0):
            task_flow.start(self.profile.pk, self.task.pk)
        with self._at(21):
            outcome = task_flow.finalize(self.profile.pk)

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.amount, 50)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 50)
        self.assertEqual(self.profile.tasks_completed, {self.task.pk})
        self.assertFalse(TaskVerification.objects.filter(user=self.profile).exists())

        again = task_flow.start(self.profile.pk, self.task.pk)
        self.assertEqual(again.reason, Reason.TASK_ALREADY_COMPLETED)
        self.assertEqual(TaskCompletion.objects.count(), 1)

    def test_finalize_without_pending_task(self):
        outcome = task_flow.finalize(self.profile.pk)
        self.assertEqual(outcome.reason, Reason.NO_PENDING_TASK)

    def test_restarting_same_task_resumes_timer(self):
        with self._at(0):
            task_flow.start(self.profile.pk, self.task.pk)
        with self._at(10):
            outcome = task_flow.start(self.profile.pk, self.task.pk)

        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.obj.ready_at, self.t0 + timedelta(seconds=20))

    def test_second_task_is_refused_while_one_is_in_flight(self):
        other = make_task("Join Telegram", reward=75, link="https://t.me")
        task_flow.start(self.profile.pk, self.task.pk)

        outcome = task_flow.start(self.profile.pk, other.pk)

        self.assertEqual(outcome.reason, Reason.TASK_IN_FLIGHT)
        self.assertEqual(TaskVerification.objects.get(user=self.profile).task_id, self.task.pk)

    def test_abandon_pending_switches_task_unpaid(self):
        other = make_task("Join Telegram", reward=75, link="https://t.me")
        with self._at(0):
            task_flow.start(self.profile.pk, self.task.pk)
        with self._at(30):
            outcome = task_flow.start(self.profile.pk, other.pk, abandon_pending=True)

        self.assertTrue(outcome.ok)
        self.assertEqual(TaskVerification.objects.get(user=self.profile).task_id, other.pk)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 0)
        self.assertFalse(TaskCompletion.objects.exists())

    def test_inactive_and_unknown_tasks(self):
        hidden = make_task("Hidden", is_active=False)
        self.assertEqual(task_flow.start(self.profile.pk, hidden.pk).reason, Reason.TASK_INACTIVE)
        self.assertEqual(task_flow.start(self.profile.pk, 424242).reason, Reason.NOT_FOUND)

    def test_task_deactivated_during_countdown(self):
        with self._at(0):
            task_flow.start(self.profile.pk, self.task.pk)
        self.task.is_active = False
        self.task.save()
        with self._at(25):
            outcome = task_flow.finalize(self.profile.pk)

        self.assertEqual(outcome.reason, Reason.TASK_INACTIVE)
        self.assertFalse(TaskVerification.objects.exists())

    def test_blocked_user_cannot_start(self):
        self.profile.is_blocked = True
        self.profile.save()
        self.assertEqual(task_flow.start(self.profile.pk, self.task.pk).reason, Reason.BLOCKED)

    def test_cancel_keeps_task_retryable(self):
        task_flow.start(self.profile.pk, self.task.pk)
        self.assertTrue(task_flow.cancel(self.profile.pk).ok)
        self.assertFalse(task_flow.cancel(self.profile.pk).ok)
        self.assertTrue(task_flow.start(self.profile.pk, self.task.pk).ok)

    def test_available_tasks_flags_completed(self):
        other = make_task("Join Telegram", reward=75, link="https://t.me")
        TaskCompletion.objects.create(user=self.profile, task=self.task, reward=50)
        make_task("Hidden", is_active=False)

        tasks = task_flow.available_tasks(self.profile)

        self.assertEqual([t.pk for t in tasks], [self.task.pk, other.pk])
        self.assertEqual([t.done for t in tasks], [True, False])

    def test_repeat_reward_after_completion_row_removed_is_rolled_back(self):
        with self._at(0):
            task_flow.start(self.profile.pk, self.task.pk)
        with self._at(21):
            task_flow.finalize(self.profile.pk)
        TaskCompletion.objects.filter(user=self.profile).delete()

        with self._at(30):
            task_flow.start(self.profile.pk, self.task.pk)
        with self._at(60):
            outcome = task_flow.finalize(self.profile.pk)

        self.assertFalse(outcome.ok)
        self.assertEqual(outcome.reason, Reason.ALREADY_CREDITED)
        self.profile.refresh_from_db()
        self.assertEqual(self.profile.coins, 50)
        self.assertFalse(TaskCompletion.objects.exists())
        self.assertFalse(TaskVerification.objects.exists())
