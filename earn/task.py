# task.py
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from . import ledger
from .models import LedgerKind, Task, TaskCompletion, TaskVerification
from .results import Outcome, Reason

log = logging.getLogger(__name__)


def verify_seconds() -> int:
    return int(getattr(settings, "EARN_TASK_VERIFY_SECONDS", 20))


def _ext_task(task_id) -> str:
    return f"TASK:{task_id}"


def pending_for(user_id) -> Optional[TaskVerification]:
    return TaskVerification.objects.select_related("task").filter(user_id=user_id).first()


def available_tasks(profile):
    """Active tasks with a `done` flag for this profile."""
    done = profile.tasks_completed
    tasks = list(Task.objects.filter(is_active=True))
    for t in tasks:
        t.done = t.pk in done
    return tasks


# =========================
# Core actions
# =========================

@transaction.atomic
def start(user_id, task_id, *, abandon_pending: bool = False) -> Outcome:
    """
    not-started -> pending-verification.

    Only one task may be in flight per user. Starting the task that is already
    in flight resumes it; starting a different one is refused unless
    `abandon_pending` is set, in which case the old one is discarded unpaid.
    """
    profile = ledger.lock_profile(user_id)
    if profile is None:
        return Outcome.rejected(Reason.NOT_FOUND, "User not found.")
    if profile.is_blocked:
        return Outcome.rejected(Reason.BLOCKED)

    task = Task.objects.filter(pk=task_id).first()
    if task is None:
        return Outcome.rejected(Reason.NOT_FOUND, "Task not found.")
    if not task.is_active:
        return Outcome.rejected(Reason.TASK_INACTIVE)
    if TaskCompletion.objects.filter(user=profile, task=task).exists():
        return Outcome.rejected(Reason.TASK_ALREADY_COMPLETED)

    pending = TaskVerification.objects.select_for_update().filter(user=profile).first()
    if pending is not None:
        if pending.task_id == task.pk:
            return Outcome.accepted("Task already in progress.", obj=pending)
        if not abandon_pending:
            return Outcome.rejected(Reason.TASK_IN_FLIGHT, obj=pending)
        log.info("%s abandoned task #%s for #%s", profile.client_id, pending.task_id, task.pk)
        pending.delete()

    now = timezone.now()
    secs = verify_seconds()
    verification = TaskVerification.objects.create(
        user=profile,
        task=task,
        started_at=now,
        ready_at=now + timedelta(seconds=secs),
    )
    return Outcome.accepted(f"Complete the task, then claim your reward in {secs}s.", obj=verification)


@transaction.atomic
def finalize(user_id) -> Outcome:
    """
    pending-verification -> completed, once the countdown has elapsed.
    Credits the task reward exactly once.
    """
    profile = ledger.lock_profile(user_id)
    if profile is None:
        return Outcome.rejected(Reason.NOT_FOUND, "User not found.")
    if profile.is_blocked:
        return Outcome.rejected(Reason.BLOCKED)

    pending = (
        TaskVerification.objects.select_for_update()
        .select_related("task")
        .filter(user=profile)
        .first()
    )
    if pending is None:
        return Outcome.rejected(Reason.NO_PENDING_TASK)

    now = timezone.now()
    if not pending.is_ready(now):
        left = pending.seconds_left(now)
        return Outcome.rejected(Reason.TIMER_RUNNING, f"Please wait {left}s before claiming.", obj=pending)

    task = pending.task
    if not task.is_active:
        pending.delete()
        return Outcome.rejected(Reason.TASK_INACTIVE)
    if TaskCompletion.objects.filter(user=profile, task=task).exists():
        pending.delete()
        return Outcome.rejected(Reason.TASK_ALREADY_COMPLETED)

    try:
        with transaction.atomic():
            completion = TaskCompletion.objects.create(user=profile, task=task, reward=task.reward, completed_at=now)
            paid = ledger.credit(
                profile,
                task.reward,
                kind=LedgerKind.TASK,
                memo=f"Task: {task.title}",
                external_ref=_ext_task(task.pk),
            )
            if not paid:
                raise ledger.AlreadyBooked()
    except ledger.AlreadyBooked:
        pending.delete()
        log.warning("Task #%s already credited to %s; completion rolled back", task.pk, profile.client_id)
        return Outcome.rejected(Reason.ALREADY_CREDITED)

    pending.delete()
    return Outcome.accepted(f"Success! {task.reward} coins added.", amount=task.reward, obj=completion)


@transaction.atomic
def cancel(user_id) -> Outcome:
    """Discard the in-flight task without reward; it stays retryable."""
    pending = TaskVerification.objects.select_for_update().filter(user_id=user_id).first()
    if pending is None:
        return Outcome.rejected(Reason.NO_PENDING_TASK)
    task_id = pending.task_id
    pending.delete()
    log.debug("Profile %s cancelled task #%s", user_id, task_id)
    return Outcome.accepted("Task cancelled.")
