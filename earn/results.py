# results.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from django.db import models


class Reason(models.TextChoices):
    """Rejection codes. The label is the message shown to the user."""
    # validation
    INVALID_AMOUNT = "invalid_amount", "Please enter a valid amount."
    INVALID_ADDRESS = "invalid_address", "Please enter a wallet address."
    INVALID_SCORE = "invalid_score", "Invalid game result."
    # consistency
    NOT_FOUND = "not_found", "Not found."
    # policy
    BLOCKED = "blocked", "Your account has been blocked."
    INSUFFICIENT_BALANCE = "insufficient_balance", "Insufficient balance."
    COUPON_EXHAUSTED = "coupon_exhausted", "Coupon usage limit reached."
    COUPON_EXPIRED = "coupon_expired", "Coupon has expired."
    COUPON_ALREADY_CLAIMED = "coupon_already_claimed", "You have already used this coupon."
    BONUS_ON_COOLDOWN = "bonus_on_cooldown", "Daily bonus already claimed. Come back later."
    WITHDRAWALS_DISABLED = "withdrawals_disabled", "Withdrawals are currently disabled."
    BELOW_MINIMUM = "below_minimum", "Amount is below the minimum withdrawal."
    TASK_INACTIVE = "task_inactive", "This task is not available."
    TASK_ALREADY_COMPLETED = "task_already_completed", "You have already completed this task."
    TASK_IN_FLIGHT = "task_in_flight", "Finish or cancel your current task first."
    NO_PENDING_TASK = "no_pending_task", "No task is waiting for verification."
    TIMER_RUNNING = "timer_running", "Please wait for the verification timer."
    NOT_PENDING = "not_pending", "This withdrawal is not pending."
    ALREADY_CREDITED = "already_credited", "This reward was already credited."


VALIDATION_REASONS = frozenset(
    r.value for r in (Reason.INVALID_AMOUNT, Reason.INVALID_ADDRESS, Reason.INVALID_SCORE)
)


@dataclass(frozen=True)
class Outcome:
    """
    Result of a ledger-facing operation. Rejections are ordinary values:
    they never raise and never leave a partial mutation behind.
    """
    ok: bool
    reason: str = ""
    message: str = ""
    amount: int = 0
    obj: Optional[Any] = None

    def __bool__(self) -> bool:
        return self.ok

    @classmethod
    def accepted(cls, message: str = "", *, amount: int = 0, obj: Any = None) -> "Outcome":
        return cls(ok=True, message=message, amount=int(amount or 0), obj=obj)

    @classmethod
    def rejected(cls, reason: Reason, message: str = "", *, obj: Any = None) -> "Outcome":
        return cls(ok=False, reason=reason.value, message=message or reason.label, obj=obj)

    @property
    def is_validation_error(self) -> bool:
        return not self.ok and self.reason in VALIDATION_REASONS

    @property
    def is_not_found(self) -> bool:
        return not self.ok and self.reason == Reason.NOT_FOUND

    def as_dict(self) -> dict:
        data = {"ok": self.ok, "message": self.message}
        if self.ok:
            data["amount"] = self.amount
        else:
            data["reason"] = self.reason
        return data
