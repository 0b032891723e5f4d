# withdrawals.py
from __future__ import annotations

import logging

from django.core.exceptions import PermissionDenied
from django.db import transaction
from django.utils import timezone

from . import ledger
from .models import AppSettings, LedgerKind, WithdrawalRequest, WithdrawalStatus
from .results import Outcome, Reason

log = logging.getLogger(__name__)

MAX_ADDRESS_LENGTH = 128


class _Insufficient(Exception):
    pass


def _ext_hold(wr: WithdrawalRequest) -> str:
    return f"wd:{wr.pk}"


def _ext_refund(wr: WithdrawalRequest) -> str:
    return f"wd-refund:{wr.pk}"


def history(user_id, limit: int = 5):
    return list(WithdrawalRequest.objects.filter(user_id=user_id).order_by("-created_at", "-id")[:limit])


@transaction.atomic
def request_withdrawal(user_id, amount, wallet_address: str) -> Outcome:
    """
    Create a pending withdrawal and debit the balance right away: the coins
    are held from this moment, not merely reserved.
    """
    try:
        amount = int(amount)
    except (TypeError, ValueError):
        return Outcome.rejected(Reason.INVALID_AMOUNT)
    if amount <= 0:
        return Outcome.rejected(Reason.INVALID_AMOUNT)

    wallet_address = (wallet_address or "").strip()
    if not wallet_address or len(wallet_address) > MAX_ADDRESS_LENGTH:
        return Outcome.rejected(Reason.INVALID_ADDRESS)

    profile = ledger.lock_profile(user_id)
    if profile is None:
        return Outcome.rejected(Reason.NOT_FOUND, "User not found.")
    if profile.is_blocked:
        return Outcome.rejected(Reason.BLOCKED)

    s = AppSettings.current()
    if not s.is_withdrawal_enabled:
        return Outcome.rejected(Reason.WITHDRAWALS_DISABLED)
    if amount < s.min_withdrawal:
        return Outcome.rejected(Reason.BELOW_MINIMUM, f"Minimum withdrawal is {s.min_withdrawal} coins.")

    try:
        with transaction.atomic():
            wr = WithdrawalRequest.objects.create(
                user=profile,
                amount=amount,
                wallet_address=wallet_address,
                status=WithdrawalStatus.PENDING,
            )
            ok = ledger.debit(
                profile,
                amount,
                kind=LedgerKind.WITHDRAW,
                memo=f"Withdrawal #{wr.pk}",
                external_ref=_ext_hold(wr),
            )
            if not ok:
                raise _Insufficient()
    except _Insufficient:
        return Outcome.rejected(Reason.INSUFFICIENT_BALANCE)

    log.info("Withdrawal #%s requested by %s: %s coins", wr.pk, profile.client_id, amount)
    return Outcome.accepted("Withdrawal request submitted!", amount=amount, obj=wr)


@transaction.atomic
def decide(request_id, approve: bool, *, is_admin: bool, decided_by: str = "") -> Outcome:
    """
    Administrator decision on a pending request.
      - approve: the earlier debit stays (paid out off-platform).
      - reject:  the amount is credited back to the requester.
    Non-pending requests are never touched again.
    """
    if not is_admin:
        raise PermissionDenied("Administrator capability required.")

    wr = WithdrawalRequest.objects.select_for_update().filter(pk=request_id).first()
    if wr is None:
        log.warning("Decision on missing withdrawal #%s", request_id)
        return Outcome.rejected(Reason.NOT_FOUND, "Withdrawal not found.")
    if wr.status != WithdrawalStatus.PENDING:
        return Outcome.rejected(Reason.NOT_PENDING, obj=wr)

    profile = ledger.lock_profile(wr.user_id)

    if approve:
        wr.status = WithdrawalStatus.APPROVED
        amount = 0
    else:
        ledger.credit(
            profile,
            wr.amount,
            kind=LedgerKind.REFUND,
            memo=f"Withdrawal #{wr.pk} rejected",
            external_ref=_ext_refund(wr),
        )
        wr.status = WithdrawalStatus.REJECTED
        amount = wr.amount

    wr.decided_at = timezone.now()
    wr.decided_by = (decided_by or "")[:150]
    wr.save(update_fields=["status", "decided_at", "decided_by"])

    log.info("Withdrawal #%s %s by %s", wr.pk, wr.status, wr.decided_by or "admin")
    return Outcome.accepted(f"Withdrawal #{wr.pk} {wr.status}.", amount=amount, obj=wr)
