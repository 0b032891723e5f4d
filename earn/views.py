# views.py
from __future__ import annotations

import json
from functools import wraps

from django.conf import settings
from django.http import JsonResponse
from django.views.decorators.cache import never_cache
from django.views.decorators.csrf import ensure_csrf_cookie
from django.views.decorators.http import require_GET, require_POST
from django_ratelimit.decorators import ratelimit

from . import coupons, daily_bonus, games, registry, task as task_flow, withdrawals
from .forms import CouponRedeemForm, GameResultForm, WithdrawalForm
from .identity import get_profile, referral_link
from .models import AppSettings
from .results import Outcome, Reason

RATE = getattr(settings, "EARN_RATELIMIT", "30/m")


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

def _payload(request) -> dict:
    """JSON body or form-encoded POST, as a plain dict."""
    if request.content_type == "application/json":
        try:
            data = json.loads(request.body or b"{}")
        except (ValueError, UnicodeDecodeError):
            return {}
        return data if isinstance(data, dict) else {}
    return request.POST.dict()


def _status_for(outcome: Outcome) -> int:
    if outcome.ok:
        return 200
    if outcome.is_validation_error:
        return 400
    if outcome.is_not_found:
        return 404
    if outcome.reason == Reason.BLOCKED:
        return 403
    return 409


def _respond(outcome: Outcome, **extra) -> JsonResponse:
    data = outcome.as_dict()
    data.update(extra)
    return JsonResponse(data, status=_status_for(outcome))


def _form_errors(form) -> JsonResponse:
    return JsonResponse(
        {"ok": False, "reason": "invalid", "message": "Please correct the errors.", "errors": form.errors},
        status=400,
    )


def with_profile(view):
    """Resolve the visiting client's profile into `request.profile`."""
    @wraps(view)
    def _wrapped(request, *args, **kwargs):
        profile = get_profile(request)
        if profile is None:
            return JsonResponse({"ok": False, "reason": "no_identity", "message": "Could not identify client."},
                                status=400)
        request.profile = profile
        return view(request, *args, **kwargs)
    return _wrapped


def _task_json(t, pending=None) -> dict:
    return {
        "id": t.pk,
        "title": t.title,
        "description": t.description,
        "category": t.category,
        "reward": t.reward,
        "link": t.link,
        "done": bool(getattr(t, "done", False)),
        "pending": bool(pending and pending.task_id == t.pk),
    }


def _pending_json(pending) -> dict | None:
    if pending is None:
        return None
    return {"task_id": pending.task_id, "seconds_left": pending.seconds_left(), "link": pending.task.link}


def _withdrawal_json(wr) -> dict:
    return {
        "id": wr.pk,
        "amount": wr.amount,
        "wallet_address": wr.wallet_address,
        "status": wr.status,
        "created_at": wr.created_at.isoformat(),
    }


# ---------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------

@never_cache
@ensure_csrf_cookie
@require_GET
@with_profile
def me(request):
    """Profile snapshot. Also sets the CSRF cookie the POST endpoints expect."""
    p = request.profile
    p.refresh_from_db()
    return JsonResponse({
        "client_id": p.client_id,
        "coins": p.coins,
        "is_blocked": p.is_blocked,
        "joined_at": p.joined_at.isoformat(),
        "tasks_completed": sorted(p.tasks_completed),
        "coupons_claimed": sorted(p.coupons_claimed),
        "referral": {**registry.referral_stats(p), "link": referral_link(request, p)},
        "daily_bonus": daily_bonus.compute_state(p).as_dict(),
        "pending_task": _pending_json(task_flow.pending_for(p.pk)),
        "welcomed": registry.is_welcomed(p.client_id),
    })


@require_POST
@with_profile
def welcome(request):
    first = registry.mark_welcomed(request.profile.client_id)
    return JsonResponse({"ok": True, "first_visit": first})


@require_GET
def app_settings(request):
    return JsonResponse(AppSettings.current().to_dict())


# ---------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------

@never_cache
@require_GET
@with_profile
def task_list(request):
    pending = task_flow.pending_for(request.profile.pk)
    tasks = task_flow.available_tasks(request.profile)
    return JsonResponse({
        "tasks": [_task_json(t, pending) for t in tasks],
        "pending_task": _pending_json(pending),
    })


@require_POST
@ratelimit(key="ip", rate=RATE, method="POST", block=True)
@with_profile
def task_start(request, task_id: int):
    data = _payload(request)
    abandon = str(data.get("abandon", "")).lower() in ("1", "true", "yes", "on")
    outcome = task_flow.start(request.profile.pk, task_id, abandon_pending=abandon)
    pending = outcome.obj if outcome.ok else None
    return _respond(outcome, pending_task=_pending_json(pending))


@require_POST
@ratelimit(key="ip", rate=RATE, method="POST", block=True)
@with_profile
def task_finalize(request):
    outcome = task_flow.finalize(request.profile.pk)
    extra = {}
    if outcome.reason == Reason.TIMER_RUNNING:
        extra["seconds_left"] = outcome.obj.seconds_left()
    return _respond(outcome, **extra)


@require_POST
@with_profile
def task_cancel(request):
    return _respond(task_flow.cancel(request.profile.pk))


# ---------------------------------------------------------------------
# Coupons / bonus / games
# ---------------------------------------------------------------------

@require_POST
@ratelimit(key="ip", rate=RATE, method="POST", block=True)
@with_profile
def coupon_redeem(request):
    form = CouponRedeemForm(_payload(request))
    if not form.is_valid():
        return _form_errors(form)
    return _respond(coupons.redeem(request.profile.pk, form.cleaned_data["code"]))


@require_POST
@ratelimit(key="ip", rate=RATE, method="POST", block=True)
@with_profile
def bonus_claim(request):
    outcome = daily_bonus.claim(request.profile.pk)
    return _respond(outcome, daily_bonus=outcome.obj.as_dict() if outcome.obj else None)


@require_GET
def game_list(request):
    return JsonResponse({"games": [g.as_dict() for g in games.GAMES.values()]})


@require_POST
@ratelimit(key="ip", rate=RATE, method="POST", block=True)
@with_profile
def game_settle(request, game_id: str):
    form = GameResultForm(_payload(request))
    if not form.is_valid():
        return _form_errors(form)
    outcome = games.settle(
        request.profile.pk,
        game_id,
        form.cleaned_data["score"],
        form.cleaned_data["time_elapsed"],
    )
    return _respond(outcome)


# ---------------------------------------------------------------------
# Withdrawals
# ---------------------------------------------------------------------

@never_cache
@with_profile
def withdrawal(request):
    if request.method == "GET":
        rows = withdrawals.history(request.profile.pk)
        return JsonResponse({"withdrawals": [_withdrawal_json(w) for w in rows]})
    if request.method != "POST":
        return JsonResponse({"ok": False, "message": "Method not allowed."}, status=405)
    return _withdrawal_submit(request)


@ratelimit(key="ip", rate=RATE, method="POST", block=True)
def _withdrawal_submit(request):
    form = WithdrawalForm(_payload(request))
    if not form.is_valid():
        return _form_errors(form)
    outcome = withdrawals.request_withdrawal(
        request.profile.pk,
        form.cleaned_data["amount"],
        form.cleaned_data["wallet_address"],
    )
    extra = {"withdrawal": _withdrawal_json(outcome.obj)} if outcome.ok else {}
    return _respond(outcome, **extra)
