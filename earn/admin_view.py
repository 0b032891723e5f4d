# admin_view.py
"""
Back office JSON endpoints. Access requires a staff login; the resulting
`is_admin` capability is what the moderation layer consumes.
"""
from __future__ import annotations

from django.contrib.auth.decorators import login_required, user_passes_test
from django.core.exceptions import ValidationError
from django.core.paginator import Paginator
from django.db.models import Q
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_POST

from . import moderation
from .forms import AppSettingsForm, CouponForm, TaskForm
from .models import AppSettings, Coupon, Task, UserProfile, WithdrawalRequest, WithdrawalStatus
from .views import _payload, _respond

# ---------------------------------------------------------------------
# Helpers / Guards
# ---------------------------------------------------------------------

def staff_or_manager(user):
    """Allow is_staff OR members of 'managers' group."""
    return user.is_active and (user.is_staff or user.groups.filter(name="managers").exists())


def _is_admin(request) -> bool:
    return staff_or_manager(request.user)


def _paginate(qs, request, per_page=25, page_param="page"):
    page = request.GET.get(page_param) or 1
    return Paginator(qs, per_page).get_page(page)


def _page_json(page_obj, rows) -> dict:
    return {
        "results": rows,
        "page": page_obj.number,
        "pages": page_obj.paginator.num_pages,
        "count": page_obj.paginator.count,
    }


def _errors(errors) -> JsonResponse:
    return JsonResponse({"ok": False, "reason": "invalid", "errors": errors}, status=400)


def _user_json(p: UserProfile) -> dict:
    return {
        "id": p.pk,
        "client_id": p.client_id,
        "coins": p.coins,
        "referral_code": p.referral_code,
        "referred_by": p.referred_by,
        "total_referrals": p.total_referrals,
        "is_blocked": p.is_blocked,
        "joined_at": p.joined_at.isoformat(),
    }


def _task_json(t: Task) -> dict:
    return {
        "id": t.pk, "title": t.title, "description": t.description, "category": t.category,
        "reward": t.reward, "link": t.link, "is_active": t.is_active,
    }


def _coupon_json(c: Coupon) -> dict:
    return {
        "id": c.pk, "code": c.code, "reward": c.reward, "usage_limit": c.usage_limit,
        "used_count": c.used_count, "expiry_date": c.expiry_date.isoformat(),
    }


def _withdrawal_json(w: WithdrawalRequest) -> dict:
    return {
        "id": w.pk,
        "user_id": w.user_id,
        "client_id": w.user.client_id,
        "amount": w.amount,
        "wallet_address": w.wallet_address,
        "status": w.status,
        "created_at": w.created_at.isoformat(),
        "decided_at": w.decided_at.isoformat() if w.decided_at else None,
        "decided_by": w.decided_by,
    }


# ---------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------

@login_required
@user_passes_test(staff_or_manager)
def bo_dashboard(request):
    return JsonResponse(moderation.dashboard_stats(is_admin=_is_admin(request)))


# ---------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------

@login_required
@user_passes_test(staff_or_manager)
def bo_users(request):
    q = (request.GET.get("q") or "").strip()
    qs = UserProfile.objects.order_by("-joined_at")
    if q:
        qs = qs.filter(Q(client_id__icontains=q) | Q(referral_code__icontains=q))
    page_obj = _paginate(qs, request)
    return JsonResponse(_page_json(page_obj, [_user_json(p) for p in page_obj]))


@login_required
@user_passes_test(staff_or_manager)
@require_POST
def bo_user_toggle_block(request, user_id: int):
    outcome = moderation.toggle_block(user_id, is_admin=_is_admin(request))
    extra = {"user": _user_json(outcome.obj)} if outcome.ok else {}
    return _respond(outcome, **extra)


# ---------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------

@login_required
@user_passes_test(staff_or_manager)
def bo_settings(request):
    current = AppSettings.current()
    if request.method != "POST":
        return JsonResponse(current.to_dict())

    form = AppSettingsForm({**current.to_dict(), **_payload(request)}, instance=current)
    if not form.is_valid():
        return _errors(form.errors)
    s = moderation.update_settings(is_admin=_is_admin(request), **form.cleaned_data)
    return JsonResponse({"ok": True, "settings": s.to_dict()})


# ---------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------

@login_required
@user_passes_test(staff_or_manager)
def bo_tasks(request):
    if request.method != "POST":
        return JsonResponse({"results": [_task_json(t) for t in Task.objects.all()]})

    form = TaskForm(_payload(request))
    if not form.is_valid():
        return _errors(form.errors)
    t = moderation.save_task(is_admin=_is_admin(request), **form.cleaned_data)
    return JsonResponse({"ok": True, "task": _task_json(t)}, status=201)


@login_required
@user_passes_test(staff_or_manager)
@require_POST
def bo_task_edit(request, task_id: int):
    t = get_object_or_404(Task, pk=task_id)
    form = TaskForm({**_task_json(t), **_payload(request)}, instance=t)
    if not form.is_valid():
        return _errors(form.errors)
    try:
        t = moderation.save_task(is_admin=_is_admin(request), task_id=t.pk, **form.cleaned_data)
    except ValidationError as e:
        return _errors(e.message_dict)
    return JsonResponse({"ok": True, "task": _task_json(t)})


@login_required
@user_passes_test(staff_or_manager)
@require_POST
def bo_task_delete(request, task_id: int):
    return _respond(moderation.delete_task(task_id, is_admin=_is_admin(request)))


# ---------------------------------------------------------------------
# Coupons
# ---------------------------------------------------------------------

@login_required
@user_passes_test(staff_or_manager)
def bo_coupons(request):
    if request.method != "POST":
        return JsonResponse({"results": [_coupon_json(c) for c in Coupon.objects.all()]})

    form = CouponForm(_payload(request))
    if not form.is_valid():
        return _errors(form.errors)
    c = moderation.create_coupon(is_admin=_is_admin(request), **form.cleaned_data)
    return JsonResponse({"ok": True, "coupon": _coupon_json(c)}, status=201)


@login_required
@user_passes_test(staff_or_manager)
@require_POST
def bo_coupon_delete(request, coupon_id: int):
    return _respond(moderation.delete_coupon(coupon_id, is_admin=_is_admin(request)))


# ---------------------------------------------------------------------
# Withdrawals
# ---------------------------------------------------------------------

@login_required
@user_passes_test(staff_or_manager)
def bo_withdrawals(request):
    status = (request.GET.get("status") or "pending").lower()  # pending|approved|rejected|all
    qs = WithdrawalRequest.objects.select_related("user").order_by("-created_at")
    if status in WithdrawalStatus.values:
        qs = qs.filter(status=status)
    page_obj = _paginate(qs, request)
    return JsonResponse(_page_json(page_obj, [_withdrawal_json(w) for w in page_obj]))


def _decide(request, pk: int, approve: bool):
    outcome = moderation.decide_withdrawal(
        pk, approve, is_admin=_is_admin(request), decided_by=request.user.get_username(),
    )
    extra = {"withdrawal": _withdrawal_json(outcome.obj)} if outcome.obj is not None else {}
    return _respond(outcome, **extra)


@login_required
@user_passes_test(staff_or_manager)
@require_POST
def bo_withdrawal_approve(request, pk: int):
    return _decide(request, pk, approve=True)


@login_required
@user_passes_test(staff_or_manager)
@require_POST
def bo_withdrawal_reject(request, pk: int):
    return _decide(request, pk, approve=False)
