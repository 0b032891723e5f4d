from __future__ import annotations

from django.contrib import admin, messages
from django.http import HttpResponseRedirect
from django.urls import reverse
from django.utils.html import format_html

from . import moderation
from .models import (
    AppSettings,
    Coupon,
    CouponClaim,
    LedgerEntry,
    Task,
    TaskCompletion,
    UserProfile,
    WithdrawalRequest,
    WithdrawalStatus,
)


admin.site.site_header = "CoinEarn Administration"
admin.site.site_title = "CoinEarn Admin"
admin.site.index_title = "Welcome to CoinEarn Administration"


def _is_admin(request) -> bool:
    return bool(request.user.is_active and request.user.is_staff)


# ======================
# Profiles
# ======================
class LedgerEntryInline(admin.TabularInline):
    model = LedgerEntry
    extra = 0
    can_delete = False
    fields = ("created_at", "kind", "amount", "balance_after", "memo", "external_ref")
    readonly_fields = fields
    ordering = ("-created_at",)

    def has_add_permission(self, request, obj=None):
        return False


@admin.action(description="Block selected users")
def block_users(modeladmin, request, queryset):
    for p in queryset:
        moderation.set_blocked(p.pk, True, is_admin=_is_admin(request))
    messages.warning(request, f"Blocked {queryset.count()} user(s).")


@admin.action(description="Unblock selected users")
def unblock_users(modeladmin, request, queryset):
    for p in queryset:
        moderation.set_blocked(p.pk, False, is_admin=_is_admin(request))
    messages.success(request, f"Unblocked {queryset.count()} user(s).")


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ("client_id", "coins", "referral_code", "referred_by", "total_referrals",
                    "is_blocked", "joined_at")
    list_filter = ("is_blocked", "joined_at")
    search_fields = ("client_id", "referral_code", "referred_by")
    actions = [block_users, unblock_users]
    inlines = [LedgerEntryInline]
    # balance and attribution only move through the ledger services
    readonly_fields = ("client_id", "coins", "referral_code", "referred_by", "total_referrals",
                       "last_daily_bonus", "joined_at", "last_seen_at")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(LedgerEntry)
class LedgerEntryAdmin(admin.ModelAdmin):
    list_display = ("created_at", "user", "kind", "amount", "balance_after", "memo")
    list_filter = ("kind", "created_at")
    search_fields = ("user__client_id", "memo", "external_ref")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ======================
# Tasks
# ======================
@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ("title", "category", "reward", "is_active", "completions_count", "updated_at")
    list_filter = ("category", "is_active")
    search_fields = ("title", "description", "link")
    actions = ["activate_tasks", "deactivate_tasks"]

    def completions_count(self, obj):
        return obj.completions.count()
    completions_count.short_description = "Completions"

    @admin.action(description="Activate selected tasks")
    def activate_tasks(self, request, queryset):
        queryset.update(is_active=True)

    @admin.action(description="Deactivate selected tasks")
    def deactivate_tasks(self, request, queryset):
        queryset.update(is_active=False)


@admin.register(TaskCompletion)
class TaskCompletionAdmin(admin.ModelAdmin):
    list_display = ("user", "task", "reward", "completed_at")
    search_fields = ("user__client_id", "task__title")
    list_filter = ("completed_at",)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ======================
# Coupons
# ======================
@admin.register(Coupon)
class CouponAdmin(admin.ModelAdmin):
    list_display = ("code", "reward", "used_count", "usage_limit", "expiry_date", "created_at")
    search_fields = ("code",)
    list_filter = ("expiry_date",)
    readonly_fields = ("used_count",)

    def save_model(self, request, obj, form, change):
        if not obj.code:
            obj.code = Coupon.generate_code()
        obj.code = Coupon.normalize_code(obj.code)
        super().save_model(request, obj, form, change)


@admin.register(CouponClaim)
class CouponClaimAdmin(admin.ModelAdmin):
    list_display = ("user", "coupon", "reward", "claimed_at")
    search_fields = ("user__client_id", "coupon__code")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ======================
# Withdrawals
# ======================
def _decide_selected(request, queryset, approve: bool):
    done = skipped = 0
    for w in queryset:
        outcome = moderation.decide_withdrawal(
            w.pk, approve, is_admin=_is_admin(request), decided_by=request.user.get_username(),
        )
        if outcome.ok:
            done += 1
        else:
            skipped += 1
    verb = "Approved" if approve else "Rejected"
    if done:
        messages.success(request, f"{verb} {done} withdrawal(s).")
    if skipped:
        messages.info(request, f"Skipped {skipped} non-pending withdrawal(s).")


@admin.action(description="Approve selected withdrawals (keep debit)")
def approve_withdrawals(modeladmin, request, queryset):
    _decide_selected(request, queryset, approve=True)


@admin.action(description="Reject selected withdrawals (refund coins)")
def reject_withdrawals(modeladmin, request, queryset):
    _decide_selected(request, queryset, approve=False)


@admin.register(WithdrawalRequest)
class WithdrawalRequestAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "amount", "status_badge", "wallet_address", "created_at",
                    "decided_at", "decided_by")
    list_filter = ("status", "created_at")
    search_fields = ("id", "user__client_id", "wallet_address")
    actions = [approve_withdrawals, reject_withdrawals]
    readonly_fields = ("user", "amount", "wallet_address", "status", "created_at", "decided_at", "decided_by")

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    def status_badge(self, obj):
        colors = {
            WithdrawalStatus.PENDING: "#f59e0b",
            WithdrawalStatus.APPROVED: "#10b981",
            WithdrawalStatus.REJECTED: "#ef4444",
        }
        c = colors.get(obj.status, "#6b7280")
        return format_html(
            '<span style="padding:2px 8px;border-radius:9999px;background:{}20;color:{};font-weight:600;">{}</span>',
            c, c, obj.get_status_display()
        )
    status_badge.short_description = "Status"


# ======================
# App Settings (singleton)
# ======================
class AppSettingsAdmin(admin.ModelAdmin):
    fieldsets = (
        ("Rewards", {
            "fields": ("daily_bonus_amount", "referral_bonus_amount"),
        }),
        ("Withdrawals", {
            "fields": ("min_withdrawal", "is_withdrawal_enabled"),
        }),
        ("Ads", {
            "fields": ("ad_codes",),
        }),
        ("Timestamps", {
            "fields": ("updated_at",),
            "classes": ("collapse",),
        }),
    )
    readonly_fields = ("updated_at",)

    def has_add_permission(self, request):
        return not AppSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False

    def changelist_view(self, request, extra_context=None):
        obj = AppSettings.load()
        url = reverse(f"admin:{AppSettings._meta.app_label}_{AppSettings._meta.model_name}_change", args=[obj.pk])
        return HttpResponseRedirect(url)

admin.site.register(AppSettings, AppSettingsAdmin)
