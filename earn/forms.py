# forms.py
from __future__ import annotations

from django import forms

from .models import AppSettings, Coupon, Task
from .withdrawals import MAX_ADDRESS_LENGTH


# --- User side ---

class CouponRedeemForm(forms.Form):
    code = forms.CharField(max_length=64)

    def clean_code(self):
        return Coupon.normalize_code(self.cleaned_data["code"])


class GameResultForm(forms.Form):
    score = forms.IntegerField(min_value=0)
    time_elapsed = forms.IntegerField(min_value=0)


class WithdrawalForm(forms.Form):
    amount = forms.IntegerField(min_value=1)
    wallet_address = forms.CharField(max_length=MAX_ADDRESS_LENGTH)

    def clean_wallet_address(self):
        addr = (self.cleaned_data.get("wallet_address") or "").strip()
        if not addr:
            raise forms.ValidationError("Please enter a wallet address.")
        return addr


# --- Back office ---

class AppSettingsForm(forms.ModelForm):
    class Meta:
        model = AppSettings
        fields = ["daily_bonus_amount", "referral_bonus_amount", "min_withdrawal",
                  "is_withdrawal_enabled", "ad_codes"]

    def clean_ad_codes(self):
        codes = self.cleaned_data.get("ad_codes") or {}
        if not isinstance(codes, dict):
            raise forms.ValidationError("Ad codes must be a mapping of placement to content blocks.")
        for placement, blocks in codes.items():
            if not isinstance(blocks, list):
                raise forms.ValidationError(f"Placement {placement!r} must hold a list of blocks.")
        return codes


class TaskForm(forms.ModelForm):
    class Meta:
        model = Task
        fields = ["title", "description", "category", "reward", "link", "is_active"]


class CouponForm(forms.Form):
    code = forms.CharField(max_length=64, required=False, help_text="Leave blank to generate one.")
    reward = forms.IntegerField(min_value=1)
    usage_limit = forms.IntegerField(min_value=1, initial=1)
    expiry_date = forms.DateField()

    def clean_code(self):
        code = Coupon.normalize_code(self.cleaned_data.get("code"))
        if code and Coupon.objects.filter(code=code).exists():
            raise forms.ValidationError("A coupon with this code already exists.")
        return code
