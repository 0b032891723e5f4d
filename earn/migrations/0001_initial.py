import django.core.validators
import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import earn.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="AppSettings",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("daily_bonus_amount", models.PositiveIntegerField(default=20)),
                ("referral_bonus_amount", models.PositiveIntegerField(default=100)),
                ("min_withdrawal", models.PositiveIntegerField(default=1000)),
                ("is_withdrawal_enabled", models.BooleanField(default=False)),
                ("ad_codes", models.JSONField(blank=True, default=earn.models.default_ad_codes)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "verbose_name": "App Settings",
                "verbose_name_plural": "App Settings",
            },
        ),
        migrations.CreateModel(
            name="Coupon",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("code", models.CharField(db_index=True, max_length=64, unique=True)),
                ("reward", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("usage_limit", models.PositiveIntegerField(default=1, validators=[django.core.validators.MinValueValidator(1)])),
                ("used_count", models.PositiveIntegerField(default=0)),
                ("expiry_date", models.DateTimeField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
            options={
                "ordering": ("-created_at",),
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("used_count__lte", models.F("usage_limit"))),
                        name="earn_coupon_used_within_limit",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="Task",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("title", models.CharField(max_length=140)),
                ("description", models.TextField(blank=True)),
                ("category", models.CharField(
                    choices=[("YouTube", "YouTube"), ("Telegram", "Telegram"), ("Twitter", "Twitter"),
                             ("Website", "Website"), ("Other", "Other")],
                    default="Other",
                    max_length=20,
                )),
                ("reward", models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("link", models.URLField(max_length=500)),
                ("is_active", models.BooleanField(default=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "ordering": ("id",),
            },
        ),
        migrations.CreateModel(
            name="UserProfile",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("client_id", models.CharField(db_index=True, max_length=128, unique=True)),
                ("coins", models.BigIntegerField(default=0)),
                ("referral_code", models.CharField(db_index=True, max_length=32, unique=True)),
                ("referred_by", models.CharField(blank=True, max_length=32, null=True)),
                ("total_referrals", models.PositiveIntegerField(default=0)),
                ("is_blocked", models.BooleanField(default=False)),
                ("last_daily_bonus", models.DateTimeField(blank=True, null=True)),
                ("joined_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("last_seen_at", models.DateTimeField(blank=True, null=True)),
            ],
            options={
                "ordering": ("-joined_at",),
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(("coins__gte", 0)),
                        name="earn_profile_coins_non_negative",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="WelcomedClient",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("client_id", models.CharField(max_length=128, unique=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
            ],
        ),
        migrations.CreateModel(
            name="CouponClaim",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reward", models.PositiveIntegerField(default=0)),
                ("claimed_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("coupon", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="claims", to="earn.coupon")),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="coupon_claims", to="earn.userprofile")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("user", "coupon"), name="earn_uniq_coupon_claim")
                ],
            },
        ),
        migrations.CreateModel(
            name="LedgerEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.BigIntegerField()),
                ("kind", models.CharField(
                    choices=[("INITIAL", "Initial grant"), ("TASK", "Task reward"), ("COUPON", "Coupon"),
                             ("DAILY_BONUS", "Daily bonus"), ("GAME", "Game reward"),
                             ("REFERRAL", "Referral bonus"), ("WITHDRAW", "Withdrawal"),
                             ("REFUND", "Withdrawal refund"), ("ADJUST", "Adjustment")],
                    default="ADJUST",
                    max_length=20,
                )),
                ("memo", models.CharField(blank=True, max_length=255)),
                ("external_ref", models.CharField(blank=True, db_index=True, default="", max_length=96)),
                ("balance_after", models.BigIntegerField(default=0)),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="ledger_entries", to="earn.userprofile")),
            ],
            options={
                "verbose_name_plural": "ledger entries",
                "ordering": ("-created_at", "-id"),
                "indexes": [
                    models.Index(fields=["user", "-created_at"], name="earn_ledger_user_created_idx")
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("external_ref", ""), _negated=True),
                        fields=("user", "external_ref"),
                        name="earn_uniq_user_external_ref",
                    )
                ],
            },
        ),
        migrations.CreateModel(
            name="TaskCompletion",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("reward", models.PositiveIntegerField(default=0)),
                ("completed_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("task", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="completions", to="earn.task")),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="completions", to="earn.userprofile")),
            ],
            options={
                "constraints": [
                    models.UniqueConstraint(fields=("user", "task"), name="earn_uniq_task_completion")
                ],
            },
        ),
        migrations.CreateModel(
            name="TaskVerification",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("started_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("ready_at", models.DateTimeField()),
                ("task", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="verifications", to="earn.task")),
                ("user", models.OneToOneField(
                    on_delete=django.db.models.deletion.CASCADE, related_name="pending_task", to="earn.userprofile")),
            ],
        ),
        migrations.CreateModel(
            name="WithdrawalRequest",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("amount", models.PositiveBigIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ("wallet_address", models.CharField(max_length=128)),
                ("status", models.CharField(
                    choices=[("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")],
                    db_index=True,
                    default="pending",
                    max_length=20,
                )),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("decided_at", models.DateTimeField(blank=True, null=True)),
                ("decided_by", models.CharField(blank=True, max_length=150)),
                ("user", models.ForeignKey(
                    on_delete=django.db.models.deletion.CASCADE, related_name="withdrawals", to="earn.userprofile")),
            ],
            options={
                "ordering": ("-created_at", "-id"),
            },
        ),
    ]
