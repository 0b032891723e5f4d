from django.urls import path
from . import views
from . import admin_view as bo

urlpatterns = [
    # profile
    path("api/me/", views.me, name="me"),
    path("api/welcome/", views.welcome, name="welcome"),
    path("api/settings/", views.app_settings, name="app_settings"),
    # tasks
    path("api/tasks/", views.task_list, name="task_list"),
    path("api/tasks/<int:task_id>/start/", views.task_start, name="task_start"),
    path("api/tasks/finalize/", views.task_finalize, name="task_finalize"),
    path("api/tasks/cancel/", views.task_cancel, name="task_cancel"),
    # coupons / bonus / games
    path("api/coupons/redeem/", views.coupon_redeem, name="coupon_redeem"),
    path("api/bonus/claim/", views.bonus_claim, name="bonus_claim"),
    path("api/games/", views.game_list, name="game_list"),
    path("api/games/<slug:game_id>/settle/", views.game_settle, name="game_settle"),
    # withdrawals
    path("api/withdrawals/", views.withdrawal, name="withdrawal"),

    # Back office
    path("bo/", bo.bo_dashboard, name="bo_dashboard"),
    path("bo/users/", bo.bo_users, name="bo_users"),
    path("bo/users/<int:user_id>/toggle-block/", bo.bo_user_toggle_block, name="bo_user_toggle_block"),
    path("bo/settings/", bo.bo_settings, name="bo_settings"),
    path("bo/tasks/", bo.bo_tasks, name="bo_tasks"),
    path("bo/tasks/<int:task_id>/", bo.bo_task_edit, name="bo_task_edit"),
    path("bo/tasks/<int:task_id>/delete/", bo.bo_task_delete, name="bo_task_delete"),
    path("bo/coupons/", bo.bo_coupons, name="bo_coupons"),
    path("bo/coupons/<int:coupon_id>/delete/", bo.bo_coupon_delete, name="bo_coupon_delete"),
    path("bo/withdrawals/", bo.bo_withdrawals, name="bo_withdrawals"),
    path("bo/withdrawals/<int:pk>/approve/", bo.bo_withdrawal_approve, name="bo_withdrawal_approve"),
    path("bo/withdrawals/<int:pk>/reject/", bo.bo_withdrawal_reject, name="bo_withdrawal_reject"),
]
