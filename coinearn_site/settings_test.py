# settings_test.py
import os

os.environ.setdefault("DJANGO_SECRET_KEY", "test-only-not-secret")
os.environ.pop("MYSQL_DB_NAME", None)

from .settings import *  # noqa: E402,F401,F403

DEBUG = False
SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

DATABASES = {"default": {"ENGINE": "django.db.backends.sqlite3", "NAME": ":memory:"}}
PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

RATELIMIT_ENABLE = False
EARN_INITIAL_COINS = 0
EARN_TASK_VERIFY_SECONDS = 20
EARN_IDENTITY_RESOLVER = "earn.identity.client_ip"

LOGGING = {"version": 1, "disable_existing_loggers": False}
