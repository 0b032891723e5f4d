# identity.py
"""
Identity resolvers turn a request into a stable client id. The ledger never
looks inside the id; pick a resolver with settings.EARN_IDENTITY_RESOLVER.
"""
from __future__ import annotations

import ipaddress
from typing import Callable, Optional
from urllib.parse import urlencode

from django.conf import settings
from django.utils.crypto import get_random_string
from django.utils.module_loading import import_string

from . import registry

SESSION_KEY = "earn_client_token"


# --- IP helpers ---
def _valid_ip(ip: str) -> bool:
    try:
        ipaddress.ip_address(ip)
        return True
    except ValueError:
        return False


def client_ip(request) -> Optional[str]:
    """
    REMOTE_ADDR, unless EARN_TRUSTED_PROXY_COUNT proxies sit in front of us.

    With N trusted proxies the client address is the N-th hop counted from
    the right of X-Forwarded-For; anything further left was written by the
    client and is ignored.
    """
    remote = request.META.get("REMOTE_ADDR") or None
    trusted = int(getattr(settings, "EARN_TRUSTED_PROXY_COUNT", 0) or 0)
    if trusted <= 0:
        return remote

    # XFF looks like: "client, proxy1, proxy2"
    xff = request.META.get("HTTP_X_FORWARDED_FOR") or ""
    hops = [h.strip() for h in xff.split(",") if h.strip()]
    if len(hops) < trusted:
        return remote
    ip = hops[-trusted]
    return ip if _valid_ip(ip) else remote


def session_token(request) -> str:
    """A random token minted once per browser session."""
    token = request.session.get(SESSION_KEY)
    if not token:
        token = "cl_" + get_random_string(24)
        request.session[SESSION_KEY] = token
    return token


def get_resolver() -> Callable:
    return import_string(getattr(settings, "EARN_IDENTITY_RESOLVER", "earn.identity.client_ip"))


def resolve_client_id(request) -> Optional[str]:
    return get_resolver()(request)


def get_profile(request):
    """
    Resolve the visiting client's profile, creating it on first visit.
    The referral query parameter is consumed here and nowhere else.
    Cached on the request. Returns None when no identity can be derived.
    """
    cached = getattr(request, "_earn_profile", None)
    if cached is not None:
        return cached

    client_id = resolve_client_id(request)
    if not client_id:
        return None

    param = getattr(settings, "EARN_REFERRAL_PARAM", "ref")
    profile, _ = registry.resolve(client_id, request.GET.get(param))
    request._earn_profile = profile
    return profile


def referral_link(request, profile) -> str:
    param = getattr(settings, "EARN_REFERRAL_PARAM", "ref")
    base = request.build_absolute_uri("/")
    return f"{base}?{urlencode({param: profile.referral_code})}"
