"""
lunch_orders.email_config

Which Django email backend sends order confirmations, picked by
LUNCH_EMAIL_PROVIDER:

  sendgrid  (default)  Anymail SendGrid backend, needs SENDGRID_API_KEY
  console              prints mail to stdout (local development)
  smtp                 plain SMTP (EMAIL_HOST / EMAIL_PORT / EMAIL_HOST_USER /
                       EMAIL_HOST_PASSWORD / EMAIL_USE_TLS)

An unknown provider is a configuration error at startup, not a silent
fallback to SMTP.

========= CHANGE LOG =========
2026-09-12 • ADD: SendGrid via Anymail as the production provider.
2026-09-14 • CHANGE: Provider table instead of per-provider branches; console for dev.
"""

from __future__ import annotations

import os
from typing import Dict, Tuple

from django.core.exceptions import ImproperlyConfigured

DEFAULT_PROVIDER = "sendgrid"

# provider -> (EMAIL_BACKEND, {ANYMAIL key: env var})
PROVIDERS: Dict[str, Tuple[str, Dict[str, str]]] = {
    "sendgrid": ("anymail.backends.sendgrid.EmailBackend", {"SENDGRID_API_KEY": "SENDGRID_API_KEY"}),
    "console": ("django.core.mail.backends.console.EmailBackend", {}),
    "smtp": ("django.core.mail.backends.smtp.EmailBackend", {}),
}


def _smtp_settings() -> Dict[str, object]:
    env = os.environ
    return {
        "EMAIL_HOST": env.get("EMAIL_HOST", "localhost"),
        "EMAIL_PORT": int(env.get("EMAIL_PORT") or 25),
        "EMAIL_HOST_USER": env.get("EMAIL_HOST_USER", ""),
        "EMAIL_HOST_PASSWORD": env.get("EMAIL_HOST_PASSWORD", ""),
        "EMAIL_USE_TLS": env.get("EMAIL_USE_TLS", "").strip().lower() in ("1", "true", "yes"),
    }


def get_email_settings() -> Dict[str, object]:
    """
    Django settings for the configured provider.

    settings.py merges them with `globals().update(get_email_settings())`.
    """
    provider = (os.environ.get("LUNCH_EMAIL_PROVIDER") or DEFAULT_PROVIDER).strip().lower()
    if provider not in PROVIDERS:
        raise ImproperlyConfigured(
            f"LUNCH_EMAIL_PROVIDER={provider!r} is not supported (choose from {', '.join(sorted(PROVIDERS))})"
        )

    backend, anymail_keys = PROVIDERS[provider]
    result: Dict[str, object] = {
        "LUNCH_EMAIL_PROVIDER": provider,
        "EMAIL_BACKEND": backend,
        "DEFAULT_FROM_EMAIL": os.environ.get("DEFAULT_FROM_EMAIL") or "Bento & Friends <no-reply@localhost>",
    }
    if anymail_keys:
        result["ANYMAIL"] = {key: (os.environ.get(var) or "").strip() for key, var in anymail_keys.items()}
    if provider == "smtp":
        result.update(_smtp_settings())
    return result
