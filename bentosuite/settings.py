"""
Bentosuite Django settings

CHANGE LOG
----------
2026-09-12 • Email provider config moved to lunch_orders.email_config
- SendGrid (Anymail) by default, switchable via LUNCH_EMAIL_PROVIDER.

2026-09-08 • Stripe webhook settings
- STRIPE_WEBHOOK_SECRET / STRIPE_WEBHOOK_TOLERANCE read from env.

2026-09-02 • Initial settings for the lunch ordering backend
- .env loading (python-dotenv), required DJANGO_SECRET_KEY.
- Logging to logs/lunch_orders.log (UTF-8 rotating file) + console.
"""

from pathlib import Path
import os

from dotenv import load_dotenv

# ========= Base / Env =========
BASE_DIR = Path(__file__).resolve().parent.parent

ENV_CANDIDATES = [
    Path(os.path.expanduser("~/bentosuite/.env")),  # server: ~/bentosuite/.env
    BASE_DIR / ".env",                               # local: project root
]
for _env in ENV_CANDIDATES:
    if _env.exists():
        load_dotenv(_env)
        print(f"[settings] Loaded env from: {_env}")
        break
else:
    load_dotenv()  # no-op if missing

# ========= Secret Key =========
DJANGO_SECRET_KEY = os.getenv("DJANGO_SECRET_KEY")
if not DJANGO_SECRET_KEY:
    raise ValueError("DJANGO_SECRET_KEY must be set in .env file")
SECRET_KEY = DJANGO_SECRET_KEY

DEBUG = os.getenv("DEBUG", "False") == "True"

# ========= Hosts / CSRF / Security =========
ALLOWED_HOSTS = [
    "127.0.0.1",
    "localhost",
    "testserver",
] + (os.getenv("ADDITIONAL_HOSTS", "").split(",") if os.getenv("ADDITIONAL_HOSTS") else [])

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
SESSION_COOKIE_SECURE = not DEBUG
CSRF_COOKIE_SECURE = not DEBUG

# ========= Installed apps =========
INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    "rest_framework",
    "anymail",
    "lunch_orders",
]

# ========= Middleware =========
MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "whitenoise.middleware.WhiteNoiseMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

# ========= URL / Templates / WSGI =========
ROOT_URLCONF = "bentosuite.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [BASE_DIR / "templates"],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "bentosuite.wsgi.application"

# ========= Database =========
DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
        "OPTIONS": {"timeout": 30},
    }
}

# ========= Password validation =========
AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

# ========= I18N =========
LANGUAGE_CODE = "en-au"
TIME_ZONE = "UTC"
USE_I18N = True
USE_TZ = True

# ========= Security headers =========
SECURE_CONTENT_TYPE_NOSNIFF = True
SECURE_SSL_REDIRECT = not DEBUG

if not DEBUG:
    SECURE_HSTS_SECONDS = 31536000
    SECURE_HSTS_INCLUDE_SUBDOMAINS = True

# ========= Static =========
STATIC_URL = "/static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

STORAGES = {
    "default": {"BACKEND": "django.core.files.storage.FileSystemStorage"},
    "staticfiles": {"BACKEND": "whitenoise.storage.CompressedManifestStaticFilesStorage"},
}

# ========= Defaults =========
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

# ========= REST framework (serializers only; no API views) =========
REST_FRAMEWORK = {
    "COERCE_DECIMAL_TO_STRING": True,
}

# ========= Email =========
from lunch_orders.email_config import get_email_settings  # noqa: E402

globals().update(get_email_settings())

# ========= Stripe =========
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET", "")
STRIPE_WEBHOOK_TOLERANCE = int(os.getenv("STRIPE_WEBHOOK_TOLERANCE", "300") or "300")

# ========= Lunch orders =========
LUNCH_ORDERS_CURRENCY = os.getenv("LUNCH_ORDERS_CURRENCY", "aud").lower()
LUNCH_ORDERS_PENDING_TTL_DAYS = int(os.getenv("LUNCH_ORDERS_PENDING_TTL_DAYS", "7") or "7")
LUNCH_ORDERS_TIMEZONE = os.getenv("LUNCH_ORDERS_TIMEZONE", "Australia/Perth")
LUNCH_ORDERS_BRAND_NAME = os.getenv("LUNCH_ORDERS_BRAND_NAME", "Bento & Friends")
LUNCH_ORDERS_SUPPORT_EMAIL = os.getenv("LUNCH_ORDERS_SUPPORT_EMAIL", "")

# ========= Logging =========
LOG_DIR = BASE_DIR / "logs"
LOG_DIR.mkdir(exist_ok=True)

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {process:d} {thread:d} {message}",
            "style": "{",
        },
        "simple": {
            "format": "{levelname} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "file": {
            "level": "INFO",
            "class": "logging.handlers.RotatingFileHandler",
            "filename": LOG_DIR / "lunch_orders.log",
            "maxBytes": 1024 * 1024 * 15,
            "backupCount": 10,
            "formatter": "verbose",
            "encoding": "utf-8",
        },
        "console": {
            "level": "INFO",
            "class": "logging.StreamHandler",
            "formatter": "simple",
        },
    },
    "loggers": {
        "lunch_orders": {
            "handlers": ["file", "console"],
            "level": "INFO",
            "propagate": False,
        },
        "django": {
            "handlers": ["file"],
            "level": "ERROR",
            "propagate": True,
        },
        "django.core.mail": {
            "handlers": ["console"],
            "level": "INFO",
            "propagate": False,
        },
    },
}
