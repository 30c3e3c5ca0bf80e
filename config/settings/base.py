# config/settings/base.py
from pathlib import Path
import os
from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent.parent.parent  # repo root
load_dotenv(BASE_DIR / ".env")

SECRET_KEY = os.getenv("DJANGO_SECRET_KEY", "unsafe-dev-key")
DEBUG = os.getenv("DJANGO_DEBUG", "0") == "1"
ALLOWED_HOSTS = ["*"]

INSTALLED_APPS = [
    # Django
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",

    # Third-party
    "corsheaders",
    "rest_framework",
    "drf_spectacular",
    "django_filters",

    # Domain apps (modular monolith)
    "taxbook_core.common.apps.CommonConfig",
    "taxbook_core.workflows.apps.WorkflowsConfig",
    "taxbook_core.rules.apps.RulesConfig",
    "taxbook_core.appointments.apps.AppointmentsConfig",
    "taxbook_core.documents.apps.DocumentsConfig",
]

MIDDLEWARE = [
    "corsheaders.middleware.CorsMiddleware",
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",

    "django.contrib.auth.middleware.AuthenticationMiddleware",

    # request_id + user_id into the log context (after auth so request.user is set)
    "taxbook_core.common.middleware.RequestContextMiddleware",

    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]


ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    }
]

WSGI_APPLICATION = "config.wsgi.application"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.postgresql",
        "NAME": os.getenv("DB_NAME", "taxbook"),
        "USER": os.getenv("DB_USER", "taxbook"),
        "PASSWORD": os.getenv("DB_PASSWORD", "taxbook"),
        "HOST": os.getenv("DB_HOST", "127.0.0.1"),
        "PORT": os.getenv("DB_PORT", "5432"),
    }
}

AUTH_PASSWORD_VALIDATORS = [
    {"NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator"},
    {"NAME": "django.contrib.auth.password_validation.MinimumLengthValidator"},
    {"NAME": "django.contrib.auth.password_validation.CommonPasswordValidator"},
    {"NAME": "django.contrib.auth.password_validation.NumericPasswordValidator"},
]

LANGUAGE_CODE = "en-us"
TIME_ZONE = os.getenv("DJANGO_TIME_ZONE", "America/New_York")
USE_I18N = True
USE_TZ = True

STATIC_URL = "static/"
DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"

REST_FRAMEWORK = {
    # Login/token issuance is handled upstream; the API trusts the Django session or basic auth.
    "DEFAULT_AUTHENTICATION_CLASSES": (
        "rest_framework.authentication.SessionAuthentication",
        "rest_framework.authentication.BasicAuthentication",
    ),
    "DEFAULT_PERMISSION_CLASSES": (
        "rest_framework.permissions.IsAuthenticated",
    ),
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",

    # Standard error envelope
    "EXCEPTION_HANDLER": "taxbook_core.common.api.exceptions.api_exception_handler",

    "DEFAULT_FILTER_BACKENDS": [
        "django_filters.rest_framework.DjangoFilterBackend",
        "rest_framework.filters.OrderingFilter",
    ],

    "DEFAULT_PAGINATION_CLASS": "taxbook_core.common.api.pagination.ListingPagination",
}

SPECTACULAR_SETTINGS = {
    "TITLE": "Taxbook API",
    "DESCRIPTION": "Tax preparer booking: appointments, document intake, business rules",
    "VERSION": "0.1.0",

    "COMPONENT_SPLIT_REQUEST": True,
    "SORT_OPERATIONS": True,
    "SORT_OPERATION_PARAMETERS": True,
}

# CORS settings
# Development
CORS_ALLOW_ALL_ORIGINS = True  # Only for development!
CORS_ALLOW_CREDENTIALS = True

# -------------------------------------------------------------------
# Taxbook
# -------------------------------------------------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "info")
LOG_JSON = os.getenv("LOG_JSON", "0") == "1"

# Refuse to boot when registered rules depend on each other in a loop.
RULES_FAIL_ON_DEPENDENCY_CYCLE = os.getenv("RULES_FAIL_ON_DEPENDENCY_CYCLE", "1") == "1"

# Compare-and-swap attempts before a transition reports a conflict.
STATE_TRANSITION_MAX_ATTEMPTS = int(os.getenv("STATE_TRANSITION_MAX_ATTEMPTS", "3"))

# Bookings per practitioner per day when no profile limit is known.
APPOINTMENT_DEFAULT_DAILY_CAPACITY = int(os.getenv("APPOINTMENT_DEFAULT_DAILY_CAPACITY", "8"))
