# config/settings/local.py
from .base import *  # noqa

DEBUG = os.getenv("DJANGO_DEBUG", "1") == "1"

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": os.getenv("SQLITE_PATH", str(BASE_DIR / "db.sqlite3")),
    }
}
