"""Local development settings."""
from .base import *  # noqa: F401, F403

DEBUG = True
ALLOWED_HOSTS = ["localhost", "127.0.0.1", "[::1]"]

CORS_ALLOW_ALL_ORIGINS = True
CSRF_TRUSTED_ORIGINS = env.list(  # noqa: F405
    "CSRF_TRUSTED_ORIGINS",
    default=["http://localhost:3000", "http://localhost:5173"],
)

INSTALLED_APPS += [  # noqa: F405
    "django_extensions",
]

# Run marketplace syncs inline unless a worker is wanted
CELERY_TASK_ALWAYS_EAGER = env.bool("CELERY_TASK_ALWAYS_EAGER", default=False)  # noqa: F405

LOGGING["loggers"]["apps"]["level"] = env("LOG_LEVEL", default="DEBUG")  # noqa: F405

EMAIL_BACKEND = "django.core.mail.backends.console.EmailBackend"
