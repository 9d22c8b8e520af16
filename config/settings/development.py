"""
Development settings – local editing of column metadata with readable logs.
"""
import structlog
from decouple import config

from .base import *  # noqa: F401, F403

DEBUG = config("DEBUG", default=True, cast=bool)

if DEBUG:
    ALLOWED_HOSTS = ["*"]

SECURE_SSL_REDIRECT = False
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False

# Human-readable console output instead of JSON lines
LOGGING["formatters"]["json_formatter"]["processor"] = structlog.dev.ConsoleRenderer()  # noqa: F405
LOGGING["root"]["level"] = "DEBUG"  # noqa: F405

# Browsable API makes it easy to try change-sets by hand
REST_FRAMEWORK["DEFAULT_RENDERER_CLASSES"] = [  # noqa: F405
    "rest_framework.renderers.JSONRenderer",
    "rest_framework.renderers.BrowsableAPIRenderer",
]
REST_FRAMEWORK["DEFAULT_PARSER_CLASSES"] = [  # noqa: F405
    "rest_framework.parsers.JSONParser",
    "rest_framework.parsers.FormParser",
]
