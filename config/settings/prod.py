# config/settings/prod.py
from .base import *  # noqa

DEBUG = False

if SECRET_KEY == "unsafe-dev-key":  # noqa: F405
    raise RuntimeError("DJANGO_SECRET_KEY must be set in production.")

CORS_ALLOW_ALL_ORIGINS = False
CORS_ALLOWED_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ALLOWED_ORIGINS", "https://app.yourdomain.com").split(",")  # noqa: F405
    if o.strip()
]
CORS_ALLOW_CREDENTIALS = True

SECURE_PROXY_SSL_HEADER = ("HTTP_X_FORWARDED_PROTO", "https")
