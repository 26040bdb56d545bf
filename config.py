"""
Runtime configuration and logging.

Everything is read from the environment once at import; a local .env file is
honoured.
"""

import logging
import os
import re

from dotenv import load_dotenv

load_dotenv()


def get_env(key: str, default=None):
    val = os.getenv(key)
    if val is None or val.strip() == "":
        return default
    return val.strip()


# Server
APP_ENV = get_env("APP_ENV", "development")
PORT = int(get_env("PORT", 4000))
CORS_ORIGINS = [o.strip() for o in get_env("CORS_ORIGIN", "http://localhost:3000").split(",") if o.strip()]
LOG_LEVEL = get_env("LOG_LEVEL", "INFO").upper()

# Auth
JWT_SECRET = get_env("JWT_SECRET", "super-secret-key-change")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24

# First super admin, created at startup when the admin collection is empty
ADMIN_USERNAME = get_env("ADMIN_USERNAME", "admin")
ADMIN_EMAIL = get_env("ADMIN_EMAIL", "admin@portfolio.dev")
ADMIN_PASSWORD = get_env("ADMIN_PASSWORD")

# Mail
SMTP_HOST = get_env("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(get_env("SMTP_PORT", 587))
SMTP_USER = get_env("SMTP_USER")
SMTP_PASSWORD = get_env("SMTP_PASSWORD")
MAIL_FROM_NAME = get_env("MAIL_FROM_NAME", "Portfolio")
CONTACT_NOTIFY_EMAIL = get_env("CONTACT_NOTIFY_EMAIL", SMTP_USER)

# GitHub
GITHUB_TOKEN = get_env("GITHUB_TOKEN")
GITHUB_USERNAME = get_env("GITHUB_USERNAME", "hafizkhan902")
GITHUB_CACHE_SECONDS = 30 * 60
HTTP_TIMEOUT = float(get_env("HTTP_CLIENT_TIMEOUT", 8.0))

# Files
UPLOAD_DIR = get_env("UPLOAD_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "uploads"))
PUBLIC_DIR = get_env("PUBLIC_DIR", os.path.join(os.path.dirname(os.path.abspath(__file__)), "public"))
MAX_IMAGE_SIZE = 5 * 1024 * 1024
MAX_IMAGES_PER_REQUEST = 10
MAX_RESUME_SIZE = 10 * 1024 * 1024


def is_production() -> bool:
    return APP_ENV.lower() == "production"


# =======
# Logging
# =======

class SanitizingFormatter(logging.Formatter):
    PATTERNS = [
        (re.compile(r'(Bearer\s+)[^\s]+', re.I), r'\1[REDACTED]'),
        (re.compile(r'(token["\']?\s*[:=]\s*["\']?)[^"\'\s]+', re.I), r'\1[REDACTED]'),
        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)[^"\'\s]+', re.I), r'\1[REDACTED]'),
    ]

    def format(self, record):
        msg = super().format(record)
        for pattern, replacement in self.PATTERNS:
            msg = pattern.sub(replacement, msg)
        return msg


handler = logging.StreamHandler()
handler.setFormatter(SanitizingFormatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO), handlers=[handler])
logger = logging.getLogger("portfolio-cms")
