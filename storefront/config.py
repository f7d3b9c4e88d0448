"""
Application configuration, read once from the environment (and .env).
"""

import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.environ.get("DATABASE_URL")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change_me_long_secret")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "1440"))
SESSION_COOKIE_NAME = os.getenv("SESSION_COOKIE_NAME", "session")
COOKIE_SECURE = os.getenv("COOKIE_SECURE", "false").lower() in ("1", "true", "yes")
PASSWORD_RESET_TTL_SECONDS = 60 * 60

APP_ENV = os.getenv("APP_ENV", "production")
SITE_URL = os.getenv("SITE_URL", "http://localhost:5000")
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", "8000"))

SENDGRID_API_KEY = os.getenv("SENDGRID_API_KEY")
SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"
EMAIL_FROM = os.getenv("EMAIL_FROM", "noreply@ormia-jewelry.com")

OBJECT_STORAGE_URL = os.getenv("OBJECT_STORAGE_URL")
OBJECT_STORAGE_BUCKET = os.getenv("OBJECT_STORAGE_BUCKET", "message-images")
OBJECT_STORAGE_TOKEN = os.getenv("OBJECT_STORAGE_TOKEN")
OBJECT_STORAGE_PUBLIC_URL = os.getenv("OBJECT_STORAGE_PUBLIC_URL")
MAX_IMAGE_BYTES = 5 * 1024 * 1024

# Prices are whole currency units
FREE_SHIPPING_THRESHOLD = int(os.getenv("FREE_SHIPPING_THRESHOLD", "1000"))
SHIPPING_FEE = int(os.getenv("SHIPPING_FEE", "35"))

DEFAULT_ADMIN_USERNAME = os.getenv("ADMIN_USERNAME", "admin")
DEFAULT_ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@ormia-jewelry.com")
DEFAULT_ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")
