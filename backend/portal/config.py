# backend/portal/config.py
from __future__ import annotations
import os


def _split_csv(value: str | None) -> list[str]:
    if not value:
        return []
    return [item.strip().lower() for item in value.split(",") if item.strip()]


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/portal.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///portal.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Admin access is granted by primary email on the identity provider record
    ADMIN_EMAILS = _split_csv(os.environ.get("ADMIN_EMAILS"))

    # "http" talks to the hosted identity provider, "fake" keeps users in memory
    IDENTITY_PROVIDER = os.environ.get("IDENTITY_PROVIDER", "http")
    IDENTITY_PROVIDER_URL = os.environ.get("IDENTITY_PROVIDER_URL", "https://api.clerk.com/v1")
    IDENTITY_PROVIDER_SECRET_KEY = os.environ.get("IDENTITY_PROVIDER_SECRET_KEY", "")
    IDENTITY_PROVIDER_TIMEOUT = float(os.environ.get("IDENTITY_PROVIDER_TIMEOUT", "10"))

    # Shared secret the payment processor sends with completion callbacks
    PAYMENT_WEBHOOK_SECRET = os.environ.get("PAYMENT_WEBHOOK_SECRET", "")

    # Storefront/portal origins allowed to call the API from a browser
    CORS_ORIGINS = [
        origin.strip()
        for origin in os.environ.get("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    ]
