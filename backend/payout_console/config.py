# backend/payout_console/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/payout_console.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///payout_console.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Upper bound (seconds) a writer waits on a locked database before the
    # commit fails with a retryable PersistenceError. Applied to SQLite only.
    DB_LOCK_TIMEOUT_SECONDS = float(os.environ.get("DB_LOCK_TIMEOUT_SECONDS", "5"))

    # IANA zone used to derive calendar days/months for reports and exports.
    # Empty means the zone of the running process.
    REPORT_TIMEZONE = os.environ.get("REPORT_TIMEZONE", "")

    DEFAULT_STORE_LABEL = os.environ.get("DEFAULT_STORE_LABEL", "Main Store")
    CURRENCY_SYMBOL = os.environ.get("CURRENCY_SYMBOL", "₹")

    # Seller identity printed on partner statements
    SELLER_NAME = os.environ.get("SELLER_NAME", "Street Junkies India")
    SELLER_TAGLINE = os.environ.get("SELLER_TAGLINE", "Partner payout statement")
    SELLER_ADDRESS = os.environ.get("SELLER_ADDRESS", "New Delhi - 110048|India")
    SELLER_TAX_ID = os.environ.get("SELLER_TAX_ID", "")
    SELLER_FOOTER = os.environ.get(
        "SELLER_FOOTER", "Generated by the partner console. Not a valid tax invoice."
    )

    # Transactional email provider
    EMAIL_API_URL = os.environ.get("EMAIL_API_URL", "")
    EMAIL_API_KEY = os.environ.get("EMAIL_API_KEY", "")
    EMAIL_SENDER = os.environ.get("EMAIL_SENDER", "")
    EMAIL_TIMEOUT_SECONDS = float(os.environ.get("EMAIL_TIMEOUT_SECONDS", "10"))

    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
