# backend/stallops/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/stallops.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///stallops.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Payroll final payment is rounded to the nearest multiple of this step
    PAYROLL_ROUND_OFF_STEP = int(os.environ.get("PAYROLL_ROUND_OFF_STEP", "10"))

    # Owner share applied to new profit/loss reports when none is given
    DEFAULT_OWNER_SHARE_PERCENTAGE = int(os.environ.get("DEFAULT_OWNER_SHARE_PERCENTAGE", "70"))

    # Days before expiry at which a new batch turns near-expiry
    NEAR_EXPIRY_ALERT_DAYS = int(os.environ.get("NEAR_EXPIRY_ALERT_DAYS", "7"))

    # Browser origins allowed to call the API (comma-separated)
    CORS_ALLOWED_ORIGINS = tuple(
        o.strip()
        for o in os.environ.get("CORS_ALLOWED_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",")
        if o.strip()
    )

    # IANA zone of the stalls; peak-hour windows are wall-clock times there
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "Asia/Kolkata")
