# backend/mercado/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/mercado.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///mercado.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Bearer tokens issued by `flask users token`
    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    # Sale numbers look like V2024-007
    SALE_NUMBER_PREFIX = "V"
    SALE_NUMBER_PAD = 3
    SALE_NUMBER_MAX_ATTEMPTS = 3

    STATS_TOP_PRODUCTS = 5
    STATS_DAY_LIMIT = 30
