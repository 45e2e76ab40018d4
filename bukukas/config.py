"""Konfigurasi bukukas.

Semua nilai dibaca dari environment (boleh lewat file .env).
TIDAK ADA KUNCI SUPABASE DI DALAM KODE.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

# Muat .env dari root proyek
project_root = Path(__file__).parent.parent
load_dotenv(project_root / ".env")


class Settings:
    SUPABASE_URL = os.getenv("SUPABASE_URL", "")
    SUPABASE_KEY = os.getenv("SUPABASE_KEY", "")
    SECRET_KEY = os.getenv("SECRET_KEY", "ganti-di-production")
    TIMEZONE = os.getenv("BUKUKAS_TIMEZONE", "Asia/Jakarta")
    FETCH_WORKERS = int(os.getenv("BUKUKAS_FETCH_WORKERS", "6"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()


settings = Settings()


def validate_config():
    """Kembalikan daftar masalah konfigurasi (kosong kalau aman)."""
    errors = []
    if not settings.SUPABASE_URL:
        errors.append("SUPABASE_URL belum diatur")
    if not settings.SUPABASE_KEY:
        errors.append("SUPABASE_KEY belum diatur")
    if settings.FETCH_WORKERS < 1:
        errors.append("BUKUKAS_FETCH_WORKERS minimal 1")
    return errors


def get_client(url=None, key=None):
    from supabase import create_client

    return create_client(url or settings.SUPABASE_URL, key or settings.SUPABASE_KEY)
