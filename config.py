"""
config.py
Settings read from the environment (db path, uploads, admin seed, invoice header).
"""

from __future__ import annotations

import os
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

DB_FILE = Path(os.environ.get("GYM_DB_FILE", BASE_DIR / "gym.db"))
UPLOAD_DIR = Path(os.environ.get("GYM_UPLOAD_DIR", BASE_DIR / "uploads"))

ADMIN_USERNAME = os.environ.get("GYM_ADMIN_USERNAME", "admin")
ADMIN_PASSWORD = os.environ.get("GYM_ADMIN_PASSWORD", "admin123")

LOG_LEVEL = os.environ.get("GYM_LOG_LEVEL", "INFO")

# Invoice header block
COMPANY_NAME = os.environ.get("GYM_COMPANY_NAME", "Sample Fitness Center")
COMPANY_ADDRESS = os.environ.get("GYM_COMPANY_ADDRESS", "Sample Fitness Center, Chennai")
COMPANY_PHONE = os.environ.get("GYM_COMPANY_PHONE", "+91 90000 00000")
COMPANY_WEBSITE = os.environ.get("GYM_COMPANY_WEBSITE", "https://www.samplefitness.com")
COMPANY_EMAIL = os.environ.get("GYM_COMPANY_EMAIL", "samplefitness@mail.com")
