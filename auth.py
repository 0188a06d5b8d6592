"""
auth.py
Owner account: bcrypt hashing, first-run admin seeding, login, password change.
"""

from __future__ import annotations

import logging

import bcrypt

import config
import db

logger = logging.getLogger(__name__)

# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def _to_bcrypt_secret(password: str) -> bytes:
    return password.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    hashed = bcrypt.hashpw(_to_bcrypt_secret(password), bcrypt.gensalt(rounds=12))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(_to_bcrypt_secret(password), password_hash.encode("utf-8"))


def seed_admin(username: str | None = None, password: str | None = None) -> bool:
    """
    Create tables and the admin account if it does not exist yet.
    Returns True when a new admin was inserted.
    """
    username = username or config.ADMIN_USERNAME
    password = password or config.ADMIN_PASSWORD
    created = db.init_db(hash_password(password), admin_username=username)
    if created:
        logger.info("Admin user %r created", username)
    else:
        logger.info("Admin user %r already exists", username)
    return created


def get_admin_by_username(username: str):
    return db.fetch_one("SELECT * FROM admin_users WHERE username = ?", (username,))


def login(username: str, password: str) -> bool:
    admin = get_admin_by_username(username)
    if not admin:
        return False
    return verify_password(password, admin["password_hash"])


def change_password(username: str, new_password: str) -> None:
    db.execute(
        "UPDATE admin_users SET password_hash = ? WHERE username = ?",
        (hash_password(new_password), username),
    )
    db.clear_force_password_change()
