"""Password hashing, credential comparison and random secrets."""

import secrets

import bcrypt

from app.config import get_settings


def hash_password(password: str) -> str:
    """Hash a plaintext password with bcrypt at the configured cost."""
    rounds = get_settings().BCRYPT_ROUNDS
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def matches(password: str, password_hash: str) -> bool:
    """Compare a plaintext password against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def random_string(length: int) -> str:
    """Cryptographically random hex string of exactly ``length`` characters."""
    return secrets.token_hex(length)[:length]
