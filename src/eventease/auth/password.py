"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt automatically
handles salting and is resistant to rainbow table attacks. The work
factor is configurable (EVENTEASE_BCRYPT_ROUNDS, default 12 ≈ 250ms);
tests drop it to the minimum of 4.

Google-only accounts still get a password hash: a bcrypt hash of random
bytes nobody ever sees. The column stays NOT NULL and password login for
that account can never succeed.
"""

import secrets

import bcrypt

DEFAULT_ROUNDS = 12


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash a password with bcrypt.

    Passwords are truncated to 72 bytes (bcrypt's limit).
    """
    pw_bytes = password.encode("utf-8")[:72]
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(pw_bytes, salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash. Malformed hashes never match."""
    try:
        pw_bytes = password.encode("utf-8")[:72]
        hash_bytes = password_hash.encode("utf-8")
        return bcrypt.checkpw(pw_bytes, hash_bytes)
    except (ValueError, TypeError, AttributeError):
        return False


def unusable_password_hash(rounds: int = DEFAULT_ROUNDS) -> str:
    """Hash of a random secret that is discarded immediately."""
    return hash_password(secrets.token_urlsafe(32), rounds=rounds)
