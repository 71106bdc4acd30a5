"""
Account password storage.

Passwords are stored only as Argon2id hashes. The parameters sit at the
OWASP floor (19 MiB of memory, two passes, one lane) so that hashing on
registration and login stays fast on a small host.
"""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2 import exceptions as argon2_exc

# Salt and parameters are encoded into each hash string
argon2_hasher = PasswordHasher(
    time_cost=2,
    memory_cost=19 * 1024,  # KiB
    parallelism=1,
)

MIN_PASSWORD_LENGTH = 6


def hash_password(plain: str) -> str:
    return argon2_hasher.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    """False for a wrong password and for a stored value that is not a valid hash."""
    try:
        return argon2_hasher.verify(hashed, plain)
    except (
        argon2_exc.VerifyMismatchError,
        argon2_exc.VerificationError,
        argon2_exc.InvalidHashError,
    ):
        return False
