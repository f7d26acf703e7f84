"""Argon2id credentials for the bundled identity provider.

Every password is suffixed with the server-side PASSWORD_PEPPER before it
is hashed, so a leaked ``identity`` table alone cannot be brute-forced.
Hashes produced with older cost parameters are upgraded on the next
successful sign-in (see ``needs_rehash``).
"""

import os

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

# OWASP baseline: 64 MiB, 3 passes, 4 lanes
_hasher = PasswordHasher(
    memory_cost=65536,
    time_cost=3,
    parallelism=4,
    hash_len=32,
    salt_len=16,
    type=Type.ID,
)


def _peppered(password: str) -> str:
    pepper = os.getenv("PASSWORD_PEPPER")
    if not pepper:
        raise ValueError("PASSWORD_PEPPER environment variable is not set")
    return password + pepper


def hash_password(password: str) -> str:
    """Raises ValueError for an empty password or a missing pepper."""
    if not password:
        raise ValueError("Password cannot be empty")
    return _hasher.hash(_peppered(password))


def verify_password(password: str, password_hash: str) -> bool:
    """False for a wrong password, a corrupt hash, or an identity without one."""
    if not password or not password_hash:
        return False

    try:
        return _hasher.verify(password_hash, _peppered(password))
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    return _hasher.check_needs_rehash(password_hash)
