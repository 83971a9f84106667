"""Password hashing utilities.

Learn: bcrypt salts automatically and embeds its cost factor in the hash
("$2b$10$..."). The cost is configurable (BUGTRACKER_BCRYPT_ROUNDS); when
it is raised, existing hashes are re-hashed at the next successful login
via needs_rehash().
"""

import bcrypt

BCRYPT_ROUNDS = 10


def _encode(password: str) -> bytes:
    # bcrypt only looks at the first 72 bytes.
    return password.encode("utf-8")[:72]


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password; a malformed stored hash never matches."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False


def hash_rounds(password_hash: str) -> int:
    """Cost factor of a bcrypt hash, 0 if it cannot be read."""
    parts = password_hash.split("$")
    try:
        return int(parts[2])
    except (IndexError, ValueError):
        return 0


def needs_rehash(password_hash: str, rounds: int = BCRYPT_ROUNDS) -> bool:
    return hash_rounds(password_hash) < rounds
