"""Password hashing with the ``bcrypt`` library.

bcrypt only looks at the first 72 bytes of a secret, and bcrypt>=5 raises on
longer input, so both hashing and verification truncate to that limit.
"""

import bcrypt

_BCRYPT_MAX_BYTES = 72


def _secret_bytes(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    hashed: bytes = bcrypt.hashpw(_secret_bytes(plain), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_secret_bytes(plain), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False
