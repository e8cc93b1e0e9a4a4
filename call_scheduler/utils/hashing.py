# For rate-limit keys and logs (client identities are never stored in clear).

import hashlib


def hash_value(value: str) -> str:
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def short_hash(value: str | None, length: int = 8) -> str:
    if not value:
        return "none"
    return hash_value(value)[:length]
