from __future__ import annotations

import hashlib
import hmac

from ..settings import settings


def _pepper() -> str:
    # Hashes must not be reproducible from a database dump alone.
    return str(settings.jwt_secret or "dev-only-pepper")


def hash_secret(value: str) -> str:
    v = str(value or "").strip()
    if not v:
        raise ValueError("value is required")
    h = hashlib.sha256()
    h.update(_pepper().encode("utf-8"))
    h.update(b"\n")
    h.update(v.encode("utf-8"))
    return h.hexdigest()


def secret_matches(value: str, expected_hash: str) -> bool:
    try:
        return hmac.compare_digest(hash_secret(value), str(expected_hash or ""))
    except ValueError:
        return False
