from __future__ import annotations

from hashlib import sha256
from typing import Optional


def normalize_query(query: Optional[str]) -> str:
    """Trim surrounding whitespace and lower-case ``query``.

    Internal whitespace is preserved, so ``normalize_query`` is idempotent and
    two trigger phrases only collide when they read the same.
    """

    return (query or "").strip().lower()


def is_blank(query: Optional[str]) -> bool:
    return not (query or "").strip()


def current_page(start: int, *, per_page: int = 10) -> int:
    return max(start, 1) // per_page + 1


def start_for_page(page: int, *, per_page: int = 10) -> int:
    return (max(page, 1) - 1) * per_page + 1


def build_geolocation_cache_key(ip_address: str) -> str:
    subject = ip_address.strip()
    digest = sha256(subject.encode("utf-8")).hexdigest()
    return f"geo:ip:{digest}"
