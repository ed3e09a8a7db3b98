"""Deterministic id derivation for generated pages and jobs."""

import re
import secrets

from learnwiki.constants import FALLBACK_SLUG

_NON_ALNUM = re.compile(r"[^a-z0-9]+")
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def to_base36(value: int) -> str:
    """Lower-case base-36 representation of a non-negative integer."""
    if value < 0:
        raise ValueError("value must be non-negative")
    digits = []
    while True:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
        if value == 0:
            return "".join(reversed(digits))


def slugify(text: str) -> str:
    """Lower-case, hyphen-separated ASCII slug. Empty if nothing survives."""
    return _NON_ALNUM.sub("-", text.lower()).strip("-")


def make_page_id(text: str, timestamp_ms: int) -> str:
    """Page id for text generated at a given time.

    Same text and time give the same id. Text that slugifies to nothing
    uses a generic slug, so the id is never just the suffix.
    """
    return f"{slugify(text) or FALLBACK_SLUG}-{to_base36(timestamp_ms)}"


def make_job_id(job_type: str, timestamp_ms: int) -> str:
    """Unique job id: type, creation time and a random token."""
    return f"job-{job_type}-{timestamp_ms}-{secrets.token_hex(4)}"
