"""Human-readable unique references for postings and documents."""

from datetime import datetime, timezone
from uuid import uuid4


def generate_reference(prefix: str) -> str:
    """Return ``PREFIX-YYYYMMDD-XXXXXXXXXX``; the suffix is random."""

    today = datetime.now(timezone.utc).strftime("%Y%m%d")
    return f"{prefix.upper()}-{today}-{uuid4().hex[:10].upper()}"
