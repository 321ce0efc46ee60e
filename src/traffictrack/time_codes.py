"""5-minute time bucket codes used by the JARTIC feature service."""

from datetime import datetime, timedelta, timezone
from typing import Iterator, Optional

# Upstream buckets are JST (UTC+9, no DST)
JST = timezone(timedelta(hours=9))
BUCKET_MINUTES = 5
TIME_CODE_FORMAT = "%Y%m%d%H%M"


def _utc_now(now: Optional[datetime]) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    if now.tzinfo is None:
        return now.replace(tzinfo=timezone.utc)
    return now.astimezone(timezone.utc)


def generate_time_code(offset_minutes: int = 0, now: Optional[datetime] = None) -> str:
    """
    Build the 12-character bucket code for "now minus offset_minutes".

    Args:
        offset_minutes: Minutes to walk back from the current instant.
        now: Reference instant. Naive values are taken as UTC.

    Returns:
        Code in ``YYYYMMDDHHMM`` form, minute floored to a multiple of 5.
    """
    utc = _utc_now(now)
    # Shift the wall clock by +9h and keep it naive, so formatting prints JST digits
    local = utc.replace(tzinfo=None) + timedelta(hours=9) - timedelta(minutes=offset_minutes)
    local = local.replace(
        minute=(local.minute // BUCKET_MINUTES) * BUCKET_MINUTES,
        second=0,
        microsecond=0,
    )
    return local.strftime(TIME_CODE_FORMAT)


def candidate_time_codes(
    attempts: int = 12,
    step_minutes: int = BUCKET_MINUTES,
    now: Optional[datetime] = None,
) -> Iterator[str]:
    """
    Yield bucket codes from now backwards: now, now-5m, ..., now-55m by default.

    The reference instant is captured once, so the sequence stays consistent
    even when it is consumed across a bucket boundary.
    """
    reference = _utc_now(now)
    for i in range(attempts):
        yield generate_time_code(i * step_minutes, now=reference)


def parse_time_code(code: str) -> datetime:
    """Convert a bucket code back into a JST-aware datetime."""
    if len(code) != 12 or not code.isdigit():
        raise ValueError(f"Invalid time code '{code}' (expected YYYYMMDDHHMM)")
    return datetime.strptime(code, TIME_CODE_FORMAT).replace(tzinfo=JST)
