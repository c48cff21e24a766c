"""
Pairing and slot arithmetic.

Pure functions with no database access so they can be exercised directly:
the round-robin pairing, default slot selection, common-slot detection and
the meeting-link window.
"""

import random
import secrets
from datetime import datetime, timedelta
from typing import Hashable, Iterable, List, Optional, Protocol, Sequence, Tuple, TypeVar

from core.utils.datetime import ensure_utc, get_zone, to_local

T = TypeVar("T", bound=Hashable)

SLOT_STEP_MINUTES = 30


class RandomSource(Protocol):
    """The subset of random.Random used here; tests pass a stub."""

    def randrange(self, stop: int) -> int: ...


def fisher_yates_shuffle(items: Sequence[T], rng: Optional[RandomSource] = None) -> List[T]:
    """
    Return a uniformly shuffled copy of items.

    For i from the last index down to 1, swap element i with a uniformly
    random element at index <= i.
    """
    rng = rng or random.SystemRandom()
    shuffled = list(items)
    for i in range(len(shuffled) - 1, 0, -1):
        j = rng.randrange(i + 1)
        shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
    return shuffled


def rotation_pairs(ordered: Sequence[T]) -> List[Tuple[T, T]]:
    """Pair k is (ordered[k], ordered[(k + 1) % n]); empty when n < 2."""
    n = len(ordered)
    if n < 2:
        return []
    return [(ordered[k], ordered[(k + 1) % n]) for k in range(n)]


def generate_pairing(
    participant_ids: Sequence[T],
    rng: Optional[RandomSource] = None,
) -> List[Tuple[T, T]]:
    """
    Build (interviewer, interviewee) assignments for one event.

    Every participant is interviewer exactly once and interviewee exactly
    once, and nobody is paired with themself.

    Raises:
        ValueError: If participant ids are not distinct
    """
    if len(set(participant_ids)) != len(participant_ids):
        raise ValueError("Participant ids must be distinct")
    if len(participant_ids) < 2:
        return []
    return rotation_pairs(fisher_yates_shuffle(participant_ids, rng))


def default_slot(
    now: datetime,
    tz_name: str = "UTC",
    start_hour: int = 10,
    end_hour: int = 22,
    rng: Optional[RandomSource] = None,
    attempts: int = 10,
    horizon_days: int = 7,
) -> datetime:
    """
    Pick an initial interview time.

    Draws a random day within the horizon and a random half-hour inside
    [start_hour, end_hour) local time; accepts the first draw strictly after
    now. After `attempts` misses falls back to start_hour on the following
    local day.

    Returns:
        Aware UTC datetime
    """
    if not 0 <= start_hour < end_hour <= 24:
        raise ValueError("Window must satisfy 0 <= start_hour < end_hour <= 24")

    rng = rng or random.SystemRandom()
    zone = get_zone(tz_name)
    now = ensure_utc(now)
    local_today = to_local(now, tz_name).date()
    window_steps = (end_hour - start_hour) * 60 // SLOT_STEP_MINUTES

    for _ in range(attempts):
        day = local_today + timedelta(days=rng.randrange(max(horizon_days, 1)))
        minutes = start_hour * 60 + rng.randrange(window_steps) * SLOT_STEP_MINUTES
        candidate = datetime(day.year, day.month, day.day, tzinfo=zone) + timedelta(minutes=minutes)
        if candidate > now:
            return ensure_utc(candidate)

    tomorrow = local_today + timedelta(days=1)
    fallback = datetime(tomorrow.year, tomorrow.month, tomorrow.day, start_hour, tzinfo=zone)
    return ensure_utc(fallback)


def in_daily_window(dt: datetime, tz_name: str, start_hour: int, end_hour: int) -> bool:
    """True when dt falls in [start_hour, end_hour) local time."""
    local = to_local(dt, tz_name)
    minutes = local.hour * 60 + local.minute
    return start_hour * 60 <= minutes < end_hour * 60


def common_slot(mine: Iterable[datetime], partner: Iterable[datetime]) -> Optional[datetime]:
    """Earliest instant present in both candidate lists, or None."""
    partner_set = {ensure_utc(t) for t in partner}
    shared = [t for t in (ensure_utc(m) for m in mine) if t in partner_set]
    return min(shared, default=None)


def meeting_link_window_open(
    scheduled_at: datetime,
    now: datetime,
    lead: timedelta = timedelta(hours=1),
) -> bool:
    """A link may be set from `lead` before the start onward, with no upper bound."""
    return ensure_utc(now) >= ensure_utc(scheduled_at) - lead


def generate_meeting_link(base: str, pair_id: int) -> str:
    """Room URL of the form {base}/Interview-{pair_id}-{6 hex chars}."""
    return f"{base.rstrip('/')}/Interview-{pair_id}-{secrets.token_hex(3)}"
