"""Timestamp scheduling for decomposed commits.

Contains:
- Schedule: Timestamps plus scheduling warnings
- schedule_timestamps: Jittered, strictly increasing timestamps across a window
- parse_duration: Parse "2h", "30m", "1d", "45s", "1h30m" or bare hours
- parse_start_time: Parse a start instant
- default_spread: A random 2-4 hour window
- format_duration: Render a timedelta compactly
"""

import math
import random
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterator, Optional

from gitbahn.split.errors import InvalidScheduleError

JITTER_LOW = 0.3
JITTER_HIGH = 2.0
DEFAULT_FLOOR_SECONDS = 60
MAX_ATTEMPTS = 100
# Seconds values that look machine-made
ROUND_SECONDS = (0, 30)
# How far a timestamp may move to avoid round seconds
NUDGE_SECONDS = 14

_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d+)?)\s*([dhms])", re.IGNORECASE)
_DURATION_RE = re.compile(r"^\s*(?:\d+(?:\.\d+)?\s*[dhms]\s*)+$", re.IGNORECASE)
_NUMBER_RE = re.compile(r"^\s*\d+(?:\.\d+)?\s*$")
_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_UNIT_SECONDS = {"d": 86400, "h": 3600, "m": 60, "s": 1}
_START_FORMATS = ("%Y-%m-%d %H:%M", "%Y-%m-%d %H:%M:%S")
DEFAULT_START_HOUR = 9


@dataclass
class Schedule:
    """Scheduled commit times in commit order."""

    timestamps: list[datetime]
    warnings: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.timestamps)

    def __iter__(self) -> Iterator[datetime]:
        return iter(self.timestamps)

    def __getitem__(self, index: int) -> datetime:
        return self.timestamps[index]


def _aware(moment: datetime) -> datetime:
    """Attach the local timezone to naive datetimes."""
    if moment.tzinfo is None:
        return moment.astimezone()
    return moment


def _ceil_second(moment: datetime) -> datetime:
    if moment.microsecond:
        return moment.replace(microsecond=0) + timedelta(seconds=1)
    return moment


def _allowed(epoch: int) -> bool:
    return epoch % 60 not in ROUND_SECONDS


def _clamp(gaps: list[float], total: float, low: float, high: float) -> list[float]:
    """Clamp gaps into [low, high] while keeping their sum at ``total``."""
    gaps = [min(max(gap, low), high) for gap in gaps]
    for _ in range(len(gaps) * 2 + 10):
        excess = total - sum(gaps)
        if abs(excess) < 1e-6:
            break
        if excess > 0:
            free = [i for i, gap in enumerate(gaps) if gap < high - 1e-9]
        else:
            free = [i for i, gap in enumerate(gaps) if gap > low + 1e-9]
        if not free:
            break
        share = excess / len(free)
        for i in free:
            gaps[i] = min(max(gaps[i] + share, low), high)
    return gaps


def _nudge(position: int, low: int, high: int, rng: random.Random) -> Optional[int]:
    """Move a position off round seconds within [low, high]."""
    low = max(low, position - NUDGE_SECONDS)
    high = min(high, position + NUDGE_SECONDS)
    if low > high:
        return None
    for _ in range(10):
        candidate = rng.randint(low, high)
        if _allowed(candidate):
            return candidate
    for candidate in range(low, high + 1):
        if _allowed(candidate):
            return candidate
    return None


def _draw(
    count: int,
    begin: int,
    total: int,
    low: float,
    high: float,
    rng: random.Random,
    distinct: bool = True,
) -> Optional[list[int]]:
    """Draw one candidate schedule as epoch seconds, or None if rejected."""
    steps = count - 1
    average = total / steps
    gaps = [rng.uniform(JITTER_LOW, JITTER_HIGH) * average for _ in range(steps)]
    scale = total / sum(gaps)
    gaps = _clamp([gap * scale for gap in gaps], total, low, high)

    positions = [begin]
    elapsed = 0.0
    for gap in gaps[:-1]:
        elapsed += gap
        positions.append(begin + int(round(elapsed)))
    positions.append(begin + total)

    end = begin + total
    floor = max(1, math.floor(low))
    for index, position in enumerate(positions):
        if _allowed(position):
            continue
        lower = positions[index - 1] + floor if index else begin
        upper = positions[index + 1] - floor if index + 1 < len(positions) else end
        nudged = _nudge(position, lower, upper, rng)
        if nudged is None:
            return None
        positions[index] = nudged

    if not _valid(positions, begin, end, distinct):
        return None
    final_gaps = [b - a for a, b in zip(positions, positions[1:])]
    if any(gap < floor or gap > math.ceil(high) for gap in final_gaps):
        return None
    return positions


def _valid(positions: list[int], begin: int, end: int, distinct: bool) -> bool:
    """Whether positions are increasing, in the window and off round seconds."""
    if positions[0] < begin or positions[-1] > end:
        return False
    if not all(_allowed(position) for position in positions):
        return False
    gaps = [b - a for a, b in zip(positions, positions[1:])]
    if any(gap <= 0 for gap in gaps):
        return False
    return not distinct or len(set(gaps)) == len(gaps)


def _allowed_between(low: int, high: int) -> int:
    """Number of seconds in [low, high] that are not round."""
    return (high - low + 1) - (high // 30 - (low - 1) // 30)


def _increasing(count: int, begin: int, total: int) -> list[int]:
    """Deterministic schedule with strictly increasing gaps."""
    steps = count - 1
    base = max(1, (total - steps * (steps - 1) // 2) // steps)
    positions = [begin if _allowed(begin) else begin + 1]
    for step in range(steps):
        position = positions[-1] + base + step
        if not _allowed(position):
            position += 1
        positions.append(position)
    return positions


def _even(count: int, begin: int, total: int) -> list[int]:
    """Deterministic, roughly even schedule that stays inside the window."""
    steps = count - 1
    end = begin + total
    positions: list[int] = []
    for index in range(count):
        position = begin + round(index * total / steps)
        if positions:
            position = max(position, positions[-1] + 1)
        while not _allowed(position):
            position += 1
        positions.append(position)
    ceiling = end + 1
    for index in range(count - 1, -1, -1):
        position = min(positions[index], ceiling - 1)
        while not _allowed(position):
            position -= 1
        positions[index] = ceiling = position
    return positions


def schedule_timestamps(
    count: int,
    start: datetime,
    spread: timedelta,
    rng: Optional[random.Random] = None,
    min_gap: Optional[timedelta] = None,
    max_gap: Optional[timedelta] = None,
) -> Schedule:
    """Spread ``count`` commit timestamps across ``[start, start + spread]``.

    Gaps are jittered around the average gap, rescaled to fill the window,
    clamped to the gap bounds and, when the window has room for it, pairwise
    distinct. No timestamp lands on :00 or :30 seconds. The first timestamp
    is ``start`` unless it has to move off round seconds. The window is only
    widened when it has fewer non-round seconds than commits.

    Args:
        count: Number of timestamps.
        start: Start of the window; naive values use the local timezone.
        spread: Length of the window.
        rng: Random source, for reproducible schedules.
        min_gap: Gap floor (default min(60s, 0.3 * average gap)).
        max_gap: Gap ceiling (default 2 * average gap).

    Returns:
        Schedule with strictly increasing, timezone-aware timestamps.

    Raises:
        InvalidScheduleError: If count is negative or spread is not positive.
    """
    if count < 0:
        raise InvalidScheduleError(f"Cannot schedule {count} commits")
    rng = rng or random.Random()
    start = _ceil_second(_aware(start))
    schedule = Schedule(timestamps=[])
    if count == 0:
        return schedule
    if count == 1:
        begin = int(start.timestamp())
        if not _allowed(begin):
            reach = max(1, min(NUDGE_SECONDS, int(spread.total_seconds())))
            begin = _nudge(begin, begin, begin + reach, rng)
        schedule.timestamps.append(datetime.fromtimestamp(begin, tz=start.tzinfo))
        return schedule

    total = int(spread.total_seconds())
    if total <= 0:
        raise InvalidScheduleError("Spread must be a positive duration")

    begin = int(start.timestamp())
    steps = count - 1
    if _allowed_between(begin, begin + total) < count:
        # Not enough non-round seconds for strictly increasing timestamps
        needed = total
        while _allowed_between(begin, begin + needed) < count:
            needed += 1
        schedule.warnings.append(
            f"Spread of {format_duration(spread)} cannot hold {count} separate commit times; "
            f"using {format_duration(timedelta(seconds=needed))} instead."
        )
        total = needed

    distinct = total >= steps * (steps + 1) + 2
    if not distinct:
        schedule.warnings.append(
            f"Spread of {format_duration(spread)} is too short for {count} commits "
            f"to all have different gaps; some gaps repeat."
        )

    average = total / steps
    low = min_gap.total_seconds() if min_gap is not None else min(DEFAULT_FLOOR_SECONDS, JITTER_LOW * average)
    high = max_gap.total_seconds() if max_gap is not None else JITTER_HIGH * average

    if low * steps > total or low < 0:
        error = InvalidScheduleError(
            f"Minimum gap of {format_duration(timedelta(seconds=low))} does not fit "
            f"{count} commits in {format_duration(timedelta(seconds=total))}"
        )
        low = min(DEFAULT_FLOOR_SECONDS, JITTER_LOW * average)
        schedule.warnings.append(f"{error}; using {format_duration(timedelta(seconds=low))}.")
    if high * steps < total or high < low:
        error = InvalidScheduleError(
            f"Maximum gap of {format_duration(timedelta(seconds=high))} cannot fill "
            f"{format_duration(timedelta(seconds=total))} with {count} commits"
        )
        high = JITTER_HIGH * average
        schedule.warnings.append(f"{error}; using {format_duration(timedelta(seconds=high))}.")
    low = max(low, 1.0)

    end = begin + total
    positions = None
    for _ in range(MAX_ATTEMPTS):
        positions = _draw(count, begin, total, low, high, rng, distinct)
        if positions is not None:
            break
    if positions is None:
        schedule.warnings.append(
            "Could not draw a jittered schedule; using evenly spaced times."
        )
        positions = _increasing(count, begin, total) if distinct else None
        if positions is None or not _valid(positions, begin, end, distinct):
            positions = _even(count, begin, total)

    schedule.timestamps = [datetime.fromtimestamp(p, tz=start.tzinfo) for p in positions]
    return schedule


def parse_duration(text: str) -> timedelta:
    """Parse a duration such as "2h", "30m", "1d", "45s" or "1h30m".

    A bare number is read as hours.

    Raises:
        InvalidScheduleError: If the text is malformed or not positive.
    """
    if _NUMBER_RE.match(text):
        seconds = float(text) * 3600
    elif _DURATION_RE.match(text):
        seconds = sum(
            float(amount) * _UNIT_SECONDS[unit.lower()]
            for amount, unit in _DURATION_PART_RE.findall(text)
        )
    else:
        raise InvalidScheduleError(
            f"Invalid duration '{text}'. Use forms like 2h, 30m, 1d, 45s or 1h30m."
        )
    if seconds <= 0:
        raise InvalidScheduleError(f"Duration must be positive: '{text}'")
    return timedelta(seconds=seconds)


def parse_start_time(text: str) -> datetime:
    """Parse a start instant.

    Accepts "YYYY-MM-DD HH:MM[:SS]", ISO 8601, a bare date (09:00 that day)
    or "now". Naive values are interpreted in the local timezone.

    Raises:
        InvalidScheduleError: If the text is not a recognised instant.
    """
    value = text.strip()
    if value.lower() == "now":
        return datetime.now().astimezone()
    if _DATE_ONLY_RE.match(value):
        try:
            day = datetime.strptime(value, "%Y-%m-%d")
        except ValueError as e:
            raise InvalidScheduleError(f"Invalid start date '{text}': {e}")
        return _aware(day.replace(hour=DEFAULT_START_HOUR))
    for fmt in _START_FORMATS:
        try:
            return _aware(datetime.strptime(value, fmt))
        except ValueError:
            continue
    try:
        return _aware(datetime.fromisoformat(value))
    except ValueError:
        raise InvalidScheduleError(
            f"Invalid start time '{text}'. Use 'YYYY-MM-DD HH:MM' or ISO 8601."
        )


def default_spread(rng: Optional[random.Random] = None) -> timedelta:
    """A window of 2 to 4 hours, about one coding session."""
    rng = rng or random.Random()
    return timedelta(seconds=rng.randint(2 * 3600, 4 * 3600))


def format_duration(duration: timedelta) -> str:
    """Render a duration as e.g. "2h 5m 3s"."""
    seconds = int(duration.total_seconds())
    if seconds <= 0:
        return "0s"
    parts = []
    for unit, size in (("d", 86400), ("h", 3600), ("m", 60), ("s", 1)):
        amount, seconds = divmod(seconds, size)
        if amount:
            parts.append(f"{amount}{unit}")
    return " ".join(parts)
