"""Calendar-based cycle phase classification.

Maps a stored cycle (start date, cycle length, period duration) and a
reference instant to one of six phases.  The result is a function of "now",
so it is computed on every read and never persisted.

Boundary rules, applied in order (first match wins), with ``d`` the number
of whole days elapsed since ``start_date``:

    no cycle / no start date   -> unknown
    d <= period_duration       -> menstrual
    d <= 13                    -> follicular
    d <= 15                    -> ovulation
    d <= cycle_length          -> luteal
    otherwise                  -> new_cycle

The 13 / 15 boundaries are fixed and do not scale with ``cycle_length``.
Inconsistent configurations are classified as-is.  A future start date gives
a negative ``d`` and therefore ``menstrual``.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime, time, timedelta, timezone
from enum import Enum
from typing import Any

DEFAULT_CYCLE_LENGTH = 28
DEFAULT_PERIOD_DURATION = 5
FOLLICULAR_LAST_DAY = 13
OVULATION_LAST_DAY = 15

_ONE_DAY = timedelta(days=1)


class CyclePhase(str, Enum):
    menstrual = "menstrual"
    follicular = "follicular"
    ovulation = "ovulation"
    luteal = "luteal"
    new_cycle = "new_cycle"
    unknown = "unknown"


def _field(cycle: Any, name: str) -> Any:
    if isinstance(cycle, Mapping):
        return cycle.get(name)
    return getattr(cycle, name, None)


def _as_utc_datetime(value: Any) -> datetime | None:
    """Coerce a date, datetime or ISO string to an aware UTC datetime.

    Bare dates are taken as UTC midnight.
    """
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        try:
            return value.astimezone(timezone.utc)
        except OverflowError:
            # offset pushes the instant past year 1 or 9999
            return None
    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)
    return None


def _positive_int(value: Any, default: int) -> int:
    # 0 / None / junk / infinities fall back to the default
    if isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return default
    return number or default


def days_since_start(cycle: Any, now: date | datetime | None = None) -> int | None:
    """Whole days elapsed since the cycle's start date (floor), or None."""
    if cycle is None:
        return None
    start = _as_utc_datetime(_field(cycle, "start_date"))
    if start is None:
        return None
    reference = _as_utc_datetime(now) if now is not None else datetime.now(timezone.utc)
    if reference is None:
        return None
    return (reference - start) // _ONE_DAY


def classify_phase(cycle: Any, now: date | datetime | None = None) -> CyclePhase:
    """Return the cycle phase for ``cycle`` as of ``now``.

    ``cycle`` may be a mapping or any object exposing ``start_date``,
    ``cycle_length`` and ``period_duration``.  Never raises.
    """
    d = days_since_start(cycle, now)
    if d is None:
        return CyclePhase.unknown

    cycle_length = _positive_int(_field(cycle, "cycle_length"), DEFAULT_CYCLE_LENGTH)
    period_duration = _positive_int(
        _field(cycle, "period_duration"), DEFAULT_PERIOD_DURATION
    )

    if d <= period_duration:
        return CyclePhase.menstrual
    if d <= FOLLICULAR_LAST_DAY:
        return CyclePhase.follicular
    if d <= OVULATION_LAST_DAY:
        return CyclePhase.ovulation
    if d <= cycle_length:
        return CyclePhase.luteal
    return CyclePhase.new_cycle
