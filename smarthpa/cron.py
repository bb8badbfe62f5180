"""A small cron scheduler: schedule parsing, entries and a background runner."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Callable

logger = logging.getLogger(__name__)

_MONTH_NAMES = {
    name: number
    for number, name in enumerate(
        ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec"),
        start=1,
    )
}
_DOW_NAMES = {
    name: number
    for number, name in enumerate(("sun", "mon", "tue", "wed", "thu", "fri", "sat"))
}

_DESCRIPTORS = {
    "@yearly": "0 0 0 1 1 *",
    "@annually": "0 0 0 1 1 *",
    "@monthly": "0 0 0 1 * *",
    "@weekly": "0 0 0 * * 0",
    "@daily": "0 0 0 * * *",
    "@midnight": "0 0 0 * * *",
    "@hourly": "0 0 * * * *",
}

# Searching further ahead than this means the schedule can never fire.
_SEARCH_YEARS = 5


@dataclass(frozen=True)
class CronSchedule:
    """The set of times matched by a cron expression."""

    seconds: frozenset[int]
    minutes: frozenset[int]
    hours: frozenset[int]
    days_of_month: frozenset[int]
    months: frozenset[int]
    days_of_week: frozenset[int]
    dom_star: bool = False
    dow_star: bool = False

    def _day_matches(self, moment: datetime) -> bool:
        dom_match = moment.day in self.days_of_month
        dow_match = moment.isoweekday() % 7 in self.days_of_week
        if self.dom_star or self.dow_star:
            return dom_match and dow_match
        return dom_match or dow_match

    def next(self, after: datetime) -> datetime | None:
        """Return the first matching time strictly after ``after``, or None if there is none."""
        moment = after.replace(microsecond=0) + timedelta(seconds=1)
        last_year = moment.year + _SEARCH_YEARS
        while moment.year <= last_year:
            if moment.month not in self.months:
                year, month = (moment.year + 1, 1) if moment.month == 12 else (
                    moment.year,
                    moment.month + 1,
                )
                moment = moment.replace(year=year, month=month, day=1, hour=0, minute=0, second=0)
                continue
            if not self._day_matches(moment):
                moment = (moment + timedelta(days=1)).replace(hour=0, minute=0, second=0)
                continue
            if moment.hour not in self.hours:
                moment = moment.replace(minute=0, second=0) + timedelta(hours=1)
                continue
            if moment.minute not in self.minutes:
                moment = moment.replace(second=0) + timedelta(minutes=1)
                continue
            if moment.second not in self.seconds:
                moment += timedelta(seconds=1)
                continue
            return moment
        return None


def _parse_value(text: str, names: dict[str, int]) -> int:
    lowered = text.lower()
    if lowered in names:
        return names[lowered]
    if not text.isdigit():
        raise ValueError(f"failed to parse int from {text!r}")
    return int(text)


def _parse_field(
    text: str, low: int, high: int, names: dict[str, int]
) -> tuple[frozenset[int], bool]:
    values: set[int] = set()
    star = False
    for part in text.split(","):
        range_part, slash, step_text = part.partition("/")
        if slash:
            if not step_text.isdigit() or int(step_text) == 0:
                raise ValueError(f"step of range should be a positive number: {part!r}")
            step = int(step_text)
        else:
            step = 1
        if range_part in ("*", "?"):
            start, end = low, high
            star = star or step == 1
        else:
            low_text, dash, high_text = range_part.partition("-")
            start = _parse_value(low_text, names)
            if dash:
                end = _parse_value(high_text, names)
            else:
                end = high if slash else start
        if start < low:
            raise ValueError(f"beginning of range ({start}) below minimum ({low}): {part!r}")
        if end > high:
            raise ValueError(f"end of range ({end}) above maximum ({high}): {part!r}")
        if start > end:
            raise ValueError(f"beginning of range ({start}) beyond end of range ({end}): {part!r}")
        values.update(range(start, end + 1, step))
    return frozenset(values), star


def parse_schedule(spec: str, with_seconds: bool = False) -> CronSchedule:
    """Parse a cron expression of five fields, or six with a leading seconds field.

    Descriptors such as ``@daily`` and ``@hourly`` are accepted in both forms.
    Raises ValueError for an expression that cannot be parsed.
    """
    text = spec.strip()
    if not text:
        raise ValueError("empty spec string")
    if text.startswith("@"):
        try:
            fields = _DESCRIPTORS[text.lower()].split()
        except KeyError:
            raise ValueError(f"unrecognized descriptor: {text}") from None
    else:
        fields = text.split()
        expected = 6 if with_seconds else 5
        if len(fields) != expected:
            raise ValueError(f"expected exactly {expected} fields, found {len(fields)}: {text}")
        if not with_seconds:
            fields = ["0", *fields]

    seconds, _ = _parse_field(fields[0], 0, 59, {})
    minutes, _ = _parse_field(fields[1], 0, 59, {})
    hours, _ = _parse_field(fields[2], 0, 23, {})
    days_of_month, dom_star = _parse_field(fields[3], 1, 31, {})
    months, _ = _parse_field(fields[4], 1, 12, _MONTH_NAMES)
    days_of_week, dow_star = _parse_field(fields[5], 0, 6, _DOW_NAMES)
    return CronSchedule(
        seconds=seconds,
        minutes=minutes,
        hours=hours,
        days_of_month=days_of_month,
        months=months,
        days_of_week=days_of_week,
        dom_star=dom_star,
        dow_star=dow_star,
    )


@dataclass
class CronEntry:
    id: int
    schedule: CronSchedule
    func: Callable[[], object]
    next: datetime | None = None
    prev: datetime | None = None


def _local_zone() -> tzinfo:
    local = datetime.now().astimezone().tzinfo
    return local if local is not None else timezone.utc


class Cron:
    """Runs functions on cron schedules, in a background thread once started."""

    def __init__(self, with_seconds: bool = False, location: tzinfo | None = None) -> None:
        self.with_seconds = with_seconds
        self.location = location if location is not None else _local_zone()
        self._entries: list[CronEntry] = []
        self._next_id = 1
        self._lock = threading.RLock()
        self._wake = threading.Event()
        self._stopping = threading.Event()
        self._thread: threading.Thread | None = None

    def _now(self) -> datetime:
        return datetime.now(self.location)

    def _localize(self, moment: datetime) -> datetime:
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.location)
        return moment.astimezone(self.location)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def add_func(self, spec: str, func: Callable[[], object]) -> int:
        """Add ``func`` to run on ``spec`` and return the new entry's id."""
        schedule = parse_schedule(spec, self.with_seconds)
        with self._lock:
            entry = CronEntry(
                id=self._next_id, schedule=schedule, func=func, next=schedule.next(self._now())
            )
            self._next_id += 1
            self._entries.append(entry)
        self._wake.set()
        return entry.id

    def entries(self) -> list[CronEntry]:
        """Return copies of the entries, soonest first."""
        with self._lock:
            snapshot = [replace(entry) for entry in self._entries]
        far = datetime.max.replace(tzinfo=timezone.utc)
        return sorted(
            snapshot,
            key=lambda entry: (entry.next is None, entry.next if entry.next is not None else far),
        )

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stopping.clear()
            self._thread = threading.Thread(target=self._run, name="cron", daemon=True)
            self._thread.start()

    def stop(self) -> None:
        with self._lock:
            thread, self._thread = self._thread, None
        self._stopping.set()
        self._wake.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=5)

    def run_pending(self, now: datetime | None = None) -> list[int]:
        """Run every entry due at ``now`` (default: the current time); return their ids."""
        moment = self._now() if now is None else self._localize(now)
        with self._lock:
            due = [entry for entry in self._entries if entry.next is not None and entry.next <= moment]
            for entry in due:
                entry.prev = entry.next
                entry.next = entry.schedule.next(moment)
        for entry in due:
            try:
                entry.func()
            except Exception:
                logger.exception("cron job %d failed", entry.id)
        return [entry.id for entry in due]

    def _run(self) -> None:
        while not self._stopping.is_set():
            self._wake.clear()
            self.run_pending()
            with self._lock:
                upcoming = [entry.next for entry in self._entries if entry.next is not None]
            timeout = None
            if upcoming:
                timeout = max(0.0, (min(upcoming) - self._now()).total_seconds())
                timeout = min(timeout, 60.0)
            self._wake.wait(timeout)