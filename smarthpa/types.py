"""Resource types of the autoscaling.sarabala.io/v1alpha1 API group."""

from __future__ import annotations

import copy
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

GROUP = "autoscaling.sarabala.io"
VERSION = "v1alpha1"
GROUP_VERSION = f"{GROUP}/{VERSION}"

# Indexed by day number with Sunday as 0.
WEEKDAY_SHORT = ("M", "TU", "W", "TH", "F", "SAT", "SUN")

CONDITION_TRUE = "True"
CONDITION_FALSE = "False"

_DATE_ONLY = re.compile(r"\d{4}-\d{2}-\d{2}")


def load_timezone(name: str) -> tzinfo:
    """Return the time zone called ``name``; an empty name means UTC.

    Raises ValueError for a name that is not a known time zone.
    """
    if name in ("", "UTC"):
        return timezone.utc
    if name == "Local":
        local = datetime.now().astimezone().tzinfo
        return local if local is not None else timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as exc:
        raise ValueError(f"unknown time zone {name}") from exc


def _parse_date(text: str) -> datetime:
    if not _DATE_ONLY.fullmatch(text):
        raise ValueError(f"cannot parse {text!r} as a date")
    return datetime.strptime(text, "%Y-%m-%d").replace(tzinfo=timezone.utc)


@dataclass
class HPAObjectReference:
    namespace: str = ""
    name: str = ""


@dataclass
class HPAConfig:
    min_replicas: int | None = None
    max_replicas: int | None = None
    desired_replicas: int | None = None

    def deep_copy(self) -> HPAConfig:
        return copy.deepcopy(self)


@dataclass
class Interval:
    recurring: str = ""
    start_date: str = ""
    end_date: str = ""

    def deep_copy(self) -> Interval:
        return copy.deepcopy(self)


@dataclass
class Trigger:
    name: str = ""
    priority: int | None = None
    timezone: str = ""
    interval: Interval | None = None
    start_time: str = ""
    end_time: str = ""
    start_hpa_config: HPAConfig | None = None
    end_hpa_config: HPAConfig | None = None
    suspend: bool = False

    def need_recurring(self, now: datetime | None = None) -> bool:
        """Tell whether the trigger applies on the day of ``now`` (default: the current time)."""
        try:
            loc = load_timezone(self.timezone)
        except ValueError:
            loc = timezone.utc
        now = datetime.now(loc) if now is None else now.astimezone(loc)

        interval = self.interval if self.interval is not None else Interval()
        if interval.recurring:
            current_day = WEEKDAY_SHORT[now.isoweekday() % 7]
            return current_day in interval.recurring

        try:
            start = _parse_date(interval.start_date).astimezone(loc)
            end = _parse_date(interval.end_date).astimezone(loc)
        except ValueError:
            return False
        return start < now < end and bool(interval.recurring)

    def deep_copy(self) -> Trigger:
        return copy.deepcopy(self)


@dataclass
class Condition:
    type: str = ""
    status: str = ""
    reason: str = ""
    message: str = ""
    last_transition_time: datetime | None = None


@dataclass
class ObjectMeta:
    name: str = ""
    namespace: str = ""


@dataclass
class SmartHorizontalPodAutoscalerSpec:
    hpa_object_ref: HPAObjectReference | None = None
    triggers: list[Trigger] = field(default_factory=list)


@dataclass
class SmartHorizontalPodAutoscalerStatus:
    conditions: list[Condition] = field(default_factory=list)
    hpa_object_ref: HPAObjectReference | None = None
    triggers: list[Trigger] = field(default_factory=list)


@dataclass
class SmartHorizontalPodAutoscaler:
    metadata: ObjectMeta = field(default_factory=ObjectMeta)
    spec: SmartHorizontalPodAutoscalerSpec = field(default_factory=SmartHorizontalPodAutoscalerSpec)
    status: SmartHorizontalPodAutoscalerStatus = field(
        default_factory=SmartHorizontalPodAutoscalerStatus
    )

    kind = "SmartHorizontalPodAutoscaler"
    api_version = GROUP_VERSION

    def deep_copy(self) -> SmartHorizontalPodAutoscaler:
        return copy.deepcopy(self)


@dataclass
class SmartHorizontalPodAutoscalerList:
    items: list[SmartHorizontalPodAutoscaler] = field(default_factory=list)

    kind = "SmartHorizontalPodAutoscalerList"
    api_version = GROUP_VERSION