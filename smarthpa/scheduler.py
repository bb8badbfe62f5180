"""Schedules HPA replica settings from the triggers of SmartHPA resources."""

from __future__ import annotations

import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import IntEnum
from queue import Empty, Queue

from smarthpa.client import HorizontalPodAutoscaler, InMemoryClient, NamespacedName, NotFoundError
from smarthpa.cron import Cron
from smarthpa.types import HPAConfig, SmartHorizontalPodAutoscaler, Trigger, load_timezone

logger = logging.getLogger(__name__)

_TIME_OF_DAY = re.compile(r"(\d{1,2}):(\d{2}):(\d{2})")


class ScheduleState(IntEnum):
    NOT_STARTED = -1
    WITHIN = 0
    AFTER = 1


def parse_time_string(time_str: str, now: datetime | None = None) -> datetime:
    """Return ``now`` (default: the current time) with its time of day set to ``HH:MM:SS``.

    Raises ValueError for an empty or malformed string.
    """
    if not time_str:
        raise ValueError("empty time string")
    match = _TIME_OF_DAY.fullmatch(time_str)
    if match is None:
        raise ValueError(f"invalid time format: {time_str!r}")
    hour, minute, second = (int(part) for part in match.groups())
    if hour > 23 or minute > 59 or second > 59:
        raise ValueError(f"invalid time format: {time_str!r} is out of range")
    base = datetime.now() if now is None else now
    return base.replace(hour=hour, minute=minute, second=second, microsecond=0)


@dataclass(eq=False)
class TriggerSchedule:
    """One trigger of a SmartHPA together with the cron that applies it."""

    client: InMemoryClient | None = None
    hpa_namespaced_name: NamespacedName = field(default_factory=NamespacedName)
    trigger: Trigger | None = None
    cron: Cron = field(default_factory=Cron)
    _scheduled: bool = field(default=False, init=False, repr=False)

    def get_cron_tab(self, time_str: str) -> str:
        """Return a six-field daily cron expression for a ``HH:MM:SS`` time."""
        moment = parse_time_string(time_str)
        return f"0 {moment.minute} {moment.hour} * * *"

    def is_within_time_window(self, current_time: datetime) -> ScheduleState:
        trigger = self.trigger
        start = parse_time_string(trigger.start_time, current_time)
        end = parse_time_string(trigger.end_time, current_time)

        current = (current_time.hour, current_time.minute)
        start_hm = (start.hour, start.minute)
        end_hm = (end.hour, end.minute)
        logger.info(
            "time comparison for trigger %s: current %02d:%02d, start %02d:%02d, end %02d:%02d",
            trigger.name, *current, *start_hm, *end_hm,
        )

        if current == start_hm or start_hm < current < end_hm:
            return ScheduleState.WITHIN
        if current < start_hm:
            return ScheduleState.NOT_STARTED
        return ScheduleState.AFTER

    def _cron_spec(self, tab: str) -> str:
        return tab if self.cron.with_seconds else tab.split(" ", 1)[1]

    def _apply(self, config: HPAConfig | None, which: str) -> None:
        name = self.trigger.name
        if config is None:
            logger.warning("trigger %s has no %s config", name, which)
            return
        try:
            self.update_hpa_config(config)
        except (LookupError, ValueError) as exc:
            logger.error("failed to apply %s config for trigger %s: %s", which, name, exc)

    def schedule(self) -> None:
        """Apply the start config if now is in the window and set up the start and end jobs."""
        trigger = self.trigger
        logger.info(
            "scheduling trigger %s from %s to %s", trigger.name, trigger.start_time, trigger.end_time
        )
        try:
            state = self.is_within_time_window(datetime.now(self.cron.location))
        except ValueError as exc:
            logger.error("failed to check time window for trigger %s: %s", trigger.name, exc)
            return

        if state is ScheduleState.WITHIN:
            logger.info("within window, applying start config for trigger %s", trigger.name)
            self._apply(trigger.start_hpa_config, "start")

        if self._scheduled:
            self.cron.start()
            return

        try:
            start = self.get_cron_tab(trigger.start_time)
            end = self.get_cron_tab(trigger.end_time)
        except ValueError as exc:
            logger.error("failed to build cron for trigger %s: %s", trigger.name, exc)
            return
        logger.info("scheduling trigger %s from %s to %s", trigger.name, start, end)

        try:
            self.cron.add_func(
                self._cron_spec(start), lambda: self._apply(trigger.start_hpa_config, "start")
            )
            self.cron.add_func(
                self._cron_spec(end), lambda: self._apply(trigger.end_hpa_config, "end")
            )
        except ValueError as exc:
            logger.error("failed to add cron for trigger %s: %s", trigger.name, exc)
            return

        self._scheduled = True
        self.cron.start()

    def update_hpa_config(self, config: HPAConfig) -> None:
        """Write the set fields of ``config`` onto the referenced HPA."""
        key = self.hpa_namespaced_name
        logger.info("updating HPA %s with config %s", key, config)
        try:
            hpa = self.client.get(key, HorizontalPodAutoscaler)
        except NotFoundError as exc:
            logger.error("failed to get HPA %s: %s", key, exc)
            raise

        if config.min_replicas is not None:
            hpa.min_replicas = config.min_replicas
        if config.max_replicas is not None:
            hpa.max_replicas = config.max_replicas
        if config.desired_replicas is not None:
            hpa.desired_replicas = config.desired_replicas

        try:
            self.client.update(hpa)
        except NotFoundError as exc:
            logger.error("failed to update HPA %s: %s", key, exc)
            raise
        logger.info(
            "updated HPA %s with min=%s, max=%s, desired=%s",
            key, hpa.min_replicas, hpa.max_replicas, hpa.desired_replicas,
        )


@dataclass(eq=False)
class SmartHPAContext:
    """The trigger schedules of one SmartHPA and the cron that refreshes them daily."""

    client: InMemoryClient | None = None
    schedules: dict[str, TriggerSchedule] = field(default_factory=dict)
    cron: Cron = field(default_factory=Cron)
    _refresh_id: int | None = field(default=None, init=False, repr=False)

    def execute(self) -> None:
        logger.info("executing SmartHPA context with %d schedules", len(self.schedules))
        for schedule in list(self.schedules.values()):
            if schedule.trigger is not None and schedule.trigger.need_recurring():
                schedule.schedule()
        if self._refresh_id is None:
            self._refresh_id = self.cron.add_func("@midnight", self.execute)


class Scheduler:
    """Takes SmartHPA names off a queue and keeps their trigger schedules running."""

    workers = 10

    def __init__(self, client: InMemoryClient, work_queue: Queue) -> None:
        self.client = client
        self.queue = work_queue
        self.contexts: dict[NamespacedName, SmartHPAContext] = {}
        self._lock = threading.RLock()
        self._stopping = threading.Event()
        self._threads: list[threading.Thread] = []

    def process_item(self, item: NamespacedName) -> None:
        logger.info("processing SmartHPA %s", item)
        try:
            obj = self.client.get(item, SmartHorizontalPodAutoscaler)
        except NotFoundError as exc:
            logger.error("error getting SmartHPA %s: %s", item, exc)
            return
        ref = obj.spec.hpa_object_ref
        if ref is None:
            logger.error("SmartHPA %s has no HPA reference", item)
            return
        hpa_key = NamespacedName(namespace=ref.namespace, name=ref.name)

        with self._lock:
            context = self.contexts.get(item)
            if context is None:
                context = SmartHPAContext(client=self.client, cron=Cron(with_seconds=True))
                self.contexts[item] = context
            for trigger in obj.spec.triggers:
                try:
                    location = load_timezone(trigger.timezone)
                except ValueError as exc:
                    logger.error("invalid timezone %s: %s", trigger.timezone, exc)
                    location = timezone.utc
                previous = context.schedules.get(trigger.name)
                if previous is not None:
                    previous.cron.stop()
                context.schedules[trigger.name] = TriggerSchedule(
                    client=self.client,
                    hpa_namespaced_name=hpa_key,
                    trigger=trigger,
                    cron=Cron(with_seconds=True, location=location),
                )
            context.cron.start()
            context.execute()

    def _work(self) -> None:
        while not self._stopping.is_set():
            try:
                item = self.queue.get(timeout=0.1)
            except Empty:
                continue
            try:
                self.process_item(item)
            finally:
                self.queue.task_done()

    def start(self) -> None:
        if self._threads:
            return
        self._stopping.clear()
        for number in range(self.workers):
            thread = threading.Thread(target=self._work, name=f"scheduler-{number}", daemon=True)
            thread.start()
            self._threads.append(thread)

    def stop(self) -> None:
        self._stopping.set()
        for thread in self._threads:
            thread.join(timeout=5)
        self._threads.clear()
        with self._lock:
            for context in self.contexts.values():
                context.cron.stop()
                for schedule in context.schedules.values():
                    schedule.cron.stop()