# smarthpa

`smarthpa` changes the replica limits of a horizontal pod autoscaler
according to daily time windows. A `SmartHorizontalPodAutoscaler` names one
autoscaler and holds a list of triggers. Each `Trigger` has:

- a start time and an end time, written as `HH:MM:SS`
- a time zone name (empty means UTC; an unknown name falls back to UTC)
- an `Interval` whose `recurring` string lists the weekdays it applies on:
  `M`, `TU`, `W`, `TH`, `F`, `SAT`, `SUN`
- an `HPAConfig` to apply at the start time and one to apply at the end time

The package has no dependencies outside the standard library.

## Install

```
pip install .
```

With the test tools:

```
pip install ".[test]"
```

## Modules

### `smarthpa.types`

The resource model, as dataclasses: `SmartHorizontalPodAutoscaler` (with
`ObjectMeta`, `SmartHorizontalPodAutoscalerSpec` and
`SmartHorizontalPodAutoscalerStatus`), `SmartHorizontalPodAutoscalerList`,
`Trigger`, `Interval`, `HPAConfig`, `HPAObjectReference` and `Condition`.

- `load_timezone(name)` returns a `tzinfo`; `""` and `"UTC"` give UTC,
  `"Local"` the local zone, and an unknown name raises `ValueError`.
- `Trigger.need_recurring(now=None)` tells whether the trigger applies on the
  weekday of `now` in the trigger's time zone. A trigger without a `recurring`
  weekday list never applies.
- `deep_copy()` on `HPAConfig`, `Interval`, `Trigger` and
  `SmartHorizontalPodAutoscaler` returns an independent copy.

### `smarthpa.client`

- `NamespacedName(namespace, name)` keys objects; it prints as `namespace/name`.
- `HorizontalPodAutoscaler` holds `min_replicas`, `max_replicas`,
  `desired_replicas` and `scale_target_ref`.
- `InMemoryClient` stores objects by type and `NamespacedName`, and hands out
  copies. It offers `create`, `get(key, kind)`, `update`, `update_status`
  (replaces only the stored status) and `delete`. Missing objects raise
  `NotFoundError`; creating an existing one raises `ValueError`.

### `smarthpa.cron`

- `parse_schedule(spec, with_seconds=False)` reads a five-field cron
  expression, or six fields with a leading seconds field, as well as
  `@yearly`, `@annually`, `@monthly`, `@weekly`, `@daily`, `@midnight` and
  `@hourly`. It returns a `CronSchedule`, whose `next(after)` gives the first
  matching time after `after`. Bad expressions raise `ValueError`.
- `Cron(with_seconds=False, location=None)` keeps `CronEntry` jobs added with
  `add_func(spec, func)`. `start()` runs them in a background thread,
  `stop()` ends it, and `run_pending(now=None)` runs every job due at `now`
  and returns their ids. `entries()` lists the jobs, soonest first.

### `smarthpa.scheduler`

- `parse_time_string(time_str, now=None)` sets the time of day of `now` from
  an `HH:MM:SS` string and raises `ValueError` for empty or malformed input.
- `TriggerSchedule` ties a trigger to the autoscaler it changes.
  - `get_cron_tab(time_str)` gives a daily expression such as `"0 30 9 * * *"`.
  - `is_within_time_window(current_time)` compares hours and minutes and
    returns a `ScheduleState`: `NOT_STARTED`, `WITHIN` or `AFTER`.
  - `schedule()` applies the start config at once when the current time is in
    the window, then adds the start and end jobs to its cron and starts it.
  - `update_hpa_config(config)` writes the set fields of an `HPAConfig` onto
    the stored autoscaler.
- `SmartHPAContext.execute()` schedules every trigger that applies today and
  adds a job that runs it again at midnight.
- `Scheduler(client, work_queue)` takes `NamespacedName`s off a
  `queue.Queue`. `start()` runs ten worker threads, `process_item(item)`
  builds the schedules for one resource, and `stop()` ends the workers and
  all crons.

### `smarthpa.controller`

`SmartHorizontalPodAutoscalerReconciler(client, work_queue)` has
`reconcile(key)`:

- A resource that no longer exists is ignored.
- A resource without an HPA reference raises `ValueError`.
- If the referenced autoscaler is missing, it records an `Error` condition
  (reason `HPANotFound`) and raises `NotFoundError`.
- Otherwise it records a `Ready` condition (reason `Reconciled`) and puts the
  key on the work queue.

## Example

```python
from queue import Queue

from smarthpa.client import HorizontalPodAutoscaler, InMemoryClient, NamespacedName
from smarthpa.controller import SmartHorizontalPodAutoscalerReconciler
from smarthpa.scheduler import Scheduler
from smarthpa.types import (
    HPAConfig,
    HPAObjectReference,
    Interval,
    ObjectMeta,
    SmartHorizontalPodAutoscaler,
    SmartHorizontalPodAutoscalerSpec,
    Trigger,
)

hpa = HorizontalPodAutoscaler(
    metadata=ObjectMeta(name="web", namespace="default"), min_replicas=1, max_replicas=5
)
smart_hpa = SmartHorizontalPodAutoscaler(
    metadata=ObjectMeta(name="web-hours", namespace="default"),
    spec=SmartHorizontalPodAutoscalerSpec(
        hpa_object_ref=HPAObjectReference(namespace="default", name="web"),
        triggers=[
            Trigger(
                name="business-hours",
                start_time="09:00:00",
                end_time="17:00:00",
                timezone="America/Los_Angeles",
                interval=Interval(recurring="M,TU,W,TH,F"),
                start_hpa_config=HPAConfig(min_replicas=3, max_replicas=10),
                end_hpa_config=HPAConfig(min_replicas=1, max_replicas=5),
            )
        ],
    ),
)

client = InMemoryClient([hpa, smart_hpa])
work_queue = Queue()
scheduler = Scheduler(client, work_queue)
scheduler.start()

SmartHorizontalPodAutoscalerReconciler(client, work_queue).reconcile(
    NamespacedName(namespace="default", name="web-hours")
)
# ... later
scheduler.stop()
```

## What it does not do

- It does not talk to a cluster. `InMemoryClient` is the only store, so
  changes to autoscalers stay in memory.
- There is no command-line program or long-running manager: no flags, no
  metrics or health endpoints, no leader election, no watching for changes.
  Calling `reconcile` and starting the `Scheduler` is up to the caller.
- The `priority` and `suspend` fields of a trigger, and the start and end
  dates of an `Interval`, are stored but do not change what is scheduled.

## Tests

```
pytest
```