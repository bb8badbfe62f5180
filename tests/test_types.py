from datetime import datetime, timezone

import pytest
from freezegun import freeze_time

from smarthpa.types import (
    CONDITION_TRUE,
    Condition,
    HPAConfig,
    HPAObjectReference,
    Interval,
    ObjectMeta,
    SmartHorizontalPodAutoscaler,
    SmartHorizontalPodAutoscalerSpec,
    SmartHorizontalPodAutoscalerStatus,
    Trigger,
    load_timezone,
)


def _business_trigger():
    return Trigger(
        name="business-hours",
        start_time="09:00:00",
        end_time="17:00:00",
        timezone="America/Los_Angeles",
        interval=Interval(recurring="M,TU,W,TH,F"),
        start_hpa_config=HPAConfig(min_replicas=1, max_replicas=5),
        end_hpa_config=HPAConfig(min_replicas=1, max_replicas=5),
    )


def test_smart_hpa_deep_copy():
    shpa = SmartHorizontalPodAutoscaler(
        metadata=ObjectMeta(name="test-shpa", namespace="default"),
        spec=SmartHorizontalPodAutoscalerSpec(
            hpa_object_ref=HPAObjectReference(name="test-hpa", namespace="default"),
            triggers=[_business_trigger()],
        ),
        status=SmartHorizontalPodAutoscalerStatus(
            conditions=[
                Condition(
                    type="Ready",
                    status=CONDITION_TRUE,
                    reason="ScheduleCreated",
                    message="Schedule created successfully",
                )
            ]
        ),
    )
    copied = shpa.deep_copy()
    shpa.metadata.name = "new-shpa"
    shpa.spec.hpa_object_ref.name = "new-hpa"
    shpa.status.conditions[0].type = "Error"

    assert copied.metadata.name == "test-shpa"
    assert copied.spec.hpa_object_ref.name == "test-hpa"
    assert copied.status.conditions[0].type == "Ready"


@freeze_time("2025-04-23 12:00:00")
def test_need_recurring_with_recurring_pattern():
    trigger = Trigger(interval=Interval(recurring="M,TU,W,TH,F"))
    assert trigger.need_recurring() is True


@freeze_time("2025-04-23 12:00:00")
def test_need_recurring_without_recurring_pattern():
    trigger = Trigger(interval=Interval())
    assert trigger.need_recurring() is False


@freeze_time("2025-04-23 12:00:00")
def test_need_recurring_with_dates():
    trigger = Trigger(
        interval=Interval(
            start_date="2025-04-23T09:00:00-07:00",
            end_date="2025-04-24T09:00:00-07:00",
        )
    )
    assert trigger.need_recurring() is False


def test_need_recurring_with_valid_dates_and_no_pattern_is_false():
    trigger = Trigger(interval=Interval(start_date="2025-04-01", end_date="2025-05-01"))
    now = datetime(2025, 4, 15, 12, 0, tzinfo=timezone.utc)
    assert trigger.need_recurring(now) is False


@pytest.mark.parametrize(
    "moment, expected",
    [
        (datetime(2025, 4, 27, 12, 0, tzinfo=timezone.utc), True),  # Sunday -> "M"
        (datetime(2025, 4, 25, 12, 0, tzinfo=timezone.utc), False),  # Friday -> "SAT"
        (datetime(2025, 4, 26, 12, 0, tzinfo=timezone.utc), False),  # Saturday -> "SUN"
    ],
)
def test_need_recurring_day_lookup(moment, expected):
    trigger = Trigger(timezone="UTC", interval=Interval(recurring="M,TU,W,TH,F"))
    assert trigger.need_recurring(moment) is expected


def test_need_recurring_invalid_timezone_falls_back_to_utc():
    trigger = Trigger(timezone="Not/AZone", interval=Interval(recurring="SAT"))
    moment = datetime(2025, 4, 25, 23, 30, tzinfo=timezone.utc)
    assert trigger.need_recurring(moment) is True


def test_hpa_config_deep_copy():
    config = HPAConfig(min_replicas=1, max_replicas=5, desired_replicas=3)
    copied = config.deep_copy()
    config.min_replicas = 2
    config.max_replicas = 6
    config.desired_replicas = 4
    assert copied.min_replicas == 1
    assert copied.max_replicas == 5
    assert copied.desired_replicas == 3


def test_interval_deep_copy():
    interval = Interval(recurring="M,TU,W,TH,F")
    copied = interval.deep_copy()
    interval.recurring = "SA,SU"
    assert copied.recurring == "M,TU,W,TH,F"


def test_trigger_deep_copy():
    trigger = _business_trigger()
    copied = trigger.deep_copy()
    trigger.name = "night-shift"
    trigger.start_time = "18:00:00"
    trigger.end_time = "06:00:00"
    trigger.timezone = "UTC"
    trigger.start_hpa_config.min_replicas = 2

    assert copied.name == "business-hours"
    assert copied.start_time == "09:00:00"
    assert copied.end_time == "17:00:00"
    assert copied.timezone == "America/Los_Angeles"
    assert copied.start_hpa_config.min_replicas == 1


@pytest.mark.parametrize("name", ["", "UTC"])
def test_load_timezone_utc(name):
    assert load_timezone(name) is timezone.utc


def test_load_timezone_unknown_raises():
    with pytest.raises(ValueError):
        load_timezone("Nowhere/Invalid_Zone")