"""Tests for weekly template validation and storage."""

from datetime import time

import pytest

from clinic_scheduler.domain.availability.template import (
    DaySchedule,
    TimeRange,
    build_template,
    template_from_json,
    template_to_json,
)
from clinic_scheduler.domain.scheduling.errors import (
    EmptyRanges,
    InvalidDay,
    InvalidRange,
    NotFound,
    OverlappingRanges,
)
from clinic_scheduler.domain.scheduling.types import Weekday

from conftest import PROVIDER

VALID = {
    "monday": {"enabled": True, "ranges": [{"start": "09:00", "end": "11:00"}]},
    "friday": {
        "enabled": True,
        "ranges": [{"start": "14:00", "end": "16:00"}, {"start": "09:00", "end": "12:00"}],
    },
}


def test_build_template_sorts_ranges_and_days():
    template = build_template({"friday": VALID["friday"], "monday": VALID["monday"]})

    assert list(template) == [Weekday.MONDAY, Weekday.FRIDAY]
    assert template[Weekday.FRIDAY].ranges == (
        TimeRange(time(9, 0), time(12, 0)),
        TimeRange(time(14, 0), time(16, 0)),
    )


def test_build_template_accepts_day_entries():
    template = build_template(
        [
            {"day": "Monday", "enabled": True, "ranges": [{"start": "09:00", "end": "10:00"}]},
            {"day": "saturday", "enabled": False, "ranges": []},
        ]
    )
    assert template[Weekday.MONDAY] == DaySchedule(True, (TimeRange(time(9), time(10)),))
    assert template[Weekday.SATURDAY] == DaySchedule(False, ())


def test_touching_ranges_do_not_overlap():
    template = build_template(
        {
            "tuesday": {
                "enabled": True,
                "ranges": [{"start": "10:00", "end": "11:00"}, {"start": "11:00", "end": "12:00"}],
            }
        }
    )
    assert len(template[Weekday.TUESDAY].ranges) == 2


@pytest.mark.parametrize("enabled", [True, False])
def test_sunday_is_rejected(enabled):
    with pytest.raises(InvalidDay):
        build_template({"sunday": {"enabled": enabled, "ranges": [{"start": "09:00", "end": "10:00"}]}})


@pytest.mark.parametrize("day", ["funday", "", None])
def test_unknown_day_is_rejected(day):
    with pytest.raises(InvalidDay):
        build_template([{"day": day, "enabled": False, "ranges": []}])


def test_duplicate_day_is_rejected():
    with pytest.raises(InvalidDay):
        build_template(
            [
                {"day": "monday", "enabled": False, "ranges": []},
                {"day": "MONDAY", "enabled": False, "ranges": []},
            ]
        )


def test_enabled_day_without_ranges():
    with pytest.raises(EmptyRanges):
        build_template({"monday": {"enabled": True, "ranges": []}})


def test_disabled_day_without_ranges_is_fine():
    assert build_template({"monday": {"enabled": False}})[Weekday.MONDAY] == DaySchedule(False, ())


@pytest.mark.parametrize(
    "time_range",
    [
        {"start": "10:00", "end": "10:00"},
        {"start": "11:00", "end": "10:00"},
        {"start": "25:00", "end": "26:00"},
        {"start": "nine", "end": "10:00"},
        {"start": "09:00"},
    ],
)
def test_invalid_range(time_range):
    with pytest.raises(InvalidRange):
        build_template({"monday": {"enabled": True, "ranges": [time_range]}})


def test_overlapping_ranges():
    with pytest.raises(OverlappingRanges):
        build_template(
            {
                "monday": {
                    "enabled": True,
                    "ranges": [{"start": "09:00", "end": "11:00"}, {"start": "10:30", "end": "12:00"}],
                }
            }
        )


def test_json_round_trip():
    template = build_template(VALID)
    assert template_from_json(template_to_json(template)) == template


def test_get_schedule_returns_submitted_template(availability):
    saved = availability.set_schedule(PROVIDER.user_id, VALID)

    assert availability.get_schedule(PROVIDER.user_id) == saved == build_template(VALID)


def test_get_schedule_not_found(availability):
    with pytest.raises(NotFound):
        availability.get_schedule("nobody")
    assert availability.get_schedule_or_none("nobody") is None


def test_set_schedule_replaces_previous_template(availability):
    availability.set_schedule(PROVIDER.user_id, VALID)
    availability.set_schedule(
        PROVIDER.user_id, {"wednesday": {"enabled": True, "ranges": [{"start": "12:00", "end": "13:00"}]}}
    )

    template = availability.get_schedule(PROVIDER.user_id)
    assert list(template) == [Weekday.WEDNESDAY]


def test_invalid_template_leaves_prior_template_untouched(availability):
    availability.set_schedule(PROVIDER.user_id, VALID)

    with pytest.raises(OverlappingRanges):
        availability.set_schedule(
            PROVIDER.user_id,
            {
                "monday": {"enabled": True, "ranges": [{"start": "13:00", "end": "14:00"}]},
                "tuesday": {
                    "enabled": True,
                    "ranges": [{"start": "09:00", "end": "11:00"}, {"start": "10:00", "end": "12:00"}],
                },
            },
        )

    assert availability.get_schedule(PROVIDER.user_id) == build_template(VALID)


def test_list_providers(availability):
    availability.set_schedule("dr-b", VALID)
    availability.set_schedule("dr-a", VALID)
    assert availability.list_providers() == ["dr-a", "dr-b"]
