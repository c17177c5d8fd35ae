from datetime import date

import pytest

from app.models.study.study_plan_model import Difficulty, ModuleType
from app.services.study_plan_service import (
    clamp_question_count,
    compute_target_date,
    module_type_for,
    normalize_difficulty,
    parse_duration_minutes,
    parse_target_days,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        (90, 90),
        (45.0, 45),
        ("120", 120),
        ("120 menit", 120),
        ("3 jam 45 menit", 225),
        ("2 hours", 120),
        ("1.5 jam", 90),
        ("1h 30m", 90),
        ("30 mins", 30),
        ("sekitar 40", 40),
    ],
)
def test_parse_duration_minutes(value, expected):
    assert parse_duration_minutes(value, 60) == expected


@pytest.mark.parametrize("value", [None, True, "", "flexible", [], 0, -5, 0.4, float("nan")])
def test_parse_duration_minutes_falls_back_to_default(value):
    assert parse_duration_minutes(value, 25) == 25


def test_days_word_is_not_read_as_hours():
    assert parse_duration_minutes("3 hari", 60) == 3


@pytest.mark.parametrize(
    "value, expected",
    [
        (10, 10),
        ("7 hari", 7),
        ("14 days", 14),
        ("2 minggu", 14),
        ("dalam 5", 5),
        (None, 7),
        ("secepatnya", 7),
        (False, 7),
    ],
)
def test_parse_target_days(value, expected):
    assert parse_target_days(value) == expected


def test_compute_target_date():
    assert compute_target_date(7, today=date(2024, 1, 1)) == date(2024, 1, 8)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("easy", Difficulty.EASY),
        ("Mudah", Difficulty.EASY),
        ("sedang", Difficulty.MEDIUM),
        ("intermediate", Difficulty.MEDIUM),
        ("SULIT", Difficulty.HARD),
        ("advanced", Difficulty.HARD),
        ("unknown", Difficulty.MEDIUM),
        (None, Difficulty.MEDIUM),
    ],
)
def test_normalize_difficulty(value, expected):
    assert normalize_difficulty(value) is expected


def test_module_types_follow_schedule_position():
    assert [module_type_for(i, 4) for i in range(4)] == [
        ModuleType.INTRO,
        ModuleType.CORE,
        ModuleType.CORE,
        ModuleType.SUMMARY,
    ]
    assert module_type_for(0, 1) is ModuleType.INTRO


def test_question_count_is_clamped():
    assert clamp_question_count(None) == 15
    assert clamp_question_count(1) == 5
    assert clamp_question_count(100) == 35
    assert clamp_question_count(20) == 20
