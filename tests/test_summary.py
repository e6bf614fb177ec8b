import pytest
from datetime import date
from domain import DayRecord, Laboral, RequestStatus, UserConfig, Vacances, default_schedule_periods
from summary import eligible_surplus, status_summary, week_start_for, weekly_summary

# Woche 12.01.2026 (Mo) - 18.01.2026 (So), Winter-Dienstplan (7,5h)
WEEK = date(2026, 1, 12)
WEEKDAYS = ["2026-01-12", "2026-01-13", "2026-01-14", "2026-01-15", "2026-01-16"]

def make_config(**kwargs):
    kwargs.setdefault("schedule_periods", default_schedule_periods(2026))
    return UserConfig(**kwargs)

def shift(day, start="07:30", end="15:00", kind=None):
    return DayRecord(day, kind=kind or Laboral(), start_time=start, end_time=end)

# --- 1. Wochenbilanz ---

def test_week_start_is_monday():
    assert week_start_for("2026-01-15") == WEEK
    assert week_start_for(date(2026, 1, 18)) == WEEK
    assert week_start_for(WEEK) == WEEK

def test_empty_week():
    summary = weekly_summary(WEEK, {}, make_config())
    assert summary.week_number == 3
    assert summary.start_date == "2026-01-12"
    assert summary.end_date == "2026-01-18"
    assert summary.theoretical_hours == pytest.approx(37.5)
    assert summary.worked_hours == 0.0
    assert summary.difference == pytest.approx(-37.5)
    assert summary.flexibility_gained == 0.0

def test_vacation_and_holidays_are_excluded():
    # Mo-Do Feiertage, Freitag genehmigter Urlaub -> nichts zählt
    config = make_config(holidays=WEEKDAYS[:4])
    days = {"2026-01-16": DayRecord("2026-01-16", kind=Vacances(request_status=RequestStatus.APROVAT))}
    summary = weekly_summary(WEEK, days, config)
    assert summary.theoretical_hours == 0.0
    assert summary.worked_hours == 0.0

def test_pending_vacation_is_excluded_as_well():
    days = {"2026-01-16": DayRecord("2026-01-16", kind=Vacances())}
    summary = weekly_summary(WEEK, days, make_config())
    assert summary.theoretical_hours == pytest.approx(30.0)

def test_hours_on_holiday_do_not_count():
    config = make_config(holidays=["2026-01-12"])
    days = {"2026-01-12": shift("2026-01-12", end="17:00")}
    summary = weekly_summary(WEEK, days, config)
    assert summary.theoretical_hours == pytest.approx(30.0)
    assert summary.worked_hours == 0.0

def test_weekend_hours_do_not_count():
    days = {"2026-01-17": shift("2026-01-17")}
    assert weekly_summary(WEEK, days, make_config()).worked_hours == 0.0

# --- 2. Flexibilitäts-Gewinn ---

def full_week(friday_end="16:00"):
    days = {d: shift(d) for d in WEEKDAYS[:4]}
    days["2026-01-16"] = shift("2026-01-16", end=friday_end)
    return days

def test_surplus_fills_flexibility_up_to_cap():
    summary = weekly_summary(WEEK, full_week(), make_config(flexibility_hours=24.0))
    assert summary.difference == pytest.approx(1.0)
    assert summary.flexibility_gained == pytest.approx(1.0)

def test_flexibility_gain_limited_by_headroom():
    summary = weekly_summary(WEEK, full_week(), make_config(flexibility_hours=24.8))
    assert summary.flexibility_gained == pytest.approx(0.2)

def test_flexibility_gain_zero_when_full():
    summary = weekly_summary(WEEK, full_week(), make_config(flexibility_hours=25.0))
    assert summary.flexibility_gained == 0.0

def test_small_surplus_is_not_eligible():
    # +15 Minuten liegen unter der Schwelle von 30 Minuten
    summary = weekly_summary(WEEK, full_week(friday_end="15:15"), make_config())
    assert summary.difference == pytest.approx(0.25)
    assert summary.flexibility_gained == 0.0
    assert eligible_surplus(summary) == 0.0

def test_eligible_surplus_at_threshold():
    summary = weekly_summary(WEEK, full_week(friday_end="15:30"), make_config())
    assert eligible_surplus(summary) == pytest.approx(0.5)

# --- 3. Übersicht der Kontingente ---

def test_status_summary():
    days = {
        "2026-02-02": DayRecord("2026-02-02", kind=Vacances(request_status=RequestStatus.APROVAT)),
        "2026-02-03": DayRecord("2026-02-03", kind=Vacances()),
        "2026-02-04": DayRecord("2026-02-04", kind=Vacances()),
        "2026-02-05": shift("2026-02-05"),
    }
    config = make_config(used_vacation_days=1, used_ap_hours=9.0, flexibility_hours=5.0, used_flex_hours=2.0)
    status = status_summary(config, days)

    assert status["requested_vacation_days"] == 3
    assert status["pending_vacation_days"] == 2
    assert status["approved_vacation_days"] == 1
    assert status["remaining_vacation_days"] == 22
    assert status["vacation_progress"] == pytest.approx(12.0)
    assert status["remaining_ap_hours"] == pytest.approx(81.0)
    assert status["ap_progress"] == pytest.approx(10.0)
    assert status["available_flex_hours"] == pytest.approx(3.0)
    assert status["flex_progress"] == pytest.approx(20.0)

def test_status_summary_without_quota():
    status = status_summary(make_config(total_vacation_days=0, total_ap_hours=0.0), {})
    assert status["vacation_progress"] == 0.0
    assert status["ap_progress"] == 0.0
    assert status["remaining_vacation_days"] == 0
