import sqlite3
import pytest
from datetime import date
from domain import (
    AssumptePropi, DayRecord, DayType, Flexibilitat, Laboral, RequestStatus, SchedulePeriod,
    ScheduleType, UserConfig, Vacances, default_config, default_schedule_periods,
)
from models import DayEntry, Settings
from storage import Storage, export_day, export_document, format_weekly_pattern, parse_weekly_pattern

@pytest.fixture
def store():
    # Jede Instanz hat ihre eigene In-Memory Datenbank
    return Storage('sqlite://')

@pytest.fixture
def config():
    return UserConfig(
        calendar_year=2026,
        weekly_config={
            "monday": DayType.TELETREBALL,
            "tuesday": DayType.PRESENCIAL,
            "wednesday": DayType.PRESENCIAL,
            "thursday": DayType.PRESENCIAL,
            "friday": DayType.TELETREBALL,
        },
        schedule_periods=(
            SchedulePeriod("winter", date(2026, 1, 1), date(2026, 5, 31), ScheduleType.HIVERN),
            SchedulePeriod("summer", date(2026, 6, 1), date(2026, 12, 31), ScheduleType.ESTIU),
        ),
        holidays=("2026-12-25", "2026-01-06"),
        used_vacation_days=3,
        used_ap_hours=4.5,
        flexibility_hours=6.0,
        used_flex_hours=1.5,
    )

# --- 1. Konfiguration ---

def test_load_without_config_returns_defaults(store):
    assert store.has_config() is False
    assert store.load() == default_config()

def test_config_roundtrip(store, config):
    store.save(config)
    assert store.has_config() is True
    assert store.load() == config

def test_save_overwrites_periods_and_holidays(store, config):
    store.save(config)
    store.save(UserConfig(schedule_periods=config.schedule_periods[:1], holidays=("2026-05-01",)))
    loaded = store.load()
    assert [p.id for p in loaded.schedule_periods] == ["winter"]
    assert loaded.holidays == ("2026-05-01",)

def test_broken_settings_fall_back_to_defaults(store):
    with store.Session() as session:
        session.add(Settings(weekly_pattern="irgendwas", calendar_year=2026))
        session.commit()
    loaded = store.load()
    assert loaded.weekly_config["thursday"] == DayType.TELETREBALL
    assert loaded.schedule_periods == default_schedule_periods(2026)
    assert loaded.total_vacation_days == 25

@pytest.mark.parametrize("pattern", [None, "", "presencial,teletreball", "a,b,c,d,e"])
def test_parse_weekly_pattern_fallback(pattern):
    assert parse_weekly_pattern(pattern)["monday"] == DayType.PRESENCIAL
    assert parse_weekly_pattern(pattern)["friday"] == DayType.TELETREBALL

def test_weekly_pattern_roundtrip(config):
    assert parse_weekly_pattern(format_weekly_pattern(config.weekly_config)) == config.weekly_config

# --- 2. Tagesdatensätze ---

def test_day_roundtrip(store, config):
    record = DayRecord(
        "2026-01-14", kind=AssumptePropi(hours=2.5, request_status=RequestStatus.APROVAT),
        start_time="08:00", end_time="12:00", start_time2="13:00", end_time2="15:00", notes="Arzt",
    )
    store.save_day_record(record)
    assert store.load_day_records(config) == {"2026-01-14": record}

def test_empty_days_are_not_stored(store, config):
    store.save_day_record(DayRecord("2026-01-14"))
    assert store.load_day_records(config) == {}

def test_saving_empty_day_removes_entry(store, config):
    store.save_day_record(DayRecord("2026-01-14", start_time="08:00", end_time="15:00"))
    store.save_day_record(DayRecord("2026-01-14"))
    assert store.load_day_records(config) == {}

def test_save_day_records_replaces_all(store, config):
    store.save_day_record(DayRecord("2026-01-12", notes="alt"))
    store.save_day_records({
        "2026-01-13": DayRecord("2026-01-13", kind=Vacances()),
        "2026-01-14": DayRecord("2026-01-14"),
    })
    assert list(store.load_day_records(config)) == ["2026-01-13"]

def test_broken_day_entry_is_repaired(store, config):
    with store.Session() as session:
        session.add(DayEntry(date="2026-01-15", day_status="unbekannt", day_type=None, other_hours=3.0, start_time="8"))
        session.add(DayEntry(date="2026-01-16", day_status="flexibilitat", ap_hours=3.0, flex_hours=1.0, day_type="presencial"))
        session.commit()
    days = store.load_day_records(config)

    broken = days["2026-01-15"]
    assert isinstance(broken.kind, Laboral)
    assert broken.day_type == DayType.PRESENCIAL  # Donnerstag laut Wochenmuster
    assert broken.start_time == "08:00"
    assert broken.other_hours is None

    flex = days["2026-01-16"]
    assert isinstance(flex.kind, Flexibilitat)
    assert flex.flex_hours == 1.0
    assert flex.ap_hours is None

def test_replace_all_and_reset(store, config):
    store.save(default_config())
    store.save_day_record(DayRecord("2026-03-02", notes="weg"))
    days = {"2026-01-14": DayRecord("2026-01-14", kind=Vacances(request_status=RequestStatus.APROVAT))}

    assert store.replace_all(config, days) is True
    assert store.load() == config
    assert list(store.load_day_records(config)) == ["2026-01-14"]

    store.reset()
    assert store.has_config() is False
    assert store.load_day_records(config) == {}

# --- 3. Export ---

def test_export_day_omits_derived_and_empty_fields(config):
    # Mittwoch ist laut Wochenmuster presencial -> dayType entfällt
    data = export_day(DayRecord("2026-01-14", start_time="08:00", end_time="15:00"), config)
    assert data == {"date": "2026-01-14", "startTime": "08:00", "endTime": "15:00", "dayStatus": "laboral"}

def test_export_day_keeps_deviating_day_type(config):
    data = export_day(DayRecord("2026-01-14", day_type=DayType.TELETREBALL, notes="x"), config)
    assert data["dayType"] == "teletreball"

def test_export_vacation_has_no_times(config):
    data = export_day(DayRecord("2026-01-14", kind=Vacances()), config)
    assert "startTime" not in data
    assert data["requestStatus"] == "pendent"

def test_export_document(config):
    days = {
        "2026-02-02": DayRecord("2026-02-02", notes="b"),
        "2026-01-14": DayRecord("2026-01-14", notes="a"),
    }
    doc = export_document(config, days)
    assert doc["version"] == "1.0"
    assert list(doc["daysData"]) == ["2026-01-14", "2026-02-02"]
    assert doc["config"]["totalAPHours"] == 90.0
    assert doc["config"]["holidays"] == ["2026-01-06", "2026-12-25"]

# --- 4. Kaputte Datenbank ---

def test_broken_database_falls_back_to_defaults(tmp_path):
    db_path = tmp_path / "database.db"
    store = Storage(f"sqlite:///{db_path}")
    conn = sqlite3.connect(db_path)
    conn.executescript("DROP TABLE settings; DROP TABLE day_entry;")
    conn.close()

    assert store.has_config() is False
    assert store.load() == default_config()
    assert store.load_day_records(default_config()) == {}
