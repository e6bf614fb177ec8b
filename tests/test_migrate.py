import sqlite3
import pytest
from domain import default_schedule_periods
from migrate import ADDED_COLUMNS, migrate, table_columns, upgrade_legacy_payload
from storage import Storage

# Schema einer älteren Version (ohne Split-Shift, Sonstiges und Flex-Verbrauch)
OLD_SCHEMA = """
CREATE TABLE settings (
    id INTEGER PRIMARY KEY,
    default_start_time VARCHAR(5),
    weekly_pattern VARCHAR(80),
    total_vacation_days INTEGER,
    used_vacation_days INTEGER,
    total_ap_hours FLOAT,
    used_ap_hours FLOAT,
    flexibility_hours FLOAT
);
CREATE TABLE day_entry (
    date VARCHAR(10) PRIMARY KEY,
    day_status VARCHAR(20),
    request_status VARCHAR(10),
    day_type VARCHAR(20),
    start_time VARCHAR(5),
    end_time VARCHAR(5),
    ap_hours FLOAT,
    flex_hours FLOAT,
    notes VARCHAR(1000)
);
INSERT INTO settings (id, default_start_time, total_vacation_days, used_vacation_days,
                      total_ap_hours, used_ap_hours, flexibility_hours)
VALUES (1, '08:00', 22, 2, 90.0, 6.0, 3.5);
INSERT INTO day_entry (date, day_status, start_time, end_time) VALUES ('2026-01-14', 'laboral', '08:00', '16:00');
"""

@pytest.fixture
def old_db(tmp_path):
    db_path = tmp_path / "database.db"
    conn = sqlite3.connect(db_path)
    conn.executescript(OLD_SCHEMA)
    conn.commit()
    conn.close()
    return str(db_path)

# --- 1. Datenbank-Migration ---

def test_missing_database_is_skipped(tmp_path):
    assert migrate(str(tmp_path / "fehlt.db")) == 0

def test_old_database_gets_new_columns(old_db):
    assert migrate(old_db) == len(ADDED_COLUMNS)

    conn = sqlite3.connect(old_db)
    cursor = conn.cursor()
    for table, column, _ in ADDED_COLUMNS:
        assert column in table_columns(cursor, table)
    assert table_columns(cursor, "gibt_es_nicht") is None
    conn.close()

def test_migration_is_repeatable(old_db):
    migrate(old_db)
    assert migrate(old_db) == 0

def test_migrated_database_is_readable(old_db):
    migrate(old_db)
    store = Storage(f"sqlite:///{old_db}")
    config = store.load()
    assert config.default_start_time == "08:00"
    assert config.total_vacation_days == 22
    assert config.flexibility_hours == 3.5
    assert config.used_flex_hours == 0.0
    assert config.calendar_year == 2026
    assert config.schedule_periods == default_schedule_periods(2026)

    days = store.load_day_records(config)
    assert days["2026-01-14"].start_time == "08:00"
    assert days["2026-01-14"].start_time2 is None

# --- 2. Alte Export-Dateien ---

def test_upgrade_legacy_payload():
    payload = {
        "config": {
            "weeklyConfig": {"monday": {"dayType": "teletreball", "theoreticalHours": 7.5}},
            "holidays": [],
        },
        "daysData": {},
    }
    upgraded = upgrade_legacy_payload(payload)
    config = upgraded["config"]
    assert config["calendarYear"] == 2026
    assert len(config["schedulePeriods"]) == 7
    assert config["weeklyConfig"]["monday"] == {"dayType": "teletreball"}
    assert config["usedFlexHours"] == 0.0
    # Eingabe bleibt unverändert
    assert "schedulePeriods" not in payload["config"]

def test_upgrade_keeps_current_payload():
    payload = {"config": {"calendarYear": 2027, "schedulePeriods": [], "usedFlexHours": 1.0}}
    assert upgrade_legacy_payload(payload) == payload

def test_upgrade_ignores_unknown_structure():
    payload = {"config": "kaputt"}
    assert upgrade_legacy_payload(payload) is payload
