import logging
import os
import sqlite3

from domain import DEFAULT_CALENDAR_YEAR, DEFAULT_WEEKLY_CONFIG, WEEKDAYS, default_schedule_periods

logger = logging.getLogger("horari.migrate")

# Robust: Dynamische Pfadermittlung (exakt wie in app.py)
basedir = os.path.abspath(os.path.dirname(__file__))
data_dir = os.environ.get("HORARI_DATA_DIR") or os.path.join(basedir, 'data')
DB_PATH = os.path.join(data_dir, 'database.db')

# Spalten, die spätere Versionen ergänzt haben: (Tabelle, Spalte, SQL-Typ)
ADDED_COLUMNS = [
    ("day_entry", "start_time2", "VARCHAR(5)"),
    ("day_entry", "end_time2", "VARCHAR(5)"),
    ("day_entry", "other_hours", "FLOAT"),
    ("day_entry", "other_comment", "VARCHAR(255)"),
    ("settings", "used_flex_hours", "FLOAT DEFAULT 0.0"),
    ("settings", "calendar_year", f"INTEGER DEFAULT {DEFAULT_CALENDAR_YEAR}"),
]

def table_columns(cursor, table):
    cursor.execute("SELECT name FROM sqlite_master WHERE type='table' AND name=?", (table,))
    if not cursor.fetchone():
        return None
    cursor.execute(f"PRAGMA table_info({table})")
    return [row[1] for row in cursor.fetchall()]

def migrate(db_path=DB_PATH):
    """
    Ergänzt fehlende Spalten älterer Datenbanken. Gibt die Anzahl der
    durchgeführten Änderungen zurück.
    """
    if not os.path.exists(db_path):
        logger.info(f"[Migrate] Keine Datenbank unter {db_path} gefunden. Wird beim Start erstellt.")
        return 0

    # Verbindung direkt herstellen (ohne SQLAlchemy für Speed/Sicherheit)
    conn = sqlite3.connect(db_path)
    cursor = conn.cursor()
    changes = 0

    try:
        for table, column, sql_type in ADDED_COLUMNS:
            columns = table_columns(cursor, table)
            if columns is None or column in columns:
                continue
            logger.info(f"[Migrate] Spalte '{table}.{column}' fehlt. Wird ergänzt...")
            cursor.execute(f"ALTER TABLE {table} ADD COLUMN {column} {sql_type}")
            changes += 1
        conn.commit()
        if changes == 0:
            logger.info("[Migrate] Datenbank-Schema ist auf dem neuesten Stand.")
    except sqlite3.Error as e:
        logger.error(f"[Migrate] Fehler bei der Prüfung/Migration: {e}", exc_info=True)
        conn.rollback()
    finally:
        conn.close()
    return changes

def upgrade_legacy_payload(payload):
    """
    Hebt Export-Dateien älterer Versionen auf das aktuelle Format an:
    - fehlende schedulePeriods -> Standard-Perioden des Jahres
    - weeklyConfig mit theoreticalHours -> nur noch dayType
    - fehlendes usedFlexHours -> 0
    Unbekannte Strukturen bleiben unverändert (die Validierung meldet sie).
    """
    config = payload.get("config")
    if not isinstance(config, dict):
        return payload

    config = dict(config)
    if not isinstance(config.get("calendarYear"), int):
        config["calendarYear"] = DEFAULT_CALENDAR_YEAR

    if "schedulePeriods" not in config:
        config["schedulePeriods"] = [p.to_dict() for p in default_schedule_periods(config["calendarYear"])]

    weekly = config.get("weeklyConfig")
    if isinstance(weekly, dict):
        upgraded = {}
        for day in WEEKDAYS:
            entry = weekly.get(day)
            if isinstance(entry, dict) and "theoreticalHours" in entry:
                entry = {"dayType": entry.get("dayType") or DEFAULT_WEEKLY_CONFIG[day].value}
            upgraded[day] = entry
        config["weeklyConfig"] = upgraded

    if not isinstance(config.get("usedFlexHours"), (int, float)):
        config["usedFlexHours"] = 0.0

    return {**payload, "config": config}

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    # Stelle sicher, dass der Ordner existiert, falls migrate.py isoliert aufgerufen wird
    os.makedirs(os.path.dirname(DB_PATH), exist_ok=True)
    migrate()
