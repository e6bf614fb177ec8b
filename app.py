"""
Einstiegspunkt für die Oberfläche: bündelt Speicher, Abgleich der
Kontingente, Wochenbilanz sowie Import/Export hinter einer Klasse.
"""
import json
import logging
import os
import shutil
import time
from dataclasses import replace
from datetime import datetime
from logging.handlers import TimedRotatingFileHandler

from balance import check_day_request, commit_day_edit, empty_record_for
from domain import Festiu, default_config
from logic import coverage_gaps, is_empty_record, is_holiday, new_day_record, period_overlaps, to_date
from migrate import migrate
from storage import Storage, export_document
from summary import status_summary, week_start_for, weekly_summary
from validation import ImportRejected, parse_import

logger = logging.getLogger("horari")

# --- PFADE & ORDNER ---
basedir = os.path.abspath(os.path.dirname(__file__))
DEFAULT_DATA_DIR = os.environ.get("HORARI_DATA_DIR") or os.path.join(basedir, 'data')

BACKUP_RETENTION_DAYS = 180


# --- 1. LOGGING KONFIGURATION (Log-Rotation) ---
def configure_logging(log_dir, level=logging.INFO):
    """Rotiert alle 30 Tage, behält max. 6 alte Dateien (180 Tage)"""
    os.makedirs(log_dir, exist_ok=True)
    log_file = os.path.join(log_dir, 'horari.log')
    for handler in logger.handlers:
        if isinstance(handler, TimedRotatingFileHandler) and handler.baseFilename == os.path.abspath(log_file):
            return handler
    log_handler = TimedRotatingFileHandler(log_file, when='D', interval=30, backupCount=6)
    log_handler.setFormatter(logging.Formatter('%(asctime)s - %(levelname)s - %(message)s'))
    logger.addHandler(log_handler)
    logger.setLevel(level)
    return log_handler


# --- 2. DATENBANK BACKUPS (Backup-Rotation) ---
def perform_daily_backup(db_path, backup_dir):
    """Erstellt einmal am Tag ein Backup der SQLite Datenbank und löscht alte Backups (>180 Tage)"""
    today_str = datetime.now().strftime('%Y-%m-%d')
    backup_file = os.path.join(backup_dir, f'db_backup_{today_str}.db')

    if os.path.exists(backup_file) or not os.path.exists(db_path):
        return None
    try:
        os.makedirs(backup_dir, exist_ok=True)
        shutil.copy2(db_path, backup_file)
        logger.info(f"Tägliches Datenbank-Backup erstellt: {backup_file}")
        now = time.time()
        for f in os.listdir(backup_dir):
            f_path = os.path.join(backup_dir, f)
            if os.path.isfile(f_path) and os.stat(f_path).st_mtime < now - (BACKUP_RETENTION_DAYS * 86400):
                os.remove(f_path)
                logger.info(f"Altes Backup gelöscht (>{BACKUP_RETENTION_DAYS} Tage): {f}")
        return backup_file
    except OSError as e:
        logger.error(f"Fehler beim DB-Backup: {e}", exc_info=True)
        return None


class Ledger:
    """
    Arbeitszeit-Konto eines Benutzers. Jede Änderung eines Tages wird
    vollständig abgeschlossen (Abgleich, Konfiguration, Speichern), bevor die
    nächste beginnt.
    """

    def __init__(self, store):
        self.store = store
        self.config = store.load()
        self.days = store.load_day_records(self.config)

    @classmethod
    def open(cls, data_dir=DEFAULT_DATA_DIR, with_logging=True):
        db_path = os.path.join(data_dir, 'database.db')
        os.makedirs(data_dir, exist_ok=True)
        if with_logging:
            configure_logging(os.path.join(data_dir, 'logs'))

        migrate(db_path)
        perform_daily_backup(db_path, os.path.join(data_dir, 'backups'))

        store = Storage(f'sqlite:///{db_path}')
        if not store.has_config():
            store.save(default_config())
        ledger = cls(store)
        logger.info("Arbeitszeit-Konto erfolgreich geöffnet.")
        return ledger

    @classmethod
    def in_memory(cls):
        store = Storage('sqlite://')
        store.save(default_config())
        return cls(store)

    # --- Tage ---

    def day(self, d):
        return self.days.get(to_date(d).isoformat())

    def new_day(self, d):
        return self.day(d) or new_day_record(d, self.config)

    def update_day(self, record):
        """
        Übernimmt einen bearbeiteten Tag. Wirft RequestLimitExceeded, wenn
        ein Urlaubs- oder AP-Antrag das Kontingent übersteigt.
        """
        previous = self.days.get(record.date)
        record = check_day_request(previous, record, self.config, self.days)
        self.config = commit_day_edit(self.store, previous, record, self.config, self.days)
        if is_empty_record(record):
            self.days = {k: v for k, v in self.days.items() if k != record.date}
        else:
            self.days = {**self.days, record.date: record}
        return record

    def reset_day(self, d):
        key = to_date(d).isoformat()
        previous = self.days.get(key)
        if previous is None:
            return
        empty = empty_record_for(previous)
        if is_holiday(key, self.config.holidays):
            empty = replace(empty, kind=Festiu())
        # Leere Tage werden beim Speichern entfernt
        self.config = commit_day_edit(self.store, previous, empty, self.config, self.days)
        self.days = {k: v for k, v in self.days.items() if k != key}
        logger.info(f"Tag {key} zurückgesetzt")

    # --- Einstellungen ---

    def update_config(self, config):
        """
        Einstellungen speichern. Perioden-Lücken und Überschneidungen werden
        nur gemeldet; die Soll-Stunden fallen dort auf den Winterwert zurück.
        """
        gaps = coverage_gaps(config.schedule_periods, config.calendar_year)
        if gaps:
            logger.warning(f"{gaps} Tage in {config.calendar_year} ohne Dienstplan-Periode")
        overlaps = period_overlaps(config.schedule_periods)
        if overlaps:
            logger.warning(f"Überschneidende Dienstplan-Perioden: {overlaps}")
        self.config = config
        self.store.save(config)
        return {"coverage_gaps": gaps, "overlaps": overlaps}

    def toggle_holiday(self, d):
        key = to_date(d).isoformat()
        if key in self.config.holidays:
            holidays = tuple(h for h in self.config.holidays if h != key)
        else:
            holidays = self.config.holidays + (key,)
        self.config = replace(self.config, holidays=holidays)
        self.store.save(self.config)
        return key in self.config.holidays

    def coverage_gaps(self):
        return coverage_gaps(self.config.schedule_periods, self.config.calendar_year)

    # --- Auswertungen ---

    def week_summary(self, d):
        return weekly_summary(week_start_for(d), self.days, self.config)

    def status(self):
        return status_summary(self.config, self.days)

    # --- Import / Export ---

    def export_json(self):
        return json.dumps(export_document(self.config, self.days), ensure_ascii=False, indent=2)

    def import_json(self, raw):
        """
        Alles-oder-nichts: bei ungültigen Daten oder Speicherfehler bleibt
        der bisherige Stand unverändert.
        """
        config, days = parse_import(raw)
        days = {k: v for k, v in days.items() if not is_empty_record(v)}
        if not self.store.replace_all(config, days):
            raise ImportRejected("Import konnte nicht gespeichert werden")
        self.config = config
        self.days = days
        logger.info(f"Import abgeschlossen: {len(days)} Tage")

    def reset(self):
        self.store.reset()
        self.config = default_config()
        self.store.save(self.config)
        self.days = {}
        logger.info("Alle Daten zurückgesetzt.")
