"""
Persistenz der Konfiguration und der Tagesdatensätze (SQLAlchemy / SQLite).

Fehlerhafte gespeicherte Werte fallen auf Standardwerte zurück, Schreibfehler
werden geloggt und zurückgerollt. Beides wird nie an den Aufrufer weitergereicht.
"""
import logging
from datetime import date, datetime

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from domain import (
    DEFAULT_CALENDAR_YEAR, DEFAULT_WEEKLY_CONFIG, DayRecord, DayType, SchedulePeriod,
    ScheduleType, UserConfig, WEEKDAYS, default_config, default_schedule_periods, make_kind,
)
from logic import day_type_for_date, is_empty_record, normalize_time_str
from models import Base, DayEntry, Holiday, SchedulePeriodEntry, Settings

logger = logging.getLogger("horari.storage")

EXPORT_VERSION = "1.0"


# --- Konvertierung Zeile <-> Domäne ---

def parse_weekly_pattern(pattern):
    if not pattern:
        return dict(DEFAULT_WEEKLY_CONFIG)
    parts = [p.strip() for p in pattern.split(',')]
    try:
        if len(parts) != len(WEEKDAYS): raise ValueError(pattern)
        return {day: DayType(value) for day, value in zip(WEEKDAYS, parts)}
    except ValueError:
        logger.warning(f"Ungültiges Wochenmuster '{pattern}', verwende Standard")
        return dict(DEFAULT_WEEKLY_CONFIG)


def format_weekly_pattern(weekly_config):
    return ",".join(DayType(weekly_config.get(day, DayType.PRESENCIAL)).value for day in WEEKDAYS)


def _period_from_entry(entry):
    try:
        return SchedulePeriod(
            id=entry.id,
            start_date=date.fromisoformat(entry.start_date),
            end_date=date.fromisoformat(entry.end_date),
            schedule_type=ScheduleType(entry.schedule_type),
        )
    except (TypeError, ValueError):
        logger.warning(f"Ungültige Dienstplan-Periode '{entry.id}' übersprungen")
        return None


def _number(value, default):
    return value if isinstance(value, (int, float)) else default


def config_from_rows(settings, period_entries, holiday_entries):
    year = _number(settings.calendar_year, DEFAULT_CALENDAR_YEAR)
    periods = tuple(p for p in (_period_from_entry(e) for e in period_entries) if p is not None)
    if not periods:
        logger.warning("Keine Dienstplan-Perioden gespeichert, verwende Standard-Perioden")
        periods = default_schedule_periods(year)

    defaults = UserConfig()
    return UserConfig(
        calendar_year=year,
        default_start_time=normalize_time_str(settings.default_start_time) or defaults.default_start_time,
        weekly_config=parse_weekly_pattern(settings.weekly_pattern),
        schedule_periods=periods,
        holidays=tuple(h.date for h in holiday_entries),
        total_vacation_days=_number(settings.total_vacation_days, defaults.total_vacation_days),
        used_vacation_days=_number(settings.used_vacation_days, defaults.used_vacation_days),
        total_ap_hours=_number(settings.total_ap_hours, defaults.total_ap_hours),
        used_ap_hours=_number(settings.used_ap_hours, defaults.used_ap_hours),
        flexibility_hours=_number(settings.flexibility_hours, defaults.flexibility_hours),
        used_flex_hours=_number(settings.used_flex_hours, defaults.used_flex_hours),
    )


def record_from_entry(entry, config):
    kind = make_kind(
        entry.day_status,
        request_status=entry.request_status,
        ap_hours=entry.ap_hours,
        flex_hours=entry.flex_hours,
        other_hours=entry.other_hours,
        other_comment=entry.other_comment,
    )
    try:
        day_type = DayType(entry.day_type)
    except ValueError:
        # Fehlender oder kaputter Wert -> aus dem Wochenmuster rekonstruieren
        day_type = day_type_for_date(entry.date, config)
    return DayRecord(
        date=entry.date,
        kind=kind,
        day_type=day_type,
        start_time=normalize_time_str(entry.start_time),
        end_time=normalize_time_str(entry.end_time),
        start_time2=normalize_time_str(entry.start_time2),
        end_time2=normalize_time_str(entry.end_time2),
        notes=entry.notes,
    )


def entry_from_record(record):
    return DayEntry(
        date=record.date,
        day_status=record.day_status.value,
        request_status=record.request_status.value if record.request_status else None,
        day_type=record.day_type.value,
        start_time=record.start_time,
        end_time=record.end_time,
        start_time2=record.start_time2,
        end_time2=record.end_time2,
        ap_hours=record.ap_hours,
        flex_hours=record.flex_hours,
        other_hours=record.other_hours,
        notes=record.notes,
        other_comment=record.other_comment,
    )


# --- Storage ---

class Storage:
    def __init__(self, database_url="sqlite://"):
        self.engine = create_engine(database_url)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(bind=self.engine)

    def has_config(self):
        try:
            with self.Session() as session:
                return session.query(Settings).first() is not None
        except SQLAlchemyError as e:
            logger.error(f"Fehler beim Lesen der Konfiguration: {e}", exc_info=True)
            return False

    def load(self):
        try:
            with self.Session() as session:
                settings = session.query(Settings).first()
                if not settings:
                    logger.info("Keine gespeicherte Konfiguration, verwende Standardwerte")
                    return default_config()
                periods = session.query(SchedulePeriodEntry).order_by(SchedulePeriodEntry.start_date).all()
                holidays = session.query(Holiday).order_by(Holiday.date).all()
                return config_from_rows(settings, periods, holidays)
        except SQLAlchemyError as e:
            logger.error(f"Fehler beim Laden der Konfiguration: {e}", exc_info=True)
            return default_config()

    def _write_config(self, session, config):
        settings = session.query(Settings).first()
        if not settings:
            settings = Settings()
            session.add(settings)
        settings.calendar_year = config.calendar_year
        settings.default_start_time = config.default_start_time
        settings.weekly_pattern = format_weekly_pattern(config.weekly_config)
        settings.total_vacation_days = config.total_vacation_days
        settings.used_vacation_days = config.used_vacation_days
        settings.total_ap_hours = config.total_ap_hours
        settings.used_ap_hours = config.used_ap_hours
        settings.flexibility_hours = config.flexibility_hours
        settings.used_flex_hours = config.used_flex_hours

        session.query(SchedulePeriodEntry).delete()
        for p in config.schedule_periods:
            session.add(SchedulePeriodEntry(
                id=p.id,
                start_date=p.start_date.isoformat(),
                end_date=p.end_date.isoformat(),
                schedule_type=p.schedule_type.value,
            ))
        session.query(Holiday).delete()
        for h in config.holidays:
            session.add(Holiday(date=h))

    def _write_days(self, session, days):
        session.query(DayEntry).delete()
        for record in days.values():
            if not is_empty_record(record):
                session.add(entry_from_record(record))

    def save(self, config):
        try:
            with self.Session() as session:
                self._write_config(session, config)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Fehler beim Speichern der Konfiguration: {e}", exc_info=True)

    def load_day_records(self, config):
        try:
            with self.Session() as session:
                entries = session.query(DayEntry).all()
                return {e.date: record_from_entry(e, config) for e in entries}
        except SQLAlchemyError as e:
            logger.error(f"Fehler beim Laden der Tage: {e}", exc_info=True)
            return {}

    def save_day_record(self, record):
        if is_empty_record(record):
            return self.delete_day_record(record.date)
        try:
            with self.Session() as session:
                session.merge(entry_from_record(record))
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Fehler beim Speichern von {record.date}: {e}", exc_info=True)

    def save_day_records(self, days):
        try:
            with self.Session() as session:
                self._write_days(session, days)
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Fehler beim Speichern der Tage: {e}", exc_info=True)

    def delete_day_record(self, date_str):
        try:
            with self.Session() as session:
                entry = session.get(DayEntry, date_str)
                if entry:
                    session.delete(entry)
                    session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Fehler beim Löschen von {date_str}: {e}", exc_info=True)

    def replace_all(self, config, days):
        """
        Ersetzt Konfiguration und Tage in einer Transaktion (Import).
        Bei einem Fehler bleibt der alte Stand vollständig erhalten.
        """
        try:
            with self.Session() as session:
                self._write_config(session, config)
                self._write_days(session, days)
                session.commit()
            return True
        except SQLAlchemyError as e:
            logger.error(f"Fehler beim Import: {e}", exc_info=True)
            return False

    def reset(self):
        try:
            with self.Session() as session:
                for model in (DayEntry, Holiday, SchedulePeriodEntry, Settings):
                    session.query(model).delete()
                session.commit()
        except SQLAlchemyError as e:
            logger.error(f"Fehler beim Zurücksetzen: {e}", exc_info=True)


# --- Export ---

def export_day(record, config):
    """
    Kanonische Export-Form: abgeleitete Felder (dayType, wenn aus dem
    Wochenmuster rekonstruierbar) und leere Werte entfallen.
    """
    data = record.to_dict()
    if record.day_type == day_type_for_date(record.date, config):
        data.pop("dayType")
    return {k: v for k, v in data.items() if v is not None}


def export_document(config, days):
    return {
        "config": config.to_dict(),
        "daysData": {key: export_day(days[key], config) for key in sorted(days)},
        "exportDate": datetime.now().isoformat(),
        "version": EXPORT_VERSION,
    }
